"""
Capability Model

Single source of truth for which transaction categories an actor may be
measured against. Recipient resolution, team eligibility and category
visibility all go through is_compatible().
"""

import logging
from typing import Iterable, List, Mapping, Optional, Union

from .constants import (
    Capability,
    Category,
    CAPABILITY_ALIASES,
    CATEGORY_ALIASES,
    FULL_ACCESS_ROLES,
)
from .exceptions import ValidationError
from .models import Actor, Team

logger = logging.getLogger(__name__)


_COMPATIBLE_CAPABILITIES = {
    Category.SALES: frozenset({Capability.SALES, Capability.SALES_AND_ORDERS, Capability.ALL}),
    Category.ORDERS: frozenset({Capability.ORDERS, Capability.SALES_AND_ORDERS, Capability.ALL}),
}


def is_compatible(capability: Capability, category: Category) -> bool:
    """
    Check whether an actor with `capability` can hold a `category` target.

    Sales  <- Sales, Sales & Orders, All Permissions
    Orders <- Orders, Sales & Orders, All Permissions
    """
    return capability in _COMPATIBLE_CAPABILITIES[category]


def compatible_categories(capability: Capability) -> List[Category]:
    """Categories a capability admits, in display order."""
    return [category for category in Category if is_compatible(capability, category)]


def parse_category(value: Union[str, Category]) -> Category:
    """
    Normalize an upstream category label.

    Accepts 'sale'/'sales'/'order'/'orders' in any case.
    """
    if isinstance(value, Category):
        return value
    key = str(value or '').strip().lower()
    if key not in CATEGORY_ALIASES:
        raise ValidationError(f"Unknown target type: {value!r}", field='category')
    return CATEGORY_ALIASES[key]


def parse_capability(value: Union[str, Capability]) -> Capability:
    """
    Normalize an upstream permission label.

    Accepts 'Sales', 'Orders', 'Sales & Orders', 'All Permissions' and a few
    spelling variants, case-insensitive.
    """
    if isinstance(value, Capability):
        return value
    key = str(value or '').strip().lower()
    if key not in CAPABILITY_ALIASES:
        raise ValidationError(f"Unknown permission: {value!r}", field='capability')
    return CAPABILITY_ALIASES[key]


def visible_categories(role: Optional[str], capability: Optional[Capability]) -> List[Category]:
    """
    Categories the current user may see on dashboards.

    Admins see everything; everyone else sees what their capability admits.
    The role comes from the injected current_actor_role() collaborator.
    """
    normalized_role = (role or '').lower()
    if normalized_role in [r.lower() for r in FULL_ACCESS_ROLES]:
        return list(Category)
    if capability is None:
        return []
    return compatible_categories(capability)


def compatible_members(
    team: Team,
    actors: Mapping[str, Actor],
    category: Category
) -> List[Actor]:
    """Team members (in team order) that can hold a `category` target."""
    members = []
    for member_id in team.member_ids:
        actor = actors.get(member_id)
        if actor is None:
            continue
        if is_compatible(actor.capability, category):
            members.append(actor)
    return members


def team_has_capability(
    team: Team,
    actors: Mapping[str, Actor],
    category: Category
) -> bool:
    """True when at least one member of the team is compatible with `category`."""
    return bool(compatible_members(team, actors, category))


def eligible_actors(actors: Iterable[Actor], category: Category) -> List[Actor]:
    """Filter actors down to those compatible with `category`."""
    return [actor for actor in actors if is_compatible(actor.capability, category)]
