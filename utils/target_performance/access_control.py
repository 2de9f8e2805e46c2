"""
Role-based Access Control for Target Performance

Decides whose records the current user may see:
- admin:        everyone
- team_manager: self + members of the teams they manage
- employee:     own data only

Works on the actor/team snapshot already loaded for the page; the role is
supplied by the caller (utils.auth.current_actor_role()).
"""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, TypeVar

from .constants import (
    ACCESS_LEVEL_DESCRIPTIONS,
    FULL_ACCESS_ROLES,
    TARGET_ASSIGNER_ROLES,
    TEAM_ACCESS_ROLES,
)
from .models import Actor, Team

logger = logging.getLogger(__name__)

T = TypeVar('T')


def access_level_for_role(role: Optional[str]) -> str:
    """'full', 'team' or 'self'; unknown or missing roles get 'self'."""
    normalized = (role or '').lower()
    if normalized in [r.lower() for r in FULL_ACCESS_ROLES]:
        return 'full'
    elif normalized in [r.lower() for r in TEAM_ACCESS_ROLES]:
        return 'team'
    return 'self'


def describe_access(role: Optional[str]) -> str:
    """One-line description of what a role can see and do."""
    return ACCESS_LEVEL_DESCRIPTIONS[access_level_for_role(role)]


class AccessControl:
    """
    Manage data access based on user role and team membership.

    Usage:
        access = AccessControl(
            user_role=current_actor_role(),
            actor_id=current_actor().actor_id,
            actors=actors_by_id,
            teams=teams_by_id
        )

        level = access.get_access_level()  # 'full', 'team', or 'self'
        ids = access.get_accessible_actor_ids()
        visible = access.filter_records(transactions)
    """

    def __init__(
        self,
        user_role: Optional[str],
        actor_id: Optional[str],
        actors: Mapping[str, Actor],
        teams: Mapping[str, Team]
    ):
        self.user_role = user_role.lower() if user_role else ''
        self.actor_id = actor_id
        self.actors = actors
        self.teams = teams
        self._accessible_ids: Optional[List[str]] = None

        logger.info(f"AccessControl initialized: role={self.user_role}, actor_id={self.actor_id}")

    # =========================================================================
    # ACCESS LEVEL DETERMINATION
    # =========================================================================

    def get_access_level(self) -> str:
        """
        Determine access level based on role.

        Returns:
            'full' - Can view all actors
            'team' - Can view self + managed team members
            'self' - Can view own data only
        """
        return access_level_for_role(self.user_role)

    def can_view_all(self) -> bool:
        return self.get_access_level() == 'full'

    def can_assign_targets(self) -> bool:
        """Admins and team managers may create targets."""
        return self.user_role in [r.lower() for r in TARGET_ASSIGNER_ROLES]

    # =========================================================================
    # ACCESSIBLE ACTORS / TEAMS
    # =========================================================================

    def managed_teams(self) -> List[Team]:
        """Teams the user may see: all for admins, managed ones for team managers."""
        level = self.get_access_level()
        if level == 'full':
            return list(self.teams.values())
        if level == 'team':
            return [team for team in self.teams.values() if team.manager_id == self.actor_id]
        return []

    def get_accessible_actor_ids(self) -> List[str]:
        """
        Actor IDs the user can access. Cached after first call.
        """
        if self._accessible_ids is not None:
            return self._accessible_ids

        level = self.get_access_level()

        if level == 'full':
            ids = list(self.actors.keys())
        elif level == 'team':
            ids = [self.actor_id] if self.actor_id else []
            for team in self.managed_teams():
                for member_id in team.member_ids:
                    if member_id not in ids:
                        ids.append(member_id)
            if len(ids) <= 1:
                logger.warning(f"Team manager {self.actor_id} manages no team members")
        else:
            ids = [self.actor_id] if self.actor_id else []

        self._accessible_ids = ids
        logger.info(f"Accessible actor IDs ({level}): {len(ids)} actors")
        return ids

    # =========================================================================
    # DATA FILTERING
    # =========================================================================

    def filter_records(self, records: Iterable[T]) -> List[T]:
        """
        Keep only records (anything with an actor_id) for accessible actors.
        """
        records = list(records)
        if self.can_view_all():
            return records

        accessible = set(self.get_accessible_actor_ids())
        filtered = [r for r in records if getattr(r, 'actor_id', None) in accessible]
        logger.debug(f"Filtered records: {len(records)} -> {len(filtered)}")
        return filtered

    def validate_selected_actors(self, selected_ids: Sequence[str]) -> List[str]:
        """
        Drop selected actor IDs the user is not allowed to access.
        """
        accessible = set(self.get_accessible_actor_ids())
        valid_ids = [actor_id for actor_id in selected_ids if actor_id in accessible]

        if len(valid_ids) < len(selected_ids):
            logger.warning(
                f"Some selected actors were filtered out: "
                f"selected={len(selected_ids)}, valid={len(valid_ids)}"
            )

        return valid_ids

    def __repr__(self) -> str:
        return (
            f"AccessControl(role='{self.user_role}', "
            f"actor_id={self.actor_id!r}, "
            f"level='{self.get_access_level()}')"
        )
