"""
Recipient Resolver

Expands a recipient selection (actors and/or teams) into the ordered,
deduplicated list of actors that will each receive one target record.

Rules:
- Teams expand to their members; only members compatible with the target
  category are kept.
- Directly-named actors must be compatible too.
- An actor reachable through several paths (direct + team, or two teams)
  appears once, at its first-seen position.
- Teams with no compatible member are reported, not silently dropped.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from .capability import compatible_members, is_compatible
from .constants import Category
from .exceptions import NoEligibleRecipients, ValidationError
from .models import Actor, ActorRef, RecipientRef, Team, TeamRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionResult:
    """
    Outcome of recipient resolution.

    Attributes:
        recipient_ids: Eligible actor IDs, deduplicated, first-seen order
        ineligible_teams: Team IDs that contributed no compatible member
        excluded_actors: Directly-named actor IDs rejected for capability
    """
    recipient_ids: List[str]
    ineligible_teams: List[str] = field(default_factory=list)
    excluded_actors: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.recipient_ids)


def resolve_recipients(
    category: Category,
    recipients: Sequence[RecipientRef],
    actors: Mapping[str, Actor],
    teams: Mapping[str, Team]
) -> ResolutionResult:
    """
    Resolve a recipient selection into eligible actor IDs.

    Args:
        category: Target category used for capability filtering
        recipients: Ordered ActorRef / TeamRef entries
        actors: Snapshot of actors by ID
        teams: Snapshot of teams by ID (with member lists)

    Returns:
        ResolutionResult with at least one recipient

    Raises:
        ValidationError: A reference names an unknown actor or team
        NoEligibleRecipients: Nobody compatible was found
    """
    _check_references(recipients, actors, teams)

    seen = set()
    recipient_ids: List[str] = []
    ineligible_teams: List[str] = []
    excluded_actors: List[str] = []

    for ref in recipients:
        if isinstance(ref, ActorRef):
            actor = actors[ref.actor_id]
            if not is_compatible(actor.capability, category):
                logger.info(
                    f"Actor {actor.actor_id} excluded: {actor.capability.value} "
                    f"cannot hold {category.value} targets"
                )
                excluded_actors.append(actor.actor_id)
                continue
            if actor.actor_id not in seen:
                seen.add(actor.actor_id)
                recipient_ids.append(actor.actor_id)
        else:
            team = teams[ref.team_id]
            _warn_unknown_members(team, actors)
            members = compatible_members(team, actors, category)
            if not members:
                logger.warning(
                    f"Team {team.name} ({team.team_id}) has no members with "
                    f"{category.value} permission"
                )
                ineligible_teams.append(team.team_id)
                continue
            for member in members:
                if member.actor_id not in seen:
                    seen.add(member.actor_id)
                    recipient_ids.append(member.actor_id)

    if not recipient_ids:
        raise NoEligibleRecipients(
            category.value,
            ineligible_teams=ineligible_teams,
            excluded_actors=excluded_actors
        )

    logger.info(
        f"Resolved {len(recipients)} selections into {len(recipient_ids)} "
        f"{category.value} recipients"
    )
    return ResolutionResult(
        recipient_ids=recipient_ids,
        ineligible_teams=ineligible_teams,
        excluded_actors=excluded_actors
    )


def duplicate_selections(
    recipients: Sequence[RecipientRef],
    teams: Mapping[str, Team]
) -> Dict[str, str]:
    """
    Find actors named directly who are also members of a selected team.

    Resolution already deduplicates them; this is for telling the user
    "X is already present in Team Y".

    Returns:
        Mapping of actor_id -> team_id of the first selected team containing it
    """
    team_of: Dict[str, str] = {}
    for ref in recipients:
        if isinstance(ref, TeamRef) and ref.team_id in teams:
            for member_id in teams[ref.team_id].member_ids:
                team_of.setdefault(member_id, ref.team_id)

    duplicates = {}
    for ref in recipients:
        if isinstance(ref, ActorRef) and ref.actor_id in team_of:
            duplicates[ref.actor_id] = team_of[ref.actor_id]
    return duplicates


def _check_references(
    recipients: Sequence[RecipientRef],
    actors: Mapping[str, Actor],
    teams: Mapping[str, Team]
) -> None:
    if not recipients:
        raise ValidationError("Select at least one employee or team", field='recipients')

    unknown = []
    for ref in recipients:
        if isinstance(ref, ActorRef):
            if ref.actor_id not in actors:
                unknown.append(f"employee {ref.actor_id}")
        elif isinstance(ref, TeamRef):
            if ref.team_id not in teams:
                unknown.append(f"team {ref.team_id}")
        else:
            raise ValidationError(f"Unsupported recipient: {ref!r}", field='recipients')

    if unknown:
        raise ValidationError(f"Unknown recipients: {', '.join(unknown)}", field='recipients')


def _warn_unknown_members(team: Team, actors: Mapping[str, Actor]) -> None:
    missing = [member_id for member_id in team.member_ids if member_id not in actors]
    if missing:
        logger.warning(
            f"Team {team.team_id}: skipping {len(missing)} members missing from actor list"
        )
