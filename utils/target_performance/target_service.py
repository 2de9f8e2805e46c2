"""
Target Assignment Service

Write path for targets: validate -> resolve recipients -> apportion ->
persist, in that order. Nothing is written unless every earlier step
succeeded, and the batch itself is written all-or-nothing by the
persistence callable.

Single records can later be edited or deleted without touching their
siblings.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .access_control import AccessControl
from .apportionment import apportion, edit_target_record, validate_target_request
from .exceptions import PersistenceError, ValidationError
from .models import (
    Actor,
    ActorRef,
    RecipientRef,
    TargetBatch,
    TargetRecord,
    TargetRequest,
    Team,
    TeamRef,
)
from .recipient_resolver import ResolutionResult, duplicate_selections, resolve_recipients

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    """Outcome of a successful assignment."""
    batch: TargetBatch
    resolution: ResolutionResult
    target_ids: List[str] = field(default_factory=list)
    duplicates: Dict[str, str] = field(default_factory=dict)

    @property
    def warnings(self) -> List[str]:
        """Non-blocking messages to show next to the success toast."""
        messages = []
        for actor_id, team_id in self.duplicates.items():
            messages.append(f"Employee {actor_id} is already present in team {team_id}")
        for team_id in self.resolution.ineligible_teams:
            messages.append(f"Team {team_id} has no members with the required permission")
        for actor_id in self.resolution.excluded_actors:
            messages.append(f"Employee {actor_id} does not have the required permission")
        return messages


class TargetAssignmentService:
    """
    Create, edit and delete targets.

    Usage:
        service = TargetAssignmentService(
            actors=directory.actors,
            teams=directory.teams,
            persist_batch=queries.persist_target_batch,
            update_record=queries.update_target_record,
            access=access,
            delete_record=queries.delete_target_record
        )

        result = service.assign(request)
        st.success(f"Created {len(result.batch)} targets")
    """

    def __init__(
        self,
        actors: Mapping[str, Actor],
        teams: Mapping[str, Team],
        persist_batch: Callable[[TargetBatch], List[str]],
        update_record: Optional[Callable[[TargetRecord], None]] = None,
        access: Optional[AccessControl] = None,
        delete_record: Optional[Callable[[TargetRecord], None]] = None
    ):
        self.actors = actors
        self.teams = teams
        self.persist_batch = persist_batch
        self.update_record = update_record
        self.delete_record = delete_record
        self.access = access

    # =========================================================================
    # ASSIGN
    # =========================================================================

    def preview(self, request: TargetRequest) -> AssignmentResult:
        """
        Run validation, resolution and apportionment without persisting.

        Raises:
            InvalidAmount, InvalidQuantity, ValidationError, NoEligibleRecipients
        """
        request = validate_target_request(request)
        self._check_scope(request.recipients)

        resolution = resolve_recipients(
            request.category, request.recipients, self.actors, self.teams
        )
        batch = apportion(request, resolution.recipient_ids)
        return AssignmentResult(
            batch=batch,
            resolution=resolution,
            duplicates=duplicate_selections(request.recipients, self.teams),
        )

    def assign(self, request: TargetRequest) -> AssignmentResult:
        """
        Validate, resolve, apportion and persist one target request.

        Raises:
            InvalidAmount, InvalidQuantity, ValidationError,
            NoEligibleRecipients: before anything is written
            PersistenceError: batch write failed and was rolled back
        """
        result = self.preview(request)
        result.target_ids = list(self.persist_batch(result.batch))

        logger.info(
            f"Assigned {result.batch.request.category.value} target "
            f"{result.batch.request.request_id}: {len(result.batch)} records"
        )
        for message in result.warnings:
            logger.info(message)
        return result

    # =========================================================================
    # EDIT
    # =========================================================================

    def edit(self, record: TargetRecord, **changes: Any) -> TargetRecord:
        """
        Edit one persisted record; its siblings are left as they are.

        Args:
            record: Persisted record (with target_id)
            **changes: amount, quantity, month, year
        """
        self._check_record_scope(record, "edit")

        edited = edit_target_record(record, **changes)
        if self.update_record is not None:
            self.update_record(edited)
        return edited

    def delete(self, record: TargetRecord) -> None:
        """
        Delete one persisted record; its siblings are left as they are.

        Raises:
            ValidationError: record belongs to someone outside the user's scope
            PersistenceError: delete failed or the record is already gone
        """
        self._check_record_scope(record, "delete")
        if self.delete_record is None:
            raise PersistenceError("Deleting targets is not available here")
        self.delete_record(record)

    # =========================================================================
    # LISTING
    # =========================================================================

    def visible_targets(self, records: Iterable[TargetRecord]) -> List[TargetRecord]:
        """Target records the user may see and manage, newest period first."""
        records = list(records)
        if self.access is not None:
            records = self.access.filter_records(records)
        return sorted(records, key=lambda r: (-r.year, -r.month, r.actor_id))

    # =========================================================================
    # HELPER
    # =========================================================================

    def _check_record_scope(self, record: TargetRecord, action: str) -> None:
        if self.access is None or self.access.can_view_all():
            return
        if not self.access.can_assign_targets():
            raise ValidationError(f"You are not allowed to {action} targets", field='recipients')
        if not self.access.validate_selected_actors([record.actor_id]):
            raise ValidationError(
                f"You cannot {action} this employee's target", field='recipients'
            )

    def _check_scope(self, recipients: Sequence[RecipientRef]) -> None:
        """Team managers may only target their own people and teams."""
        if self.access is None or self.access.can_view_all():
            return

        if not self.access.can_assign_targets():
            raise ValidationError("You are not allowed to assign targets", field='recipients')

        accessible = set(self.access.get_accessible_actor_ids())
        managed = {team.team_id for team in self.access.managed_teams()}
        outside = []
        for ref in recipients:
            if isinstance(ref, ActorRef) and ref.actor_id not in accessible:
                outside.append(f"employee {ref.actor_id}")
            elif isinstance(ref, TeamRef) and ref.team_id not in managed:
                outside.append(f"team {ref.team_id}")

        if outside:
            raise ValidationError(
                f"Outside your teams: {', '.join(outside)}", field='recipients'
            )
