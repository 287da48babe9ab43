"""
Report workflow: states, the transition table and per-target guards.

Check order for a transition request is fixed:

1. target reachable from the current state, else ``InvalidTransitionError``
2. actor ranks at least Responder in the report's event, else ``ForbiddenError``
3. notes present when the target requires them, else ``MissingNotesError``
4. assignee holds Responder/EventAdmin in the event when one is required or
   supplied, else ``MissingOrInvalidAssigneeError``

The state change itself is a conditional update on the prior state; losing a
race yields ``StaleTransitionError``. Nothing here retries.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping

from ..auth.principal import Principal
from ..auth.role_resolver import RoleResolver
from ..auth.visibility import can_write
from ..errors import (
    AppError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    MissingNotesError,
    MissingOrInvalidAssigneeError,
    StaleTransitionError,
)
from .events import AssignmentChanged, StateChanged
from .outcome import Outcome
from .ports.clock import Clock
from .ports.reports import ReportData, ReportRepository, StateHistoryData

logger = logging.getLogger("conducky.workflow")


class ReportState(str, Enum):
    SUBMITTED = "submitted"
    ACKNOWLEDGED = "acknowledged"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


@dataclass(frozen=True)
class TransitionRequirement:
    notes: bool = False
    assignment: bool = False


TRANSITIONS: Final[Mapping[ReportState, frozenset[ReportState]]] = MappingProxyType({
    ReportState.SUBMITTED: frozenset({
        ReportState.ACKNOWLEDGED,
        ReportState.INVESTIGATING,
        ReportState.RESOLVED,
        ReportState.CLOSED,
    }),
    ReportState.ACKNOWLEDGED: frozenset({
        ReportState.INVESTIGATING,
        ReportState.RESOLVED,
        ReportState.CLOSED,
    }),
    ReportState.INVESTIGATING: frozenset({
        ReportState.RESOLVED,
        ReportState.CLOSED,
    }),
    ReportState.RESOLVED: frozenset({ReportState.CLOSED}),
    ReportState.CLOSED: frozenset(),
})

REQUIREMENTS: Final[Mapping[ReportState, TransitionRequirement]] = MappingProxyType({
    ReportState.SUBMITTED: TransitionRequirement(),
    ReportState.ACKNOWLEDGED: TransitionRequirement(),
    ReportState.INVESTIGATING: TransitionRequirement(notes=True, assignment=True),
    ReportState.RESOLVED: TransitionRequirement(notes=True),
    ReportState.CLOSED: TransitionRequirement(),
})

TERMINAL_STATES: Final[frozenset[ReportState]] = frozenset(
    state for state, targets in TRANSITIONS.items() if not targets
)


def parse_state(value: str | ReportState) -> ReportState | None:
    if isinstance(value, ReportState):
        return value
    try:
        return ReportState(value)
    except ValueError:
        return None


def allowed_transitions(state: str | ReportState) -> frozenset[ReportState]:
    current = parse_state(state)
    if current is None:
        return frozenset()
    return TRANSITIONS[current]


def requirements_for(target: str | ReportState) -> TransitionRequirement:
    parsed = parse_state(target)
    if parsed is None:
        return TransitionRequirement()
    return REQUIREMENTS[parsed]


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


@dataclass(frozen=True)
class TransitionResult:
    report: ReportData
    history_entry: StateHistoryData
    state_changed: StateChanged
    assignment_changed: AssignmentChanged | None = None


class ReportStateMachine:
    def __init__(self, reports: ReportRepository, resolver: RoleResolver, clock: Clock):
        self.reports = reports
        self.resolver = resolver
        self.clock = clock

    async def validate(
        self,
        report: ReportData,
        target: str | ReportState,
        principal: Principal,
        *,
        notes: str | None = None,
        assignee_id: uuid.UUID | None = None,
    ) -> AppError | None:
        """Run every transition check without writing; return the first failure."""
        current = parse_state(report.state)
        target_state = parse_state(target)
        if current is None or target_state is None or target_state not in TRANSITIONS[current]:
            return InvalidTransitionError(
                f"Cannot transition report from '{report.state}' to '{getattr(target, 'value', target)}'",
                details={
                    "from": report.state,
                    "to": getattr(target, "value", target),
                    "allowed": sorted(state.value for state in allowed_transitions(report.state)),
                },
            )

        if not can_write(principal, report):
            return ForbiddenError()

        requirement = REQUIREMENTS[target_state]
        if requirement.notes and not _has_text(notes):
            return MissingNotesError(
                f"Notes are required when moving a report to '{target_state.value}'"
            )

        if assignee_id is not None:
            if not await self.resolver.is_responder(assignee_id, report.event_id):
                return MissingOrInvalidAssigneeError(details={"assignee_id": str(assignee_id)})
        elif requirement.assignment:
            existing = report.assigned_responder_id
            if existing is None or not await self.resolver.is_responder(existing, report.event_id):
                return MissingOrInvalidAssigneeError()

        return None

    async def transition(
        self,
        report: ReportData,
        target: str | ReportState,
        principal: Principal,
        *,
        notes: str | None = None,
        assignee_id: uuid.UUID | None = None,
    ) -> Outcome[TransitionResult]:
        expected_state = report.state
        previous_assignee = report.assigned_responder_id

        error = await self.validate(
            report, target, principal, notes=notes, assignee_id=assignee_id
        )
        if error is not None:
            logger.info(
                "transition_rejected report_id=%s actor_id=%s from=%s to=%s code=%s",
                report.id,
                principal.user_id,
                expected_state,
                getattr(target, "value", target),
                error.code,
            )
            return Outcome.failure(error)

        target_state = ReportState(target)
        now = self.clock.now()
        clean_notes = notes.strip() if _has_text(notes) else None

        patch: dict[str, object] = {"state": target_state.value, "updated_at": now}
        assignment_changed = assignee_id is not None and assignee_id != previous_assignee
        if assignment_changed:
            patch["assigned_responder_id"] = assignee_id

        try:
            updated = await self.reports.update_report(report.id, expected_state, patch)
        except ConflictError:
            logger.warning(
                "transition_stale report_id=%s actor_id=%s expected=%s to=%s",
                report.id,
                principal.user_id,
                expected_state,
                target_state.value,
            )
            return Outcome.failure(StaleTransitionError(
                details={"expected": expected_state, "to": target_state.value}
            ))

        history = await self.reports.append_state_history(
            report.id,
            from_state=expected_state,
            to_state=target_state.value,
            changed_by=principal.user_id,
            changed_at=now,
            notes=clean_notes,
        )

        logger.info(
            "transition_applied report_id=%s actor_id=%s from=%s to=%s",
            report.id,
            principal.user_id,
            expected_state,
            target_state.value,
        )

        return Outcome.success(TransitionResult(
            report=updated,
            history_entry=history,
            state_changed=StateChanged(
                report_id=report.id,
                event_id=report.event_id,
                actor_id=principal.user_id,
                from_state=expected_state,
                to_state=target_state.value,
                notes=clean_notes,
                occurred_at=now,
            ),
            assignment_changed=AssignmentChanged(
                report_id=report.id,
                event_id=report.event_id,
                actor_id=principal.user_id,
                previous_assignee_id=previous_assignee,
                assignee_id=assignee_id,
                occurred_at=now,
            ) if assignment_changed else None,
        ))
