import logging
import uuid
from dataclasses import dataclass

from ..auth.principal import Principal
from ..auth.rbac_contract import ADMIN_RANK
from ..auth.role_resolver import RoleResolver
from ..auth.visibility import can_write
from ..domain.events import AssignmentChanged
from ..domain.outcome import Outcome
from ..domain.ports.clock import Clock
from ..domain.ports.reports import ReportData, ReportRepository
from ..domain.report_fields import validate_severity
from ..errors import ConflictError, ForbiddenError, InvalidAssigneeError, ValidationError

logger = logging.getLogger("conducky.workflow")


@dataclass(frozen=True)
class AssignmentResult:
    report: ReportData
    assignment_changed: AssignmentChanged | None = None


class AssignmentCoordinator:
    """Apply assignment, severity and resolution changes outside of a transition."""

    def __init__(self, reports: ReportRepository, resolver: RoleResolver, clock: Clock):
        self.reports = reports
        self.resolver = resolver
        self.clock = clock

    async def is_eligible_assignee(self, user_id: uuid.UUID | None, event_id: uuid.UUID) -> bool:
        return await self.resolver.is_responder(user_id, event_id)

    async def assign(
        self,
        report: ReportData,
        responder_id: uuid.UUID | None,
        principal: Principal,
    ) -> Outcome[AssignmentResult]:
        if not can_write(principal, report):
            return self._deny(report, principal, ForbiddenError())

        current = report.assigned_responder_id
        if responder_id is None:
            # Responders may drop their own assignment; clearing anyone else's needs Admin.
            if (
                principal.event_rank(report.event_id) < ADMIN_RANK
                and current is not None
                and not principal.is_user(current)
            ):
                return self._deny(
                    report,
                    principal,
                    ForbiddenError("Only an event admin can unassign another responder"),
                )
        elif not await self.is_eligible_assignee(responder_id, report.event_id):
            return self._deny(
                report,
                principal,
                InvalidAssigneeError(details={"assignee_id": str(responder_id)}),
            )

        if responder_id == current:
            return Outcome.success(AssignmentResult(report=report))

        now = self.clock.now()
        try:
            updated = await self.reports.update_report(
                report.id,
                report.state,
                {"assigned_responder_id": responder_id, "updated_at": now},
            )
        except ConflictError as exc:
            logger.warning(
                "assignment_stale report_id=%s actor_id=%s", report.id, principal.user_id
            )
            return Outcome.failure(exc)

        logger.info(
            "assignment_applied report_id=%s actor_id=%s previous=%s assignee=%s",
            report.id,
            principal.user_id,
            current,
            responder_id,
        )
        return Outcome.success(AssignmentResult(
            report=updated,
            assignment_changed=AssignmentChanged(
                report_id=report.id,
                event_id=report.event_id,
                actor_id=principal.user_id,
                previous_assignee_id=current,
                assignee_id=responder_id,
                occurred_at=now,
            ),
        ))

    async def update_triage(
        self,
        report: ReportData,
        principal: Principal,
        *,
        severity: str | None = None,
        resolution: str | None = None,
    ) -> Outcome[ReportData]:
        if not can_write(principal, report):
            return self._deny(report, principal, ForbiddenError())

        patch: dict[str, object] = {}
        if severity is not None and severity != report.severity:
            try:
                patch["severity"] = validate_severity(severity)
            except ValidationError as exc:
                return Outcome.failure(exc)
        if resolution is not None:
            cleaned = resolution.strip() or None
            if cleaned != report.resolution:
                patch["resolution"] = cleaned
        if not patch:
            return Outcome.success(report)

        patch["updated_at"] = self.clock.now()
        try:
            updated = await self.reports.update_report(report.id, report.state, patch)
        except ConflictError as exc:
            return Outcome.failure(exc)
        return Outcome.success(updated)

    @staticmethod
    def _deny(report: ReportData, principal: Principal, error):
        logger.info(
            "assignment_rejected report_id=%s actor_id=%s code=%s",
            report.id,
            principal.user_id,
            error.code,
        )
        return Outcome.failure(error)
