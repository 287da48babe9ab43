from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from ...auth.principal import Principal
from ...auth.role_resolver import RoleResolver
from ...auth.visibility import can_read
from ...domain.events import ReportEvent
from ...domain.ports.audit import AuditSink
from ...domain.ports.clock import Clock, SystemClock
from ...domain.ports.reports import ReportData, ReportRepository
from ...domain.workflow import ReportStateMachine
from ...errors import NotFoundError
from ...services.assignment_coordinator import AssignmentCoordinator
from ...services.comment_gate import CommentVisibilityGate, comment_gate
from ...services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger("conducky.reports")


@dataclass
class ReportContext:
    """Collaborators shared by every report use case."""

    reports: ReportRepository
    resolver: RoleResolver
    dispatcher: NotificationDispatcher
    audit: AuditSink
    clock: Clock = field(default_factory=SystemClock)
    gate: CommentVisibilityGate = comment_gate

    @property
    def state_machine(self) -> ReportStateMachine:
        return ReportStateMachine(self.reports, self.resolver, self.clock)

    @property
    def coordinator(self) -> AssignmentCoordinator:
        return AssignmentCoordinator(self.reports, self.resolver, self.clock)


async def load_readable_report(
    ctx: ReportContext, principal: Principal, report_id: uuid.UUID
) -> ReportData:
    """Return the report, or NotFound when it is missing or hidden from the principal."""
    report = await ctx.reports.get_report(report_id)
    if report is None or not can_read(principal, report):
        if report is not None:
            logger.info(
                "report_hidden report_id=%s actor_id=%s", report_id, principal.user_id
            )
        raise NotFoundError("Report not found")
    return report


async def notify(
    ctx: ReportContext,
    event: ReportEvent,
    exclude_user_id: uuid.UUID | None = None,
) -> None:
    """Fan out after the report change has committed; failures stay here."""
    try:
        await ctx.dispatcher.dispatch(event, exclude_user_id=exclude_user_id)
    except Exception:
        logger.error(
            "notification_dispatch_failed report_id=%s type=%s",
            event.report_id,
            event.notification_type.value,
            exc_info=True,
        )
        await ctx.reports.rollback()


async def commit_or_rollback(ctx: ReportContext) -> None:
    try:
        await ctx.reports.commit()
    except Exception:
        await ctx.reports.rollback()
        raise
