import uuid

from ...auth.principal import Principal
from ...domain.outcome import Outcome
from ...domain.ports.reports import ReportData
from ...domain.workflow import ReportState, TransitionResult
from ...errors import ForbiddenError
from .context import ReportContext, commit_or_rollback, load_readable_report, notify


async def record_denial(
    ctx: ReportContext,
    principal: Principal,
    report: ReportData,
    outcome: Outcome,
    action: str,
) -> None:
    """Roll back the failed attempt and audit it when the actor lacked the role."""
    # The rollback expires the loaded row; read its ids first.
    report_id, event_id = report.id, report.event_id
    await ctx.reports.rollback()
    if isinstance(outcome.error, ForbiddenError):
        await ctx.audit.log_permission_denied(
            action, report_id, event_id, principal.user_id, reason=outcome.error.message
        )
        await commit_or_rollback(ctx)


async def change_report_state(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    target: str | ReportState,
    *,
    notes: str | None = None,
    assignee_id: uuid.UUID | None = None,
) -> TransitionResult:
    """Move a report to ``target`` and fan out the resulting events.

    Raises:
        NotFoundError: Report missing or not readable by the principal
        InvalidTransitionError / StaleTransitionError: Target not reachable
        ForbiddenError: Actor ranks below Responder in the event
        MissingNotesError / MissingOrInvalidAssigneeError: Guard failed
    """
    report = await load_readable_report(ctx, principal, report_id)
    outcome = await ctx.state_machine.transition(
        report, target, principal, notes=notes, assignee_id=assignee_id
    )
    if not outcome.ok:
        await record_denial(ctx, principal, report, outcome, "report.state_change")
        outcome.unwrap()

    result = outcome.unwrap()
    try:
        await ctx.audit.log_state_change(result.state_changed)
        if result.assignment_changed is not None:
            await ctx.audit.log_assignment(result.assignment_changed)
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)

    await notify(ctx, result.state_changed, exclude_user_id=principal.user_id)
    if result.assignment_changed is not None:
        await notify(ctx, result.assignment_changed)
    return result
