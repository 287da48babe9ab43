import uuid

from ...auth.principal import Principal
from ...domain.ports.reports import ReportData
from .change_state import record_denial
from .context import ReportContext, commit_or_rollback, load_readable_report, notify


async def assign_report(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    assignee_id: uuid.UUID | None,
) -> ReportData:
    report = await load_readable_report(ctx, principal, report_id)
    outcome = await ctx.coordinator.assign(report, assignee_id, principal)
    if not outcome.ok:
        await record_denial(ctx, principal, report, outcome, "report.assign")
        outcome.unwrap()

    result = outcome.unwrap()
    if result.assignment_changed is None:
        return result.report

    try:
        await ctx.audit.log_assignment(result.assignment_changed)
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)

    # The assignee is notified even when they assigned themselves.
    await notify(ctx, result.assignment_changed)
    return result.report


async def update_report_triage(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    *,
    severity: str | None = None,
    resolution: str | None = None,
) -> ReportData:
    report = await load_readable_report(ctx, principal, report_id)
    before = {"severity": report.severity, "resolution": report.resolution}
    outcome = await ctx.coordinator.update_triage(
        report, principal, severity=severity, resolution=resolution
    )
    if not outcome.ok:
        await record_denial(ctx, principal, report, outcome, "report.triage")
        outcome.unwrap()

    updated = outcome.unwrap()
    after = {"severity": updated.severity, "resolution": updated.resolution}
    if after == before:
        return updated

    try:
        await ctx.audit.log(
            action="report.triage",
            entity_type="report",
            entity_id=report.id,
            actor_id=principal.user_id,
            event_id=report.event_id,
            before=before,
            after=after,
        )
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)
    return updated
