import uuid

from ...auth.principal import Principal
from ...domain.ports.reports import ReportData, StateHistoryData
from .context import ReportContext, load_readable_report


async def get_report(
    ctx: ReportContext, principal: Principal, report_id: uuid.UUID
) -> ReportData:
    return await load_readable_report(ctx, principal, report_id)


async def list_state_history(
    ctx: ReportContext, principal: Principal, report_id: uuid.UUID
) -> list[StateHistoryData]:
    report = await load_readable_report(ctx, principal, report_id)
    return await ctx.reports.list_state_history(report.id)
