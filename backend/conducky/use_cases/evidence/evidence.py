import logging
import uuid

from ...auth.principal import Principal
from ...auth.visibility import can_delete_evidence
from ...domain.ports.reports import EvidenceFileData
from ...errors import ForbiddenError, NotFoundError
from ..reports.context import ReportContext, commit_or_rollback, load_readable_report
from .uploads import EvidenceUpload, validate_upload

logger = logging.getLogger("conducky.reports")


async def list_evidence(
    ctx: ReportContext, principal: Principal, report_id: uuid.UUID
) -> list[EvidenceFileData]:
    report = await load_readable_report(ctx, principal, report_id)
    return await ctx.reports.list_evidence(report.id)


async def add_evidence(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    upload: EvidenceUpload,
) -> EvidenceFileData:
    report = await load_readable_report(ctx, principal, report_id)
    upload = validate_upload(upload)
    try:
        evidence = await ctx.reports.create_evidence({
            "report_id": report.id,
            "filename": upload.filename,
            "mimetype": upload.mimetype,
            "size": upload.size,
            "uploader_id": principal.user_id,
            "data": upload.data,
        })
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)
    return evidence


async def delete_evidence(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    evidence_id: uuid.UUID,
) -> None:
    report = await load_readable_report(ctx, principal, report_id)
    evidence = await ctx.reports.get_evidence(evidence_id)
    if evidence is None or evidence.report_id != report.id:
        raise NotFoundError("Evidence file not found")
    if not can_delete_evidence(principal, evidence, report):
        raise ForbiddenError("You may not delete this evidence file")

    try:
        await ctx.reports.delete_evidence(evidence.id)
        await ctx.audit.log(
            action="evidence.delete",
            entity_type="evidence_file",
            entity_id=evidence.id,
            actor_id=principal.user_id,
            event_id=report.event_id,
            before={"report_id": str(report.id), "filename": evidence.filename},
        )
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)
    logger.info("evidence_deleted report_id=%s evidence_id=%s", report.id, evidence.id)
