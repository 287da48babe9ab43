import logging
import uuid
from datetime import datetime
from typing import Sequence

from ...auth.principal import Principal
from ...auth.rbac_contract import NO_ROLE_RANK
from ...domain.events import ReportSubmitted
from ...domain.ports.reports import ReportData
from ...domain.report_fields import (
    validate_contact_preference,
    validate_description,
    validate_title,
    validate_type,
)
from ...domain.workflow import ReportState
from ...errors import ForbiddenError
from ..evidence.uploads import EvidenceUpload, validate_upload
from .context import ReportContext, commit_or_rollback, notify

logger = logging.getLogger("conducky.reports")


async def submit_report(
    ctx: ReportContext,
    principal: Principal,
    *,
    event_id: uuid.UUID,
    title: str,
    description: str,
    type: str,
    location: str | None = None,
    contact_preference: str | None = None,
    incident_at: datetime | None = None,
    parties: str | None = None,
    evidence: Sequence[EvidenceUpload] = (),
    allow_anonymous: bool = False,
) -> ReportData:
    if principal.is_anonymous:
        if not allow_anonymous:
            raise ForbiddenError("Anonymous reports are not accepted for this event")
    elif principal.event_rank(event_id) <= NO_ROLE_RANK:
        raise ForbiddenError("You must hold a role in this event to submit a report")

    values = {
        "event_id": event_id,
        "reporter_id": principal.user_id,
        "title": validate_title(title),
        "description": validate_description(description),
        "type": validate_type(type),
        "state": ReportState.SUBMITTED.value,
        "location": (location or "").strip() or None,
        "contact_preference": validate_contact_preference(contact_preference),
        "incident_at": incident_at,
        "parties": (parties or "").strip() or None,
    }
    uploads = [validate_upload(upload) for upload in evidence]
    now = ctx.clock.now()
    values["created_at"] = now
    values["updated_at"] = now

    try:
        report = await ctx.reports.create_report(values)
        for upload in uploads:
            await ctx.reports.create_evidence({
                "report_id": report.id,
                "filename": upload.filename,
                "mimetype": upload.mimetype,
                "size": upload.size,
                "uploader_id": principal.user_id,
                "data": upload.data,
            })
        await ctx.audit.log(
            action="report.create",
            entity_type="report",
            entity_id=report.id,
            actor_id=principal.user_id,
            actor_type="user" if principal.user_id else "anonymous",
            event_id=event_id,
            after={"state": report.state, "type": report.type, "evidence": len(uploads)},
        )
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)

    logger.info(
        "report_submitted report_id=%s event_id=%s anonymous=%s evidence=%d",
        report.id,
        event_id,
        principal.is_anonymous,
        len(uploads),
    )
    await notify(
        ctx,
        ReportSubmitted(
            report_id=report.id,
            event_id=event_id,
            actor_id=principal.user_id,
            occurred_at=now,
        ),
        exclude_user_id=principal.user_id,
    )
    return report
