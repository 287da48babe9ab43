import logging
import uuid

from ...auth.principal import Principal
from ...auth.visibility import (
    COMMENT_VISIBILITIES,
    PUBLIC,
    can_comment,
    can_edit_comment,
    can_read_comment,
)
from ...domain.events import CommentAdded
from ...domain.ports.reports import CommentData
from ...errors import ForbiddenError, NotFoundError, ValidationError
from ..reports.context import ReportContext, commit_or_rollback, load_readable_report, notify

logger = logging.getLogger("conducky.reports")

MAX_COMMENT_LENGTH = 10_000


def _validate_body(body: str) -> str:
    cleaned = (body or "").strip()
    if not cleaned:
        raise ValidationError("Comment body is required", details={"field": "body"})
    if len(cleaned) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment body must be at most {MAX_COMMENT_LENGTH} characters",
            details={"field": "body"},
        )
    return cleaned


def _validate_visibility(visibility: str) -> str:
    if visibility not in COMMENT_VISIBILITIES:
        raise ValidationError(
            f"Invalid visibility '{visibility}'. "
            f"Must be one of: {', '.join(sorted(COMMENT_VISIBILITIES))}",
            details={"field": "visibility"},
        )
    return visibility


async def list_comments(
    ctx: ReportContext, principal: Principal, report_id: uuid.UUID
) -> list[CommentData]:
    report = await load_readable_report(ctx, principal, report_id)
    comments = await ctx.reports.list_comments(report.id)
    return list(ctx.gate.filter(principal, comments, report))


async def add_comment(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    body: str,
    *,
    visibility: str = PUBLIC,
    is_markdown: bool = False,
) -> CommentData:
    report = await load_readable_report(ctx, principal, report_id)
    visibility = _validate_visibility(visibility)
    if not can_comment(principal, report, visibility):
        raise ForbiddenError("You may not add this comment")
    cleaned = _validate_body(body)

    now = ctx.clock.now()
    try:
        comment = await ctx.reports.create_comment({
            "report_id": report.id,
            "author_id": principal.user_id,
            "body": cleaned,
            "visibility": visibility,
            "is_markdown": is_markdown,
            "created_at": now,
            "updated_at": now,
        })
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)

    logger.info(
        "comment_added report_id=%s comment_id=%s visibility=%s",
        report.id,
        comment.id,
        visibility,
    )
    await notify(
        ctx,
        CommentAdded(
            report_id=report.id,
            event_id=report.event_id,
            actor_id=principal.user_id,
            comment_id=comment.id,
            visibility=visibility,
            occurred_at=now,
        ),
        exclude_user_id=principal.user_id,
    )
    return comment


async def edit_comment(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    comment_id: uuid.UUID,
    *,
    body: str | None = None,
    visibility: str | None = None,
) -> CommentData:
    report = await load_readable_report(ctx, principal, report_id)
    comment = await ctx.reports.get_comment(comment_id)
    if comment is None or not can_read_comment(principal, comment, report):
        raise NotFoundError("Comment not found")
    if not can_edit_comment(principal, comment, report):
        raise ForbiddenError("Only the author or an event admin can edit this comment")

    patch: dict[str, object] = {}
    if body is not None:
        cleaned = _validate_body(body)
        if cleaned != comment.body:
            patch["body"] = cleaned
    if visibility is not None and visibility != comment.visibility:
        visibility = _validate_visibility(visibility)
        if not can_comment(principal, report, visibility):
            raise ForbiddenError("You may not set this comment visibility")
        patch["visibility"] = visibility
    if not patch:
        return comment

    patch["updated_at"] = ctx.clock.now()
    try:
        updated = await ctx.reports.update_comment(comment.id, patch)
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)
    return updated
