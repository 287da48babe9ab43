import uuid
from datetime import datetime
from typing import Any, Callable, Mapping

from ...auth.principal import Principal
from ...auth.visibility import ReportField, can_edit_field
from ...domain.ports.reports import ReportData
from ...domain.report_fields import (
    validate_contact_preference,
    validate_description,
    validate_title,
    validate_type,
)
from ...errors import ConflictError, ForbiddenError, ValidationError
from .context import ReportContext, commit_or_rollback, load_readable_report


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def _incident_at(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    raise ValidationError("incident_at must be a datetime", details={"field": "incident_at"})


_VALIDATORS: dict[ReportField, Callable[[Any], Any]] = {
    ReportField.TITLE: validate_title,
    ReportField.DESCRIPTION: validate_description,
    ReportField.TYPE: validate_type,
    ReportField.LOCATION: _optional_text,
    ReportField.PARTIES: _optional_text,
    ReportField.INCIDENT_AT: _incident_at,
    ReportField.CONTACT_PREFERENCE: validate_contact_preference,
}

EDITABLE_FIELDS = frozenset(_VALIDATORS)


def _parse_field(name: str) -> ReportField:
    try:
        field = ReportField(name)
    except ValueError:
        raise ValidationError(f"Unknown report field '{name}'", details={"field": name}) from None
    if field not in EDITABLE_FIELDS:
        raise ValidationError(
            f"Field '{name}' is changed through assignment or triage",
            details={"field": name},
        )
    return field


async def update_report_fields(
    ctx: ReportContext,
    principal: Principal,
    report_id: uuid.UUID,
    changes: Mapping[str, Any],
) -> ReportData:
    """Edit descriptive fields, title or contact preference.

    Every field is permission-checked before anything is written; one
    forbidden field rejects the whole change.
    """
    report = await load_readable_report(ctx, principal, report_id)

    patch: dict[str, Any] = {}
    for name, raw in changes.items():
        field = _parse_field(name)
        if not can_edit_field(principal, report, field):
            await ctx.audit.log_permission_denied(
                "report.edit",
                report.id,
                report.event_id,
                principal.user_id,
                reason=f"field={field.value}",
            )
            await commit_or_rollback(ctx)
            raise ForbiddenError(f"You may not edit the report {field.value}")
        patch[field.value] = _VALIDATORS[field](raw)

    changed = {key: value for key, value in patch.items() if getattr(report, key) != value}
    if not changed:
        return report

    before = {key: _jsonable(getattr(report, key)) for key in changed}
    changed["updated_at"] = ctx.clock.now()
    try:
        updated = await ctx.reports.update_report(report.id, report.state, changed)
        await ctx.audit.log(
            action="report.edit",
            entity_type="report",
            entity_id=report.id,
            actor_id=principal.user_id,
            event_id=report.event_id,
            before=before,
            after={key: _jsonable(changed[key]) for key in before},
        )
    except ConflictError:
        await ctx.reports.rollback()
        raise ConflictError("Report changed while editing; reload and retry") from None
    except Exception:
        await ctx.reports.rollback()
        raise
    await commit_or_rollback(ctx)
    return updated


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value
