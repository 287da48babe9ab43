"""
Report visibility policy.

Pure predicates over a resolved :class:`Principal`. They never raise and never
touch storage; callers turn ``False`` into a 403 (or a 404 where existence must
not leak).
"""
from __future__ import annotations

from enum import Enum
from typing import Final

from ..domain.ports.reports import CommentData, EvidenceFileData, ReportData
from .principal import Principal
from .rbac_contract import ADMIN_RANK, RESPONDER_RANK

PUBLIC: Final[str] = "public"
INTERNAL: Final[str] = "internal"
COMMENT_VISIBILITIES: Final[frozenset[str]] = frozenset({PUBLIC, INTERNAL})


class ReportField(str, Enum):
    TITLE = "title"
    DESCRIPTION = "description"
    TYPE = "type"
    LOCATION = "location"
    INCIDENT_AT = "incident_at"
    PARTIES = "parties"
    CONTACT_PREFERENCE = "contact_preference"
    SEVERITY = "severity"
    ASSIGNMENT = "assigned_responder_id"
    RESOLUTION = "resolution"


DESCRIPTIVE_FIELDS: Final[frozenset[ReportField]] = frozenset({
    ReportField.DESCRIPTION,
    ReportField.TYPE,
    ReportField.LOCATION,
    ReportField.INCIDENT_AT,
    ReportField.PARTIES,
})

TRIAGE_FIELDS: Final[frozenset[ReportField]] = frozenset({
    ReportField.SEVERITY,
    ReportField.ASSIGNMENT,
    ReportField.RESOLUTION,
})


def _is_reporter(principal: Principal, report: ReportData) -> bool:
    return principal.is_user(report.reporter_id)


def _is_responder(principal: Principal, report: ReportData) -> bool:
    return principal.event_rank(report.event_id) >= RESPONDER_RANK


def _is_admin(principal: Principal, report: ReportData) -> bool:
    return principal.event_rank(report.event_id) >= ADMIN_RANK


def can_read(principal: Principal, report: ReportData) -> bool:
    return _is_responder(principal, report) or _is_reporter(principal, report)


def can_write(principal: Principal, report: ReportData) -> bool:
    """State and assignment changes: Responder or above in the event."""
    return _is_responder(principal, report)


def can_read_comment(principal: Principal, comment: CommentData, report: ReportData) -> bool:
    if comment.report_id != report.id:
        return False
    if comment.visibility == PUBLIC:
        return can_read(principal, report)
    if comment.visibility == INTERNAL:
        return _is_responder(principal, report)
    # Unknown visibility values are treated as internal.
    return _is_responder(principal, report)


def can_edit_field(principal: Principal, report: ReportData, field: ReportField) -> bool:
    if field == ReportField.CONTACT_PREFERENCE:
        return _is_reporter(principal, report)
    if field == ReportField.TITLE:
        return _is_admin(principal, report) or _is_reporter(principal, report)
    if field in DESCRIPTIVE_FIELDS:
        return _is_responder(principal, report) or _is_reporter(principal, report)
    if field in TRIAGE_FIELDS:
        return _is_responder(principal, report)
    return False


def can_comment(principal: Principal, report: ReportData, visibility: str) -> bool:
    if visibility not in COMMENT_VISIBILITIES:
        return False
    if _is_responder(principal, report):
        return True
    return visibility == PUBLIC and _is_reporter(principal, report)


def can_edit_comment(principal: Principal, comment: CommentData, report: ReportData) -> bool:
    if not can_read_comment(principal, comment, report):
        return False
    return principal.is_user(comment.author_id) or _is_admin(principal, report)


def can_delete_evidence(
    principal: Principal, evidence: EvidenceFileData, report: ReportData
) -> bool:
    if evidence.report_id != report.id:
        return False
    if _is_responder(principal, report):
        return True
    return principal.is_user(evidence.uploader_id) and _is_reporter(principal, report)
