"""
Report field rules.

Every check runs before any write and raises ``ValidationError`` with the
offending field in ``details``.
"""
from __future__ import annotations

from typing import Final

from ..errors import ValidationError

REPORT_TYPES: Final[frozenset[str]] = frozenset({
    "harassment",
    "discrimination",
    "conduct_violation",
    "safety_concern",
    "other",
})

SEVERITIES: Final[frozenset[str]] = frozenset({"low", "medium", "high", "critical"})

CONTACT_PREFERENCES: Final[frozenset[str]] = frozenset({
    "email",
    "phone",
    "in_person",
    "no_contact",
})
DEFAULT_CONTACT_PREFERENCE: Final[str] = "email"

TITLE_MIN_LENGTH: Final[int] = 10
TITLE_MAX_LENGTH: Final[int] = 70


def _reject(field: str, message: str, value: object) -> ValidationError:
    return ValidationError(message, details={"field": field, "value": value})


def _one_of(field: str, value: str, allowed: frozenset[str]) -> str:
    if value not in allowed:
        raise _reject(
            field,
            f"Invalid {field} '{value}'. Must be one of: {', '.join(sorted(allowed))}",
            value,
        )
    return value


def validate_title(title: str) -> str:
    cleaned = (title or "").strip()
    if not TITLE_MIN_LENGTH <= len(cleaned) <= TITLE_MAX_LENGTH:
        raise _reject(
            "title",
            f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters",
            title,
        )
    return cleaned


def validate_description(description: str) -> str:
    cleaned = (description or "").strip()
    if not cleaned:
        raise _reject("description", "Description is required", description)
    return cleaned


def validate_type(report_type: str) -> str:
    return _one_of("type", report_type, REPORT_TYPES)


def validate_severity(severity: str | None) -> str | None:
    if severity is None:
        return None
    return _one_of("severity", severity, SEVERITIES)


def validate_contact_preference(preference: str | None) -> str:
    if preference is None:
        return DEFAULT_CONTACT_PREFERENCE
    return _one_of("contact_preference", preference, CONTACT_PREFERENCES)
