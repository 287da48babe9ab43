"""Event descriptors emitted by the report engine for notification fan-out."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final, Union

logger = logging.getLogger("conducky.notifications")


class NotificationType(str, Enum):
    REPORT_SUBMITTED = "report_submitted"
    REPORT_ASSIGNED = "report_assigned"
    REPORT_STATUS_CHANGED = "report_status_changed"
    REPORT_COMMENT_ADDED = "report_comment_added"
    EVENT_INVITATION = "event_invitation"
    EVENT_ROLE_CHANGED = "event_role_changed"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


_LEGACY_ALIASES: Final[dict[str, NotificationType]] = {
    "submitted": NotificationType.REPORT_SUBMITTED,
    "assigned": NotificationType.REPORT_ASSIGNED,
    "status_changed": NotificationType.REPORT_STATUS_CHANGED,
    "comment_added": NotificationType.REPORT_COMMENT_ADDED,
}

_CANONICAL_NAMES: Final[frozenset[str]] = frozenset(t.value for t in NotificationType)

DEFAULT_NOTIFICATION_TYPE: Final[NotificationType] = NotificationType.REPORT_SUBMITTED


def normalize_notification_type(value: str | NotificationType) -> NotificationType:
    """Map canonical names and legacy aliases onto :class:`NotificationType`.

    Unrecognized input logs a warning and falls back to ``report_submitted``
    instead of failing the dispatch.
    """
    if isinstance(value, NotificationType):
        return value
    key = value.strip().lower() if isinstance(value, str) else ""
    try:
        return NotificationType(key)
    except ValueError:
        pass
    if key in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[key]
    logger.warning(
        "notification_type_unrecognized value=%r fallback=%s",
        value,
        DEFAULT_NOTIFICATION_TYPE.value,
    )
    return DEFAULT_NOTIFICATION_TYPE


@dataclass(frozen=True)
class ReportSubmitted:
    report_id: uuid.UUID
    event_id: uuid.UUID
    actor_id: uuid.UUID | None
    occurred_at: datetime

    notification_type = NotificationType.REPORT_SUBMITTED


@dataclass(frozen=True)
class StateChanged:
    report_id: uuid.UUID
    event_id: uuid.UUID
    actor_id: uuid.UUID | None
    from_state: str
    to_state: str
    notes: str | None
    occurred_at: datetime

    notification_type = NotificationType.REPORT_STATUS_CHANGED


@dataclass(frozen=True)
class AssignmentChanged:
    report_id: uuid.UUID
    event_id: uuid.UUID
    actor_id: uuid.UUID | None
    previous_assignee_id: uuid.UUID | None
    assignee_id: uuid.UUID | None
    occurred_at: datetime

    notification_type = NotificationType.REPORT_ASSIGNED


@dataclass(frozen=True)
class CommentAdded:
    report_id: uuid.UUID
    event_id: uuid.UUID
    actor_id: uuid.UUID | None
    comment_id: uuid.UUID
    visibility: str
    occurred_at: datetime

    notification_type = NotificationType.REPORT_COMMENT_ADDED


ReportEvent = Union[ReportSubmitted, StateChanged, AssignmentChanged, CommentAdded]


def is_recognized_notification_type(value: str | NotificationType) -> bool:
    if isinstance(value, NotificationType):
        return True
    key = value.strip().lower() if isinstance(value, str) else ""
    return key in _LEGACY_ALIASES or key in _CANONICAL_NAMES
