from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Mapping, Protocol


class NotificationData(Protocol):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    priority: str
    title: str
    message: str
    event_id: uuid.UUID | None
    report_id: uuid.UUID | None
    action_url: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationSettingsData(Protocol):
    user_id: uuid.UUID
    report_submitted_email: bool
    report_assigned_email: bool
    report_status_changed_email: bool
    report_comment_added_email: bool


class NotificationPort(Protocol):
    async def get_or_create_notification_settings(
        self, user_id: uuid.UUID
    ) -> NotificationSettingsData:
        ...

    async def update_notification_settings(
        self, user_id: uuid.UUID, patch: Mapping[str, bool]
    ) -> NotificationSettingsData:
        ...

    async def create_notification(self, values: Mapping[str, Any]) -> NotificationData:
        ...

    async def get_user_email(self, user_id: uuid.UUID) -> str | None:
        ...

    async def list_notifications(
        self, user_id: uuid.UUID, *, unread_only: bool, limit: int, offset: int
    ) -> list[NotificationData]:
        ...

    async def mark_read(
        self, notification_id: uuid.UUID, user_id: uuid.UUID, read_at: datetime
    ) -> bool:
        ...

    async def mark_all_read(self, user_id: uuid.UUID, read_at: datetime) -> int:
        ...

    async def count_notifications(self, user_id: uuid.UUID) -> dict[str, int]:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
