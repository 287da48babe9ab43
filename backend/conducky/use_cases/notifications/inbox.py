import uuid
from typing import Mapping

from ...domain.ports.clock import Clock
from ...domain.ports.notifications import (
    NotificationData,
    NotificationPort,
    NotificationSettingsData,
)
from ...errors import NotFoundError, ValidationError

MAX_PAGE_SIZE = 100


async def list_notifications(
    notifications: NotificationPort,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[NotificationData]:
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise ValidationError("offset must be non-negative")
    return await notifications.list_notifications(
        user_id, unread_only=unread_only, limit=limit, offset=offset
    )


async def mark_read(
    notifications: NotificationPort,
    clock: Clock,
    user_id: uuid.UUID,
    notification_id: uuid.UUID,
) -> None:
    """Mark one of the user's own notifications read; other users' ids are NotFound."""
    updated = await notifications.mark_read(notification_id, user_id, clock.now())
    if not updated:
        await notifications.rollback()
        raise NotFoundError("Notification not found")
    await notifications.commit()


async def mark_all_read(
    notifications: NotificationPort, clock: Clock, user_id: uuid.UUID
) -> int:
    count = await notifications.mark_all_read(user_id, clock.now())
    await notifications.commit()
    return count


async def notification_stats(
    notifications: NotificationPort, user_id: uuid.UUID
) -> dict[str, int]:
    return await notifications.count_notifications(user_id)


async def get_notification_settings(
    notifications: NotificationPort, user_id: uuid.UUID
) -> NotificationSettingsData:
    settings = await notifications.get_or_create_notification_settings(user_id)
    await notifications.commit()
    return settings


async def update_notification_settings(
    notifications: NotificationPort,
    user_id: uuid.UUID,
    patch: Mapping[str, bool],
) -> NotificationSettingsData:
    try:
        settings = await notifications.update_notification_settings(user_id, patch)
    except ValueError as exc:
        await notifications.rollback()
        raise ValidationError(str(exc)) from exc
    await notifications.commit()
    return settings
