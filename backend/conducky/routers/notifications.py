import uuid

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_clock, get_current_user_id, get_notification_port
from ..domain.ports.clock import Clock
from ..domain.ports.notifications import NotificationPort
from ..schemas.notification import (
    NotificationRead,
    NotificationSettingsRead,
    NotificationSettingsUpdate,
    NotificationStats,
)
from ..use_cases.notifications import (
    get_notification_settings,
    list_notifications,
    mark_all_read,
    mark_read,
    notification_stats,
    update_notification_settings,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationRead])
async def read_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: uuid.UUID = Depends(get_current_user_id),
    notifications: NotificationPort = Depends(get_notification_port),
):
    return await list_notifications(
        notifications, user_id, unread_only=unread_only, limit=limit, offset=offset
    )


@router.get("/stats", response_model=NotificationStats)
async def read_stats(
    user_id: uuid.UUID = Depends(get_current_user_id),
    notifications: NotificationPort = Depends(get_notification_port),
):
    return await notification_stats(notifications, user_id)


@router.patch("/read-all")
async def read_all(
    user_id: uuid.UUID = Depends(get_current_user_id),
    notifications: NotificationPort = Depends(get_notification_port),
    clock: Clock = Depends(get_clock),
) -> dict[str, int]:
    return {"updated": await mark_all_read(notifications, clock, user_id)}


@router.patch("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def read_one(
    notification_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    notifications: NotificationPort = Depends(get_notification_port),
    clock: Clock = Depends(get_clock),
) -> None:
    await mark_read(notifications, clock, user_id, notification_id)


@router.get("/settings", response_model=NotificationSettingsRead)
async def read_settings(
    user_id: uuid.UUID = Depends(get_current_user_id),
    notifications: NotificationPort = Depends(get_notification_port),
):
    return await get_notification_settings(notifications, user_id)


@router.put("/settings", response_model=NotificationSettingsRead)
async def write_settings(
    payload: NotificationSettingsUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    notifications: NotificationPort = Depends(get_notification_port),
):
    return await update_notification_settings(
        notifications, user_id, payload.model_dump(exclude_none=True)
    )
