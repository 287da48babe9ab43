import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import case, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.events import NotificationPriority, NotificationType
from ..domain.ports.notifications import NotificationPort
from ..models.notification import Notification, UserNotificationSettings
from ..models.user import User

SETTINGS_FLAGS = frozenset(
    f"{notification_type.value}_{channel}"
    for notification_type in NotificationType
    for channel in ("in_app", "email")
)


def _insert_for(session: AsyncSession):
    bind = session.get_bind()
    dialect = bind.dialect.name if bind is not None else "postgresql"
    if dialect == "sqlite":
        return sqlite_insert
    return pg_insert


class NotificationRepository(NotificationPort):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_create_notification_settings(
        self, user_id: uuid.UUID
    ) -> UserNotificationSettings:
        # Concurrent first reads race on the primary key; let the insert lose quietly.
        insert_fn = _insert_for(self.session)
        await self.session.execute(
            insert_fn(UserNotificationSettings)
            .values(user_id=user_id)
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        result = await self.session.execute(
            select(UserNotificationSettings).where(UserNotificationSettings.user_id == user_id)
        )
        return result.scalar_one()

    async def update_notification_settings(
        self, user_id: uuid.UUID, patch: Mapping[str, bool]
    ) -> UserNotificationSettings:
        unknown = set(patch) - SETTINGS_FLAGS
        if unknown:
            raise ValueError(f"Unknown notification settings: {', '.join(sorted(unknown))}")
        settings = await self.get_or_create_notification_settings(user_id)
        for key, value in patch.items():
            setattr(settings, key, bool(value))
        await self.session.flush()
        return settings

    async def create_notification(self, values: Mapping[str, Any]) -> Notification:
        notification = Notification(**values)
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_user_email(self, user_id: uuid.UUID) -> str | None:
        result = await self.session.execute(select(User.email).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_notifications(
        self, user_id: uuid.UUID, *, unread_only: bool, limit: int, offset: int
    ) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_read(
        self, notification_id: uuid.UUID, user_id: uuid.UUID, read_at: datetime
    ) -> bool:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    async def mark_all_read(self, user_id: uuid.UUID, read_at: datetime) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    async def count_notifications(self, user_id: uuid.UUID) -> dict[str, int]:
        result = await self.session.execute(
            select(
                func.count(Notification.id),
                func.coalesce(func.sum(case((Notification.is_read.is_(False), 1), else_=0)), 0),
                func.coalesce(
                    func.sum(
                        case(
                            (Notification.priority == NotificationPriority.URGENT.value, 1),
                            else_=0,
                        )
                    ),
                    0,
                ),
            ).where(Notification.user_id == user_id)
        )
        total, unread, urgent = result.one()
        return {"total": int(total), "unread": int(unread), "urgent": int(urgent)}

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
