"""
Notification fan-out for report events.

Recipients are the Responder/EventAdmin holders of the report's event minus an
optional excluded user. Each recipient gets a Notification record; email is
requested only when the recipient's ``<type>_email`` flag is on. Records are
written before any delivery is attempted and delivery failures never escape
``dispatch``.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Final

from ..auth.role_resolver import RoleResolver
from ..domain.events import (
    NotificationPriority,
    NotificationType,
    ReportEvent,
    is_recognized_notification_type,
    normalize_notification_type,
)
from ..domain.ports.clock import Clock
from ..domain.ports.notifications import NotificationData, NotificationPort
from ..domain.ports.notifier import Notifier

logger = logging.getLogger("conducky.notifications")

DEFAULT_MAX_CONCURRENCY: Final[int] = 10

_TITLES: Final[dict[NotificationType, str]] = {
    NotificationType.REPORT_SUBMITTED: "New Report Submitted",
    NotificationType.REPORT_ASSIGNED: "Report Assigned",
    NotificationType.REPORT_STATUS_CHANGED: "Report Status Updated",
    NotificationType.REPORT_COMMENT_ADDED: "New Comment Added",
}

_MESSAGES: Final[dict[NotificationType, str]] = {
    NotificationType.REPORT_SUBMITTED: "A new report has been submitted",
    NotificationType.REPORT_ASSIGNED: "Report #{short_id} has been assigned",
    NotificationType.REPORT_STATUS_CHANGED: "Report #{short_id} status has been updated",
    NotificationType.REPORT_COMMENT_ADDED: "A new comment has been added to report #{short_id}",
}

_FALLBACK_TITLE: Final[str] = "Report Update"
_FALLBACK_MESSAGE: Final[str] = "Report #{short_id} has been updated"


@dataclass(frozen=True)
class _Delivery:
    notification_id: uuid.UUID
    user_id: uuid.UUID
    to: str
    subject: str
    body: str
    action_url: str


def report_action_path(event_id: uuid.UUID, report_id: uuid.UUID) -> str:
    return f"/events/{event_id}/reports/{report_id}"


class NotificationDispatcher:
    def __init__(
        self,
        notifications: NotificationPort,
        resolver: RoleResolver,
        notifier: Notifier,
        clock: Clock,
        *,
        base_url: str = "",
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be greater than 0")
        self.notifications = notifications
        self.resolver = resolver
        self.notifier = notifier
        self.clock = clock
        self.base_url = base_url.rstrip("/")
        self.max_concurrency = max_concurrency

    async def dispatch(
        self,
        event: ReportEvent,
        exclude_user_id: uuid.UUID | None = None,
    ) -> list[NotificationData]:
        return await self.notify(
            event.notification_type,
            event_id=event.event_id,
            report_id=event.report_id,
            exclude_user_id=exclude_user_id,
        )

    async def notify(
        self,
        notification_type: str | NotificationType,
        *,
        event_id: uuid.UUID,
        report_id: uuid.UUID,
        exclude_user_id: uuid.UUID | None = None,
    ) -> list[NotificationData]:
        """Fan out one report notification to the event's responders.

        ``notification_type`` may be a canonical name or a legacy alias. An
        unrecognized value is recorded as ``report_submitted`` with generic
        content and normal priority.
        """
        recognized = is_recognized_notification_type(notification_type)
        canonical = normalize_notification_type(notification_type)

        recipients = [
            user_id
            for user_id in await self.resolver.responders_for(event_id)
            if user_id != exclude_user_id
        ]
        if not recipients:
            logger.debug(
                "notification_no_recipients event_id=%s report_id=%s type=%s",
                event_id,
                report_id,
                canonical.value,
            )
            return []

        title, message, priority = self._content(canonical, report_id, recognized=recognized)
        action_path = report_action_path(event_id, report_id)
        now = self.clock.now()

        created: list[NotificationData] = []
        deliveries: list[_Delivery] = []
        for user_id in recipients:
            user_settings = await self.notifications.get_or_create_notification_settings(user_id)
            notification = await self.notifications.create_notification({
                "user_id": user_id,
                "type": canonical.value,
                "priority": priority.value,
                "title": title,
                "message": message,
                "event_id": event_id,
                "report_id": report_id,
                "action_url": action_path,
                "is_read": False,
                "created_at": now,
            })
            created.append(notification)

            if not getattr(user_settings, f"{canonical.value}_email", False):
                continue
            email = await self.notifications.get_user_email(user_id)
            if not email:
                logger.warning(
                    "notification_email_missing user_id=%s notification_id=%s",
                    user_id,
                    notification.id,
                )
                continue
            deliveries.append(_Delivery(
                notification_id=notification.id,
                user_id=user_id,
                to=email,
                subject=title,
                body=message,
                action_url=f"{self.base_url}{action_path}",
            ))

        await self.notifications.commit()
        logger.info(
            "notifications_created event_id=%s report_id=%s type=%s count=%d emails=%d",
            event_id,
            report_id,
            canonical.value,
            len(created),
            len(deliveries),
        )

        if deliveries:
            await self._deliver_all(deliveries)
        return created

    async def _deliver_all(self, deliveries: list[_Delivery]) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def deliver(delivery: _Delivery) -> None:
            async with semaphore:
                try:
                    await self.notifier.send_email(
                        delivery.to,
                        delivery.subject,
                        delivery.body,
                        action_url=delivery.action_url,
                    )
                except Exception:
                    logger.warning(
                        "notification_delivery_failed user_id=%s notification_id=%s",
                        delivery.user_id,
                        delivery.notification_id,
                        exc_info=True,
                    )

        # A caller timeout abandons the wait but in-flight sends keep running.
        await asyncio.shield(asyncio.gather(*(deliver(d) for d in deliveries)))

    @staticmethod
    def _content(
        notification_type: NotificationType,
        report_id: uuid.UUID,
        *,
        recognized: bool = True,
    ) -> tuple[str, str, NotificationPriority]:
        short_id = str(report_id)[:8]
        if not recognized or notification_type not in _TITLES:
            return (
                _FALLBACK_TITLE,
                _FALLBACK_MESSAGE.format(short_id=short_id),
                NotificationPriority.NORMAL,
            )
        priority = (
            NotificationPriority.HIGH
            if notification_type == NotificationType.REPORT_SUBMITTED
            else NotificationPriority.NORMAL
        )
        return (
            _TITLES[notification_type],
            _MESSAGES[notification_type].format(short_id=short_id),
            priority,
        )
