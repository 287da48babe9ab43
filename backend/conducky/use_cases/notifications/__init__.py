from .inbox import (
    get_notification_settings,
    list_notifications,
    mark_all_read,
    mark_read,
    notification_stats,
    update_notification_settings,
)

__all__ = [
    "get_notification_settings",
    "list_notifications",
    "mark_all_read",
    "mark_read",
    "notification_stats",
    "update_notification_settings",
]
