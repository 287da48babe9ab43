import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    id: uuid.UUID
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

    model_config = ConfigDict(from_attributes=True)


class NotificationStats(BaseModel):
    total: int
    unread: int
    urgent: int


class NotificationSettingsRead(BaseModel):
    report_submitted_in_app: bool
    report_submitted_email: bool
    report_assigned_in_app: bool
    report_assigned_email: bool
    report_status_changed_in_app: bool
    report_status_changed_email: bool
    report_comment_added_in_app: bool
    report_comment_added_email: bool
    event_invitation_in_app: bool
    event_invitation_email: bool
    event_role_changed_in_app: bool
    event_role_changed_email: bool
    system_announcement_in_app: bool
    system_announcement_email: bool

    model_config = ConfigDict(from_attributes=True)


class NotificationSettingsUpdate(BaseModel):
    report_submitted_in_app: bool | None = None
    report_submitted_email: bool | None = None
    report_assigned_in_app: bool | None = None
    report_assigned_email: bool | None = None
    report_status_changed_in_app: bool | None = None
    report_status_changed_email: bool | None = None
    report_comment_added_in_app: bool | None = None
    report_comment_added_email: bool | None = None
    event_invitation_in_app: bool | None = None
    event_invitation_email: bool | None = None
    event_role_changed_in_app: bool | None = None
    event_role_changed_email: bool | None = None
    system_announcement_in_app: bool | None = None
    system_announcement_email: bool | None = None
