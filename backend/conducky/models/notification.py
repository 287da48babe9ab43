import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid, func, true, false
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    event_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=True, index=True
    )
    report_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("reports.id", ondelete="CASCADE"), nullable=True, index=True
    )
    action_url: Mapped[str | None] = mapped_column(String(500))
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class UserNotificationSettings(Base):
    """Per-user delivery flags. In-app defaults on, email defaults off."""

    __tablename__ = "user_notification_settings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    report_submitted_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    report_submitted_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    report_assigned_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    report_assigned_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    report_status_changed_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    report_status_changed_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    report_comment_added_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    report_comment_added_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    event_invitation_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    event_invitation_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    event_role_changed_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    event_role_changed_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    system_announcement_in_app: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    system_announcement_email: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
