from .base import Base
from .user import User
from .organization import Organization, OrganizationMembership
from .event import Event
from .role import Role, UserEventRole
from .report import EvidenceFile, Report, ReportComment, ReportStateHistory
from .notification import Notification, UserNotificationSettings
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "Organization",
    "OrganizationMembership",
    "Event",
    "Role",
    "UserEventRole",
    "Report",
    "ReportStateHistory",
    "ReportComment",
    "EvidenceFile",
    "Notification",
    "UserNotificationSettings",
    "AuditLog",
]
