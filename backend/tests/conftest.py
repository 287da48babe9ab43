"""Shared test fixtures and in-memory adapters for the report engine."""
import os
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Iterable, Mapping

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-conducky-suite-0001")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from conducky.auth.rbac_contract import RoleName  # noqa: E402
from conducky.auth.role_resolver import RoleResolver  # noqa: E402
from conducky.crud.notifications import SETTINGS_FLAGS  # noqa: E402
from conducky.domain.ports.audit import AuditEntry  # noqa: E402
from conducky.domain.ports.notifier import DeliveryError  # noqa: E402
from conducky.errors import ConflictError, NotFoundError  # noqa: E402
from conducky.services.audit_service import AuditService  # noqa: E402
from conducky.services.notification_dispatcher import NotificationDispatcher  # noqa: E402
from conducky.use_cases.reports.context import ReportContext  # noqa: E402

NOW = datetime(2026, 5, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: int = 1) -> None:
        self.current = self.current + timedelta(seconds=seconds)


@dataclass
class FakeReport:
    event_id: uuid.UUID
    reporter_id: uuid.UUID | None
    title: str = "Harassment at the booth"
    description: str = "Someone was repeatedly rude at booth 4"
    type: str = "harassment"
    state: str = "submitted"
    severity: str | None = None
    assigned_responder_id: uuid.UUID | None = None
    resolution: str | None = None
    location: str | None = None
    contact_preference: str = "email"
    incident_at: datetime | None = None
    parties: str | None = None
    created_at: datetime = NOW
    updated_at: datetime = NOW
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeHistory:
    report_id: uuid.UUID
    from_state: str
    to_state: str
    changed_by: uuid.UUID | None
    changed_at: datetime
    notes: str | None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeComment:
    report_id: uuid.UUID
    author_id: uuid.UUID | None
    body: str
    visibility: str = "public"
    is_markdown: bool = False
    created_at: datetime = NOW
    updated_at: datetime = NOW
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class FakeEvidence:
    report_id: uuid.UUID
    filename: str
    mimetype: str
    size: int
    uploader_id: uuid.UUID | None
    data: bytes
    created_at: datetime = NOW
    id: uuid.UUID = field(default_factory=uuid.uuid4)


class FakeReportRepository:
    """Stores immutable snapshots: a report held by a caller keeps its old state."""

    def __init__(self):
        self.reports: dict[uuid.UUID, FakeReport] = {}
        self.history: list[FakeHistory] = []
        self.comments: dict[uuid.UUID, FakeComment] = {}
        self.evidence: dict[uuid.UUID, FakeEvidence] = {}
        self.commits = 0
        self.rollbacks = 0

    def add(self, report: FakeReport) -> FakeReport:
        self.reports[report.id] = report
        return report

    async def get_report(self, report_id):
        return self.reports.get(report_id)

    async def create_report(self, values: Mapping[str, Any]):
        return self.add(FakeReport(**values))

    async def update_report(self, report_id, expected_state, patch):
        current = self.reports.get(report_id)
        if current is None or current.state != expected_state:
            raise ConflictError("Report state changed concurrently")
        updated = replace(current, **patch)
        self.reports[report_id] = updated
        return updated

    async def append_state_history(
        self, report_id, *, from_state, to_state, changed_by, changed_at, notes
    ):
        entry = FakeHistory(
            report_id=report_id,
            from_state=from_state,
            to_state=to_state,
            changed_by=changed_by,
            changed_at=changed_at,
            notes=notes,
        )
        self.history.append(entry)
        return entry

    async def list_state_history(self, report_id):
        return [entry for entry in self.history if entry.report_id == report_id]

    async def list_comments(self, report_id):
        return [c for c in self.comments.values() if c.report_id == report_id]

    async def get_comment(self, comment_id):
        return self.comments.get(comment_id)

    async def create_comment(self, values):
        comment = FakeComment(**values)
        self.comments[comment.id] = comment
        return comment

    async def update_comment(self, comment_id, patch):
        if comment_id not in self.comments:
            raise NotFoundError("Comment not found")
        updated = replace(self.comments[comment_id], **patch)
        self.comments[comment_id] = updated
        return updated

    async def list_evidence(self, report_id):
        return [e for e in self.evidence.values() if e.report_id == report_id]

    async def get_evidence(self, evidence_id):
        return self.evidence.get(evidence_id)

    async def create_evidence(self, values):
        evidence = FakeEvidence(**values)
        self.evidence[evidence.id] = evidence
        return evidence

    async def delete_evidence(self, evidence_id):
        return self.evidence.pop(evidence_id, None) is not None

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


@dataclass(frozen=True)
class RoleRow:
    user_id: uuid.UUID
    event_id: uuid.UUID | None
    role_name: str


@dataclass(frozen=True)
class MembershipRow:
    user_id: uuid.UUID
    organization_id: uuid.UUID
    role_name: str


class FakeRoleAssignmentPort:
    def __init__(self):
        self.rows: list[RoleRow] = []
        self.memberships: list[MembershipRow] = []

    def grant(self, user_id, role_name, event_id=None) -> None:
        value = role_name.value if isinstance(role_name, RoleName) else role_name
        self.rows.append(RoleRow(user_id=user_id, event_id=event_id, role_name=value))

    def join_org(self, user_id, organization_id, role_name) -> None:
        value = role_name.value if isinstance(role_name, RoleName) else role_name
        self.memberships.append(MembershipRow(user_id, organization_id, value))

    async def list_role_assignments(self, user_id):
        return [row for row in self.rows if row.user_id == user_id]

    async def list_organization_memberships(self, user_id):
        return [row for row in self.memberships if row.user_id == user_id]

    async def list_event_role_holders(self, event_id, role_names: Iterable[str]):
        wanted = set(role_names)
        return [
            row.user_id
            for row in self.rows
            if row.event_id == event_id and row.role_name in wanted
        ]


@dataclass
class FakeNotification:
    user_id: uuid.UUID
    type: str
    priority: str
    title: str
    message: str
    event_id: uuid.UUID | None
    report_id: uuid.UUID | None
    action_url: str | None
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


def default_settings(user_id: uuid.UUID) -> SimpleNamespace:
    flags = {flag: flag.endswith("_in_app") for flag in SETTINGS_FLAGS}
    return SimpleNamespace(user_id=user_id, **flags)


class FakeNotificationPort:
    def __init__(self):
        self.settings: dict[uuid.UUID, SimpleNamespace] = {}
        self.emails: dict[uuid.UUID, str] = {}
        self.notifications: list[FakeNotification] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_create = False

    def enable_email(self, user_id, flag: str) -> None:
        settings = self.settings.setdefault(user_id, default_settings(user_id))
        setattr(settings, flag, True)

    def for_user(self, user_id) -> list[FakeNotification]:
        return [n for n in self.notifications if n.user_id == user_id]

    async def get_or_create_notification_settings(self, user_id):
        return self.settings.setdefault(user_id, default_settings(user_id))

    async def update_notification_settings(self, user_id, patch):
        unknown = set(patch) - SETTINGS_FLAGS
        if unknown:
            raise ValueError(f"Unknown notification settings: {', '.join(sorted(unknown))}")
        settings = await self.get_or_create_notification_settings(user_id)
        for key, value in patch.items():
            setattr(settings, key, bool(value))
        return settings

    async def create_notification(self, values):
        if self.fail_create:
            raise RuntimeError("notification store unavailable")
        notification = FakeNotification(**values)
        self.notifications.append(notification)
        return notification

    async def get_user_email(self, user_id):
        return self.emails.get(user_id)

    async def list_notifications(self, user_id, *, unread_only, limit, offset):
        rows = [n for n in self.for_user(user_id) if not (unread_only and n.is_read)]
        rows.sort(key=lambda n: n.created_at, reverse=True)
        return rows[offset:offset + limit]

    async def mark_read(self, notification_id, user_id, read_at):
        for notification in self.notifications:
            if notification.id == notification_id and notification.user_id == user_id:
                notification.is_read = True
                notification.read_at = read_at
                return True
        return False

    async def mark_all_read(self, user_id, read_at):
        count = 0
        for notification in self.for_user(user_id):
            if not notification.is_read:
                notification.is_read = True
                notification.read_at = read_at
                count += 1
        return count

    async def count_notifications(self, user_id):
        rows = self.for_user(user_id)
        return {
            "total": len(rows),
            "unread": sum(1 for n in rows if not n.is_read),
            "urgent": sum(1 for n in rows if n.priority == "urgent"),
        }

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1


class FakeNotifier:
    def __init__(self, fail_for: Iterable[str] = ()):
        self.sent: list[dict[str, Any]] = []
        self.fail_for = set(fail_for)

    async def send_email(self, to, subject, body, action_url=None):
        if to in self.fail_for:
            raise DeliveryError(f"refused {to}")
        self.sent.append({"to": to, "subject": subject, "body": body, "action_url": action_url})


class FakeAuditRepository:
    def __init__(self):
        self.entries: list[AuditEntry] = []

    async def add(self, entry: AuditEntry) -> AuditEntry:
        self.entries.append(entry)
        return entry

    def actions(self) -> list[str]:
        return [entry.action for entry in self.entries]


@dataclass
class World:
    """One event with an admin, two responders, a reporter and an outsider."""

    event_id: uuid.UUID
    other_event_id: uuid.UUID
    admin_id: uuid.UUID
    responder_id: uuid.UUID
    second_responder_id: uuid.UUID
    reporter_id: uuid.UUID
    outsider_id: uuid.UUID
    super_admin_id: uuid.UUID
    roles: FakeRoleAssignmentPort
    reports: FakeReportRepository
    notifications: FakeNotificationPort
    notifier: FakeNotifier
    audit_repo: FakeAuditRepository
    clock: FixedClock
    resolver: RoleResolver
    dispatcher: NotificationDispatcher
    ctx: ReportContext

    async def principal(self, user_id):
        return await self.resolver.principal_for(user_id)

    def add_report(self, **overrides) -> FakeReport:
        values = {"event_id": self.event_id, "reporter_id": self.reporter_id}
        values.update(overrides)
        return self.reports.add(FakeReport(**values))


@pytest.fixture
def world() -> World:
    event_id = uuid.uuid4()
    users = {name: uuid.uuid4() for name in (
        "admin", "responder", "second_responder", "reporter", "outsider", "super_admin"
    )}

    roles = FakeRoleAssignmentPort()
    roles.grant(users["admin"], RoleName.EVENT_ADMIN, event_id)
    roles.grant(users["responder"], RoleName.RESPONDER, event_id)
    roles.grant(users["second_responder"], RoleName.RESPONDER, event_id)
    roles.grant(users["reporter"], RoleName.REPORTER, event_id)
    roles.grant(users["super_admin"], RoleName.SUPER_ADMIN)

    notifications = FakeNotificationPort()
    for name, user_id in users.items():
        notifications.emails[user_id] = f"{name}@example.com"

    reports = FakeReportRepository()
    notifier = FakeNotifier()
    audit_repo = FakeAuditRepository()
    clock = FixedClock()
    resolver = RoleResolver(roles)
    dispatcher = NotificationDispatcher(
        notifications, resolver, notifier, clock, base_url="https://conducky.test"
    )
    ctx = ReportContext(
        reports=reports,
        resolver=resolver,
        dispatcher=dispatcher,
        audit=AuditService(audit_repo),
        clock=clock,
    )
    return World(
        event_id=event_id,
        other_event_id=uuid.uuid4(),
        admin_id=users["admin"],
        responder_id=users["responder"],
        second_responder_id=users["second_responder"],
        reporter_id=users["reporter"],
        outsider_id=users["outsider"],
        super_admin_id=users["super_admin"],
        roles=roles,
        reports=reports,
        notifications=notifications,
        notifier=notifier,
        audit_repo=audit_repo,
        clock=clock,
        resolver=resolver,
        dispatcher=dispatcher,
        ctx=ctx,
    )
