from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Protocol

if TYPE_CHECKING:
    from ..events import AssignmentChanged, StateChanged

ACTOR_TYPES = frozenset({"user", "system", "anonymous"})


@dataclass(frozen=True)
class AuditEntry:
    """One audit row before persistence. ``entity_id`` is always a string."""

    action: str
    entity_type: str
    entity_id: str
    actor_id: uuid.UUID | None = None
    actor_type: str = "user"
    event_id: uuid.UUID | None = None
    before: Mapping[str, Any] | None = None
    after: Mapping[str, Any] | None = None
    reason: str | None = None


class AuditEntryWriter(Protocol):
    async def add(self, entry: AuditEntry) -> Any:
        ...


class AuditSink(Protocol):
    """What the report use cases need from the audit trail."""

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: str | uuid.UUID,
        actor_id: uuid.UUID | None = None,
        actor_type: str = "user",
        event_id: uuid.UUID | None = None,
        before: Mapping[str, Any] | None = None,
        after: Mapping[str, Any] | None = None,
        reason: str | None = None,
    ) -> Any:
        ...

    async def log_state_change(self, change: StateChanged) -> Any:
        ...

    async def log_assignment(self, change: AssignmentChanged) -> Any:
        ...

    async def log_permission_denied(
        self,
        action: str,
        report_id: uuid.UUID,
        event_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        reason: str | None = None,
    ) -> None:
        ...
