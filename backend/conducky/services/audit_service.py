"""
Audit trail for report workflow actions.

Entries are written through the caller's session and commit together with
the change they describe. Denials are recorded on a best-effort basis.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from ..domain.events import AssignmentChanged, StateChanged
from ..domain.ports.audit import ACTOR_TYPES, AuditEntry, AuditEntryWriter

logger = logging.getLogger("conducky.audit")


def _str_or_none(value: uuid.UUID | None) -> str | None:
    return None if value is None else str(value)


def build_entry(
    action: str,
    entity_type: str,
    entity_id: str | uuid.UUID,
    actor_id: uuid.UUID | None = None,
    actor_type: str = "user",
    **fields: Any,
) -> AuditEntry:
    """
    Raises:
        ValueError: If actor_type is not one of user, system, anonymous
    """
    if actor_type not in ACTOR_TYPES:
        raise ValueError(
            f"Invalid actor_type '{actor_type}'. "
            f"Must be one of: {', '.join(sorted(ACTOR_TYPES))}"
        )
    # A user action without a user is an anonymous submission.
    if actor_id is None and actor_type == "user":
        actor_type = "anonymous"
    return AuditEntry(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        actor_id=actor_id,
        actor_type=actor_type,
        **fields,
    )


class AuditService:
    def __init__(self, writer: AuditEntryWriter):
        self.writer = writer

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
    ):
        entry = build_entry(
            action,
            entity_type,
            entity_id,
            actor_id,
            actor_type,
            event_id=event_id,
            before=before,
            after=after,
            reason=reason,
        )
        return await self.writer.add(entry)

    async def log_state_change(self, change: StateChanged):
        return await self.writer.add(
            build_entry(
                "report.state_change",
                "report",
                change.report_id,
                change.actor_id,
                event_id=change.event_id,
                before={"state": change.from_state},
                after={"state": change.to_state},
                reason=change.notes,
            )
        )

    async def log_assignment(self, change: AssignmentChanged):
        return await self.writer.add(
            build_entry(
                "report.assign",
                "report",
                change.report_id,
                change.actor_id,
                event_id=change.event_id,
                before={"assigned_responder_id": _str_or_none(change.previous_assignee_id)},
                after={"assigned_responder_id": _str_or_none(change.assignee_id)},
            )
        )

    async def log_permission_denied(
        self,
        action: str,
        report_id: uuid.UUID,
        event_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        reason: str | None = None,
    ) -> None:
        """Record ``<action>.denied``. Never raises, so the denial itself surfaces.

        Takes plain ids: callers usually hold a rolled-back session whose ORM
        rows are expired and cannot be lazily reloaded here.
        """
        try:
            await self.writer.add(
                build_entry(
                    f"{action}.denied",
                    "report",
                    report_id,
                    actor_id,
                    event_id=event_id,
                    reason=reason,
                )
            )
        except Exception:
            logger.error(
                "audit_write_failed action=%s report_id=%s", action, report_id, exc_info=True
            )
