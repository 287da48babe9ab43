from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Mapping, Protocol


class ReportData(Protocol):
    id: uuid.UUID
    event_id: uuid.UUID
    reporter_id: uuid.UUID | None
    title: str
    description: str
    type: str
    state: str
    severity: str | None
    assigned_responder_id: uuid.UUID | None
    resolution: str | None
    location: str | None
    contact_preference: str
    incident_at: datetime | None
    parties: str | None
    created_at: datetime
    updated_at: datetime


class StateHistoryData(Protocol):
    id: uuid.UUID
    report_id: uuid.UUID
    from_state: str
    to_state: str
    changed_by: uuid.UUID | None
    changed_at: datetime
    notes: str | None


class CommentData(Protocol):
    id: uuid.UUID
    report_id: uuid.UUID
    author_id: uuid.UUID | None
    body: str
    visibility: str
    is_markdown: bool
    created_at: datetime
    updated_at: datetime


class EvidenceFileData(Protocol):
    id: uuid.UUID
    report_id: uuid.UUID
    filename: str
    mimetype: str
    size: int
    uploader_id: uuid.UUID | None
    data: bytes
    created_at: datetime


class ReportRepository(Protocol):
    async def get_report(self, report_id: uuid.UUID) -> ReportData | None:
        ...

    async def create_report(self, values: Mapping[str, Any]) -> ReportData:
        ...

    async def update_report(
        self,
        report_id: uuid.UUID,
        expected_state: str,
        patch: Mapping[str, Any],
    ) -> ReportData:
        """Apply ``patch`` only while the stored state equals ``expected_state``.

        Raises:
            ConflictError: If no row matched (state changed concurrently)
        """
        ...

    async def append_state_history(
        self,
        report_id: uuid.UUID,
        *,
        from_state: str,
        to_state: str,
        changed_by: uuid.UUID | None,
        changed_at: datetime,
        notes: str | None,
    ) -> StateHistoryData:
        ...

    async def list_state_history(self, report_id: uuid.UUID) -> list[StateHistoryData]:
        ...

    async def list_comments(self, report_id: uuid.UUID) -> list[CommentData]:
        ...

    async def get_comment(self, comment_id: uuid.UUID) -> CommentData | None:
        ...

    async def create_comment(self, values: Mapping[str, Any]) -> CommentData:
        ...

    async def update_comment(
        self, comment_id: uuid.UUID, patch: Mapping[str, Any]
    ) -> CommentData:
        ...

    async def list_evidence(self, report_id: uuid.UUID) -> list[EvidenceFileData]:
        ...

    async def get_evidence(self, evidence_id: uuid.UUID) -> EvidenceFileData | None:
        ...

    async def create_evidence(self, values: Mapping[str, Any]) -> EvidenceFileData:
        ...

    async def delete_evidence(self, evidence_id: uuid.UUID) -> bool:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...
