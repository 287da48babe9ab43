import uuid
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ports.reports import ReportRepository as ReportRepositoryPort
from ..errors import ConflictError, NotFoundError
from ..models.report import EvidenceFile, Report, ReportComment, ReportStateHistory

_REPORT_COLUMNS = frozenset(column.key for column in Report.__table__.columns) - {"id"}
_COMMENT_COLUMNS = frozenset({"body", "visibility", "is_markdown", "updated_at"})


class ReportRepository(ReportRepositoryPort):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_report(self, report_id: uuid.UUID) -> Report | None:
        return await self.session.get(Report, report_id)

    async def create_report(self, values: Mapping[str, Any]) -> Report:
        report = Report(**values)
        self.session.add(report)
        await self.session.flush()
        await self.session.refresh(report)
        return report

    async def update_report(
        self,
        report_id: uuid.UUID,
        expected_state: str,
        patch: Mapping[str, Any],
    ) -> Report:
        unknown = set(patch) - _REPORT_COLUMNS
        if unknown:
            raise ValueError(f"Unknown report fields: {', '.join(sorted(unknown))}")

        # Single conditional UPDATE; a concurrent state change matches zero rows.
        result = await self.session.execute(
            update(Report)
            .where(Report.id == report_id, Report.state == expected_state)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(
                "Report state changed concurrently",
                details={"report_id": str(report_id), "expected_state": expected_state},
            )

        stmt = (
            select(Report)
            .where(Report.id == report_id)
            .execution_options(populate_existing=True)
        )
        report = (await self.session.execute(stmt)).scalar_one()
        return report

    async def append_state_history(
        self,
        report_id: uuid.UUID,
        *,
        from_state: str,
        to_state: str,
        changed_by: uuid.UUID | None,
        changed_at: datetime,
        notes: str | None,
    ) -> ReportStateHistory:
        entry = ReportStateHistory(
            report_id=report_id,
            from_state=from_state,
            to_state=to_state,
            changed_by=changed_by,
            changed_at=changed_at,
            notes=notes,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_state_history(self, report_id: uuid.UUID) -> list[ReportStateHistory]:
        result = await self.session.execute(
            select(ReportStateHistory)
            .where(ReportStateHistory.report_id == report_id)
            .order_by(ReportStateHistory.changed_at.asc())
        )
        return list(result.scalars().all())

    async def list_comments(self, report_id: uuid.UUID) -> list[ReportComment]:
        result = await self.session.execute(
            select(ReportComment)
            .where(ReportComment.report_id == report_id)
            .order_by(ReportComment.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_comment(self, comment_id: uuid.UUID) -> ReportComment | None:
        return await self.session.get(ReportComment, comment_id)

    async def create_comment(self, values: Mapping[str, Any]) -> ReportComment:
        comment = ReportComment(**values)
        self.session.add(comment)
        await self.session.flush()
        await self.session.refresh(comment)
        return comment

    async def update_comment(
        self, comment_id: uuid.UUID, patch: Mapping[str, Any]
    ) -> ReportComment:
        comment = await self.get_comment(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        for key, value in patch.items():
            if key not in _COMMENT_COLUMNS:
                raise ValueError(f"Unknown comment field: {key}")
            setattr(comment, key, value)
        await self.session.flush()
        return comment

    async def list_evidence(self, report_id: uuid.UUID) -> list[EvidenceFile]:
        result = await self.session.execute(
            select(EvidenceFile)
            .where(EvidenceFile.report_id == report_id)
            .order_by(EvidenceFile.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_evidence(self, evidence_id: uuid.UUID) -> EvidenceFile | None:
        return await self.session.get(EvidenceFile, evidence_id)

    async def create_evidence(self, values: Mapping[str, Any]) -> EvidenceFile:
        evidence = EvidenceFile(**values)
        self.session.add(evidence)
        await self.session.flush()
        return evidence

    async def delete_evidence(self, evidence_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(EvidenceFile).where(EvidenceFile.id == evidence_id)
        )
        return bool(result.rowcount)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
