import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ports.audit import AuditEntry
from ..models.audit_log import AuditLog


class AuditLogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, entry: AuditEntry) -> AuditLog:
        # Flushed only: the row commits with the change it describes.
        row = AuditLog(
            actor_id=entry.actor_id,
            actor_type=entry.actor_type,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            event_id=entry.event_id,
            before=dict(entry.before) if entry.before is not None else None,
            after=dict(entry.after) if entry.after is not None else None,
            reason=entry.reason,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_for_report(self, report_id: uuid.UUID, limit: int = 100) -> list[AuditLog]:
        result = await self.session.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == "report", AuditLog.entity_id == str(report_id))
            .order_by(AuditLog.created_at.desc(), AuditLog.action)
            .limit(limit)
        )
        return list(result.scalars())

    async def list_for_event(
        self, event_id: uuid.UUID, action_prefix: str | None = None, limit: int = 100
    ) -> list[AuditLog]:
        query = select(AuditLog).where(AuditLog.event_id == event_id)
        if action_prefix:
            query = query.where(AuditLog.action.startswith(action_prefix))
        result = await self.session.execute(
            query.order_by(AuditLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars())
