import uuid
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.rbac_contract import RoleName, parse_role
from ..domain.ports.roles import RoleAssignmentPort
from ..models.organization import OrganizationMembership
from ..models.role import Role, UserEventRole


class RoleAssignmentRepository(RoleAssignmentPort):
    """Read-only access to event, global and organization role records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_role_assignments(self, user_id: uuid.UUID) -> list[UserEventRole]:
        result = await self.session.execute(
            select(UserEventRole).where(UserEventRole.user_id == user_id)
        )
        return list(result.scalars().unique().all())

    async def list_organization_memberships(
        self, user_id: uuid.UUID
    ) -> list[OrganizationMembership]:
        result = await self.session.execute(
            select(OrganizationMembership).where(OrganizationMembership.user_id == user_id)
        )
        return list(result.scalars().all())

    async def list_event_role_holders(
        self, event_id: uuid.UUID, role_names: Iterable[str]
    ) -> list[uuid.UUID]:
        wanted = {parse_role(name) for name in role_names}
        result = await self.session.execute(
            select(UserEventRole.user_id, Role.name)
            .join(Role, Role.id == UserEventRole.role_id)
            .where(UserEventRole.event_id == event_id)
            .order_by(UserEventRole.granted_at.asc())
        )
        holders: list[uuid.UUID] = []
        for user_id, stored_name in result.all():
            # Stored names may be legacy aliases ("Admin"); compare canonically.
            try:
                role = parse_role(stored_name)
            except ValueError:
                continue
            if role in wanted and user_id not in holders:
                holders.append(user_id)
        return holders


class RoleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_create(self, name: RoleName | str) -> Role:
        role_name = parse_role(name).value
        result = await self.session.execute(select(Role).where(Role.name == role_name))
        role = result.scalar_one_or_none()
        if role is None:
            role = Role(name=role_name)
            self.session.add(role)
            await self.session.flush()
        return role

    async def assign(
        self,
        user_id: uuid.UUID,
        role_name: RoleName | str,
        event_id: uuid.UUID | None = None,
    ) -> UserEventRole:
        role = await self.get_or_create(role_name)
        assignment = UserEventRole(user_id=user_id, event_id=event_id, role_id=role.id)
        self.session.add(assignment)
        await self.session.flush()
        await self.session.refresh(assignment)
        return assignment
