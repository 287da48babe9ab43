from __future__ import annotations

import uuid
from typing import Iterable, Protocol


class RoleAssignmentData(Protocol):
    user_id: uuid.UUID
    event_id: uuid.UUID | None
    role_name: str


class OrganizationMembershipData(Protocol):
    user_id: uuid.UUID
    organization_id: uuid.UUID
    role_name: str


class RoleAssignmentPort(Protocol):
    async def list_role_assignments(self, user_id: uuid.UUID) -> list[RoleAssignmentData]:
        ...

    async def list_organization_memberships(
        self, user_id: uuid.UUID
    ) -> list[OrganizationMembershipData]:
        ...

    async def list_event_role_holders(
        self, event_id: uuid.UUID, role_names: Iterable[str]
    ) -> list[uuid.UUID]:
        ...
