import logging
import uuid
from collections import defaultdict
from typing import Iterable

from ..domain.ports.roles import RoleAssignmentPort
from .principal import EMPTY_ROLES, Principal, RoleSet, Scope
from .rbac_contract import (
    RESPONDER_ROLES,
    RoleName,
    ScopeKind,
    parse_role,
    rank,
    validate_role_for_scope,
)

logger = logging.getLogger("conducky.rbac")


class RoleResolver:
    """Resolve a user's effective roles at global, organization or event scope.

    Resolution is read-only: it never creates role records. An unknown user,
    or ``None``, resolves to an empty role set everywhere.
    """

    rank = staticmethod(rank)

    def __init__(self, role_port: RoleAssignmentPort):
        self.role_port = role_port

    async def resolve(self, user_id: uuid.UUID | None, scope: Scope) -> RoleSet:
        if user_id is None:
            return EMPTY_ROLES
        principal = await self.principal_for(user_id)
        roles = principal.roles_in(scope)
        if scope.kind == ScopeKind.EVENT:
            # SuperAdmin is global-only but overrides every event scope.
            roles = roles | principal.global_roles
        return roles

    async def principal_for(self, user_id: uuid.UUID | None) -> Principal:
        """Load every role assignment of a user into a :class:`Principal`."""
        if user_id is None:
            return Principal.anonymous()

        global_roles: set[RoleName] = set()
        event_roles: dict[uuid.UUID, set[RoleName]] = defaultdict(set)
        org_roles: dict[uuid.UUID, set[RoleName]] = defaultdict(set)

        for assignment in await self.role_port.list_role_assignments(user_id):
            role = self._parse(assignment.role_name, user_id=user_id)
            if role is None:
                continue
            scope_kind = ScopeKind.GLOBAL if assignment.event_id is None else ScopeKind.EVENT
            if not self._fits_scope(role, scope_kind, user_id=user_id):
                continue
            if assignment.event_id is None:
                global_roles.add(role)
            else:
                event_roles[assignment.event_id].add(role)

        for membership in await self.role_port.list_organization_memberships(user_id):
            role = self._parse(membership.role_name, user_id=user_id)
            if role is None:
                continue
            if not self._fits_scope(role, ScopeKind.ORGANIZATION, user_id=user_id):
                continue
            org_roles[membership.organization_id].add(role)

        return Principal(
            user_id=user_id,
            global_roles=frozenset(global_roles),
            event_roles=event_roles,
            org_roles=org_roles,
        )

    async def holds_any(
        self,
        user_id: uuid.UUID | None,
        event_id: uuid.UUID,
        roles: Iterable[RoleName],
    ) -> bool:
        """True when the user holds one of ``roles`` directly in the event."""
        if user_id is None:
            return False
        principal = await self.principal_for(user_id)
        return bool(principal.roles_in(Scope.event(event_id)) & frozenset(roles))

    async def is_responder(self, user_id: uuid.UUID | None, event_id: uuid.UUID) -> bool:
        return await self.holds_any(user_id, event_id, RESPONDER_ROLES)

    async def responders_for(self, event_id: uuid.UUID) -> list[uuid.UUID]:
        """Users holding Responder or EventAdmin in the event, first-seen order."""
        holders = await self.role_port.list_event_role_holders(
            event_id, sorted(role.value for role in RESPONDER_ROLES)
        )
        return list(dict.fromkeys(holders))

    @staticmethod
    def _parse(role_name: str, *, user_id: uuid.UUID) -> RoleName | None:
        try:
            return parse_role(role_name)
        except ValueError:
            logger.warning("role_unknown user_id=%s role=%r action=ignored", user_id, role_name)
            return None

    @staticmethod
    def _fits_scope(role: RoleName, scope_kind: ScopeKind, *, user_id: uuid.UUID) -> bool:
        try:
            validate_role_for_scope(role, scope_kind)
        except ValueError:
            logger.warning(
                "role_scope_mismatch user_id=%s role=%s scope=%s action=ignored",
                user_id,
                role.value,
                scope_kind.value,
            )
            return False
        return True


__all__ = ["RoleResolver"]
