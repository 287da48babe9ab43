from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .rbac_contract import (
    RESPONDER_ROLES,
    RoleName,
    ScopeKind,
    authoritative_role,
    rank,
)

RoleSet = frozenset[RoleName]

EMPTY_ROLES: RoleSet = frozenset()


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    id: uuid.UUID | None = None

    def __post_init__(self) -> None:
        if self.kind == ScopeKind.GLOBAL and self.id is not None:
            raise ValueError("Global scope does not take an id")
        if self.kind != ScopeKind.GLOBAL and self.id is None:
            raise ValueError(f"{self.kind.value} scope requires an id")

    @classmethod
    def global_(cls) -> "Scope":
        return cls(ScopeKind.GLOBAL)

    @classmethod
    def event(cls, event_id: uuid.UUID) -> "Scope":
        return cls(ScopeKind.EVENT, event_id)

    @classmethod
    def organization(cls, organization_id: uuid.UUID) -> "Scope":
        return cls(ScopeKind.ORGANIZATION, organization_id)


def _freeze(mapping: Mapping[uuid.UUID, set[RoleName] | frozenset[RoleName]] | None):
    return MappingProxyType({key: frozenset(value) for key, value in (mapping or {}).items()})


@dataclass(frozen=True)
class Principal:
    """A resolved identity plus its role memberships.

    Every engine entry point takes a Principal explicitly; nothing reads the
    current user from ambient request state.
    """

    user_id: uuid.UUID | None
    global_roles: RoleSet = EMPTY_ROLES
    event_roles: Mapping[uuid.UUID, RoleSet] = field(default_factory=dict)
    org_roles: Mapping[uuid.UUID, RoleSet] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "global_roles", frozenset(self.global_roles))
        object.__setattr__(self, "event_roles", _freeze(self.event_roles))
        object.__setattr__(self, "org_roles", _freeze(self.org_roles))

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(user_id=None)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def is_super_admin(self) -> bool:
        return RoleName.SUPER_ADMIN in self.global_roles

    def roles_in(self, scope: Scope) -> RoleSet:
        if scope.kind == ScopeKind.GLOBAL:
            return self.global_roles
        if scope.kind == ScopeKind.ORGANIZATION:
            return self.org_roles.get(scope.id, EMPTY_ROLES)
        return self.event_roles.get(scope.id, EMPTY_ROLES)

    def event_rank(self, event_id: uuid.UUID) -> int:
        """Rank inside one event, with the global SuperAdmin override folded in."""
        return rank(self.event_roles.get(event_id, EMPTY_ROLES) | self.global_roles)

    def event_role(self, event_id: uuid.UUID) -> RoleName | None:
        return authoritative_role(self.event_roles.get(event_id, EMPTY_ROLES))

    def is_responder_in(self, event_id: uuid.UUID) -> bool:
        return bool(self.event_roles.get(event_id, EMPTY_ROLES) & RESPONDER_ROLES)

    def is_user(self, user_id: uuid.UUID | None) -> bool:
        return self.user_id is not None and user_id is not None and self.user_id == user_id
