"""
RBAC contract for report access.

Roles live at three scopes:
- global: only ``SuperAdmin`` (stored as a role assignment with ``event_id = NULL``)
- organization: ``OrgAdmin`` / ``OrgViewer`` (a parallel dimension that never
  grants report access on its own)
- event: ``EventAdmin`` > ``Responder`` > ``Reporter``

Every "at least as privileged as" check goes through :func:`rank`. Rank
comparisons are only meaningful inside one scope.

The tables below are immutable and validated once at import time.
"""
from __future__ import annotations

from enum import Enum
from typing import Final, Iterable


class RoleName(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    ORG_ADMIN = "OrgAdmin"
    ORG_VIEWER = "OrgViewer"
    EVENT_ADMIN = "EventAdmin"
    RESPONDER = "Responder"
    REPORTER = "Reporter"


class ScopeKind(str, Enum):
    GLOBAL = "global"
    ORGANIZATION = "org"
    EVENT = "event"


GLOBAL_ROLES: Final[frozenset[RoleName]] = frozenset({RoleName.SUPER_ADMIN})

ORG_ROLES: Final[frozenset[RoleName]] = frozenset({
    RoleName.ORG_ADMIN,
    RoleName.ORG_VIEWER,
})

EVENT_ROLES: Final[frozenset[RoleName]] = frozenset({
    RoleName.EVENT_ADMIN,
    RoleName.RESPONDER,
    RoleName.REPORTER,
})

ALL_ROLES: Final[frozenset[RoleName]] = GLOBAL_ROLES | ORG_ROLES | EVENT_ROLES

# Roles whose holders triage reports and receive report notifications.
RESPONDER_ROLES: Final[frozenset[RoleName]] = frozenset({
    RoleName.RESPONDER,
    RoleName.EVENT_ADMIN,
})

# Report-access ordering. Org roles are deliberately absent: they rank as
# "no role" for report operations.
NO_ROLE_RANK: Final[int] = 0
ROLE_RANK: Final[dict[RoleName, int]] = {
    RoleName.REPORTER: 10,
    RoleName.RESPONDER: 20,
    RoleName.EVENT_ADMIN: 30,
    RoleName.SUPER_ADMIN: 40,
}

REPORTER_RANK: Final[int] = ROLE_RANK[RoleName.REPORTER]
RESPONDER_RANK: Final[int] = ROLE_RANK[RoleName.RESPONDER]
ADMIN_RANK: Final[int] = ROLE_RANK[RoleName.EVENT_ADMIN]

# Legacy role names seen in stored role rows.
_ROLE_ALIASES: Final[dict[str, RoleName]] = {
    "Admin": RoleName.EVENT_ADMIN,
    "Event Admin": RoleName.EVENT_ADMIN,
    "Org Admin": RoleName.ORG_ADMIN,
    "Org Viewer": RoleName.ORG_VIEWER,
    "Super Admin": RoleName.SUPER_ADMIN,
}


def parse_role(value: str | RoleName) -> RoleName:
    """
    Convert a stored role name into a :class:`RoleName`.

    Raises:
        ValueError: If the name is neither canonical nor a known alias
    """
    if isinstance(value, RoleName):
        return value
    try:
        return RoleName(value)
    except ValueError:
        pass
    if value in _ROLE_ALIASES:
        return _ROLE_ALIASES[value]
    raise ValueError(
        f"Invalid role '{value}'. "
        f"Must be one of: {', '.join(sorted(role.value for role in ALL_ROLES))}"
    )


def rank(roles: Iterable[RoleName]) -> int:
    """Reduce a role set to its highest report-access rank.

    An empty set (or a set holding only organization roles) ranks below
    ``Reporter``.
    """
    return max((ROLE_RANK.get(role, NO_ROLE_RANK) for role in roles), default=NO_ROLE_RANK)


def authoritative_role(roles: Iterable[RoleName]) -> RoleName | None:
    """Return the highest-ranked role of a set, or None when nothing ranks."""
    best: RoleName | None = None
    best_rank = NO_ROLE_RANK
    for role in roles:
        role_rank = ROLE_RANK.get(role, NO_ROLE_RANK)
        if role_rank > best_rank:
            best, best_rank = role, role_rank
    return best


def validate_role_for_scope(role: RoleName, scope: ScopeKind) -> None:
    """
    HARD INVARIANT: a role may only be assigned at its own scope.

    ``SuperAdmin`` is global only; organization roles only on organizations;
    event roles only on events.

    Raises:
        ValueError: If the role does not belong to the scope
    """
    allowed = {
        ScopeKind.GLOBAL: GLOBAL_ROLES,
        ScopeKind.ORGANIZATION: ORG_ROLES,
        ScopeKind.EVENT: EVENT_ROLES,
    }[scope]
    if role not in allowed:
        raise ValueError(
            f"Role '{role.value}' cannot be assigned at {scope.value} scope. "
            f"Allowed: {', '.join(sorted(r.value for r in allowed))}"
        )


def _validate_contract() -> None:
    errors = []

    if GLOBAL_ROLES & EVENT_ROLES or GLOBAL_ROLES & ORG_ROLES or ORG_ROLES & EVENT_ROLES:
        errors.append("Role scopes overlap")

    for role in ORG_ROLES:
        if role in ROLE_RANK:
            errors.append(f"Organization role '{role.value}' must not carry report rank")

    for role in EVENT_ROLES | GLOBAL_ROLES:
        if role not in ROLE_RANK:
            errors.append(f"Role '{role.value}' has no rank")

    ordered = [
        RoleName.REPORTER,
        RoleName.RESPONDER,
        RoleName.EVENT_ADMIN,
        RoleName.SUPER_ADMIN,
    ]
    ranks = [ROLE_RANK[role] for role in ordered if role in ROLE_RANK]
    if ranks != sorted(set(ranks)) or NO_ROLE_RANK >= min(ranks, default=NO_ROLE_RANK + 1):
        errors.append("Role ranks must be strictly increasing above NO_ROLE_RANK")

    if errors:
        raise RuntimeError(
            "RBAC contract validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


_validate_contract()
