import uuid

import pytest

from conducky.auth.principal import Scope
from conducky.auth.rbac_contract import RoleName
from conducky.auth.role_resolver import RoleResolver

from conftest import FakeRoleAssignmentPort


@pytest.fixture
def port():
    return FakeRoleAssignmentPort()


@pytest.mark.anyio
async def test_unknown_user_resolves_to_no_roles(port):
    resolver = RoleResolver(port)
    event_id = uuid.uuid4()

    assert await resolver.resolve(uuid.uuid4(), Scope.event(event_id)) == frozenset()
    assert await resolver.resolve(None, Scope.event(event_id)) == frozenset()


@pytest.mark.anyio
async def test_event_scope_includes_super_admin_override(port):
    user_id, event_id = uuid.uuid4(), uuid.uuid4()
    port.grant(user_id, RoleName.SUPER_ADMIN)
    resolver = RoleResolver(port)

    roles = await resolver.resolve(user_id, Scope.event(event_id))

    assert roles == frozenset({RoleName.SUPER_ADMIN})
    assert resolver.rank(roles) > resolver.rank({RoleName.EVENT_ADMIN})


@pytest.mark.anyio
async def test_legacy_admin_alias_resolves_to_event_admin(port):
    user_id, event_id = uuid.uuid4(), uuid.uuid4()
    port.grant(user_id, "Admin", event_id)
    resolver = RoleResolver(port)

    roles = await resolver.resolve(user_id, Scope.event(event_id))

    assert roles == frozenset({RoleName.EVENT_ADMIN})


@pytest.mark.anyio
async def test_unknown_and_misscoped_rows_are_ignored(port, caplog):
    user_id, event_id = uuid.uuid4(), uuid.uuid4()
    port.grant(user_id, "Moderator", event_id)
    port.grant(user_id, RoleName.SUPER_ADMIN, event_id)
    port.grant(user_id, RoleName.RESPONDER, None)
    port.grant(user_id, RoleName.REPORTER, event_id)
    resolver = RoleResolver(port)

    with caplog.at_level("WARNING", logger="conducky.rbac"):
        principal = await resolver.principal_for(user_id)

    assert principal.global_roles == frozenset()
    assert principal.roles_in(Scope.event(event_id)) == frozenset({RoleName.REPORTER})
    assert "role_unknown" in caplog.text
    assert "role_scope_mismatch" in caplog.text


@pytest.mark.anyio
async def test_org_membership_lands_in_org_scope_only(port):
    user_id, org_id, event_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    port.join_org(user_id, org_id, RoleName.ORG_ADMIN)
    resolver = RoleResolver(port)

    assert await resolver.resolve(user_id, Scope.organization(org_id)) == frozenset(
        {RoleName.ORG_ADMIN}
    )
    assert await resolver.resolve(user_id, Scope.event(event_id)) == frozenset()


@pytest.mark.anyio
async def test_responders_for_dedupes_in_first_seen_order(port):
    event_id = uuid.uuid4()
    admin, responder, reporter = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    port.grant(admin, RoleName.EVENT_ADMIN, event_id)
    port.grant(responder, RoleName.RESPONDER, event_id)
    port.grant(admin, RoleName.RESPONDER, event_id)
    port.grant(reporter, RoleName.REPORTER, event_id)
    port.grant(uuid.uuid4(), RoleName.RESPONDER, uuid.uuid4())
    resolver = RoleResolver(port)

    assert await resolver.responders_for(event_id) == [admin, responder]


@pytest.mark.anyio
async def test_is_responder_ignores_global_override(port):
    user_id, event_id = uuid.uuid4(), uuid.uuid4()
    port.grant(user_id, RoleName.SUPER_ADMIN)
    resolver = RoleResolver(port)

    assert not await resolver.is_responder(user_id, event_id)
    assert not await resolver.is_responder(None, event_id)
