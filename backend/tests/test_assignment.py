import pytest

from conducky.errors import ForbiddenError, InvalidAssigneeError, ValidationError
from conducky.services.assignment_coordinator import AssignmentCoordinator


@pytest.fixture
def coordinator(world):
    return AssignmentCoordinator(world.reports, world.resolver, world.clock)


@pytest.mark.anyio
async def test_reporter_is_not_an_eligible_assignee(world, coordinator):
    report = world.add_report()
    responder = await world.principal(world.responder_id)

    outcome = await coordinator.assign(report, world.reporter_id, responder)

    assert isinstance(outcome.error, InvalidAssigneeError)
    assert world.reports.reports[report.id].assigned_responder_id is None


@pytest.mark.anyio
async def test_responder_assigns_colleague(world, coordinator):
    report = world.add_report()
    responder = await world.principal(world.responder_id)

    outcome = await coordinator.assign(report, world.second_responder_id, responder)

    assert outcome.ok
    assert outcome.value.report.assigned_responder_id == world.second_responder_id
    event = outcome.value.assignment_changed
    assert event.previous_assignee_id is None
    assert event.assignee_id == world.second_responder_id
    assert event.actor_id == world.responder_id


@pytest.mark.anyio
async def test_reassigning_same_responder_emits_nothing(world, coordinator):
    report = world.add_report(assigned_responder_id=world.responder_id)
    admin = await world.principal(world.admin_id)

    outcome = await coordinator.assign(report, world.responder_id, admin)

    assert outcome.ok
    assert outcome.value.assignment_changed is None


@pytest.mark.anyio
async def test_reporter_cannot_assign(world, coordinator):
    report = world.add_report()
    reporter = await world.principal(world.reporter_id)

    outcome = await coordinator.assign(report, world.responder_id, reporter)

    assert isinstance(outcome.error, ForbiddenError)


@pytest.mark.anyio
async def test_responder_may_drop_own_assignment(world, coordinator):
    report = world.add_report(assigned_responder_id=world.responder_id)
    responder = await world.principal(world.responder_id)

    outcome = await coordinator.assign(report, None, responder)

    assert outcome.ok
    assert outcome.value.report.assigned_responder_id is None
    assert outcome.value.assignment_changed.previous_assignee_id == world.responder_id


@pytest.mark.anyio
async def test_only_admin_unassigns_someone_else(world, coordinator):
    report = world.add_report(assigned_responder_id=world.second_responder_id)
    responder = await world.principal(world.responder_id)
    admin = await world.principal(world.admin_id)

    denied = await coordinator.assign(report, None, responder)
    allowed = await coordinator.assign(report, None, admin)

    assert isinstance(denied.error, ForbiddenError)
    assert allowed.ok


@pytest.mark.anyio
async def test_admin_role_is_an_eligible_assignee(world, coordinator):
    report = world.add_report()
    responder = await world.principal(world.responder_id)

    outcome = await coordinator.assign(report, world.admin_id, responder)

    assert outcome.ok


@pytest.mark.anyio
async def test_super_admin_without_event_role_is_not_assignable(world, coordinator):
    report = world.add_report()
    admin = await world.principal(world.admin_id)

    outcome = await coordinator.assign(report, world.super_admin_id, admin)

    assert isinstance(outcome.error, InvalidAssigneeError)


@pytest.mark.anyio
async def test_triage_updates_severity_and_resolution(world, coordinator):
    report = world.add_report()
    responder = await world.principal(world.responder_id)

    outcome = await coordinator.update_triage(
        report, responder, severity="high", resolution="  Spoke with both parties "
    )

    assert outcome.ok
    assert outcome.value.severity == "high"
    assert outcome.value.resolution == "Spoke with both parties"


@pytest.mark.anyio
async def test_triage_rejects_unknown_severity(world, coordinator):
    report = world.add_report()
    responder = await world.principal(world.responder_id)

    outcome = await coordinator.update_triage(report, responder, severity="apocalyptic")

    assert isinstance(outcome.error, ValidationError)


@pytest.mark.anyio
async def test_triage_forbidden_for_reporter(world, coordinator):
    report = world.add_report()
    reporter = await world.principal(world.reporter_id)

    outcome = await coordinator.update_triage(report, reporter, severity="low")

    assert isinstance(outcome.error, ForbiddenError)
