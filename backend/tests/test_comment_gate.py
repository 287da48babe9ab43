import uuid

import pytest

from conducky.auth.principal import Principal
from conducky.auth.rbac_contract import RoleName
from conducky.services.comment_gate import comment_gate

from conftest import FakeComment, FakeReport


def _setup():
    event_id, reporter_id, responder_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    report = FakeReport(event_id=event_id, reporter_id=reporter_id)
    comments = [
        FakeComment(report_id=report.id, author_id=reporter_id, body="first"),
        FakeComment(report_id=report.id, author_id=responder_id, body="triage", visibility="internal"),
        FakeComment(report_id=report.id, author_id=responder_id, body="reply"),
        FakeComment(report_id=uuid.uuid4(), author_id=responder_id, body="stray"),
    ]
    reporter = Principal(user_id=reporter_id, event_roles={event_id: {RoleName.REPORTER}})
    responder = Principal(user_id=responder_id, event_roles={event_id: {RoleName.RESPONDER}})
    return report, comments, reporter, responder


def test_reporter_sees_public_comments_in_order():
    report, comments, reporter, _ = _setup()

    visible = comment_gate.filter(reporter, comments, report)

    assert [c.body for c in visible] == ["first", "reply"]


def test_responder_sees_internal_but_not_foreign_comments():
    report, comments, _, responder = _setup()

    visible = comment_gate.filter(responder, comments, report)

    assert [c.body for c in visible] == ["first", "triage", "reply"]
    assert len(visible) == 3


def test_view_is_restartable():
    report, comments, reporter, _ = _setup()
    visible = comment_gate.filter(reporter, iter(comments), report)

    assert list(visible) == list(visible)
    assert len(visible) == 2


def test_outsider_sees_nothing():
    report, comments, _, _ = _setup()

    assert list(comment_gate.filter(Principal.anonymous(), comments, report)) == []


@pytest.mark.parametrize("viewer", ["reporter", "responder", "anonymous"])
def test_filtering_twice_changes_nothing(viewer):
    report, comments, reporter, responder = _setup()
    principal = {
        "reporter": reporter,
        "responder": responder,
        "anonymous": Principal.anonymous(),
    }[viewer]

    once = comment_gate.filter(principal, comments, report)
    twice = comment_gate.filter(principal, once, report)

    assert list(twice) == list(once)
