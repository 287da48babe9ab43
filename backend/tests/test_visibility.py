"""
Report visibility predicates.

Every predicate is deny-by-default: an outsider, an org-only member and an
anonymous principal must be refused everything.
"""
import uuid

import pytest

from conducky.auth.principal import Principal
from conducky.auth.rbac_contract import RoleName
from conducky.auth.visibility import (
    ReportField,
    can_comment,
    can_delete_evidence,
    can_edit_comment,
    can_edit_field,
    can_read,
    can_read_comment,
    can_write,
)

from conftest import FakeComment, FakeEvidence, FakeReport

EVENT_ID = uuid.uuid4()
REPORTER_ID = uuid.uuid4()
RESPONDER_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()


def _principal(user_id, *roles):
    return Principal(user_id=user_id, event_roles={EVENT_ID: set(roles)})


REPORTER = _principal(REPORTER_ID, RoleName.REPORTER)
OTHER_REPORTER = _principal(uuid.uuid4(), RoleName.REPORTER)
RESPONDER = _principal(RESPONDER_ID, RoleName.RESPONDER)
ADMIN = _principal(ADMIN_ID, RoleName.EVENT_ADMIN)
SUPER_ADMIN = Principal(user_id=uuid.uuid4(), global_roles={RoleName.SUPER_ADMIN})
ORG_ADMIN = Principal(user_id=uuid.uuid4(), org_roles={uuid.uuid4(): {RoleName.ORG_ADMIN}})
ANONYMOUS = Principal.anonymous()
OUTSIDER = Principal(user_id=uuid.uuid4())


@pytest.fixture
def report():
    return FakeReport(event_id=EVENT_ID, reporter_id=REPORTER_ID)


class TestReadWrite:
    @pytest.mark.parametrize("principal", [REPORTER, RESPONDER, ADMIN, SUPER_ADMIN])
    def test_readers(self, report, principal):
        assert can_read(principal, report)

    @pytest.mark.parametrize("principal", [OTHER_REPORTER, ORG_ADMIN, ANONYMOUS, OUTSIDER])
    def test_non_readers(self, report, principal):
        assert not can_read(principal, report)

    @pytest.mark.parametrize("principal", [RESPONDER, ADMIN, SUPER_ADMIN])
    def test_writers(self, report, principal):
        assert can_write(principal, report)

    @pytest.mark.parametrize(
        "principal", [REPORTER, OTHER_REPORTER, ORG_ADMIN, ANONYMOUS, OUTSIDER]
    )
    def test_non_writers(self, report, principal):
        assert not can_write(principal, report)

    def test_responder_in_another_event_cannot_read(self, report):
        elsewhere = Principal(
            user_id=uuid.uuid4(), event_roles={uuid.uuid4(): {RoleName.RESPONDER}}
        )
        assert not can_read(elsewhere, report)

    def test_anonymous_report_is_hidden_from_anonymous(self):
        anonymous_report = FakeReport(event_id=EVENT_ID, reporter_id=None)
        assert not can_read(ANONYMOUS, anonymous_report)
        assert can_read(RESPONDER, anonymous_report)


class TestComments:
    def test_internal_comment_hidden_from_reporter(self, report):
        comment = FakeComment(report_id=report.id, author_id=RESPONDER_ID, body="x", visibility="internal")
        assert not can_read_comment(REPORTER, comment, report)
        assert can_read_comment(RESPONDER, comment, report)

    def test_public_comment_visible_to_reporter(self, report):
        comment = FakeComment(report_id=report.id, author_id=RESPONDER_ID, body="x")
        assert can_read_comment(REPORTER, comment, report)
        assert not can_read_comment(OUTSIDER, comment, report)

    def test_unknown_visibility_treated_as_internal(self, report):
        comment = FakeComment(report_id=report.id, author_id=REPORTER_ID, body="x", visibility="secret")
        assert not can_read_comment(REPORTER, comment, report)
        assert can_read_comment(RESPONDER, comment, report)

    def test_comment_from_another_report_is_refused(self, report):
        comment = FakeComment(report_id=uuid.uuid4(), author_id=RESPONDER_ID, body="x")
        assert not can_read_comment(ADMIN, comment, report)

    def test_reporter_may_only_post_public(self, report):
        assert can_comment(REPORTER, report, "public")
        assert not can_comment(REPORTER, report, "internal")
        assert can_comment(RESPONDER, report, "internal")
        assert not can_comment(RESPONDER, report, "bogus")

    def test_edit_needs_author_or_admin(self, report):
        comment = FakeComment(report_id=report.id, author_id=RESPONDER_ID, body="x")
        assert can_edit_comment(RESPONDER, comment, report)
        assert can_edit_comment(ADMIN, comment, report)
        assert not can_edit_comment(_principal(uuid.uuid4(), RoleName.RESPONDER), comment, report)
        assert not can_edit_comment(REPORTER, comment, report)


class TestFieldEdits:
    def test_contact_preference_is_reporter_only(self, report):
        assert can_edit_field(REPORTER, report, ReportField.CONTACT_PREFERENCE)
        assert not can_edit_field(ADMIN, report, ReportField.CONTACT_PREFERENCE)

    def test_title_is_admin_or_reporter(self, report):
        assert can_edit_field(REPORTER, report, ReportField.TITLE)
        assert can_edit_field(ADMIN, report, ReportField.TITLE)
        assert not can_edit_field(RESPONDER, report, ReportField.TITLE)

    @pytest.mark.parametrize("field", [ReportField.DESCRIPTION, ReportField.LOCATION, ReportField.PARTIES])
    def test_descriptive_fields(self, report, field):
        assert can_edit_field(REPORTER, report, field)
        assert can_edit_field(RESPONDER, report, field)
        assert not can_edit_field(OTHER_REPORTER, report, field)

    @pytest.mark.parametrize("field", [ReportField.SEVERITY, ReportField.RESOLUTION, ReportField.ASSIGNMENT])
    def test_triage_fields_need_responder(self, report, field):
        assert not can_edit_field(REPORTER, report, field)
        assert can_edit_field(RESPONDER, report, field)


class TestEvidence:
    def _evidence(self, report, uploader_id):
        return FakeEvidence(
            report_id=report.id,
            filename="photo.png",
            mimetype="image/png",
            size=3,
            uploader_id=uploader_id,
            data=b"png",
        )

    def test_reporter_deletes_own_upload_only(self, report):
        assert can_delete_evidence(REPORTER, self._evidence(report, REPORTER_ID), report)
        assert not can_delete_evidence(REPORTER, self._evidence(report, RESPONDER_ID), report)

    def test_responder_deletes_any(self, report):
        assert can_delete_evidence(RESPONDER, self._evidence(report, REPORTER_ID), report)

    def test_outsider_denied(self, report):
        assert not can_delete_evidence(OUTSIDER, self._evidence(report, OUTSIDER.user_id), report)
