import pytest

from bap.services import submissions
from bap.services.submissions import SubmissionStateError

PROVENANCE = ("submitted_on", "witnessed_by", "witnessed_on", "witness_verification_status")


def snapshot(submission):
    return {name: getattr(submission, name) for name in PROVENANCE}


def test_resubmission_preserves_provenance(db, member, admin, make_submission):
    submission = make_submission(member, "witnessed")
    before = snapshot(submission)

    submissions.request_changes(db, submission.id, admin.id, "Add water params", disable_emails=True)
    result = submissions.resubmit_submission(db, submission.id, {"ph": "6.8", "gh": "4"})

    assert snapshot(result) == before
    assert result.ph == "6.8"
    assert result.gh == "4"
    assert result.changes_requested_on is None
    assert result.changes_requested_by is None
    assert result.changes_requested_reason is None


def test_resubmission_can_switch_program(db, member, make_submission):
    submission = make_submission(member, "changes-requested")
    result = submissions.resubmit_submission(db, submission.id, {"species_type": "Coral"})
    assert result.program == "coral"


def test_resubmit_without_request_fails(db, member, make_submission):
    submission = make_submission(member, "witnessed")
    with pytest.raises(SubmissionStateError, match="No changes have been requested"):
        submissions.resubmit_submission(db, submission.id, {"ph": "7.0"})


def test_resubmit_rejects_lifecycle_fields(db, member, make_submission):
    submission = make_submission(member, "changes-requested")
    with pytest.raises(ValueError, match="approved_on"):
        submissions.resubmit_submission(db, submission.id, {"approved_on": None})


def test_update_keeps_approval_provenance(db, member, admin, make_submission):
    submission = make_submission(member, "approved")
    approved_on, approved_by, points = submission.approved_on, submission.approved_by, submission.points

    result = submissions.update_submission(db, submission.id, {"count": "40", "temperature": "80"})

    assert result.count == "40"
    assert result.temperature == "80"
    assert (result.approved_on, result.approved_by, result.points) == (approved_on, approved_by, points)
    assert result.witnessed_by == admin.id


def test_update_rejects_unknown_and_identity_fields(db, member, make_submission):
    submission = make_submission(member)
    with pytest.raises(ValueError, match="Unknown submission fields: colour"):
        submissions.update_submission(db, submission.id, {"colour": "blue"})
    with pytest.raises(ValueError, match="Unknown submission fields: id"):
        submissions.update_submission(db, submission.id, {"id": submission.id})


def test_reopen_witness_returns_to_queue(db, member, admin, other_admin, make_submission):
    submission = make_submission(member, "declined")

    reopened = submissions.reopen_witness(db, submission.id)
    assert reopened.witness_verification_status == "pending"
    assert reopened.witnessed_by is None
    assert reopened.witnessed_on is None

    confirmed = submissions.confirm_witness(db, submission.id, other_admin.id, disable_emails=True)
    assert confirmed.witnessed_by == other_admin.id
