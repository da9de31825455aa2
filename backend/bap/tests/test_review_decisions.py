import pytest

from bap import models
from bap.services import submissions
from bap.services.submissions import SubmissionStateError


def test_request_changes_sets_fields_and_emails(db, member, admin, make_submission, outbox):
    submission = make_submission(member, "witnessed")

    result = submissions.request_changes(db, submission.id, admin.id, "Photo is blurry")

    assert result.changes_requested_by == admin.id
    assert result.changes_requested_reason == "Photo is blurry"
    assert models.as_utc(result.changes_requested_on) >= models.as_utc(result.submitted_on)
    assert outbox[0][1] == "Changes Requested - Convict Cichlid"
    assert "Photo is blurry" in outbox[0][2]


def test_request_changes_overwrites_reason(db, member, admin, other_admin, make_submission):
    submission = make_submission(member, "changes-requested")

    result = submissions.request_changes(
        db, submission.id, other_admin.id, "Also list the foods", disable_emails=True
    )

    assert result.changes_requested_by == other_admin.id
    assert result.changes_requested_reason == "Also list the foods"


def test_request_changes_allows_empty_reason(db, member, admin, make_submission):
    submission = make_submission(member)
    result = submissions.request_changes(db, submission.id, admin.id, "", disable_emails=True)
    assert result.changes_requested_reason == ""


@pytest.mark.parametrize(
    "state, message",
    [
        ("draft", "Cannot request changes on draft submissions"),
        ("approved", "Cannot request changes on approved submissions"),
        ("denied", "Cannot request changes on denied submissions"),
    ],
)
def test_request_changes_guards(db, member, admin, make_submission, state, message):
    submission = make_submission(member, state)
    with pytest.raises(SubmissionStateError, match=message):
        submissions.request_changes(db, submission.id, admin.id, "Anything")


def test_deny_submission(db, member, admin, make_submission, outbox):
    submission = make_submission(member, "changes-requested")

    result = submissions.deny_submission(db, admin.id, submission.id, "Hybrid species")

    assert result.denied_by == admin.id
    assert result.denied_reason == "Hybrid species"
    assert result.denied_on is not None
    assert result.changes_requested_on is None
    assert outbox[0][1] == "Submission Denied - Convict Cichlid"


@pytest.mark.parametrize(
    "state, message",
    [
        ("draft", "Cannot deny draft submissions"),
        ("approved", "Cannot deny approved submissions"),
        ("denied", "Cannot deny already denied submissions"),
    ],
)
def test_deny_guards(db, member, admin, make_submission, state, message):
    submission = make_submission(member, state)
    with pytest.raises(SubmissionStateError, match=message):
        submissions.deny_submission(db, admin.id, submission.id, "Nope")


def test_submit_draft(db, member, make_submission, outbox):
    submission = make_submission(member, "draft")
    assert submission.submitted_on is None

    result = submissions.submit_submission(db, submission.id)

    assert result.submitted_on is not None
    assert result.witness_verification_status == "pending"
    assert outbox[0][1] == "Submission Confirmation - Convict Cichlid"


def test_submit_twice_fails(db, member, make_submission):
    submission = make_submission(member)
    with pytest.raises(SubmissionStateError, match="Submission already submitted"):
        submissions.submit_submission(db, submission.id)


def test_create_submission_assigns_program(db, member, payload):
    plant = submissions.create_submission(
        db, member.id, payload(species_type="Plant"), submit=False
    )
    invert = submissions.create_submission(
        db, member.id, payload(species_type="Invert"), submit=False
    )
    assert plant.program == "plant"
    assert invert.program == "fish"
    assert plant.witness_verification_status == "pending"
    assert plant.foods == ["flake", "live brine shrimp"]


def test_create_submission_rejects_unknown_species_type(db, member, payload):
    with pytest.raises(ValueError, match="Unknown species type"):
        submissions.create_submission(db, member.id, payload(species_type="Reptile"), submit=True)


def test_queues(db, member, admin, make_submission):
    pending = make_submission(member)
    witnessed = make_submission(member, "witnessed")
    make_submission(member, "draft")
    make_submission(member, "denied")
    approved = make_submission(member, "approved")
    make_submission(member, "submitted", species_type="Plant")

    assert [item.id for item in submissions.get_witness_queue(db, "fish")] == [pending.id]
    assert {item.id for item in submissions.get_outstanding_submissions(db, "fish")} == {
        pending.id,
        witnessed.id,
    }
    assert [item.id for item in submissions.get_approved_submissions(db, "fish")] == [approved.id]


def test_submissions_by_member_filters(db, member, make_member, make_submission):
    draft = make_submission(member, "draft")
    submitted = make_submission(member)
    approved = make_submission(member, "approved")
    make_submission(make_member())

    def ids(**flags):
        return {item.id for item in submissions.get_submissions_by_member(db, member.id, **flags)}

    assert ids(include_unsubmitted=True, include_unapproved=True) == {
        draft.id,
        submitted.id,
        approved.id,
    }
    assert ids(include_unsubmitted=False, include_unapproved=True) == {submitted.id, approved.id}
    assert ids(include_unsubmitted=False, include_unapproved=False) == {approved.id}
