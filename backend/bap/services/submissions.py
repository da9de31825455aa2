"""Submission lifecycle: drafting, witnessing, change requests, approval, denial and deletion."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import activity, models, notify, schemas
from .award_manager import check_and_grant_specialty_awards
from .level_manager import MemberNotFound, check_and_update_member_level

# purpose: enforce legal submission state transitions with race-safe conditional writes
# inputs: SQLAlchemy session, submission and member identifiers, admin decisions
# outputs: updated Submission rows, follow-up level checks and member notifications
# status: active

logger = logging.getLogger(__name__)

SPECIES_PROGRAMS: dict[str, str] = {
    "Fish": "fish",
    "Invert": "fish",
    "Plant": "plant",
    "Coral": "coral",
}

EDITABLE_FIELDS = frozenset(schemas.SubmissionCreate.model_fields)

_CHANGES_REQUESTED_CLEARED = {
    "changes_requested_on": None,
    "changes_requested_by": None,
    "changes_requested_reason": None,
}


class SubmissionError(RuntimeError):
    """Base error for submission lifecycle operations."""


class SubmissionNotFound(SubmissionError):
    """Raised when the target submission does not exist."""

    def __init__(self, submission_id):
        super().__init__("Submission not found")
        self.submission_id = submission_id


class SubmissionStateError(SubmissionError):
    """Raised when an operation is attempted from a state that does not allow it."""

    def __init__(self, message: str, expected_state: str, actual_state: str):
        super().__init__(message)
        self.expected_state = expected_state
        self.actual_state = actual_state


class SubmissionAuthorizationError(SubmissionError):
    """Raised when the acting member may not perform the operation."""

    def __init__(self, message: str, user_id, action: str):
        super().__init__(message)
        self.user_id = user_id
        self.action = action


def program_for_species_type(species_type: str) -> str:
    try:
        return SPECIES_PROGRAMS[species_type]
    except KeyError:
        raise ValueError("Unknown species type") from None


def describe_state(submission: models.Submission) -> str:
    if submission.approved_on:
        return "approved"
    if submission.denied_on:
        return "denied"
    if submission.submitted_on is None:
        return "draft"
    if submission.changes_requested_on:
        return "changes-requested"
    return "submitted"


def get_submission_by_id(db: Session, submission_id: UUID) -> models.Submission | None:
    return db.get(models.Submission, models.as_uuid(submission_id))


def _load(db: Session, submission_id: UUID) -> models.Submission:
    submission = get_submission_by_id(db, submission_id)
    if submission is None:
        raise SubmissionNotFound(submission_id)
    return submission


def _reload(db: Session, submission_id: UUID) -> models.Submission | None:
    return db.get(models.Submission, submission_id, populate_existing=True)


def _guarded_update(
    db: Session,
    submission: models.Submission,
    guards: Sequence[Any],
    values: Mapping[str, Any],
    recheck: Callable[[models.Submission], None],
    lost_race: SubmissionStateError,
) -> models.Submission:
    """Apply ``values`` only if ``guards`` still hold in the database.

    The precondition is part of the UPDATE itself, so of two racing writers
    exactly one matches the row. The loser re-reads the row and fails with
    whatever ``recheck`` now reports about it.
    """

    submission_id = submission.id
    stmt = (
        sa.update(models.Submission)
        .where(models.Submission.id == submission_id, *guards)
        .values(**values, updated_on=models.utcnow())
        .execution_options(synchronize_session=False)
    )
    try:
        result = db.execute(stmt)
    except Exception:
        db.rollback()
        raise
    if result.rowcount == 1:
        db.commit()
        db.refresh(submission)
        return submission

    db.rollback()
    logger.warning("Lost concurrent update on submission %s", submission_id)
    current = _reload(db, submission_id)
    if current is None:
        raise SubmissionNotFound(submission_id)
    recheck(current)
    raise lost_race


def _open_guards() -> list[Any]:
    return [
        models.Submission.submitted_on.isnot(None),
        models.Submission.approved_on.is_(None),
        models.Submission.denied_on.is_(None),
    ]


def _notify(action: str, submission_id, send: Callable[[], Any]) -> None:
    try:
        send()
    except Exception:
        logger.exception("Failed to send %s notification for submission %s", action, submission_id)


def create_submission(
    db: Session,
    member_id: UUID,
    payload: schemas.SubmissionCreate | Mapping[str, Any],
    submit: bool,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    """Insert a new submission for ``member_id``, as a draft unless ``submit`` is set."""

    if not isinstance(payload, schemas.SubmissionCreate):
        payload = schemas.SubmissionCreate.model_validate(payload)
    member = db.get(models.Member, models.as_uuid(member_id))
    if member is None:
        raise MemberNotFound(member_id)

    submission = models.Submission(
        member_id=member.id,
        program=program_for_species_type(payload.species_type),
        witness_verification_status="pending",
        submitted_on=models.utcnow() if submit else None,
        **payload.model_dump(),
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info("Member %s created submission %s (submitted=%s)", member.id, submission.id, submit)
    if submit and not disable_emails:
        _notify("submission", submission.id, lambda: notify.on_submission_sent(submission, member))
    return submission


def submit_submission(
    db: Session,
    submission_id: UUID,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    """Move a draft into the review queue."""

    submission = _load(db, submission_id)

    def check(current: models.Submission) -> None:
        if current.submitted_on is not None:
            raise SubmissionStateError(
                "Submission already submitted", "draft", describe_state(current)
            )

    check(submission)
    _guarded_update(
        db,
        submission,
        [models.Submission.submitted_on.is_(None)],
        {"submitted_on": models.utcnow(), "witness_verification_status": "pending"},
        check,
        SubmissionStateError("Submission already submitted", "draft", "submitted"),
    )
    logger.info("Submission %s submitted", submission.id)
    if not disable_emails:
        _notify(
            "submission",
            submission.id,
            lambda: notify.on_submission_sent(submission, submission.member),
        )
    return submission


def _check_witnessable(submission: models.Submission, admin_id: UUID) -> None:
    if submission.member_id == admin_id:
        raise SubmissionAuthorizationError("Cannot witness your own submission", admin_id, "witness")
    status = submission.witness_verification_status
    if status != "pending":
        raise SubmissionStateError("Submission not in pending witness state", "pending", status)
    if submission.submitted_on is None:
        raise SubmissionStateError("Cannot witness draft submissions", "submitted", "draft")
    if submission.approved_on:
        raise SubmissionStateError("Cannot witness approved submissions", "submitted", "approved")
    if submission.denied_on:
        raise SubmissionStateError("Cannot witness denied submissions", "submitted", "denied")


def _record_witness(
    db: Session,
    submission_id: UUID,
    admin_id: UUID,
    outcome: str,
) -> models.Submission:
    admin_id = models.as_uuid(admin_id)
    submission = _load(db, submission_id)
    _check_witnessable(submission, admin_id)
    _guarded_update(
        db,
        submission,
        [models.Submission.witness_verification_status == "pending", *_open_guards()],
        {
            "witness_verification_status": outcome,
            "witnessed_by": admin_id,
            "witnessed_on": models.utcnow(),
        },
        lambda current: _check_witnessable(current, admin_id),
        SubmissionStateError("Submission not in pending witness state", "pending", outcome),
    )
    logger.info("Submission %s witness %s by %s", submission.id, outcome, admin_id)
    return submission


def confirm_witness(
    db: Session,
    submission_id: UUID,
    admin_id: UUID,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    submission = _record_witness(db, submission_id, admin_id, "confirmed")
    if not disable_emails:
        witness = db.get(models.Member, submission.witnessed_by)
        _notify(
            "witness confirmed",
            submission.id,
            lambda: notify.on_witness_confirmed(submission, submission.member, witness),
        )
    return submission


def decline_witness(
    db: Session,
    submission_id: UUID,
    admin_id: UUID,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    submission = _record_witness(db, submission_id, admin_id, "declined")
    if not disable_emails:
        _notify(
            "witness declined",
            submission.id,
            lambda: notify.on_witness_declined(submission, submission.member),
        )
    return submission


def reopen_witness(db: Session, submission_id: UUID) -> models.Submission:
    """Send a screened submission back to the witness queue."""

    return update_submission(
        db,
        submission_id,
        {"witness_verification_status": "pending", "witnessed_by": None, "witnessed_on": None},
    )


def _check_approvable(submission: models.Submission) -> None:
    if submission.submitted_on is None:
        raise SubmissionStateError("Cannot approve draft submissions", "submitted", "draft")
    if submission.approved_on:
        raise SubmissionStateError(
            "Cannot approve already approved submissions", "submitted", "approved"
        )
    if submission.denied_on:
        raise SubmissionStateError("Cannot approve denied submissions", "submitted", "denied")


def approve_submission(
    db: Session,
    admin_id: UUID,
    submission_id: UUID,
    species_ids: schemas.SpeciesNameIds,
    approval: schemas.ApprovalData,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    """Award points to a submission, then recalculate the owner's level and awards.

    Activity, email, the level check and the specialty award check run after
    the approval has been committed; a failure in any of them is logged and
    leaves the approval in place.
    """

    admin_id = models.as_uuid(admin_id)
    submission = _load(db, submission_id)
    _check_approvable(submission)
    _guarded_update(
        db,
        submission,
        _open_guards(),
        {
            "approved_on": models.utcnow(),
            "approved_by": admin_id,
            "points": approval.points,
            "article_points": approval.article_points,
            "first_time_species": approval.first_time_species,
            "cares_species": approval.cares_species,
            "flowered": approval.flowered,
            "sexual_reproduction": approval.sexual_reproduction,
            "common_name_id": species_ids.common_name_id,
            "scientific_name_id": species_ids.scientific_name_id,
            "canonical_genus": species_ids.canonical_genus,
            **_CHANGES_REQUESTED_CLEARED,
        },
        _check_approvable,
        SubmissionStateError("Cannot approve already approved submissions", "submitted", "approved"),
    )
    logger.info(
        "Submission %s approved by %s for %s points", submission.id, admin_id, submission.points
    )

    member = submission.member
    if not disable_emails:
        _notify("approval", submission.id, lambda: notify.on_submission_approved(submission, member))
    try:
        activity.record_submission_approved(db, submission)
    except Exception:
        db.rollback()
        logger.exception("Failed to record approval activity for submission %s", submission.id)
    try:
        check_and_update_member_level(
            db, submission.member_id, submission.program, disable_emails=disable_emails
        )
    except Exception:
        db.rollback()
        logger.exception(
            "Level check failed for member %s after approving submission %s",
            submission.member_id,
            submission.id,
        )
    try:
        check_and_grant_specialty_awards(db, submission.member_id, disable_emails=disable_emails)
    except Exception:
        db.rollback()
        logger.exception(
            "Specialty award check failed for member %s after approving submission %s",
            submission.member_id,
            submission.id,
        )
    return submission


def _check_deniable(submission: models.Submission) -> None:
    if submission.submitted_on is None:
        raise SubmissionStateError("Cannot deny draft submissions", "submitted", "draft")
    if submission.approved_on:
        raise SubmissionStateError("Cannot deny approved submissions", "submitted", "approved")
    if submission.denied_on:
        raise SubmissionStateError("Cannot deny already denied submissions", "submitted", "denied")


def deny_submission(
    db: Session,
    admin_id: UUID,
    submission_id: UUID,
    reason: str,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    admin_id = models.as_uuid(admin_id)
    submission = _load(db, submission_id)
    _check_deniable(submission)
    _guarded_update(
        db,
        submission,
        _open_guards(),
        {
            "denied_on": models.utcnow(),
            "denied_by": admin_id,
            "denied_reason": reason,
            **_CHANGES_REQUESTED_CLEARED,
        },
        _check_deniable,
        SubmissionStateError("Cannot deny already denied submissions", "submitted", "denied"),
    )
    logger.info("Submission %s denied by %s", submission.id, admin_id)
    if not disable_emails:
        _notify(
            "denial",
            submission.id,
            lambda: notify.on_submission_denied(submission, submission.member, reason),
        )
    return submission


def _check_changes_requestable(submission: models.Submission) -> None:
    if submission.submitted_on is None:
        raise SubmissionStateError("Cannot request changes on draft submissions", "submitted", "draft")
    if submission.approved_on:
        raise SubmissionStateError(
            "Cannot request changes on approved submissions", "submitted", "approved"
        )
    if submission.denied_on:
        raise SubmissionStateError(
            "Cannot request changes on denied submissions", "submitted", "denied"
        )


def request_changes(
    db: Session,
    submission_id: UUID,
    admin_id: UUID,
    reason: str,
    *,
    disable_emails: bool = False,
) -> models.Submission:
    """Ask the member to revise a submission; repeating the call replaces the reason."""

    admin_id = models.as_uuid(admin_id)
    submission = _load(db, submission_id)
    _check_changes_requestable(submission)
    _guarded_update(
        db,
        submission,
        _open_guards(),
        {
            "changes_requested_on": models.utcnow(),
            "changes_requested_by": admin_id,
            "changes_requested_reason": reason,
        },
        _check_changes_requestable,
        SubmissionStateError(
            "Cannot request changes on approved submissions", "submitted", "approved"
        ),
    )
    logger.info("Changes requested on submission %s by %s", submission.id, admin_id)
    if not disable_emails:
        _notify(
            "changes requested",
            submission.id,
            lambda: notify.on_changes_requested(submission, submission.member, reason),
        )
    return submission


def update_submission(
    db: Session,
    submission_id: UUID,
    fields: Mapping[str, Any],
) -> models.Submission:
    """Patch columns on a submission without any state-machine checks.

    Fields that are not named are left untouched, which keeps approval and
    witness provenance intact when editing an approved submission.
    """

    columns = set(models.Submission.__table__.columns.keys()) - {"id"}
    unknown = set(fields) - columns
    if unknown:
        raise ValueError(f"Unknown submission fields: {', '.join(sorted(unknown))}")

    submission = _load(db, submission_id)
    values = dict(fields)
    if "species_type" in values and "program" not in values:
        values["program"] = program_for_species_type(values["species_type"])
    for name, value in values.items():
        setattr(submission, name, value)
    db.commit()
    db.refresh(submission)
    return submission


def resubmit_submission(
    db: Session,
    submission_id: UUID,
    changes: Mapping[str, Any] | None = None,
) -> models.Submission:
    """Apply the member's edits and clear the outstanding change request.

    ``submitted_on`` and the witness fields are kept as they were.
    """

    changes = dict(changes or {})
    protected = set(changes) - EDITABLE_FIELDS
    if protected:
        raise ValueError(f"Cannot edit fields on resubmission: {', '.join(sorted(protected))}")

    submission = _load(db, submission_id)
    if submission.changes_requested_on is None:
        raise SubmissionStateError(
            "No changes have been requested", "changes-requested", describe_state(submission)
        )
    submission = update_submission(db, submission.id, {**changes, **_CHANGES_REQUESTED_CLEARED})
    logger.info("Submission %s resubmitted", submission.id)
    return submission


def _check_deletable(submission: models.Submission, actor_member_id: UUID) -> None:
    if submission.member_id != actor_member_id:
        raise SubmissionAuthorizationError(
            "Cannot delete another member's submission", actor_member_id, "delete"
        )
    if submission.approved_on:
        raise SubmissionStateError("Cannot delete approved submissions", "unapproved", "approved")


def delete_submission_with_auth(
    db: Session,
    submission_id: UUID,
    actor_member_id: UUID,
    actor_is_admin: bool,
) -> None:
    """Delete a submission on behalf of ``actor_member_id``.

    Owners may delete their own submissions until they are approved. With
    ``actor_is_admin`` set any submission may be deleted; the flag is trusted
    as given, so callers must pass a verified value.
    """

    actor_member_id = models.as_uuid(actor_member_id)
    submission = _load(db, submission_id)
    submission_id = submission.id
    guards: list[Any] = []
    if not actor_is_admin:
        _check_deletable(submission, actor_member_id)
        guards = [
            models.Submission.member_id == actor_member_id,
            models.Submission.approved_on.is_(None),
        ]

    db.expunge(submission)
    try:
        result = db.execute(
            sa.delete(models.Submission)
            .where(models.Submission.id == submission_id, *guards)
            .execution_options(synchronize_session=False)
        )
    except Exception:
        db.rollback()
        raise
    if result.rowcount != 1:
        db.rollback()
        current = _reload(db, submission_id)
        if current is None:
            raise SubmissionNotFound(submission_id)
        _check_deletable(current, actor_member_id)
        raise SubmissionStateError("Cannot delete approved submissions", "unapproved", "approved")
    db.commit()
    logger.info(
        "Submission %s deleted by %s (admin=%s)", submission_id, actor_member_id, actor_is_admin
    )


def get_submissions_by_member(
    db: Session,
    member_id: UUID,
    include_unsubmitted: bool,
    include_unapproved: bool,
) -> list[models.Submission]:
    query = db.query(models.Submission).filter(
        models.Submission.member_id == models.as_uuid(member_id)
    )
    if not include_unsubmitted:
        query = query.filter(models.Submission.submitted_on.isnot(None))
    if not include_unapproved:
        query = query.filter(models.Submission.approved_on.isnot(None))
    return query.order_by(models.Submission.created_on.asc()).all()


def get_outstanding_submissions(db: Session, program: str) -> list[models.Submission]:
    """Submitted submissions in ``program`` still awaiting a decision."""

    return (
        db.query(models.Submission)
        .filter(
            models.Submission.program == program,
            *_open_guards(),
        )
        .order_by(models.Submission.submitted_on.asc())
        .all()
    )


def get_witness_queue(db: Session, program: str) -> list[models.Submission]:
    return (
        db.query(models.Submission)
        .filter(
            models.Submission.program == program,
            models.Submission.witness_verification_status == "pending",
            models.Submission.changes_requested_on.is_(None),
            *_open_guards(),
        )
        .order_by(models.Submission.submitted_on.asc())
        .all()
    )


def get_approved_submissions(db: Session, program: str) -> list[models.Submission]:
    return (
        db.query(models.Submission)
        .filter(
            models.Submission.program == program,
            models.Submission.submitted_on.isnot(None),
            models.Submission.approved_on.isnot(None),
            models.Submission.points.isnot(None),
        )
        .order_by(models.Submission.approved_on.asc())
        .all()
    )
