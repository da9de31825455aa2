"""Recalculate member levels after approvals."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from .. import activity, models, notify, schemas
from ..programs import LEVEL_RULES, PROGRAMS, calculate_level

# purpose: roll approved submissions up into per-program member levels and announce changes
# status: active

logger = logging.getLogger(__name__)


class MemberNotFound(RuntimeError):
    """Raised when a level check targets a member that does not exist."""

    def __init__(self, member_id):
        super().__init__(f"Member {member_id} not found")
        self.member_id = member_id


def approved_award_values(db: Session, member_id: UUID, program: str) -> list[int]:
    """Point totals, bonuses included, of the member's approved submissions in ``program``."""

    member_id = models.as_uuid(member_id)
    submissions = (
        db.query(models.Submission)
        .filter(
            models.Submission.member_id == member_id,
            models.Submission.program == program,
            models.Submission.submitted_on.isnot(None),
            models.Submission.approved_on.isnot(None),
        )
        .order_by(models.Submission.approved_on.asc())
        .all()
    )
    return [item.total_points or item.points or 0 for item in submissions]


def check_and_update_member_level(
    db: Session,
    member_id: UUID,
    program: str,
    *,
    disable_emails: bool = False,
) -> schemas.LevelCheckResult:
    """Store the member's computed level for ``program`` when it differs from the stored one.

    An unset stored level never equals a computed tier, so the first
    assignment (even of the baseline tier) counts as a change.
    """

    if program not in PROGRAMS:
        raise ValueError(f"Unknown program: {program}")
    member_id = models.as_uuid(member_id)
    member = db.get(models.Member, member_id)
    if member is None:
        raise MemberNotFound(member_id)

    awards = approved_award_values(db, member_id, program)
    total_points = sum(awards)
    calculated = calculate_level(LEVEL_RULES[program], awards)
    current = member.get_level(program)

    if current is None:
        logger.info("Assigning first %s level %s to member %s", program, calculated, member_id)
    elif current == calculated:
        return schemas.LevelCheckResult(
            level_changed=False,
            old_level=current,
            new_level=current,
            total_points=total_points,
        )
    else:
        logger.info(
            "Level change for member %s: %s -> %s (%s)", member_id, current, calculated, program
        )

    member.set_level(program, calculated)
    db.commit()

    if not disable_emails:
        try:
            notify.on_level_upgrade(member, program, calculated, total_points)
        except Exception:
            logger.exception("Failed to send %s level email to member %s", program, member_id)

    try:
        activity.record_level_upgraded(db, member, program, current, calculated, total_points)
    except Exception:
        db.rollback()
        logger.exception("Failed to record level activity for member %s", member_id)

    return schemas.LevelCheckResult(
        level_changed=True,
        old_level=current,
        new_level=calculated,
        total_points=total_points,
    )


def check_all_member_levels(
    db: Session,
    member_id: UUID,
    *,
    disable_emails: bool = False,
) -> dict[str, schemas.LevelCheckResult]:
    """Run the level check for every program; one program failing does not stop the others."""

    member_id = models.as_uuid(member_id)
    results: dict[str, schemas.LevelCheckResult] = {}
    for program in PROGRAMS:
        try:
            results[program] = check_and_update_member_level(
                db, member_id, program, disable_emails=disable_emails
            )
        except Exception:
            db.rollback()
            logger.exception("Failed to check %s level for member %s", program, member_id)
            results[program] = schemas.LevelCheckResult(level_changed=False, error=True)
    return results
