"""Grant specialty and meta awards from a member's approved submissions."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, notify, schemas
from ..specialty_awards import (
    META_AWARD,
    META_AWARDS,
    SPECIALTY_AWARDS,
    SPECIES_AWARD,
    check_meta_awards,
    check_specialty_awards,
    countable_specialty_awards,
    eligible_submissions,
    percent_of,
    unique_species,
)
from .level_manager import MemberNotFound

# purpose: award bookkeeping after approvals, across all programs
# status: active

logger = logging.getLogger(__name__)


def approved_submissions(db: Session, member_id: UUID) -> list[models.Submission]:
    return (
        db.query(models.Submission)
        .filter(
            models.Submission.member_id == member_id,
            models.Submission.submitted_on.isnot(None),
            models.Submission.approved_on.isnot(None),
        )
        .order_by(models.Submission.approved_on.asc())
        .all()
    )


def existing_award_names(db: Session, member_id: UUID) -> list[str]:
    rows = (
        db.query(models.Award.award_name)
        .filter(models.Award.member_id == member_id)
        .order_by(models.Award.date_awarded.asc(), models.Award.id.asc())
        .all()
    )
    return [name for (name,) in rows]


def _grant(db: Session, member: models.Member, award_name: str, award_type: str) -> bool:
    db.add(
        models.Award(
            member_id=member.id,
            award_name=award_name,
            award_type=award_type,
            date_awarded=models.utcnow(),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Award %r already granted to member %s", award_name, member.id)
        return False
    logger.info("Granted %s award %r to member %s", award_type, award_name, member.id)
    return True


def check_and_grant_specialty_awards(
    db: Session,
    member_id: UUID,
    *,
    disable_emails: bool = False,
) -> list[str]:
    """Grant every specialty and meta award the member has newly earned.

    Returns the names granted by this call, specialty awards first.
    """

    member_id = models.as_uuid(member_id)
    member = db.get(models.Member, member_id)
    if member is None:
        raise MemberNotFound(member_id)

    earned = check_specialty_awards(approved_submissions(db, member_id))
    existing = existing_award_names(db, member_id)

    granted = [
        name
        for name in earned
        if name not in existing and _grant(db, member, name, SPECIES_AWARD)
    ]
    for name in check_meta_awards(existing + granted):
        if _grant(db, member, name, META_AWARD):
            granted.append(name)

    if not disable_emails:
        for name in granted:
            try:
                notify.on_specialty_award(member, name)
            except Exception:
                logger.exception("Failed to send award email %r to member %s", name, member_id)
    return granted


def get_specialty_award_progress(
    db: Session, member_id: UUID
) -> tuple[list[schemas.SpecialtyAwardProgress], list[schemas.MetaAwardProgress]]:
    """Progress toward every specialty award and meta award, earned or not."""

    member_id = models.as_uuid(member_id)
    submissions = approved_submissions(db, member_id)
    existing = set(existing_award_names(db, member_id))

    specialty = []
    for award in SPECIALTY_AWARDS:
        eligible = eligible_submissions(award, submissions)
        species = unique_species(eligible)
        limitation_met = True
        if award.limitation is not None and len(species) >= award.required_species:
            limitation_met = award.limitation.validator(eligible)
        specialty.append(
            schemas.SpecialtyAwardProgress(
                name=award.name,
                required_species=award.required_species,
                current_species=len(species),
                percentage=percent_of(len(species), award.required_species),
                is_completed=(
                    len(species) >= award.required_species
                    and limitation_met
                    and award.name in existing
                ),
                is_limitation_met=limitation_met,
                limitation_description=award.limitation.description if award.limitation else None,
                species_list=species,
            )
        )

    countable = set(countable_specialty_awards())
    completed = [item.name for item in specialty if item.is_completed and item.name in countable]
    meta = [
        schemas.MetaAwardProgress(
            name=award.name,
            required_awards=award.required_awards,
            current_awards=len(completed),
            percentage=percent_of(len(completed), award.required_awards),
            is_completed=award.name in existing,
            completed_specialty_awards=completed,
        )
        for award in META_AWARDS
    ]
    return specialty, meta
