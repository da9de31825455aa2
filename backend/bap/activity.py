from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from . import models


def record_activity(
    db: Session,
    activity_type: str,
    member_id: UUID,
    related_id: str | UUID,
    activity_data: dict[str, Any] | None = None,
) -> models.ActivityFeedItem:
    item = models.ActivityFeedItem(
        activity_type=activity_type,
        member_id=member_id,
        related_id=str(related_id),
        activity_data=activity_data or {},
        created_at=models.utcnow(),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def record_submission_approved(db: Session, submission: models.Submission) -> models.ActivityFeedItem:
    data = {
        "species_common_name": submission.species_common_name,
        "species_type": submission.species_type,
        "points": submission.points or 0,
        "first_time_species": bool(submission.first_time_species),
    }
    if submission.article_points:
        data["article_points"] = submission.article_points
    return record_activity(db, "submission_approved", submission.member_id, submission.id, data)


def record_level_upgraded(
    db: Session,
    member: models.Member,
    program: str,
    old_level: str | None,
    new_level: str,
    total_points: int,
) -> models.ActivityFeedItem:
    return record_activity(
        db,
        "level_upgraded",
        member.id,
        program,
        {
            "program": program,
            "old_level": old_level,
            "new_level": new_level,
            "total_points": total_points,
        },
    )


def get_recent_activity(db: Session, limit: int = 10) -> list[models.ActivityFeedItem]:
    return (
        db.query(models.ActivityFeedItem)
        .options(joinedload(models.ActivityFeedItem.member))
        .order_by(models.ActivityFeedItem.created_at.desc(), models.ActivityFeedItem.id.desc())
        .limit(limit)
        .all()
    )
