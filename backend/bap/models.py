import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def as_uuid(value: uuid.UUID | str) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class Member(Base):
    __tablename__ = "members"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    display_name = Column(String, nullable=False)
    contact_email = Column(String, unique=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    # unset means no level has been assigned yet for the program
    fish_level = Column(String, nullable=True)
    plant_level = Column(String, nullable=True)
    coral_level = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    submissions = relationship(
        "Submission",
        back_populates="member",
        foreign_keys="Submission.member_id",
        cascade="all, delete-orphan",
    )
    awards = relationship(
        "Award",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="Award.date_awarded",
    )

    def get_level(self, program: str) -> str | None:
        return getattr(self, f"{program}_level")

    def set_level(self, program: str, level: str) -> None:
        setattr(self, f"{program}_level", level)


class Submission(Base):
    __tablename__ = "submissions"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(UUID(as_uuid=True), ForeignKey("members.id"), nullable=False)
    program = Column(String, nullable=False)
    created_on = Column(DateTime, default=utcnow)
    updated_on = Column(DateTime, default=utcnow, onupdate=utcnow)

    species_type = Column(String, nullable=False)
    species_class = Column(String)
    species_common_name = Column(String)
    species_latin_name = Column(String)
    common_name_id = Column(Integer)
    scientific_name_id = Column(Integer)
    # genus of the resolved species name group, set on approval
    canonical_genus = Column(String)
    water_type = Column(String)
    count = Column(String)
    reproduction_date = Column(DateTime)

    # environmental parameters are opaque to the core
    foods = Column(JSON, default=list)
    spawn_locations = Column(JSON, default=list)
    tank_size = Column(String)
    filter_type = Column(String)
    water_change_volume = Column(String)
    water_change_frequency = Column(String)
    temperature = Column(String)
    ph = Column(String)
    gh = Column(String)
    specific_gravity = Column(String)
    substrate_type = Column(String)
    substrate_depth = Column(String)
    substrate_color = Column(String)

    submitted_on = Column(DateTime)

    witness_verification_status = Column(String, default="pending", nullable=False)
    witnessed_by = Column(UUID(as_uuid=True), ForeignKey("members.id"))
    witnessed_on = Column(DateTime)

    approved_on = Column(DateTime)
    approved_by = Column(UUID(as_uuid=True), ForeignKey("members.id"))
    points = Column(Integer)
    article_points = Column(Integer)
    first_time_species = Column(Boolean, default=False)
    cares_species = Column(Boolean, default=False)
    flowered = Column(Boolean, default=False)
    sexual_reproduction = Column(Boolean, default=False)

    denied_on = Column(DateTime)
    denied_by = Column(UUID(as_uuid=True), ForeignKey("members.id"))
    denied_reason = Column(Text)

    changes_requested_on = Column(DateTime)
    changes_requested_by = Column(UUID(as_uuid=True), ForeignKey("members.id"))
    changes_requested_reason = Column(Text)

    member = relationship("Member", back_populates="submissions", foreign_keys=[member_id])

    __table_args__ = (
        sa.Index("ix_submissions_member_program", "member_id", "program"),
        sa.Index("ix_submissions_program_status", "program", "witness_verification_status"),
    )

    @hybrid_property
    def total_points(self) -> int | None:
        if self.points is None:
            return None
        total = self.points + (self.article_points or 0)
        if self.first_time_species:
            total += 5
        if self.flowered:
            total += self.points
        if self.sexual_reproduction:
            total += self.points
        return total

    @total_points.expression
    def total_points(cls):
        return (
            cls.points
            + sa.func.coalesce(cls.article_points, 0)
            + sa.case((cls.first_time_species.is_(True), 5), else_=0)
            + sa.case((cls.flowered.is_(True), cls.points), else_=0)
            + sa.case((cls.sexual_reproduction.is_(True), cls.points), else_=0)
        )


class ActivityFeedItem(Base):
    __tablename__ = "activity_feed"
    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_type = Column(String, nullable=False)
    member_id = Column(UUID(as_uuid=True), ForeignKey("members.id"), nullable=False)
    related_id = Column(String, nullable=False)
    activity_data = Column(JSON, default=dict)
    created_at = Column(DateTime, default=utcnow)

    member = relationship("Member")

    @property
    def member_name(self) -> str | None:
        return self.member.display_name if self.member is not None else None


class Award(Base):
    __tablename__ = "awards"
    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(UUID(as_uuid=True), ForeignKey("members.id"), nullable=False)
    award_name = Column(String, nullable=False)
    # "species" for specialty awards, "meta_species" for awards earned from other awards
    award_type = Column(String, nullable=False, default="species")
    date_awarded = Column(DateTime, default=utcnow)

    member = relationship("Member", back_populates="awards")

    __table_args__ = (sa.UniqueConstraint("member_id", "award_name", name="uq_awards_member_name"),)
