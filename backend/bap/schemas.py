"""Pydantic schemas for the submission lifecycle and level services."""

# purpose: typed inputs and outputs for the submission state machine, level manager and status helpers
# status: active

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

WitnessStatus = Literal["pending", "confirmed", "declined"]

SubmissionStatus = Literal[
    "draft",
    "pending-witness",
    "waiting-period",
    "pending-approval",
    "changes-requested",
    "approved",
    "denied",
]


class SpeciesNameIds(BaseModel):
    common_name_id: int
    scientific_name_id: int
    canonical_genus: Optional[str] = None


class ApprovalData(BaseModel):
    points: int = Field(gt=0)
    article_points: Optional[int] = Field(default=None, ge=0)
    first_time_species: bool = False
    cares_species: bool = False
    flowered: bool = False
    sexual_reproduction: bool = False


class SubmissionCreate(BaseModel):
    species_type: str
    species_class: Optional[str] = None
    species_common_name: Optional[str] = None
    species_latin_name: Optional[str] = None
    water_type: Optional[str] = None
    count: Optional[str] = None
    reproduction_date: Optional[datetime] = None
    foods: list[str] = Field(default_factory=list)
    spawn_locations: list[str] = Field(default_factory=list)
    tank_size: Optional[str] = None
    filter_type: Optional[str] = None
    water_change_volume: Optional[str] = None
    water_change_frequency: Optional[str] = None
    temperature: Optional[str] = None
    ph: Optional[str] = None
    gh: Optional[str] = None
    specific_gravity: Optional[str] = None
    substrate_type: Optional[str] = None
    substrate_depth: Optional[str] = None
    substrate_color: Optional[str] = None


class MemberOut(BaseModel):
    id: UUID
    display_name: str
    contact_email: Optional[str] = None
    is_admin: bool
    fish_level: Optional[str] = None
    plant_level: Optional[str] = None
    coral_level: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubmissionOut(SubmissionCreate):
    id: UUID
    member_id: UUID
    program: str
    submitted_on: Optional[datetime] = None
    witness_verification_status: WitnessStatus
    witnessed_by: Optional[UUID] = None
    witnessed_on: Optional[datetime] = None
    approved_on: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    points: Optional[int] = None
    article_points: Optional[int] = None
    total_points: Optional[int] = None
    first_time_species: Optional[bool] = None
    cares_species: Optional[bool] = None
    flowered: Optional[bool] = None
    sexual_reproduction: Optional[bool] = None
    common_name_id: Optional[int] = None
    scientific_name_id: Optional[int] = None
    canonical_genus: Optional[str] = None
    denied_on: Optional[datetime] = None
    denied_by: Optional[UUID] = None
    denied_reason: Optional[str] = None
    changes_requested_on: Optional[datetime] = None
    changes_requested_by: Optional[UUID] = None
    changes_requested_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class WaitingPeriodStatus(BaseModel):
    eligible: bool
    days_remaining: int
    required_days: int
    elapsed_days: int


class StatusInfo(BaseModel):
    status: SubmissionStatus
    label: str
    description: Optional[str] = None
    days_remaining: Optional[int] = None


class LevelCheckResult(BaseModel):
    level_changed: bool
    old_level: Optional[str] = None
    new_level: Optional[str] = None
    total_points: int = 0
    error: bool = False


class ActivityOut(BaseModel):
    id: int
    activity_type: str
    member_id: UUID
    related_id: str
    activity_data: dict[str, Any]
    created_at: datetime
    member_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AwardOut(BaseModel):
    id: int
    member_id: UUID
    award_name: str
    award_type: str
    date_awarded: datetime

    model_config = ConfigDict(from_attributes=True)


class SpecialtyAwardProgress(BaseModel):
    name: str
    required_species: int
    current_species: int
    percentage: int
    is_completed: bool
    is_limitation_met: bool
    limitation_description: Optional[str] = None
    species_list: list[str] = Field(default_factory=list)


class MetaAwardProgress(BaseModel):
    name: str
    required_awards: int
    current_awards: int
    percentage: int
    is_completed: bool
    completed_specialty_awards: list[str] = Field(default_factory=list)
