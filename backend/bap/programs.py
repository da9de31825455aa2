"""Breeder award program level rules and the points-to-level engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Mapping, Sequence

# purpose: rule sets for the fish, plant and coral programs plus tier evaluation
# status: active

Program = Literal["fish", "plant", "coral"]

PROGRAMS: tuple[str, ...] = ("fish", "plant", "coral")

AWARD_VALUES: tuple[int, ...] = (5, 10, 15, 20)

BASELINE_LEVEL = "Participant"

PROGRAM_NAMES: dict[str, str] = {
    "fish": "Breeder Awards Program",
    "plant": "Horticultural Awards Program",
    "coral": "Coral Awards Program",
}


class InvalidAwardValue(ValueError):
    """Raised when an approved submission carries a non-standard point value."""

    def __init__(self, value: object):
        super().__init__(f"Invalid award value: {value}")
        self.value = value


@dataclass(frozen=True, slots=True)
class PointsTally:
    total: int
    by_category: Mapping[int, int]

    def category_sum(self, categories: Iterable[int]) -> int:
        return sum(self.by_category.get(category, 0) for category in categories)


@dataclass(frozen=True, slots=True)
class CategoryMinimum:
    """At least ``minimum`` points must come from awards in ``categories``."""

    categories: tuple[int, ...]
    minimum: int

    def is_satisfied(self, tally: PointsTally) -> bool:
        return tally.category_sum(self.categories) >= self.minimum

    @property
    def description(self) -> str:
        labels = [str(category) for category in self.categories]
        if len(labels) == 1:
            joined = labels[0]
            noun = "category"
        else:
            joined = ", ".join(labels[:-1]) + f" or {labels[-1]}"
            noun = "categories"
        return f"At least {self.minimum} points from the {joined} point {noun}"


@dataclass(frozen=True, slots=True)
class LevelTier:
    name: str
    points: int
    requirements: tuple[CategoryMinimum, ...] = ()


def _tiers(*rows: tuple) -> tuple[LevelTier, ...]:
    return tuple(LevelTier(*row) for row in rows)


# The category minimums of the Master tier (30 from each of 5/10/15, 40 from 20)
_MASTER_SPREAD = (
    CategoryMinimum((5,), 30),
    CategoryMinimum((10,), 30),
    CategoryMinimum((15,), 30),
    CategoryMinimum((20,), 40),
)

LEVEL_RULES: dict[str, tuple[LevelTier, ...]] = {
    "fish": _tiers(
        ("Participant", 0),
        ("Hobbyist", 25),
        ("Breeder", 50, (CategoryMinimum((10, 15, 20), 20),)),
        ("Advanced Breeder", 100, (CategoryMinimum((15, 20), 40),)),
        ("Master Breeder", 300, _MASTER_SPREAD),
        ("Grand Master Breeder", 500),
        (
            "Advanced Grand Master Breeder",
            750,
            (CategoryMinimum((5, 10, 15), 60), CategoryMinimum((20,), 80)),
        ),
        (
            "Senior Grand Master Breeder",
            1000,
            (CategoryMinimum((5, 10, 15), 80), CategoryMinimum((20,), 100)),
        ),
        ("Premier Breeder", 1500),
        ("Senior Premier Breeder", 2000),
        ("Grand Poobah Yoda Breeder", 4000),
    ),
    "plant": _tiers(
        ("Participant", 0),
        ("Beginner Aquatic Horticulturist", 25),
        ("Aquatic Horticulturist", 50, (CategoryMinimum((10, 15, 20), 20),)),
        ("Senior Aquatic Horticulturist", 100, (CategoryMinimum((15, 20), 40),)),
        ("Expert Aquatic Horticulturist", 300, _MASTER_SPREAD),
        ("Master Aquatic Horticulturist", 500),
        (
            "Grand Master Aquatic Horticulturist",
            750,
            (CategoryMinimum((5, 10, 15), 60), CategoryMinimum((20,), 80)),
        ),
        (
            "Senior Grand Master Aquatic Horticulturist",
            1000,
            (CategoryMinimum((5, 10, 15), 80), CategoryMinimum((20,), 100)),
        ),
        ("Premier Aquatic Horticulturist", 1500),
        ("Senior Premier Aquatic Horticulturist", 2000),
    ),
    "coral": _tiers(
        ("Participant", 0),
        ("Beginner Coral Propagator", 25),
        ("Coral Propagator", 50),
        ("Senior Coral Propagator", 100),
        ("Expert Coral Propagator", 300),
        ("Master Coral Propagator", 500),
        ("Grand Master Coral Propagator", 750),
        ("Senior Grand Master Coral Propagator", 1000),
    ),
}


def points_by_category(awards: Iterable[int]) -> PointsTally:
    """Total the awards overall and per point category."""

    by_category = {value: 0 for value in AWARD_VALUES}
    total = 0
    for value in awards:
        if isinstance(value, bool) or value not in by_category:
            raise InvalidAwardValue(value)
        by_category[value] += value
        total += value
    return PointsTally(total=total, by_category=by_category)


def calculate_level(rules: Sequence[LevelTier], awards: Iterable[int]) -> str:
    """Return the highest tier reached by the given award values.

    Tiers are walked lowest first. Category minimums accumulate as the walk
    climbs, so a tier only qualifies when its threshold is met and every
    minimum declared by it or any weaker tier holds. Thresholds never shrink
    and the accumulated minimums only grow, so the first failing tier ends
    the walk.
    """

    tally = points_by_category(awards)
    achieved = BASELINE_LEVEL
    required: list[CategoryMinimum] = []
    for tier in rules:
        required.extend(tier.requirements)
        if tally.total < tier.points:
            break
        if not all(requirement.is_satisfied(tally) for requirement in required):
            break
        achieved = tier.name
    return achieved


def level_names(program: str) -> list[str]:
    return [tier.name for tier in _rules_for(program)]


@dataclass(frozen=True, slots=True)
class NextLevel:
    name: str
    points_required: int
    points_needed: int
    progress_percent: int
    has_extra_rules: bool
    extra_rules_description: str | None = None


def get_next_level(program: str, current_level: str | None, total_points: int) -> NextLevel | None:
    """Describe the tier after ``current_level`` and how close ``total_points`` is to it."""

    rules = _rules_for(program)
    names = [tier.name for tier in rules]
    if current_level is None:
        index = 0
    elif current_level in names:
        index = names.index(current_level)
    else:
        raise ValueError(f"Unknown {program} level: {current_level}")

    if index + 1 >= len(rules):
        return None

    upcoming = rules[index + 1]
    points_needed = max(0, upcoming.points - total_points)
    if upcoming.points:
        progress = min(100, (max(total_points, 0) * 100) // upcoming.points)
    else:
        progress = 100
    description = None
    if upcoming.requirements:
        description = "; ".join(requirement.description for requirement in upcoming.requirements)
    return NextLevel(
        name=upcoming.name,
        points_required=upcoming.points,
        points_needed=points_needed,
        progress_percent=progress,
        has_extra_rules=bool(upcoming.requirements),
        extra_rules_description=description,
    )


def _rules_for(program: str) -> tuple[LevelTier, ...]:
    try:
        return LEVEL_RULES[program]
    except KeyError:
        raise ValueError(f"Unknown program: {program}") from None
