"""Specialty awards for breeding many species of one group, and the meta awards built on them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

# purpose: specialty award rules as data plus the pure checks that decide which are earned
# status: active

SPECIES_AWARD = "species"
META_AWARD = "meta_species"

Filter = Callable[[Any], bool]
Validator = Callable[[Sequence[Any]], bool]


@dataclass(frozen=True, slots=True)
class AwardLimitation:
    description: str
    validator: Validator


@dataclass(frozen=True, slots=True)
class SpecialtyAward:
    """Earned by breeding ``required_species`` distinct species that pass ``eligibility``."""

    name: str
    required_species: int
    eligibility: Filter
    limitation: AwardLimitation | None = None


@dataclass(frozen=True, slots=True)
class MetaAward:
    name: str
    required_awards: int


def _species_class(name: str) -> Filter:
    return lambda submission: submission.species_class == name


def _has_non_corydoras(submissions: Sequence[Any]) -> bool:
    # submissions without genus data never satisfy the limitation
    excluded = {"corydoras", "asidorus", "brochis"}
    return any(
        item.canonical_genus and item.canonical_genus.lower() not in excluded
        for item in submissions
    )


def _two_besides_snails(submissions: Sequence[Any]) -> bool:
    return sum(1 for item in submissions if item.species_class != "Snail") >= 2


def _not_yet_tracked(submissions: Sequence[Any]) -> bool:
    # TODO: enforce once submissions record breeding method and annual/non-annual killifish
    return True


MARINE_INVERTS_AND_CORALS = "Marine Invertebrates & Corals Specialist"

SPECIALTY_AWARDS: tuple[SpecialtyAward, ...] = (
    SpecialtyAward("Anabantoids Specialist", 6, _species_class("Anabantoids")),
    SpecialtyAward("Brackish Water Specialist", 3, lambda s: s.water_type == "Brackish"),
    SpecialtyAward(
        "Catfish Specialist",
        5,
        _species_class("Catfish & Loaches"),
        AwardLimitation("1 other than Corydoras, Asidorus, Brochis", _has_non_corydoras),
    ),
    SpecialtyAward("Characins Specialist", 6, _species_class("Characins")),
    # New World and Old World cichlids are not told apart yet
    SpecialtyAward("New World Cichlids Specialist", 12, _species_class("Cichlids")),
    SpecialtyAward(
        "Old World Cichlids Specialist",
        12,
        _species_class("Cichlids"),
        AwardLimitation("no more than 5 mouth brooders", _not_yet_tracked),
    ),
    SpecialtyAward("Cyprinids Specialist", 10, _species_class("Cyprinids")),
    SpecialtyAward(
        "Killifish Specialist",
        7,
        _species_class("Killifish"),
        AwardLimitation("at least 2 must be annuals", _not_yet_tracked),
    ),
    SpecialtyAward("Livebearers Specialist", 8, _species_class("Livebearers")),
    SpecialtyAward(
        "Marine Fish Specialist",
        3,
        lambda s: s.species_class == "Marine" and s.water_type == "Salt",
    ),
    SpecialtyAward(
        MARINE_INVERTS_AND_CORALS,
        7,
        lambda s: (s.species_type == "Invert" and s.water_type == "Salt")
        or s.species_type == "Coral",
        AwardLimitation("2 other than snails", _two_besides_snails),
    ),
)

META_AWARDS: tuple[MetaAward, ...] = (
    MetaAward("Senior Specialist Award", 4),
    MetaAward("Expert Specialist Award", 7),
)


def countable_specialty_awards() -> list[str]:
    """Specialty awards that count toward meta awards (every group but marine inverts and corals)."""

    return [award.name for award in SPECIALTY_AWARDS if award.name != MARINE_INVERTS_AND_CORALS]


def unique_species(submissions: Iterable[Any]) -> list[str]:
    """Distinct lower-cased latin names, in first-seen order."""

    seen: dict[str, None] = {}
    for item in submissions:
        if item.species_latin_name:
            seen.setdefault(item.species_latin_name.lower(), None)
    return list(seen)


def eligible_submissions(award: SpecialtyAward, submissions: Iterable[Any]) -> list[Any]:
    return [item for item in submissions if award.eligibility(item)]


def check_specialty_awards(submissions: Sequence[Any]) -> list[str]:
    """Names of every specialty award the approved ``submissions`` qualify for."""

    earned = []
    for award in SPECIALTY_AWARDS:
        eligible = eligible_submissions(award, submissions)
        if len(unique_species(eligible)) < award.required_species:
            continue
        if award.limitation is None or award.limitation.validator(eligible):
            earned.append(award.name)
    return earned


def check_meta_awards(existing_awards: Iterable[str]) -> list[str]:
    """Meta awards newly reached by ``existing_awards`` and not already held."""

    existing = set(existing_awards)
    countable = existing.intersection(countable_specialty_awards())
    return [
        meta.name
        for meta in META_AWARDS
        if len(countable) >= meta.required_awards and meta.name not in existing
    ]


def percent_of(current: int, required: int) -> int:
    # rounds half up
    return min(100, (current * 200 + required) // (2 * required))
