"""Holding periods a witnessed spawn must clear before approval."""

from __future__ import annotations

import os
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterable

from .. import models, schemas

# purpose: map species to their required waiting period and report progress through it
# status: active

DEFAULT_POLICY = "species_class"


def _by_species_class(species_type: str | None, species_class: str | None) -> int:
    if species_type == "Fish" and species_class == "Marine":
        return 30
    return 60


def _by_species_type(species_type: str | None, species_class: str | None) -> int:
    if species_type == "Fish":
        return 30
    return 60


POLICIES: dict[str, Callable[[str | None, str | None], int]] = {
    "species_class": _by_species_class,
    "species_type": _by_species_type,
}


def active_policy() -> str:
    return os.getenv("BAP_WAITING_PERIOD_POLICY", DEFAULT_POLICY)


def required_waiting_days(
    species_type: str | None,
    species_class: str | None = None,
    *,
    policy: str | None = None,
) -> int:
    """Return the number of days a spawn must be held before approval.

    ``species_class`` (the default) gives marine fish 30 days and everything
    else 60; ``species_type`` gives every fish 30 days and everything else 60.
    """

    name = policy or active_policy()
    try:
        rule = POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown waiting period policy: {name}") from None
    return rule(species_type, species_class)


def days_elapsed(reference: date | datetime, now: datetime | None = None) -> int:
    """Whole days since ``reference``, rounded down."""

    if not isinstance(reference, datetime):
        reference = datetime.combine(reference, time.min, tzinfo=timezone.utc)
    current = models.as_utc(now) if now else models.utcnow()
    return (current - models.as_utc(reference)) // timedelta(days=1)


def waiting_period_status(
    submission: models.Submission,
    now: datetime | None = None,
    *,
    policy: str | None = None,
) -> schemas.WaitingPeriodStatus:
    required = required_waiting_days(
        submission.species_type, submission.species_class, policy=policy
    )
    if submission.reproduction_date is None:
        elapsed = 0
    else:
        elapsed = days_elapsed(submission.reproduction_date, now)
    remaining = max(0, required - elapsed)
    return schemas.WaitingPeriodStatus(
        eligible=remaining == 0 and submission.witness_verification_status == "confirmed",
        days_remaining=remaining,
        required_days=required,
        elapsed_days=elapsed,
    )


def is_eligible_for_approval(
    submission: models.Submission,
    now: datetime | None = None,
    *,
    policy: str | None = None,
) -> bool:
    return waiting_period_status(submission, now, policy=policy).eligible


def filter_eligible_submissions(
    submissions: Iterable[models.Submission], now: datetime | None = None, *, policy: str | None = None
) -> list[models.Submission]:
    current = now or models.utcnow()
    return [item for item in submissions if is_eligible_for_approval(item, current, policy=policy)]


def filter_waiting_submissions(
    submissions: Iterable[models.Submission], now: datetime | None = None, *, policy: str | None = None
) -> list[models.Submission]:
    """Confirmed submissions that are still inside their waiting period."""

    current = now or models.utcnow()
    return [
        item
        for item in submissions
        if item.witness_verification_status == "confirmed"
        and not is_eligible_for_approval(item, current, policy=policy)
    ]


def waiting_period_status_bulk(
    submissions: Iterable[models.Submission], now: datetime | None = None, *, policy: str | None = None
) -> list[tuple[models.Submission, schemas.WaitingPeriodStatus]]:
    current = now or models.utcnow()
    return [(item, waiting_period_status(item, current, policy=policy)) for item in submissions]
