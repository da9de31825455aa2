"""Classify a submission into the status shown to members and admins."""

from __future__ import annotations

from datetime import datetime

from .. import models, schemas
from .waiting_period import waiting_period_status

# status: active


def get_submission_status(
    submission: models.Submission, now: datetime | None = None
) -> schemas.StatusInfo:
    if submission.denied_on:
        return schemas.StatusInfo(
            status="denied",
            label="Denied",
            description=submission.denied_reason or "Submission was denied",
        )
    if submission.approved_on:
        return schemas.StatusInfo(
            status="approved",
            label="Approved",
            description=f"{submission.points or 0} points awarded",
        )
    if not submission.submitted_on:
        return schemas.StatusInfo(
            status="draft", label="Draft", description="Not yet submitted for review"
        )
    if submission.changes_requested_on:
        return schemas.StatusInfo(
            status="changes-requested",
            label="Changes Requested",
            description=submission.changes_requested_reason or "Changes requested by an admin",
        )
    if submission.witness_verification_status == "pending":
        return schemas.StatusInfo(
            status="pending-witness",
            label="Pending Screening",
            description="Awaiting admin screening",
        )
    if submission.witness_verification_status == "confirmed" and submission.witnessed_on:
        waiting = waiting_period_status(submission, now)
        if not waiting.eligible:
            return schemas.StatusInfo(
                status="waiting-period",
                label="Awaiting Auction",
                description=f"{waiting.days_remaining} days until auction eligible",
                days_remaining=waiting.days_remaining,
            )
    return schemas.StatusInfo(
        status="pending-approval",
        label="Pending Review",
        description="Ready for admin approval",
    )
