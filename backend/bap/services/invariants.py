"""Consistency audit for submission records."""

from __future__ import annotations

from .. import models

# purpose: re-validate every state and field rule the submission state machine must preserve
# status: active


class SubmissionInvariantError(RuntimeError):
    """Raised when a stored submission is in an impossible state."""

    def __init__(self, submission_id, violations: list[str]):
        self.submission_id = submission_id
        self.violations = violations
        super().__init__(
            f"INVARIANT VIOLATION: Submission {submission_id}: " + "; ".join(violations)
        )


def find_invariant_violations(submission: models.Submission) -> list[str]:
    """Return a description of every rule ``submission`` breaks."""

    violations: list[str] = []
    s = submission

    if s.approved_on and s.denied_on:
        violations.append("is both approved and denied")
    if s.changes_requested_on and s.approved_on:
        violations.append("has changes_requested_on but is approved")
    if s.changes_requested_on and s.denied_on:
        violations.append("has changes_requested_on but is denied")

    if s.witnessed_on and not s.witnessed_by:
        violations.append("has witnessed_on but no witnessed_by")
    if s.witnessed_by and not s.witnessed_on:
        violations.append("has witnessed_by but no witnessed_on")
    if s.approved_on and s.points is None:
        violations.append("is approved but has no points")
    if s.approved_on and not s.approved_by:
        violations.append("is approved but has no approved_by")
    if s.denied_on and not s.denied_by:
        violations.append("is denied but has no denied_by")

    status = s.witness_verification_status
    if status in ("confirmed", "declined") and not (s.witnessed_on and s.witnessed_by):
        violations.append(f"is {status} but missing witness data")
    elif status == "pending" and (s.witnessed_on or s.witnessed_by):
        violations.append("is pending but has witness data set")
    elif status not in ("pending", "confirmed", "declined"):
        violations.append(f"has unknown witness status {status!r}")

    submitted = models.as_utc(s.submitted_on)
    witnessed = models.as_utc(s.witnessed_on)
    approved = models.as_utc(s.approved_on)
    denied = models.as_utc(s.denied_on)
    changes = models.as_utc(s.changes_requested_on)

    if submitted and witnessed and submitted > witnessed:
        violations.append("has submitted_on after witnessed_on")
    if witnessed and approved and witnessed > approved:
        violations.append("has witnessed_on after approved_on")
    if witnessed and denied and witnessed > denied:
        violations.append("has witnessed_on after denied_on")
    if changes and submitted and changes < submitted:
        violations.append("has changes_requested_on before submitted_on")

    if changes and (not s.changes_requested_by or s.changes_requested_reason is None):
        violations.append("has changes_requested_on but missing by/reason")

    return violations


def assert_submission_invariants(submission: models.Submission | None) -> None:
    if submission is None:
        raise SubmissionInvariantError(None, ["submission is missing"])
    violations = find_invariant_violations(submission)
    if violations:
        raise SubmissionInvariantError(submission.id, violations)
