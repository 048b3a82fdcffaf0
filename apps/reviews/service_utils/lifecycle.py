"""State machine of a single review assignment.

::

    ASSIGNED -> ACCEPTED -> COMPLETED
    ASSIGNED -> REJECTED
    ASSIGNED | ACCEPTED -> EXPIRED
    ASSIGNED | ACCEPTED -> CANCELLED

Each transition is a single guarded ``UPDATE ... WHERE status IN (...)``.  When
two actors race on the same assignment exactly one update hits a row; the other
sees zero rows and gets :class:`InvalidTransitionError` (user actions) or a
``False`` result (:func:`expire`).  Only the winner of a reject or expire asks
the coverage coordinator for a replacement, so each terminal transition leads
to at most one new assignment.
"""
from __future__ import annotations

import logging
import math
from numbers import Real
from typing import Any, Iterable, Mapping

from django.db import transaction
from django.utils import timezone

from apps.reviews.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NoCandidatesError,
    NotAssignedToUserError,
    NotFoundError,
    ValidationError,
)
from apps.reviews.models import Assignment, Review
from apps.reviews.notifications import REVIEW_COMPLETED, notify
from apps.reviews.utils.sanitize import sanitize_feedback

from . import coverage

logger = logging.getLogger(__name__)

__all__ = [
    "accept",
    "reject",
    "submit_review",
    "expire",
    "cancel",
    "reassign",
    "validate_review_payload",
]

MAX_OVERALL_SCORE = 100


def _get_assignment(assignment_id: int) -> Assignment:
    try:
        return Assignment.objects.get(pk=assignment_id)
    except Assignment.DoesNotExist as exc:
        raise NotFoundError("Review assignment not found.") from exc


def _ensure_bound_reviewer(assignment: Assignment, reviewer_id: int) -> None:
    if assignment.reviewer_id is None or assignment.reviewer_id != reviewer_id:
        raise NotAssignedToUserError()


def _ensure_staff(acting_user) -> None:
    if acting_user is not None and not acting_user.is_staff:
        raise AuthorizationError("Staff privileges are required.")


def _request_replacement(submission_id: int) -> None:
    """Top up coverage after a reviewer finished or dropped out.

    The reviewer's own action already succeeded, so an empty reviewer pool is
    logged instead of raised; ``ensure_review_coverage`` picks the submission
    up again later.
    """
    try:
        coverage.ensure_coverage(submission_id)
    except NoCandidatesError:
        logger.error("Submission %s is short of reviewers and none is available", submission_id)


def _transition(
    assignment_id: int,
    from_statuses: Iterable[str],
    to_status: str,
    *,
    extra_filters: Mapping[str, Any] | None = None,
    **fields: Any,
) -> bool:
    """Apply ``to_status`` only if the row is still in ``from_statuses``."""

    updated = Assignment.objects.filter(
        pk=assignment_id,
        status__in=list(from_statuses),
        **(extra_filters or {}),
    ).update(status=to_status, updated_at=timezone.now(), **fields)
    return updated == 1


def accept(assignment_id: int, reviewer_id: int) -> Assignment:
    """Accept an ``ASSIGNED`` review on behalf of its bound reviewer."""

    assignment = _get_assignment(assignment_id)
    _ensure_bound_reviewer(assignment, reviewer_id)

    accepted = _transition(
        assignment_id,
        (Assignment.Status.ASSIGNED,),
        Assignment.Status.ACCEPTED,
        extra_filters={"reviewer_id": reviewer_id},
        accepted_at=timezone.now(),
    )
    if not accepted:
        logger.info(
            "Accept of assignment %s by %s lost: status is no longer assigned",
            assignment_id,
            reviewer_id,
        )
        raise InvalidTransitionError()

    logger.info("Assignment %s accepted by %s", assignment_id, reviewer_id)
    assignment.refresh_from_db()
    return assignment


def reject(assignment_id: int, reviewer_id: int, reason: str = "") -> Assignment:
    """Decline an ``ASSIGNED`` review and request a replacement reviewer."""

    assignment = _get_assignment(assignment_id)
    _ensure_bound_reviewer(assignment, reviewer_id)

    rejected = _transition(
        assignment_id,
        (Assignment.Status.ASSIGNED,),
        Assignment.Status.REJECTED,
        extra_filters={"reviewer_id": reviewer_id},
        rejected_at=timezone.now(),
        rejection_reason=(reason or "").strip(),
    )
    if not rejected:
        raise InvalidTransitionError()

    logger.info("Assignment %s rejected by %s", assignment_id, reviewer_id)
    _request_replacement(assignment.submission_id)
    assignment.refresh_from_db()
    return assignment


def _as_score(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError({label: "A numeric score is required."})
    score = float(value)
    if not math.isfinite(score):
        raise ValidationError({label: "A finite numeric score is required."})
    return score


def validate_review_payload(payload: Mapping[str, Any]) -> dict:
    """Return a cleaned copy of ``payload`` or raise :class:`ValidationError`."""

    if not isinstance(payload, Mapping):
        raise ValidationError("Review payload must be an object.")

    overall_score = _as_score(payload.get("overall_score"), "overall_score")
    if not 0 <= overall_score <= MAX_OVERALL_SCORE:
        raise ValidationError(
            {"overall_score": f"Overall score must be between 0 and {MAX_OVERALL_SCORE}."}
        )

    criteria_scores = payload.get("criteria_scores")
    if not isinstance(criteria_scores, Mapping) or not criteria_scores:
        raise ValidationError({"criteria_scores": "Criteria scores are required."})
    cleaned_criteria = {
        str(name): _as_score(score, f"criteria_scores.{name}")
        for name, score in criteria_scores.items()
    }

    time_spent = payload.get("time_spent_minutes")
    if time_spent is not None:
        if isinstance(time_spent, bool) or not isinstance(time_spent, int) or time_spent < 0:
            raise ValidationError(
                {"time_spent_minutes": "Time spent must be a non-negative integer."}
            )

    return {
        "overall_score": overall_score,
        "criteria_scores": cleaned_criteria,
        "strengths": sanitize_feedback(payload.get("strengths")),
        "improvements": sanitize_feedback(payload.get("improvements")),
        "suggestions": sanitize_feedback(payload.get("suggestions")),
        "time_spent_minutes": time_spent,
    }


def submit_review(
    assignment_id: int, reviewer_id: int, payload: Mapping[str, Any]
) -> Review:
    """Store the review for an ``ACCEPTED`` assignment and complete it."""

    assignment = _get_assignment(assignment_id)
    _ensure_bound_reviewer(assignment, reviewer_id)
    cleaned = validate_review_payload(payload)

    with transaction.atomic():
        completed = _transition(
            assignment_id,
            (Assignment.Status.ACCEPTED,),
            Assignment.Status.COMPLETED,
            extra_filters={"reviewer_id": reviewer_id},
            completed_at=timezone.now(),
        )
        if not completed:
            raise InvalidTransitionError()

        review = Review.objects.create(
            assignment=assignment,
            submission_id=assignment.submission_id,
            reviewer_id=reviewer_id,
            **cleaned,
        )
        assignment.refresh_from_db()
        notify(REVIEW_COMPLETED, assignment)

    logger.info(
        "Assignment %s completed by %s with score %s",
        assignment_id,
        reviewer_id,
        review.overall_score,
    )
    _request_replacement(assignment.submission_id)
    return review


def expire(assignment_id: int, now=None) -> bool:
    """Expire an overdue assignment. Returns ``False`` if another actor won."""

    now = now or timezone.now()
    assignment = _get_assignment(assignment_id)

    expired = _transition(
        assignment_id,
        Assignment.ACTIVE_STATUSES,
        Assignment.Status.EXPIRED,
        extra_filters={"due_date__lt": now},
        expired_at=now,
    )
    if not expired:
        assignment.refresh_from_db(fields=["status", "due_date"])
        if assignment.is_active:
            raise InvalidTransitionError("The assignment is not overdue yet.")
        logger.info(
            "Assignment %s already %s, nothing to expire", assignment_id, assignment.status
        )
        return False

    logger.info(
        "Assignment %s for submission %s expired (due %s)",
        assignment_id,
        assignment.submission_id,
        assignment.due_date,
    )
    coverage.ensure_coverage(assignment.submission_id)
    return True


def cancel(assignment_id: int, acting_user=None) -> Assignment:
    """Administrative cancel. Does not request a replacement."""

    _ensure_staff(acting_user)
    assignment = _get_assignment(assignment_id)

    cancelled = _transition(
        assignment_id,
        Assignment.ACTIVE_STATUSES,
        Assignment.Status.CANCELLED,
        cancelled_at=timezone.now(),
    )
    if not cancelled:
        raise InvalidTransitionError()

    logger.info(
        "Assignment %s cancelled by %s",
        assignment_id,
        getattr(acting_user, "pk", "system"),
    )
    assignment.refresh_from_db()
    return assignment


@transaction.atomic
def reassign(assignment_id: int, acting_user=None) -> coverage.CoverageResult:
    """Cancel ``assignment_id`` and let the coordinator pick the next reviewer."""

    assignment = cancel(assignment_id, acting_user)
    return coverage.ensure_coverage(assignment.submission_id)
