"""Coverage coordinator: decides how many more assignments a submission needs.

This is the only place that creates assignments in response to lifecycle
events.  Counts are recomputed from the assignment table on every call while
the submission row is locked, so two concurrent callers cannot both fill the
same gap.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from django.db import transaction
from django.db.models import Avg, Count, Q

from apps.reviews.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NoCandidatesError,
    NotFoundError,
)
from apps.reviews.models import Assignment, Review
from apps.reviews.notifications import ASSIGNMENT_CREATED, notify
from projects.models import Submission

from .eligibility import find_candidates
from .factory import create_assignment

logger = logging.getLogger(__name__)

__all__ = ["CoverageResult", "ensure_coverage", "submit_for_review"]


@dataclass
class CoverageResult:
    submission: Submission
    completed_count: int
    active_count: int
    created: List[Assignment] = field(default_factory=list)
    shortfall: int = 0

    @property
    def is_covered(self) -> bool:
        return self.submission.status == Submission.Status.REVIEWED


def _lock_submission(submission_id: int) -> Submission:
    try:
        return (
            Submission.objects.select_for_update(of=("self",))
            .select_related("project")
            .get(pk=submission_id)
        )
    except Submission.DoesNotExist as exc:
        raise NotFoundError("Submission not found.") from exc


def _count_assignments(submission: Submission) -> tuple[int, int]:
    counts = Assignment.objects.filter(submission=submission).aggregate(
        completed=Count("id", filter=Q(status=Assignment.Status.COMPLETED)),
        active=Count("id", filter=Q(status__in=Assignment.ACTIVE_STATUSES)),
    )
    return counts["completed"], counts["active"]


def _average_grade(submission: Submission) -> Decimal | None:
    average = Review.objects.filter(submission=submission).aggregate(
        value=Avg("overall_score")
    )["value"]
    if average is None:
        return None
    return Decimal(str(round(average, 2)))


@transaction.atomic
def ensure_coverage(submission_id: int) -> CoverageResult:
    """Bring ``submission_id`` up to its project's ``min_reviews``.

    Marks the submission reviewed once enough reviews are completed, otherwise
    creates peer assignments for the missing reviews and one staff assignment
    when the peer pool cannot fill the gap.
    """

    submission = _lock_submission(submission_id)
    if submission.status == Submission.Status.DRAFT:
        raise InvalidTransitionError("Draft submissions cannot be reviewed.")

    min_reviews = submission.project.min_reviews
    completed, active = _count_assignments(submission)
    result = CoverageResult(
        submission=submission, completed_count=completed, active_count=active
    )

    if submission.status == Submission.Status.REVIEWED:
        return result

    if completed >= min_reviews:
        submission.mark_reviewed(_average_grade(submission))
        logger.info(
            "Submission %s reviewed with %s completed review(s), grade %s",
            submission.pk,
            completed,
            submission.grade,
        )
        return result

    if completed + active >= min_reviews:
        return result

    needed = min_reviews - completed - active
    candidates = find_candidates(
        submission.user_id,
        submission.project.category,
        submission.project.difficulty,
        needed,
        submission_id=submission.pk,
    )
    for index, reviewer_id in enumerate(candidates):
        result.created.append(
            create_assignment(
                submission.pk,
                reviewer_id,
                Assignment.Type.PEER,
                priority=needed - index,
            )
        )

    if len(candidates) < needed:
        logger.warning(
            "Not enough peer reviewers for submission %s: found %s, needed %s; "
            "falling back to staff",
            submission.pk,
            len(candidates),
            needed,
        )
        try:
            with transaction.atomic():
                result.created.append(
                    create_assignment(submission.pk, None, Assignment.Type.ADMIN)
                )
        except NoCandidatesError:
            if not result.created:
                raise
            logger.error(
                "Submission %s is short of reviewers and no staff is available",
                submission.pk,
            )

    result.shortfall = max(0, needed - len(result.created))
    result.active_count = active + len(result.created)

    if result.created:
        submission.mark_under_review()
    for assignment in result.created:
        notify(ASSIGNMENT_CREATED, assignment)
    return result


def submit_for_review(user, submission_id: int) -> CoverageResult:
    """Move the owner's draft to ``SUBMITTED`` and request its reviews."""

    with transaction.atomic():
        try:
            submission = Submission.objects.select_for_update().get(pk=submission_id)
        except Submission.DoesNotExist as exc:
            raise NotFoundError("Submission not found.") from exc
        if submission.user_id != user.pk:
            raise AuthorizationError("Only the author can submit this work.")
        if submission.status != Submission.Status.DRAFT:
            raise InvalidTransitionError("This submission was already submitted.")
        submission.mark_submitted()
        return ensure_coverage(submission.pk)
