"""Candidate selection for peer review.

:func:`find_candidates` builds the pool of users who may review a submission
and ranks it.  The pool is filtered in the database; ranking happens in Python
on a handful of annotated values so that each rule stays readable:

1. the submitter never reviews their own work;
2. users who already hold, or previously held, an assignment for the
   submission are skipped so the same person is not asked twice;
3. users at the concurrent review cap are skipped;
4. users with completed reviews in the project's category come first;
5. then users whose own level (the hardest project they got reviewed)
   is at least the submission's difficulty;
6. remaining ties go to whoever was assigned least recently, then to the
   lowest user id.

Returning fewer ids than requested is expected when the pool runs dry; the
coverage coordinator falls back to staff in that case.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.db.models import Count, Exists, IntegerField, OuterRef, Subquery, Value
from django.db.models.functions import Coalesce

from apps.reviews.conf import review_settings
from apps.reviews.models import Assignment
from projects.models import Submission

__all__ = ["Candidate", "find_candidates", "rank_candidates"]


@dataclass(frozen=True)
class Candidate:
    user_id: int
    has_category_reviews: bool
    level: int
    last_assigned_at: Optional[datetime]


def _active_load_subquery():
    return (
        Assignment.objects.filter(
            reviewer=OuterRef("pk"), status__in=Assignment.ACTIVE_STATUSES
        )
        .order_by()
        .values("reviewer")
        .annotate(total=Count("pk"))
        .values("total")
    )


def _level_subquery():
    return (
        Submission.objects.filter(
            user=OuterRef("pk"), status=Submission.Status.REVIEWED
        )
        .order_by("-project__difficulty")
        .values("project__difficulty")[:1]
    )


def _last_assigned_subquery():
    return (
        Assignment.objects.filter(reviewer=OuterRef("pk"))
        .order_by("-created_at")
        .values("created_at")[:1]
    )


def _candidate_queryset(submitter_id: int, category: str, submission_id: int | None):
    User = get_user_model()
    users = User.objects.filter(is_active=True, is_staff=False).exclude(pk=submitter_id)

    if submission_id is not None:
        previous_reviewers = Assignment.objects.filter(
            submission_id=submission_id, reviewer__isnull=False
        ).values("reviewer_id")
        users = users.exclude(pk__in=previous_reviewers)

    category_reviews = Assignment.objects.filter(
        reviewer=OuterRef("pk"),
        status=Assignment.Status.COMPLETED,
        submission__project__category=category,
    )

    return users.annotate(
        active_load=Coalesce(
            Subquery(_active_load_subquery(), output_field=IntegerField()), Value(0)
        ),
        has_category_reviews=Exists(category_reviews),
        level=Coalesce(
            Subquery(_level_subquery(), output_field=IntegerField()), Value(0)
        ),
        last_assigned_at=Subquery(_last_assigned_subquery()),
    )


def _sort_key(candidate: Candidate, difficulty: int):
    never_assigned = candidate.last_assigned_at is None
    return (
        not candidate.has_category_reviews,
        candidate.level < difficulty,
        not never_assigned,
        candidate.last_assigned_at.timestamp() if not never_assigned else 0.0,
        candidate.user_id,
    )


def rank_candidates(candidates: List[Candidate], difficulty: int) -> List[Candidate]:
    """Order candidates by preference; stable and deterministic."""
    return sorted(candidates, key=lambda candidate: _sort_key(candidate, difficulty))


def find_candidates(
    submitter_id: int,
    category: str,
    difficulty: int,
    count: int,
    *,
    submission_id: int | None = None,
) -> List[int]:
    """Return up to ``count`` reviewer ids for a submission, best first."""

    if count <= 0:
        return []

    max_load = review_settings.MAX_ACTIVE_REVIEWS_PER_REVIEWER
    rows = (
        _candidate_queryset(submitter_id, category, submission_id)
        .filter(active_load__lt=max_load)
        .values_list("pk", "has_category_reviews", "level", "last_assigned_at")
    )
    candidates = [
        Candidate(
            user_id=pk,
            has_category_reviews=bool(has_category_reviews),
            level=int(level or 0),
            last_assigned_at=last_assigned_at,
        )
        for pk, has_category_reviews, level, last_assigned_at in rows
    ]
    ranked = rank_candidates(candidates, difficulty)
    return [candidate.user_id for candidate in ranked[:count]]
