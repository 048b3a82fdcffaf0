"""Aggregate numbers for the staff dashboard."""
from __future__ import annotations

import math

from django.db.models import Avg, Count, DurationField, ExpressionWrapper, F

from apps.reviews.models import Assignment
from projects.models import Submission

__all__ = ["review_stats"]


def _average_completion_hours() -> int | None:
    """Mean acceptance-to-completion time, rounded half up to whole hours."""
    duration = ExpressionWrapper(
        F("completed_at") - F("accepted_at"), output_field=DurationField()
    )
    average = (
        Assignment.objects.filter(
            status=Assignment.Status.COMPLETED,
            accepted_at__isnull=False,
            completed_at__isnull=False,
        )
        .annotate(duration=duration)
        .aggregate(value=Avg("duration"))["value"]
    )
    if average is None:
        return None
    return math.floor(average.total_seconds() / 3600 + 0.5)


def review_stats() -> dict:
    rows = Assignment.objects.order_by().values("status").annotate(total=Count("id"))
    by_status = {value: 0 for value in Assignment.Status.values}
    for row in rows:
        by_status[row["status"]] = row["total"]

    return {
        "total_assignments": sum(by_status.values()),
        "by_status": by_status,
        "average_completion_hours": _average_completion_hours(),
        "submissions_awaiting_review": Submission.objects.filter(
            status__in=[Submission.Status.SUBMITTED, Submission.Status.UNDER_REVIEW]
        ).count(),
    }
