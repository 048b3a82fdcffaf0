"""Periodic sweep over review assignments.

Run from cron through ``manage.py sweep_review_assignments``.  The sweep only
issues guarded updates, so overlapping runs and concurrent user actions are
harmless: whoever loses a race simply skips the row.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from django.db.models import F
from django.utils import timezone

from apps.reviews.conf import review_settings
from apps.reviews.errors import InvalidTransitionError, NoCandidatesError
from apps.reviews.models import Assignment
from apps.reviews.notifications import ASSIGNMENT_DUE_SOON, notify

from . import lifecycle

logger = logging.getLogger(__name__)

__all__ = ["SweepResult", "sweep", "overdue_assignments", "due_soon_assignments"]


@dataclass
class SweepResult:
    expired_count: int = 0
    reminders_sent: int = 0
    uncovered_submission_ids: List[int] = field(default_factory=list)


def overdue_assignments(now=None):
    now = now or timezone.now()
    return Assignment.objects.filter(
        status__in=Assignment.ACTIVE_STATUSES, due_date__lt=now
    ).order_by("due_date", "id")


def due_soon_assignments(now=None):
    now = now or timezone.now()
    return Assignment.objects.filter(
        status__in=Assignment.ACTIVE_STATUSES,
        reminders_sent=0,
        due_date__gte=now,
        due_date__lte=now + review_settings.reminder_window,
    ).order_by("due_date", "id")


def _expire_overdue(result: SweepResult, now) -> None:
    for assignment_id, submission_id in overdue_assignments(now).values_list(
        "id", "submission_id"
    ):
        try:
            if lifecycle.expire(assignment_id, now=now):
                result.expired_count += 1
        except NoCandidatesError:
            logger.error(
                "Assignment %s expired but submission %s has no reviewer left",
                assignment_id,
                submission_id,
            )
            result.expired_count += 1
            result.uncovered_submission_ids.append(submission_id)
        except InvalidTransitionError:
            # The due date moved after the row was selected.
            continue


def _send_reminders(result: SweepResult, now) -> None:
    for assignment in due_soon_assignments(now):
        claimed = Assignment.objects.filter(
            pk=assignment.pk,
            status__in=Assignment.ACTIVE_STATUSES,
            reminders_sent=0,
        ).update(
            reminders_sent=F("reminders_sent") + 1,
            last_reminded_at=now,
            updated_at=now,
        )
        if not claimed:
            continue
        notify(ASSIGNMENT_DUE_SOON, assignment)
        result.reminders_sent += 1


def sweep(now=None) -> SweepResult:
    """Expire overdue assignments and remind reviewers whose deadline is near."""

    now = now or timezone.now()
    result = SweepResult()
    _expire_overdue(result, now)
    _send_reminders(result, now)
    logger.info(
        "Sweep finished: %s expired, %s reminder(s), %s uncovered submission(s)",
        result.expired_count,
        result.reminders_sent,
        len(result.uncovered_submission_ids),
    )
    return result
