"""Creation of review assignments.

:func:`create_assignment` persists exactly one assignment per call and never
notifies the reviewer; the coordinator does that once the surrounding
transaction commits. :func:`assign_admin_reviewer` is the manual staff action
and notifies on its own.
"""
from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from apps.reviews.conf import review_settings
from apps.reviews.errors import (
    DuplicateAssignmentError,
    InvalidTransitionError,
    NoCandidatesError,
    NotFoundError,
    ValidationError,
)
from apps.reviews.models import Assignment
from apps.reviews.notifications import ASSIGNMENT_CREATED, notify
from projects.models import Submission

logger = logging.getLogger(__name__)

__all__ = ["create_assignment", "pick_staff_reviewer", "assign_admin_reviewer"]


def _get_submission(submission_id: int) -> Submission:
    try:
        return Submission.objects.select_related("project").get(pk=submission_id)
    except Submission.DoesNotExist as exc:
        raise NotFoundError("Submission not found.") from exc


def pick_staff_reviewer(submission: Submission) -> int:
    """Round-robin over staff: the least recently assigned staff user wins."""

    User = get_user_model()
    busy_on_submission = Assignment.objects.filter(
        submission=submission,
        status__in=Assignment.ACTIVE_STATUSES,
        reviewer__isnull=False,
    ).values("reviewer_id")
    staff = (
        User.objects.filter(is_active=True, is_staff=True)
        .exclude(pk=submission.user_id)
        .exclude(pk__in=busy_on_submission)
        .annotate(last_assigned_at=Max("review_assignments__created_at"))
        .values_list("pk", "last_assigned_at")
    )
    ranked = sorted(
        staff,
        key=lambda row: (row[1] is not None, row[1].timestamp() if row[1] else 0.0, row[0]),
    )
    if not ranked:
        logger.error(
            "No staff reviewer available for submission %s", submission.pk
        )
        raise NoCandidatesError()
    return ranked[0][0]


def _due_date_for(assignment_type: str):
    now = timezone.now()
    if assignment_type == Assignment.Type.ADMIN:
        return now + review_settings.admin_due_delta
    return now + review_settings.peer_due_delta


def create_assignment(
    submission_id: int,
    reviewer_id: int | None,
    assignment_type: str = Assignment.Type.PEER,
    priority: int = 0,
) -> Assignment:
    """Persist a new ``ASSIGNED`` assignment for ``submission_id``."""

    submission = _get_submission(submission_id)
    if submission.status == Submission.Status.DRAFT:
        raise InvalidTransitionError("Draft submissions cannot be reviewed.")
    if submission.status == Submission.Status.REVIEWED:
        raise InvalidTransitionError("This submission has already been reviewed.")

    if reviewer_id is None:
        if assignment_type != Assignment.Type.ADMIN:
            raise ValidationError("A peer assignment requires a reviewer.")
        reviewer_id = pick_staff_reviewer(submission)

    if reviewer_id == submission.user_id:
        raise ValidationError("A reviewer cannot be assigned to their own submission.")

    if Assignment.objects.filter(
        submission=submission,
        reviewer_id=reviewer_id,
        status__in=Assignment.ACTIVE_STATUSES,
    ).exists():
        raise DuplicateAssignmentError()

    try:
        with transaction.atomic():
            assignment = Assignment.objects.create(
                submission=submission,
                reviewer_id=reviewer_id,
                type=assignment_type,
                priority=priority,
                status=Assignment.Status.ASSIGNED,
                due_date=_due_date_for(assignment_type),
            )
    except IntegrityError as exc:
        # A concurrent insert won the partial unique constraint.
        raise DuplicateAssignmentError() from exc

    logger.info(
        "Created %s assignment %s for submission %s (reviewer %s, priority %s)",
        assignment_type,
        assignment.pk,
        submission.pk,
        reviewer_id,
        priority,
    )
    return assignment


def assign_admin_reviewer(submission_id: int, reviewer_id: int | None = None) -> Assignment:
    """Bind a staff reviewer to ``submission_id``, chosen or round-robin."""

    if reviewer_id is not None:
        User = get_user_model()
        if not User.objects.filter(pk=reviewer_id, is_active=True, is_staff=True).exists():
            raise ValidationError("The selected reviewer is not an active staff member.")
    with transaction.atomic():
        assignment = create_assignment(
            submission_id, reviewer_id, Assignment.Type.ADMIN, priority=0
        )
        assignment.submission.mark_under_review()
        notify(ASSIGNMENT_CREATED, assignment)
    return assignment
