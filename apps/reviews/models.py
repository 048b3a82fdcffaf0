from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from projects.models import Submission


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Assignment(TimeStampedModel):
    """One reviewer's obligation to review one submission."""

    class Type(models.TextChoices):
        PEER = "peer", "Peer"
        ADMIN = "admin", "Staff"

    class Status(models.TextChoices):
        ASSIGNED = "assigned", "Assigned"
        ACCEPTED = "accepted", "Accepted"
        COMPLETED = "completed", "Completed"
        REJECTED = "rejected", "Rejected"
        EXPIRED = "expired", "Expired"
        CANCELLED = "cancelled", "Cancelled"

    ACTIVE_STATUSES = (Status.ASSIGNED, Status.ACCEPTED)
    TERMINAL_STATUSES = (
        Status.COMPLETED,
        Status.REJECTED,
        Status.EXPIRED,
        Status.CANCELLED,
    )

    submission = models.ForeignKey(
        Submission,
        on_delete=models.CASCADE,
        related_name="review_assignments",
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="review_assignments",
        null=True,
        blank=True,
    )
    type = models.CharField(
        max_length=10,
        choices=Type.choices,
        default=Type.PEER,
    )
    priority = models.IntegerField(default=0)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ASSIGNED,
    )
    due_date = models.DateTimeField()
    accepted_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    reminders_sent = models.PositiveSmallIntegerField(default=0)
    last_reminded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["status", "-priority", "due_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["submission", "reviewer"],
                condition=Q(status__in=["assigned", "accepted"]),
                name="reviews_one_active_assignment_per_reviewer",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "due_date"], name="reviews_asg_status_due"),
            models.Index(fields=["submission", "status"], name="reviews_asg_sub_status"),
            models.Index(fields=["reviewer", "status"], name="reviews_asg_rev_status"),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def __str__(self) -> str:
        return f"{self.get_type_display()} review of {self.submission_id} by {self.reviewer} ({self.status})"


class Review(models.Model):
    """Content of a completed assignment. Never updated after creation."""

    assignment = models.OneToOneField(
        Assignment,
        on_delete=models.CASCADE,
        related_name="review",
    )
    submission = models.ForeignKey(
        Submission,
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="authored_reviews",
    )
    overall_score = models.FloatField(
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    criteria_scores = models.JSONField(default=dict)
    strengths = models.TextField(blank=True)
    improvements = models.TextField(blank=True)
    suggestions = models.TextField(blank=True)
    time_spent_minutes = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["submission"], name="reviews_rev_submission"),
        ]

    def __str__(self) -> str:
        return f"Review by {self.reviewer} ({self.overall_score})"
