from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class TimeStampedModel(models.Model):
    """Reusable timestamped base model for project entities."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Project(TimeStampedModel):
    slug = models.SlugField(unique=True, db_index=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=64, db_index=True)
    difficulty = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(10)],
        help_text="Difficulty from 1 to 10",
    )
    min_reviews = models.PositiveSmallIntegerField(
        default=2,
        validators=[MinValueValidator(1)],
        help_text="Completed reviews required before a submission counts as reviewed",
    )
    is_published = models.BooleanField(default=True)

    class Meta:
        ordering = ("category", "difficulty", "title")

    def __str__(self) -> str:
        return self.title


class Submission(TimeStampedModel):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SUBMITTED = "submitted", "Submitted"
        UNDER_REVIEW = "under_review", "Under review"
        REVIEWED = "reviewed", "Reviewed"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_submissions",
    )
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="submissions",
    )
    title = models.CharField(max_length=255, blank=True)
    submission_url = models.URLField(blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )
    submitted_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    grade = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Average overall score of completed reviews",
    )

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["user", "status"], name="projects_sub_user_status"),
            models.Index(fields=["status"], name="projects_sub_status"),
        ]

    @property
    def is_reviewed(self) -> bool:
        return self.status == self.Status.REVIEWED

    def mark_submitted(self) -> None:
        if self.status == self.Status.DRAFT:
            self.status = self.Status.SUBMITTED
            self.submitted_at = timezone.now()
            self.save(update_fields=["status", "submitted_at", "updated_at"])

    def mark_under_review(self) -> None:
        if self.status == self.Status.SUBMITTED:
            self.status = self.Status.UNDER_REVIEW
            self.save(update_fields=["status", "updated_at"])

    def mark_reviewed(self, grade) -> None:
        if self.status != self.Status.REVIEWED:
            self.status = self.Status.REVIEWED
            self.reviewed_at = timezone.now()
            self.grade = grade
            self.save(update_fields=["status", "reviewed_at", "grade", "updated_at"])

    def __str__(self) -> str:
        return f"{self.user} → {self.project} ({self.status})"
