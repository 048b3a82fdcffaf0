from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from .models import Project, Submission


class SubmissionStatusTests(TestCase):
    def setUp(self) -> None:
        self.user = get_user_model().objects.create(username="student")
        self.project = Project.objects.create(
            slug="todo-app", title="Todo app", category="web", difficulty=2
        )
        self.submission = Submission.objects.create(user=self.user, project=self.project)

    def test_new_submission_is_draft(self) -> None:
        self.assertEqual(self.submission.status, Submission.Status.DRAFT)
        self.assertEqual(self.project.min_reviews, 2)

    def test_status_moves_forward(self) -> None:
        self.submission.mark_submitted()
        self.assertIsNotNone(self.submission.submitted_at)

        self.submission.mark_under_review()
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Submission.Status.UNDER_REVIEW)

        self.submission.mark_reviewed(Decimal("72.50"))
        self.submission.refresh_from_db()
        self.assertTrue(self.submission.is_reviewed)
        self.assertEqual(self.submission.grade, Decimal("72.50"))
        self.assertIsNotNone(self.submission.reviewed_at)

    def test_under_review_requires_submitted(self) -> None:
        self.submission.mark_under_review()
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Submission.Status.DRAFT)

    def test_reviewed_is_final(self) -> None:
        self.submission.mark_submitted()
        self.submission.mark_reviewed(Decimal("90"))
        reviewed_at = self.submission.reviewed_at

        self.submission.mark_reviewed(Decimal("10"))
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.grade, Decimal("90"))
        self.assertEqual(self.submission.reviewed_at, reviewed_at)
