from datetime import timedelta
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from apps.reviews import services
from apps.reviews.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NotAssignedToUserError,
    NotFoundError,
    ValidationError,
)
from apps.reviews.models import Assignment, Review
from apps.reviews.service_utils.lifecycle import validate_review_payload
from projects.models import Submission
from . import factories


class LifecycleTestCase(TestCase):
    min_reviews = 1

    def setUp(self):
        self.author = factories.create_user("author")
        self.reviewer = factories.create_user("reviewer")
        self.backup = factories.create_user("backup")
        self.project = factories.create_project(min_reviews=self.min_reviews)
        self.submission = factories.create_submission(
            user=self.author,
            project=self.project,
            status=Submission.Status.UNDER_REVIEW,
        )
        self.assignment = factories.create_assignment(
            submission=self.submission, reviewer=self.reviewer
        )

    def reload(self, assignment=None):
        return Assignment.objects.get(pk=(assignment or self.assignment).pk)

    def make_overdue(self, assignment=None):
        Assignment.objects.filter(pk=(assignment or self.assignment).pk).update(
            due_date=timezone.now() - timedelta(hours=1)
        )


class AcceptTests(LifecycleTestCase):
    def test_accept_moves_to_accepted(self):
        assignment = services.accept(self.assignment.pk, self.reviewer.pk)

        self.assertEqual(assignment.status, Assignment.Status.ACCEPTED)
        self.assertIsNotNone(assignment.accepted_at)

    def test_second_accept_loses(self):
        services.accept(self.assignment.pk, self.reviewer.pk)

        with self.assertRaises(InvalidTransitionError) as ctx:
            services.accept(self.assignment.pk, self.reviewer.pk)

        self.assertEqual(str(ctx.exception.detail), "This review is no longer available.")
        self.assertEqual(self.reload().status, Assignment.Status.ACCEPTED)

    def test_only_bound_reviewer_can_accept(self):
        with self.assertRaises(NotAssignedToUserError):
            services.accept(self.assignment.pk, self.backup.pk)
        self.assertEqual(self.reload().status, Assignment.Status.ASSIGNED)

    def test_unknown_assignment(self):
        with self.assertRaises(NotFoundError):
            services.accept(self.assignment.pk + 1000, self.reviewer.pk)

    def test_accept_after_expiry_fails(self):
        self.make_overdue()
        services.expire(self.assignment.pk)

        with self.assertRaises(InvalidTransitionError):
            services.accept(self.assignment.pk, self.reviewer.pk)


class RejectTests(LifecycleTestCase):
    def test_reject_requests_a_replacement(self):
        rejected = services.reject(self.assignment.pk, self.reviewer.pk, "  No time  ")

        self.assertEqual(rejected.status, Assignment.Status.REJECTED)
        self.assertEqual(rejected.rejection_reason, "No time")
        replacement = Assignment.objects.get(
            submission=self.submission, status=Assignment.Status.ASSIGNED
        )
        self.assertEqual(replacement.reviewer, self.backup)

    def test_cannot_reject_accepted_assignment(self):
        services.accept(self.assignment.pk, self.reviewer.pk)
        with self.assertRaises(InvalidTransitionError):
            services.reject(self.assignment.pk, self.reviewer.pk)
        self.assertEqual(Assignment.objects.count(), 1)


class SubmitReviewTests(LifecycleTestCase):
    def test_submit_completes_assignment_and_grades_submission(self):
        services.accept(self.assignment.pk, self.reviewer.pk)

        review = services.submit_review(
            self.assignment.pk, self.reviewer.pk, factories.review_payload(overall_score=80)
        )

        self.assertEqual(review.overall_score, 80.0)
        self.assertEqual(review.criteria_scores, {"correctness": 80.0, "style": 80.0})
        assignment = self.reload()
        self.assertEqual(assignment.status, Assignment.Status.COMPLETED)
        self.assertIsNotNone(assignment.completed_at)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Submission.Status.REVIEWED)
        self.assertEqual(self.submission.grade, Decimal("80.00"))

    def test_submit_requires_acceptance(self):
        with self.assertRaises(InvalidTransitionError):
            services.submit_review(
                self.assignment.pk, self.reviewer.pk, factories.review_payload()
            )
        self.assertFalse(Review.objects.exists())

    def test_invalid_payload_changes_nothing(self):
        services.accept(self.assignment.pk, self.reviewer.pk)

        with self.assertRaises(ValidationError):
            services.submit_review(
                self.assignment.pk,
                self.reviewer.pk,
                factories.review_payload(overall_score=150),
            )

        self.assertEqual(self.reload().status, Assignment.Status.ACCEPTED)
        self.assertFalse(Review.objects.exists())

    def test_non_finite_criterion_is_a_validation_error(self):
        services.accept(self.assignment.pk, self.reviewer.pk)

        with self.assertRaises(ValidationError):
            services.submit_review(
                self.assignment.pk,
                self.reviewer.pk,
                {"overall_score": 80, "criteria_scores": {"clarity": float("nan")}},
            )

        self.assertEqual(self.reload().status, Assignment.Status.ACCEPTED)
        self.assertFalse(Review.objects.exists())

    def test_second_submit_is_rejected(self):
        services.accept(self.assignment.pk, self.reviewer.pk)
        services.submit_review(self.assignment.pk, self.reviewer.pk, factories.review_payload())

        with self.assertRaises(InvalidTransitionError):
            services.submit_review(
                self.assignment.pk, self.reviewer.pk, factories.review_payload()
            )
        self.assertEqual(Review.objects.count(), 1)


class ExpireTests(LifecycleTestCase):
    def test_expire_is_applied_once(self):
        self.make_overdue()

        self.assertTrue(services.expire(self.assignment.pk))
        self.assertFalse(services.expire(self.assignment.pk))

        self.assertEqual(self.reload().status, Assignment.Status.EXPIRED)
        replacements = Assignment.objects.filter(
            submission=self.submission, status=Assignment.Status.ASSIGNED
        )
        self.assertEqual([a.reviewer for a in replacements], [self.backup])

    def test_expire_accepted_assignment(self):
        services.accept(self.assignment.pk, self.reviewer.pk)
        self.make_overdue()

        self.assertTrue(services.expire(self.assignment.pk))
        self.assertIsNotNone(self.reload().expired_at)

    def test_not_overdue_assignment_cannot_expire(self):
        with self.assertRaises(InvalidTransitionError):
            services.expire(self.assignment.pk)
        self.assertEqual(self.reload().status, Assignment.Status.ASSIGNED)

    def test_completed_assignment_is_not_expired(self):
        services.accept(self.assignment.pk, self.reviewer.pk)
        services.submit_review(self.assignment.pk, self.reviewer.pk, factories.review_payload())
        self.make_overdue()

        self.assertFalse(services.expire(self.assignment.pk))
        self.assertEqual(self.reload().status, Assignment.Status.COMPLETED)


class CancelAndReassignTests(LifecycleTestCase):
    def setUp(self):
        super().setUp()
        self.staff = factories.create_staff("teacher")

    def test_cancel_does_not_replace(self):
        cancelled = services.cancel(self.assignment.pk, acting_user=self.staff)

        self.assertEqual(cancelled.status, Assignment.Status.CANCELLED)
        self.assertIsNotNone(cancelled.cancelled_at)
        self.assertEqual(Assignment.objects.count(), 1)

    def test_cancel_requires_staff(self):
        with self.assertRaises(AuthorizationError):
            services.cancel(self.assignment.pk, acting_user=self.reviewer)
        self.assertEqual(self.reload().status, Assignment.Status.ASSIGNED)

    def test_cancel_terminal_assignment_fails(self):
        services.cancel(self.assignment.pk, acting_user=self.staff)
        with self.assertRaises(InvalidTransitionError):
            services.cancel(self.assignment.pk, acting_user=self.staff)

    def test_reassign_picks_next_reviewer(self):
        result = services.reassign(self.assignment.pk, acting_user=self.staff)

        self.assertEqual(self.reload().status, Assignment.Status.CANCELLED)
        self.assertEqual([a.reviewer for a in result.created], [self.backup])


class ValidateReviewPayloadTests(SimpleTestCase):
    def test_cleans_valid_payload(self):
        cleaned = validate_review_payload(
            {"overall_score": 75, "criteria_scores": {"style": 7}, "strengths": None}
        )
        self.assertEqual(cleaned["overall_score"], 75.0)
        self.assertEqual(cleaned["criteria_scores"], {"style": 7.0})
        self.assertEqual(cleaned["strengths"], "")
        self.assertIsNone(cleaned["time_spent_minutes"])

    def test_rejects_invalid_values(self):
        invalid_payloads = [
            {"overall_score": True, "criteria_scores": {"style": 1}},
            {"overall_score": "80", "criteria_scores": {"style": 1}},
            {"overall_score": -1, "criteria_scores": {"style": 1}},
            {"overall_score": 80, "criteria_scores": {}},
            {"overall_score": 80, "criteria_scores": {"style": "good"}},
            {"overall_score": float("nan"), "criteria_scores": {"style": 1}},
            {"overall_score": float("inf"), "criteria_scores": {"style": 1}},
            {"overall_score": 80, "criteria_scores": {"style": float("nan")}},
            {"overall_score": 80, "criteria_scores": {"style": float("-inf")}},
            {"overall_score": 80, "criteria_scores": {"style": 1}, "time_spent_minutes": -5},
            ["not", "a", "mapping"],
        ]
        for payload in invalid_payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(ValidationError):
                    validate_review_payload(payload)

    def test_strips_unsafe_markup_from_feedback(self):
        cleaned = validate_review_payload(
            {
                "overall_score": 60,
                "criteria_scores": {"style": 6},
                "improvements": '<script>alert("x")</script><strong>Split</strong> the view',
            }
        )
        self.assertNotIn("<script", cleaned["improvements"])
        self.assertIn("<strong>Split</strong> the view", cleaned["improvements"])
