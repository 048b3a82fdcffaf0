import json
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from apps.reviews.models import Assignment
from projects.models import Submission
from . import factories


class ReviewerApiTests(TestCase):
    def setUp(self):
        self.author = factories.create_user("author")
        self.reviewer = factories.create_user("reviewer")
        self.project = factories.create_project(min_reviews=1, category="web")
        self.submission = factories.create_submission(
            user=self.author,
            project=self.project,
            status=Submission.Status.UNDER_REVIEW,
        )
        self.assignment = factories.create_assignment(
            submission=self.submission, reviewer=self.reviewer, priority=1
        )
        self.client.force_login(self.reviewer)

    def post_json(self, url, payload=None):
        return self.client.post(
            url, data=json.dumps(payload or {}), content_type="application/json"
        )

    def test_requires_authentication(self):
        self.client.logout()
        resp = self.client.get("/api/reviews/assignments/")
        self.assertIn(resp.status_code, (401, 403))

    def test_lists_own_assignments(self):
        other = factories.create_user("other")
        factories.create_assignment(
            submission=factories.create_submission(user=self.author), reviewer=other
        )

        resp = self.client.get("/api/reviews/assignments/")

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual([item["id"] for item in data], [self.assignment.id])
        self.assertEqual(data[0]["submission"]["category"], "web")
        self.assertEqual(data[0]["status"], "assigned")

    def test_filters_by_status(self):
        resp = self.client.get("/api/reviews/assignments/?status=accepted,completed")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [])

    def test_accept_then_accept_again(self):
        url = f"/api/reviews/assignments/{self.assignment.id}/accept/"

        first = self.post_json(url)
        second = self.post_json(url)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["status"], "accepted")
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["detail"], "This review is no longer available.")

    def test_accept_someone_elses_assignment(self):
        self.client.force_login(factories.create_user("intruder"))
        resp = self.post_json(f"/api/reviews/assignments/{self.assignment.id}/accept/")
        self.assertEqual(resp.status_code, 403)

    def test_accept_unknown_assignment(self):
        resp = self.post_json("/api/reviews/assignments/999999/accept/")
        self.assertEqual(resp.status_code, 404)

    def test_reject_with_reason(self):
        resp = self.post_json(
            f"/api/reviews/assignments/{self.assignment.id}/reject/",
            {"reason": "Out of my depth"},
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "rejected")
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.rejection_reason, "Out of my depth")

    def test_submit_review(self):
        self.post_json(f"/api/reviews/assignments/{self.assignment.id}/accept/")

        resp = self.post_json(
            f"/api/reviews/assignments/{self.assignment.id}/submit/",
            factories.review_payload(overall_score=88),
        )

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["overall_score"], 88.0)
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Submission.Status.REVIEWED)

    def test_submit_review_out_of_range(self):
        self.post_json(f"/api/reviews/assignments/{self.assignment.id}/accept/")

        resp = self.post_json(
            f"/api/reviews/assignments/{self.assignment.id}/submit/",
            factories.review_payload(overall_score=101),
        )

        self.assertEqual(resp.status_code, 400)
        self.assertIn("overall_score", resp.json())

    def test_submit_review_missing_fields(self):
        self.post_json(f"/api/reviews/assignments/{self.assignment.id}/accept/")

        resp = self.post_json(
            f"/api/reviews/assignments/{self.assignment.id}/submit/", {"strengths": "x"}
        )

        self.assertEqual(resp.status_code, 400)
        self.assertIn("criteria_scores", resp.json())


class SubmissionApiTests(TestCase):
    def setUp(self):
        self.author = factories.create_user("author")
        self.draft = factories.create_submission(
            user=self.author, status=Submission.Status.DRAFT, min_reviews=2
        )
        self.client.force_login(self.author)

    def test_submit_own_draft(self):
        factories.create_user("peer-1")
        factories.create_user("peer-2")

        resp = self.client.post(f"/api/reviews/submissions/{self.draft.id}/submit/")

        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data["submission"]["status"], "under_review")
        self.assertEqual(data["pending_reviews"], 2)

    def test_no_reviewers_available(self):
        resp = self.client.post(f"/api/reviews/submissions/{self.draft.id}/submit/")
        self.assertEqual(resp.status_code, 503)

    def test_cannot_submit_other_users_work(self):
        self.client.force_login(factories.create_user("stranger"))
        resp = self.client.post(f"/api/reviews/submissions/{self.draft.id}/submit/")
        self.assertEqual(resp.status_code, 403)


class AdminApiTests(TestCase):
    def setUp(self):
        self.staff = factories.create_staff("teacher")
        self.author = factories.create_user("author")
        self.reviewer = factories.create_user("reviewer")
        self.backup = factories.create_user("backup")
        self.submission = factories.create_submission(
            user=self.author,
            status=Submission.Status.UNDER_REVIEW,
            min_reviews=1,
        )
        self.assignment = factories.create_assignment(
            submission=self.submission, reviewer=self.reviewer
        )
        self.client.force_login(self.staff)

    def test_non_staff_is_forbidden(self):
        self.client.force_login(self.reviewer)
        for url in ("/api/reviews/admin/assignments/", "/api/reviews/admin/stats/"):
            with self.subTest(url=url):
                self.assertEqual(self.client.get(url).status_code, 403)

    def test_lists_all_assignments(self):
        resp = self.client.get(
            f"/api/reviews/admin/assignments/?submission={self.submission.id}"
        )

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["reviewer_username"], "reviewer")

    def test_cancel(self):
        resp = self.client.post(
            f"/api/reviews/admin/assignments/{self.assignment.id}/cancel/"
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "cancelled")
        self.assertEqual(Assignment.objects.count(), 1)

    def test_reassign(self):
        resp = self.client.post(
            f"/api/reviews/admin/assignments/{self.assignment.id}/reassign/"
        )

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual([item["reviewer"] for item in data["created"]], [self.backup.id])
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, Assignment.Status.CANCELLED)

    def test_assign_staff(self):
        resp = self.client.post(
            f"/api/reviews/admin/submissions/{self.submission.id}/assign-staff/",
            data=json.dumps({"reviewer_id": self.staff.id}),
            content_type="application/json",
        )

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["type"], "admin")
        self.assertEqual(resp.json()["reviewer"], self.staff.id)

    def test_assign_staff_twice_conflicts(self):
        url = f"/api/reviews/admin/submissions/{self.submission.id}/assign-staff/"
        self.client.post(url)
        resp = self.client.post(url, data={"reviewer_id": self.staff.id})

        self.assertEqual(resp.status_code, 409)

    def test_stats(self):
        completed = factories.create_assignment(
            submission=factories.create_submission(user=self.author),
            reviewer=self.backup,
            status=Assignment.Status.COMPLETED,
        )
        finished_at = timezone.now()
        Assignment.objects.filter(pk=completed.pk).update(
            accepted_at=finished_at - timedelta(hours=3), completed_at=finished_at
        )

        resp = self.client.get("/api/reviews/admin/stats/")

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["total_assignments"], 2)
        self.assertEqual(data["by_status"]["assigned"], 1)
        self.assertEqual(data["by_status"]["completed"], 1)
        self.assertEqual(data["by_status"]["expired"], 0)
        self.assertEqual(data["average_completion_hours"], 3)
        self.assertEqual(data["submissions_awaiting_review"], 2)

    def test_stats_round_completion_time_to_whole_hours(self):
        finished_at = timezone.now()
        for hours in (2, 3):
            completed = factories.create_assignment(
                submission=factories.create_submission(user=self.author),
                reviewer=self.backup,
                status=Assignment.Status.COMPLETED,
            )
            Assignment.objects.filter(pk=completed.pk).update(
                accepted_at=finished_at - timedelta(hours=hours), completed_at=finished_at
            )

        data = self.client.get("/api/reviews/admin/stats/").json()

        self.assertEqual(data["average_completion_hours"], 3)
