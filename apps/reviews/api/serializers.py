from rest_framework import serializers

from projects.models import Submission

from ..models import Assignment, Review


class SubmissionSummarySerializer(serializers.ModelSerializer):
    project = serializers.SlugRelatedField(slug_field="slug", read_only=True)
    category = serializers.CharField(source="project.category", read_only=True)

    class Meta:
        model = Submission
        fields = [
            "id",
            "project",
            "category",
            "title",
            "submission_url",
            "status",
            "submitted_at",
            "reviewed_at",
            "grade",
        ]
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    class Meta:
        model = Review
        fields = [
            "id",
            "assignment",
            "submission",
            "reviewer",
            "overall_score",
            "criteria_scores",
            "strengths",
            "improvements",
            "suggestions",
            "time_spent_minutes",
            "created_at",
        ]
        read_only_fields = fields


class AssignmentSerializer(serializers.ModelSerializer):
    submission = SubmissionSummarySerializer(read_only=True)

    class Meta:
        model = Assignment
        fields = [
            "id",
            "submission",
            "type",
            "priority",
            "status",
            "due_date",
            "accepted_at",
            "completed_at",
            "created_at",
        ]
        read_only_fields = fields


class AdminAssignmentSerializer(serializers.ModelSerializer):
    submission = SubmissionSummarySerializer(read_only=True)
    reviewer = serializers.PrimaryKeyRelatedField(read_only=True)
    reviewer_username = serializers.CharField(
        source="reviewer.username", read_only=True, default=None
    )

    class Meta:
        model = Assignment
        fields = [
            "id",
            "submission",
            "reviewer",
            "reviewer_username",
            "type",
            "priority",
            "status",
            "due_date",
            "accepted_at",
            "completed_at",
            "expired_at",
            "rejected_at",
            "rejection_reason",
            "cancelled_at",
            "reminders_sent",
            "created_at",
        ]
        read_only_fields = fields


class CoverageResultSerializer(serializers.Serializer):
    submission = SubmissionSummarySerializer(read_only=True)
    completed_count = serializers.IntegerField(read_only=True)
    active_count = serializers.IntegerField(read_only=True)
    shortfall = serializers.IntegerField(read_only=True)
    created = AdminAssignmentSerializer(many=True, read_only=True)
