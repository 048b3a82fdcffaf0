from rest_framework import generics, permissions, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .. import services
from ..models import Assignment
from .serializers import (
    AdminAssignmentSerializer,
    AssignmentSerializer,
    CoverageResultSerializer,
    ReviewSerializer,
    SubmissionSummarySerializer,
)


def _filter_by_status(queryset, request):
    status_filter = request.query_params.get("status")
    if status_filter:
        queryset = queryset.filter(status__in=status_filter.split(","))
    return queryset


class AssignmentListView(generics.ListAPIView):
    """Assignments bound to the current user, most urgent first."""

    serializer_class = AssignmentSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = Assignment.objects.filter(reviewer=self.request.user).select_related(
            "submission__project"
        )
        return _filter_by_status(queryset, self.request)


class AssignmentAcceptView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, assignment_id: int, *args, **kwargs):
        assignment = services.accept(assignment_id, request.user.pk)
        return Response(AssignmentSerializer(assignment).data)


class AssignmentRejectView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    class InputSerializer(serializers.Serializer):
        reason = serializers.CharField(required=False, allow_blank=True, default="")

    def post(self, request, assignment_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = services.reject(
            assignment_id, request.user.pk, serializer.validated_data["reason"]
        )
        return Response(AssignmentSerializer(assignment).data)


class ReviewSubmitView(APIView):
    """Store the review content of an accepted assignment."""

    permission_classes = [permissions.IsAuthenticated]

    class InputSerializer(serializers.Serializer):
        overall_score = serializers.FloatField()
        criteria_scores = serializers.DictField(child=serializers.FloatField())
        strengths = serializers.CharField(required=False, allow_blank=True)
        improvements = serializers.CharField(required=False, allow_blank=True)
        suggestions = serializers.CharField(required=False, allow_blank=True)
        time_spent_minutes = serializers.IntegerField(
            required=False, allow_null=True, min_value=0
        )

    def post(self, request, assignment_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.submit_review(
            assignment_id, request.user.pk, serializer.validated_data
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class SubmissionSubmitView(APIView):
    """Hand in the author's draft and request its reviews."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, submission_id: int, *args, **kwargs):
        result = services.submit_for_review(request.user, submission_id)
        data = {
            "submission": SubmissionSummarySerializer(result.submission).data,
            "pending_reviews": result.active_count,
        }
        return Response(data, status=status.HTTP_201_CREATED)


class AdminAssignmentListView(generics.ListAPIView):
    serializer_class = AdminAssignmentSerializer
    permission_classes = [permissions.IsAdminUser]

    def get_queryset(self):
        queryset = Assignment.objects.select_related("submission__project", "reviewer")
        submission_id = self.request.query_params.get("submission")
        if submission_id and submission_id.isdigit():
            queryset = queryset.filter(submission_id=int(submission_id))
        return _filter_by_status(queryset, self.request)


class AdminAssignmentCancelView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request, assignment_id: int, *args, **kwargs):
        assignment = services.cancel(assignment_id, acting_user=request.user)
        return Response(AdminAssignmentSerializer(assignment).data)


class AdminAssignmentReassignView(APIView):
    """Cancel an assignment and let the engine choose the next reviewer."""

    permission_classes = [permissions.IsAdminUser]

    def post(self, request, assignment_id: int, *args, **kwargs):
        result = services.reassign(assignment_id, acting_user=request.user)
        return Response(CoverageResultSerializer(result).data)


class AdminAssignStaffView(APIView):
    permission_classes = [permissions.IsAdminUser]

    class InputSerializer(serializers.Serializer):
        reviewer_id = serializers.IntegerField(required=False, allow_null=True)

    def post(self, request, submission_id: int, *args, **kwargs):
        serializer = self.InputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = services.assign_admin_reviewer(
            submission_id, serializer.validated_data.get("reviewer_id")
        )
        return Response(
            AdminAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED
        )


class AdminStatsView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def get(self, request, *args, **kwargs):
        return Response(services.review_stats())
