from django.urls import path

from .views import (
    AdminAssignmentCancelView,
    AdminAssignmentListView,
    AdminAssignmentReassignView,
    AdminAssignStaffView,
    AdminStatsView,
    AssignmentAcceptView,
    AssignmentListView,
    AssignmentRejectView,
    ReviewSubmitView,
    SubmissionSubmitView,
)

urlpatterns = [
    path("api/reviews/assignments/", AssignmentListView.as_view(), name="review-assignment-list"),
    path(
        "api/reviews/assignments/<int:assignment_id>/accept/",
        AssignmentAcceptView.as_view(),
        name="review-assignment-accept",
    ),
    path(
        "api/reviews/assignments/<int:assignment_id>/reject/",
        AssignmentRejectView.as_view(),
        name="review-assignment-reject",
    ),
    path(
        "api/reviews/assignments/<int:assignment_id>/submit/",
        ReviewSubmitView.as_view(),
        name="review-assignment-submit",
    ),
    path(
        "api/reviews/submissions/<int:submission_id>/submit/",
        SubmissionSubmitView.as_view(),
        name="review-submission-submit",
    ),
    path(
        "api/reviews/admin/assignments/",
        AdminAssignmentListView.as_view(),
        name="review-admin-assignment-list",
    ),
    path(
        "api/reviews/admin/assignments/<int:assignment_id>/cancel/",
        AdminAssignmentCancelView.as_view(),
        name="review-admin-assignment-cancel",
    ),
    path(
        "api/reviews/admin/assignments/<int:assignment_id>/reassign/",
        AdminAssignmentReassignView.as_view(),
        name="review-admin-assignment-reassign",
    ),
    path(
        "api/reviews/admin/submissions/<int:submission_id>/assign-staff/",
        AdminAssignStaffView.as_view(),
        name="review-admin-assign-staff",
    ),
    path("api/reviews/admin/stats/", AdminStatsView.as_view(), name="review-admin-stats"),
]
