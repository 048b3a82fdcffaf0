from django.contrib import admin

from .models import Assignment, Review


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "submission",
        "reviewer",
        "type",
        "status",
        "priority",
        "due_date",
        "reminders_sent",
    )
    list_filter = ("status", "type", "submission__project__category")
    search_fields = ("reviewer__username", "submission__project__title")
    list_select_related = ("submission__project", "submission__user", "reviewer")
    # Status changes go through the review API so replacements are created.
    readonly_fields = (
        "submission",
        "reviewer",
        "type",
        "status",
        "accepted_at",
        "completed_at",
        "expired_at",
        "rejected_at",
        "rejection_reason",
        "cancelled_at",
        "reminders_sent",
        "last_reminded_at",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("id", "submission", "reviewer", "overall_score", "created_at")
    list_filter = ("submission__project__category",)
    search_fields = ("reviewer__username", "submission__project__title")
    readonly_fields = [field.name for field in Review._meta.fields]

    def has_add_permission(self, request):
        return False
