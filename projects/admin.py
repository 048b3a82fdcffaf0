from django.contrib import admin

from .models import Project, Submission


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "slug",
        "category",
        "difficulty",
        "min_reviews",
        "is_published",
    )
    list_filter = ("category", "difficulty", "is_published")
    search_fields = ("title", "slug", "category")
    prepopulated_fields = {"slug": ("title",)}
    readonly_fields = ("created_at", "updated_at")


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "project",
        "status",
        "submitted_at",
        "reviewed_at",
        "grade",
    )
    list_filter = ("status", "project__category")
    search_fields = ("user__username", "project__title", "title")
    autocomplete_fields = ("user", "project")
    # Status and grade belong to the review engine.
    readonly_fields = ("status", "submitted_at", "reviewed_at", "grade", "created_at", "updated_at")
