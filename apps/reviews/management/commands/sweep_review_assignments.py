from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.reviews import services
from apps.reviews.service_utils.sweeper import due_soon_assignments, overdue_assignments


class Command(BaseCommand):
    help = "Expire overdue review assignments, request replacements and send reminders"

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List what would be expired or reminded without changing anything",
        )

    def handle(self, *args, **options):
        now = timezone.now()

        if options["dry_run"]:
            overdue = list(overdue_assignments(now))
            due_soon = list(due_soon_assignments(now))
            for assignment in overdue:
                self.stdout.write(
                    f"Would expire assignment {assignment.pk} "
                    f"(submission {assignment.submission_id}, due {assignment.due_date:%Y-%m-%d %H:%M})"
                )
            for assignment in due_soon:
                self.stdout.write(
                    f"Would remind reviewer {assignment.reviewer_id} "
                    f"about assignment {assignment.pk}"
                )
            self.stdout.write(
                self.style.SUCCESS(
                    f"Dry run: {len(overdue)} overdue, {len(due_soon)} due soon"
                )
            )
            return

        result = services.sweep(now=now)
        for submission_id in result.uncovered_submission_ids:
            self.stdout.write(
                self.style.ERROR(f"Submission {submission_id} has no reviewer available")
            )
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {result.expired_count} assignment(s), "
                f"sent {result.reminders_sent} reminder(s)"
            )
        )
