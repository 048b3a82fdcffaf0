from django.core.management.base import BaseCommand, CommandError

from apps.reviews import services
from apps.reviews.errors import InvalidTransitionError, NoCandidatesError, NotFoundError
from projects.models import Submission


class Command(BaseCommand):
    help = "Top up review assignments for submissions that are short of reviewers"

    def add_arguments(self, parser):
        parser.add_argument(
            "--submission",
            dest="submission",
            type=int,
            help="Only check a single submission id",
        )

    def handle(self, *args, **options):
        submission_id = options.get("submission")
        if submission_id:
            if not Submission.objects.filter(pk=submission_id).exists():
                raise CommandError("Submission not found")
            submission_ids = [submission_id]
        else:
            submission_ids = list(
                Submission.objects.filter(
                    status__in=[Submission.Status.SUBMITTED, Submission.Status.UNDER_REVIEW]
                )
                .order_by("submitted_at", "id")
                .values_list("id", flat=True)
            )

        created = 0
        failed = 0
        for pk in submission_ids:
            try:
                result = services.ensure_coverage(pk)
            except NoCandidatesError:
                failed += 1
                self.stdout.write(
                    self.style.ERROR(f"Submission {pk} has no reviewer available")
                )
                continue
            except (InvalidTransitionError, NotFoundError) as exc:
                self.stdout.write(self.style.WARNING(f"Submission {pk}: {exc.detail}"))
                continue
            created += len(result.created)
            if result.created:
                self.stdout.write(
                    f"Submission {pk}: {len(result.created)} assignment(s) created"
                )

        self.stdout.write(
            self.style.SUCCESS(
                f"Checked {len(submission_ids)} submission(s), created {created} "
                f"assignment(s), {failed} without reviewers"
            )
        )
