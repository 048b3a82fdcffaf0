import logging

import requests
from django.db import transaction

from .conf import review_settings
from .models import Assignment

logger = logging.getLogger(__name__)

ASSIGNMENT_CREATED = "assignment.created"
ASSIGNMENT_DUE_SOON = "assignment.due_soon"
REVIEW_COMPLETED = "review.completed"


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def build_payload(event: str, assignment: Assignment) -> dict:
    return {
        "event": event,
        "assignment_id": assignment.pk,
        "submission_id": assignment.submission_id,
        "reviewer_id": assignment.reviewer_id,
        "type": assignment.type,
        "status": assignment.status,
        "priority": assignment.priority,
        "due_date": _isoformat(assignment.due_date),
    }


def send_notification(event: str, assignment: Assignment) -> None:
    """Post an engine event to the configured webhook."""
    url = review_settings.NOTIFICATION_WEBHOOK_URL
    if not url:
        logger.debug("Skipping %s notification: NOTIFICATION_WEBHOOK_URL missing", event)
        return

    payload = build_payload(event, assignment)
    try:
        response = requests.post(
            url, json=payload, timeout=review_settings.NOTIFICATION_TIMEOUT
        )
        if response.status_code >= 400:
            logger.warning(
                "Notification webhook returned %s: %s", response.status_code, response.text
            )
    except requests.RequestException:
        logger.exception(
            "Failed to deliver %s notification for assignment %s", event, assignment.pk
        )


def notify(event: str, assignment: Assignment) -> None:
    """Schedule a notification for after the surrounding transaction commits."""
    transaction.on_commit(lambda: send_notification(event, assignment))
