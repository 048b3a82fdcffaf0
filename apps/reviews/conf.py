"""Settings for the peer review engine.

Values come from ``settings.PEER_REVIEW`` and fall back to the defaults below,
so tests can use ``override_settings(PEER_REVIEW={...})`` with only the keys
they care about.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "PEER_DUE_DAYS": 7,
    "ADMIN_DUE_DAYS": 7,
    "MAX_ACTIVE_REVIEWS_PER_REVIEWER": 3,
    "REMINDER_WINDOW_HOURS": 24,
    "NOTIFICATION_WEBHOOK_URL": None,
    "NOTIFICATION_TIMEOUT": 10,
}


class ReviewSettings:
    def __getattr__(self, name: str) -> Any:
        if name not in DEFAULTS:
            raise AttributeError(f"Unknown peer review setting: {name}")
        user_settings = getattr(settings, "PEER_REVIEW", None) or {}
        return user_settings.get(name, DEFAULTS[name])

    @property
    def peer_due_delta(self) -> timedelta:
        return timedelta(days=self.PEER_DUE_DAYS)

    @property
    def admin_due_delta(self) -> timedelta:
        return timedelta(days=self.ADMIN_DUE_DAYS)

    @property
    def reminder_window(self) -> timedelta:
        return timedelta(hours=self.REMINDER_WINDOW_HOURS)


review_settings = ReviewSettings()
