"""Public entry points of the peer review engine.

Views, admin actions and management commands import from here; the
implementations live in :mod:`apps.reviews.service_utils`.
"""
from __future__ import annotations

from .service_utils.coverage import CoverageResult, ensure_coverage, submit_for_review
from .service_utils.eligibility import find_candidates
from .service_utils.factory import assign_admin_reviewer, create_assignment
from .service_utils.lifecycle import (
    accept,
    cancel,
    expire,
    reassign,
    reject,
    submit_review,
)
from .service_utils.stats import review_stats
from .service_utils.sweeper import SweepResult, sweep

__all__ = [
    "CoverageResult",
    "SweepResult",
    "accept",
    "assign_admin_reviewer",
    "cancel",
    "create_assignment",
    "ensure_coverage",
    "expire",
    "find_candidates",
    "reassign",
    "reject",
    "review_stats",
    "submit_for_review",
    "submit_review",
    "sweep",
]
