"""Error taxonomy of the review engine.

All errors are DRF exceptions so API views can let them propagate and DRF
renders the matching status code and ``detail`` message.
"""
from rest_framework import exceptions, status


class ReviewEngineError(exceptions.APIException):
    """Base class for every error raised by the review engine."""


class NotFoundError(ReviewEngineError, exceptions.NotFound):
    default_detail = "Review assignment or submission not found."
    default_code = "not_found"


class AuthorizationError(ReviewEngineError, exceptions.PermissionDenied):
    default_detail = "You are not allowed to perform this action."
    default_code = "not_authorized"


class NotAssignedToUserError(AuthorizationError):
    default_detail = "This review is not assigned to you."
    default_code = "not_assigned_to_user"


class InvalidTransitionError(ReviewEngineError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This review is no longer available."
    default_code = "invalid_transition"


class DuplicateAssignmentError(ReviewEngineError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The reviewer already has an active assignment for this submission."
    default_code = "duplicate_assignment"


class ValidationError(ReviewEngineError, exceptions.ValidationError):
    default_code = "invalid"


class NoCandidatesError(ReviewEngineError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "No peer or staff reviewer is available for this submission."
    default_code = "no_candidates"
