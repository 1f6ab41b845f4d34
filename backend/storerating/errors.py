# Overview: Error taxonomy shared by services and routes.

"""
Every failure a caller can observe is an AppError subclass.

The kind (class hierarchy) decides the HTTP status; the concrete subclass
names the business rule that fired so services and tests can catch the
exact case (e.g. DuplicateRating vs DuplicateEmail, both Conflicts).
Routes never build error responses by hand: the handler registered in
create_app() renders AppError into the JSON envelope.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500
    kind = "InternalError"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(AppError):
    """400-level input problem, optionally with field-level messages."""
    status_code = 400
    kind = "ValidationError"
    default_message = "Validation failed"


class Unauthorized(AppError):
    """No session, or a session that cannot be trusted."""
    status_code = 401
    kind = "Unauthorized"
    default_message = "Authentication required"


class Forbidden(AppError):
    """Authenticated, but not allowed to do this."""
    status_code = 403
    kind = "Forbidden"
    default_message = "Access denied. Insufficient permissions."


class NotFound(AppError):
    status_code = 404
    kind = "NotFound"
    default_message = "Resource not found"


class Conflict(AppError):
    """409-level uniqueness conflict (duplicate email, duplicate rating, ...)."""
    status_code = 409
    kind = "Conflict"
    default_message = "Resource already exists"


class InvariantViolation(AppError):
    """A cross-entity rule blocks the mutation (e.g. deleting an admin)."""
    status_code = 409
    kind = "InvariantViolation"
    default_message = "Operation violates a data invariant"


class TooManyAttempts(AppError):
    status_code = 429
    kind = "TooManyAttempts"
    default_message = "Too many failed login attempts"

    def __init__(self, message: str | None = None, retry_after_seconds: int | None = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class ExternalServiceError(AppError):
    """The media host (or another collaborator) failed."""
    status_code = 502
    kind = "ExternalServiceError"
    default_message = "External service failure"


class InternalError(AppError):
    pass


# -- Identity --

class DuplicateEmail(Conflict):
    default_message = "Email already exists"


class InvalidCredentials(Unauthorized):
    default_message = "Invalid email or password"


class TokenExpired(Unauthorized):
    default_message = "Token expired"


class TokenInvalid(Unauthorized):
    default_message = "Invalid token"


class TokenRevoked(Unauthorized):
    default_message = "Token has been revoked"


# -- Ratings --

class InvalidRating(ValidationError):
    default_message = "Rating must be an integer between 1 and 5"


class DuplicateRating(Conflict):
    default_message = "You have already rated this store. Use PUT to update your rating."


class RatingNotFound(NotFound):
    default_message = "Rating not found"


# -- Users / stores / media --

class UserNotFound(NotFound):
    default_message = "User not found"


class StoreNotFound(NotFound):
    default_message = "Store not found"


class MediaNotFound(NotFound):
    default_message = "Media file not found"


class OwnerNotFound(NotFound):
    default_message = "Store owner not found"


class OwnerWrongRole(InvariantViolation):
    default_message = "Assigned owner must have store_owner role"


class OwnerAlreadyHasStore(Conflict):
    default_message = "This store owner already owns a store"


class CannotDeleteAdmin(InvariantViolation):
    default_message = "Cannot delete admin user"


class CannotChangeAdminRole(InvariantViolation):
    default_message = "Cannot change admin role"


class CannotChangeRoleOwnsStore(InvariantViolation):
    default_message = "Cannot change role - user owns a store. Delete the store first."


class RoleUnchanged(ValidationError):
    default_message = "Role is already set to the requested value"
