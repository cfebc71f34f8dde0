"""Error taxonomy shared by the stores, services and HTTP layer."""

from typing import Any, Dict, Optional


class SubscriptionTrackerError(Exception):
    """Base class for every error this application raises on purpose.

    ``message`` is always safe to show to the caller. Anything an operator
    needs for follow-up goes into ``details`` and is only logged.
    """

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(SubscriptionTrackerError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(SubscriptionTrackerError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "Not authenticated"


class PermissionDeniedError(AuthError):
    """Authenticated, but not the privileged identity."""

    status_code = 403
    default_message = "Unauthorized access"


class NotFoundError(SubscriptionTrackerError):
    status_code = 404
    default_message = "Not found"


class ConflictError(SubscriptionTrackerError):
    status_code = 409
    default_message = "Email already in use"


class ConsistencyFailure(SubscriptionTrackerError):
    """An archive/delete pair could not both complete.

    Never retried automatically: a second attempt could write a duplicate
    archive row. ``details`` carries the entity ids for manual reconciliation.
    """

    status_code = 500
    default_message = "Operation failed"


class BestEffortFailure(SubscriptionTrackerError):
    """A registry sync or notification failed. Logged, never surfaced."""


class StoreUnavailableError(SubscriptionTrackerError):
    """No store connection could be acquired within the pool wait timeout."""

    status_code = 503
    default_message = "Service temporarily unavailable"
