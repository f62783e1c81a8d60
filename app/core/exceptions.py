"""
Access-control error kinds.

Services raise these; routers translate them into the standard error
envelope through ``handle_access_error``. Each kind carries its HTTP status
and a stable ``error_code`` so clients can tell "log in again" (401) apart
from "you lack permission" (403).
"""
from typing import Any, Dict, Optional


class AccessControlError(Exception):
    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthenticated(AccessControlError):
    status_code = 401
    error_code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class SessionExpired(Unauthenticated):
    error_code = "SESSION_EXPIRED"
    default_message = "Session has expired, please log in again"


class AccountInactive(Unauthenticated):
    error_code = "ACCOUNT_INACTIVE"
    default_message = "Account is inactive"


class Forbidden(AccessControlError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Access denied"


class NotFound(AccessControlError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(AccessControlError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class ValidationError(AccessControlError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class AccountLocked(AccessControlError):
    status_code = 423
    error_code = "ACCOUNT_LOCKED"
    default_message = "Account is locked. Please try again later."


class StorageUnavailable(AccessControlError):
    """Store unreachable or a required schema object is broken.

    The client only ever sees the generic message; the cause is logged
    server-side by whoever raises this.
    """
    status_code = 500
    error_code = "STORAGE_UNAVAILABLE"
    default_message = "Internal server error"
