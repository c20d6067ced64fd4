"""
Error taxonomy shared by the session, booking and location components.

Backend adapters raise ``BackendError``. Components catch it at their
boundary and convert it into one of the codes below, returned inside an
``OperationResult`` with a human-readable message. Raw provider
exceptions never reach the caller.
"""

from enum import Enum
from typing import Optional, TypedDict


class AuthErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    DUPLICATE_ACCOUNT = "duplicate_account"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_FOUND = "not_found"
    PROVIDER_ERROR = "provider_error"


class BookingErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    NOT_LOGGED_IN = "not_logged_in"
    PROVIDER_ERROR = "provider_error"


class LocationErrorCode(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    POSITION_UNAVAILABLE = "position_unavailable"
    GEOCODE_ERROR = "geocode_error"


class OperationResult(TypedDict, total=False):
    """Result from a session or booking operation."""

    success: bool
    message: str
    error: str


class BackendError(Exception):
    """Raised by backend adapters when a remote call fails.

    ``code`` carries the provider's machine-readable error code when one
    is available (e.g. ``email_not_confirmed``); ``status`` the HTTP
    status for HTTP-backed adapters.
    """

    def __init__(
        self, message: str, code: Optional[str] = None, status: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status


class LocationError(Exception):
    """Raised inside the location package; converted to a result by the sampler."""

    def __init__(self, code: LocationErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def ok(message: str) -> OperationResult:
    return {"success": True, "message": message}


def fail(code: Enum, message: str) -> OperationResult:
    return {"success": False, "error": code.value, "message": message}
