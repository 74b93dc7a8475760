"""
Error taxonomy for coachauth.

Supabase reports failures in several shapes: PostgREST ``APIError`` with a
Postgres/PostgREST code, GoTrue ``AuthError`` subclasses, and raw ``httpx``
transport errors. ``classify_error`` is the single place that looks at
those codes and messages and maps them onto the closed ``ErrorKind`` enum.
"""

from enum import Enum
from typing import Optional

import httpx
from supabase_auth.errors import AuthError as GoTrueAuthError
from supabase_auth.errors import AuthRetryableError


class ErrorKind(str, Enum):
    """Closed set of failure categories the auth layer reacts to."""

    AUTH = "auth"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    VALIDATION = "validation"
    INVALID_TOKEN = "invalid_token"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


# Postgres / PostgREST codes
PERMISSION_CODES = frozenset({"42501", "42P17"})
NOT_FOUND_CODES = frozenset({"PGRST116"})
AUTH_CODES = frozenset({"PGRST301", "PGRST302", "28P01"})

PERMISSION_MARKERS = (
    "row-level security",
    "row level security",
    "infinite recursion",
    "permission denied",
)
NOT_FOUND_MARKERS = (
    "multiple (or no) rows returned",
    "contains 0 rows",
    "no rows",
)


class CoachAuthError(Exception):
    """Base class for all coachauth errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str = "", kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class AuthError(CoachAuthError):
    """Invalid credentials, unconfirmed email, rejected token."""

    kind = ErrorKind.AUTH


class PermissionDeniedError(CoachAuthError):
    """Backend row-level-security policy rejected the request."""

    kind = ErrorKind.PERMISSION


class NotFoundError(CoachAuthError):
    """Expected row was missing."""

    kind = ErrorKind.NOT_FOUND


class NetworkError(CoachAuthError):
    """Transient connectivity failure."""

    kind = ErrorKind.NETWORK


class ValidationError(CoachAuthError):
    """Malformed input."""

    kind = ErrorKind.VALIDATION


class VerificationError(CoachAuthError):
    """Email verification token could not be consumed."""


class InvalidTokenError(VerificationError):
    kind = ErrorKind.INVALID_TOKEN


class TokenExpiredError(VerificationError):
    kind = ErrorKind.EXPIRED


_ERROR_CLASSES = {
    ErrorKind.AUTH: AuthError,
    ErrorKind.PERMISSION: PermissionDeniedError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.INVALID_TOKEN: InvalidTokenError,
    ErrorKind.EXPIRED: TokenExpiredError,
    ErrorKind.UNKNOWN: CoachAuthError,
}


def error_message(error: object) -> str:
    """Best human-readable message for a backend error object."""
    if isinstance(error, dict):
        return str(error.get("message") or error)
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


def _error_code(error: object) -> Optional[str]:
    if isinstance(error, dict):
        code = error.get("code")
    else:
        code = getattr(error, "code", None)
    return str(code) if code is not None else None


def classify_error(error: object) -> ErrorKind:
    """
    Map a backend error onto an ``ErrorKind``.

    Accepts exceptions raised by the Supabase SDKs as well as plain
    ``{"code": ..., "message": ...}`` dicts.

    Example:
        ```python
        try:
            await client.table("profiles").select("*").execute()
        except Exception as exc:
            if classify_error(exc) is ErrorKind.PERMISSION:
                ...
        ```
    """
    if isinstance(error, CoachAuthError):
        return error.kind

    if isinstance(error, (httpx.TransportError, AuthRetryableError, ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK

    code = _error_code(error)
    message = error_message(error).lower()

    if code in PERMISSION_CODES or any(m in message for m in PERMISSION_MARKERS):
        return ErrorKind.PERMISSION
    if code in NOT_FOUND_CODES or any(m in message for m in NOT_FOUND_MARKERS):
        return ErrorKind.NOT_FOUND
    if code in AUTH_CODES or isinstance(error, GoTrueAuthError):
        return ErrorKind.AUTH
    if "failed to fetch" in message or "network" in message:
        return ErrorKind.NETWORK

    return ErrorKind.UNKNOWN


def wrap_error(error: BaseException) -> CoachAuthError:
    """Convert any backend exception into the matching ``CoachAuthError``."""
    if isinstance(error, CoachAuthError):
        return error
    kind = classify_error(error)
    wrapped = _ERROR_CLASSES[kind](error_message(error))
    wrapped.__cause__ = error
    return wrapped
