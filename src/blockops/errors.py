"""
Error taxonomy for blockops.

Every failure that can reach an HTTP caller is one of a small closed set of
tagged exceptions. The dispatch pipeline maps them to responses by type,
never by inspecting the message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for blockops."""

    # Request errors (1xxx)
    BAD_REQUEST = "ERR_1000"
    VALIDATION_FAILED = "ERR_1001"
    INVALID_JSON = "ERR_1002"
    NOT_FOUND = "ERR_1004"

    # Identity errors (2xxx)
    UNAUTHORIZED = "ERR_2000"
    AUTH_NOT_CONFIGURED = "ERR_2001"
    INVALID_TOKEN = "ERR_2002"

    # Runtime errors (3xxx)
    SERVICE_UNAVAILABLE = "ERR_3000"
    ALREADY_IN_PROGRESS = "ERR_3001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    SERVICE_UNAVAILABLE = "service_unavailable"
    BAD_REQUEST = "bad_request"
    ALREADY_IN_PROGRESS = "already_in_progress"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class BlockOpsError(Exception):
    """
    Base exception for all errors surfaced to callers.

    Attributes:
        message: Human-readable error message
        code: Standardized error code for programmatic handling
        kind: Closed error variant, decides the HTTP status
        details: Extra structured payload merged into the response body
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    kind: ErrorKind = ErrorKind.INTERNAL
    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Response payload for this error."""
        payload: dict[str, Any] = {
            "error": self.message,
            "code": self.code.value,
            "kind": self.kind.value,
        }
        payload.update(self.details)
        return payload


class UnauthorizedError(BlockOpsError):
    """Missing, malformed or rejected credential."""

    code = ErrorCode.UNAUTHORIZED
    kind = ErrorKind.UNAUTHORIZED
    http_status = 401


class BadRequestError(BlockOpsError):
    """Arguments or body the operation cannot accept."""

    code = ErrorCode.BAD_REQUEST
    kind = ErrorKind.BAD_REQUEST
    http_status = 400

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs,
    ):
        details = dict(kwargs.pop("details", None) or {})
        if errors is not None:
            details["errors"] = list(errors)
        super().__init__(message, details=details, **kwargs)
        self.errors = list(errors or [])


class NotFoundError(BlockOpsError):
    code = ErrorCode.NOT_FOUND
    kind = ErrorKind.NOT_FOUND
    http_status = 404


class AlreadyInProgressError(BlockOpsError):
    """A single-flight operation is already running."""

    code = ErrorCode.ALREADY_IN_PROGRESS
    kind = ErrorKind.ALREADY_IN_PROGRESS
    http_status = 409


class ServiceUnavailableError(BlockOpsError):
    """One or more required runtime capabilities were not initialized."""

    code = ErrorCode.SERVICE_UNAVAILABLE
    kind = ErrorKind.SERVICE_UNAVAILABLE
    http_status = 503

    def __init__(self, message: str, *, missing: list[str] | None = None, **kwargs):
        details = dict(kwargs.pop("details", None) or {})
        if missing is not None:
            details["missing"] = list(missing)
        super().__init__(message, details=details, **kwargs)
        self.missing = list(missing or [])


class InternalError(BlockOpsError):
    code = ErrorCode.INTERNAL_ERROR
    kind = ErrorKind.INTERNAL
    http_status = 500


__all__ = [
    "ErrorCode",
    "ErrorKind",
    "BlockOpsError",
    "UnauthorizedError",
    "BadRequestError",
    "NotFoundError",
    "AlreadyInProgressError",
    "ServiceUnavailableError",
    "InternalError",
]
