"""Typed failure taxonomy for external calls and storage.

Every failure that crosses a retry boundary is converted into a ServiceError
so retry decisions, logging and degradation key off one field: ``code``.
Whether an error is retryable is a property of its code alone.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import asyncpg
import httpx
import openai
import redis.exceptions


class ErrorCode(str, Enum):
    # Network
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    DNS_FAILURE = "DNS_FAILURE"
    # Upstream API
    RATE_LIMITED = "RATE_LIMITED"
    AUTH_FAILED = "AUTH_FAILED"
    BAD_REQUEST = "BAD_REQUEST"
    SERVER_ERROR = "SERVER_ERROR"
    # Parsing
    PARSE_JSON_FAILED = "PARSE_JSON_FAILED"
    PARSE_HTML_FAILED = "PARSE_HTML_FAILED"
    PARSE_XML_FAILED = "PARSE_XML_FAILED"
    # Redirects
    REDIRECT_LOOP = "REDIRECT_LOOP"
    REDIRECT_MAX_EXCEEDED = "REDIRECT_MAX_EXCEEDED"
    REDIRECT_INVALID_URL = "REDIRECT_INVALID_URL"
    # Batch processing
    BATCH_ITEM_FAILED = "BATCH_ITEM_FAILED"
    # Storage
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    STORAGE_CONSTRAINT_VIOLATION = "STORAGE_CONSTRAINT_VIOLATION"
    UNKNOWN = "UNKNOWN"


RETRYABLE_CODES: frozenset[ErrorCode] = frozenset(
    {
        ErrorCode.NETWORK_TIMEOUT,
        ErrorCode.NETWORK_ERROR,
        ErrorCode.RATE_LIMITED,
        ErrorCode.SERVER_ERROR,
        ErrorCode.STORAGE_CONNECTION_FAILED,
    }
)


def is_retryable_code(code: ErrorCode) -> bool:
    return code in RETRYABLE_CODES


class ServiceError(Exception):
    """Failure of an external service call, tagged with a taxonomy code and context."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = dict(context or {})
        self.cause = cause
        self.timestamp = datetime.now(UTC)

    @property
    def retryable(self) -> bool:
        return is_retryable_code(self.code)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation for structured logs."""
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def __repr__(self) -> str:
        return f"ServiceError(code={self.code.value!r}, message={self.message!r})"


def error_from_status(
    status_code: int,
    context: dict[str, Any],
    retry_after: str | None = None,
) -> ServiceError:
    """Map an HTTP status code to the taxonomy."""
    if status_code == 429:
        ctx = {**context, "status_code": status_code}
        if retry_after:
            ctx["retry_after"] = retry_after
        return ServiceError(ErrorCode.RATE_LIMITED, "Rate limited", ctx)
    if status_code in (401, 403, 407):
        return ServiceError(
            ErrorCode.AUTH_FAILED,
            f"Authentication failed (HTTP {status_code})",
            {**context, "status_code": status_code},
        )
    if status_code >= 500:
        return ServiceError(
            ErrorCode.SERVER_ERROR,
            f"Upstream server error (HTTP {status_code})",
            {**context, "status_code": status_code},
        )
    return ServiceError(
        ErrorCode.BAD_REQUEST,
        f"Bad request (HTTP {status_code})",
        {**context, "status_code": status_code},
    )


def wrap_error(exc: BaseException, context: dict[str, Any]) -> ServiceError:
    """Classify any exception into a ServiceError. ServiceErrors pass through untouched."""
    if isinstance(exc, ServiceError):
        return exc

    # httpx: order matters, UnsupportedProtocol and timeouts are TransportErrors too
    if isinstance(exc, httpx.TimeoutException):
        return ServiceError(ErrorCode.NETWORK_TIMEOUT, "Request timed out", context, exc)
    if isinstance(exc, httpx.UnsupportedProtocol | httpx.InvalidURL):
        return ServiceError(ErrorCode.BAD_REQUEST, str(exc) or "Invalid URL", context, exc)
    if isinstance(exc, httpx.HTTPStatusError):
        return error_from_status(
            exc.response.status_code,
            context,
            retry_after=exc.response.headers.get("retry-after"),
        )
    if isinstance(exc, httpx.ConnectError) and "name or service not known" in str(exc).lower():
        return ServiceError(ErrorCode.DNS_FAILURE, str(exc), context, exc)
    if isinstance(exc, httpx.TransportError):
        return ServiceError(
            ErrorCode.NETWORK_ERROR, str(exc) or "Network request failed", context, exc
        )

    # openai: status errors first, APITimeoutError subclasses APIConnectionError
    if isinstance(exc, openai.RateLimitError):
        return ServiceError(ErrorCode.RATE_LIMITED, str(exc), context, exc)
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return ServiceError(ErrorCode.AUTH_FAILED, str(exc), context, exc)
    if isinstance(exc, openai.InternalServerError):
        return ServiceError(ErrorCode.SERVER_ERROR, str(exc), context, exc)
    if isinstance(exc, openai.BadRequestError):
        return ServiceError(ErrorCode.BAD_REQUEST, str(exc), context, exc)
    if isinstance(exc, openai.APITimeoutError):
        return ServiceError(ErrorCode.NETWORK_TIMEOUT, "LLM request timed out", context, exc)
    if isinstance(exc, openai.APIConnectionError):
        return ServiceError(ErrorCode.NETWORK_ERROR, str(exc), context, exc)

    # storage
    if isinstance(exc, asyncpg.IntegrityConstraintViolationError):
        return ServiceError(ErrorCode.STORAGE_CONSTRAINT_VIOLATION, str(exc), context, exc)
    if isinstance(
        exc,
        asyncpg.PostgresConnectionError
        | asyncpg.InterfaceError
        | redis.exceptions.ConnectionError
        | redis.exceptions.TimeoutError
        | ConnectionError,
    ):
        return ServiceError(
            ErrorCode.STORAGE_CONNECTION_FAILED, str(exc) or "Storage connection failed", context, exc
        )

    if isinstance(exc, asyncio.TimeoutError | TimeoutError):
        return ServiceError(ErrorCode.NETWORK_TIMEOUT, "Operation timed out", context, exc)
    if isinstance(exc, json.JSONDecodeError):
        return ServiceError(ErrorCode.PARSE_JSON_FAILED, "Failed to parse JSON", context, exc)

    return ServiceError(ErrorCode.UNKNOWN, str(exc) or type(exc).__name__, context, exc)
