"""Map httpx failures onto the transport error taxonomy."""

from __future__ import annotations

import json

import httpx

from tubecache.errors.exceptions import TransportError
from tubecache.types import ErrorCategory

# Presentation messages per category.
USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.TIMEOUT: "Request timeout. Please check your internet connection.",
    ErrorCategory.NO_CONNECTIVITY: (
        "No internet connection. Please check your connection and try again."
    ),
    ErrorCategory.REMOTE_REJECTED: "Service temporarily unavailable. Please try again later.",
    ErrorCategory.REMOTE_UNAVAILABLE: "The video service is temporarily unavailable.",
    ErrorCategory.MALFORMED_RESPONSE: "Something went wrong. Please try again later.",
}


def user_message(category: ErrorCategory) -> str:
    """Return a display message for an error category."""
    return USER_MESSAGES.get(category, USER_MESSAGES[ErrorCategory.MALFORMED_RESPONSE])


def classify_http_error(exc: Exception) -> TransportError:
    """Convert an httpx (or payload decoding) exception to a TransportError."""
    if isinstance(exc, TransportError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        category = (
            ErrorCategory.REMOTE_UNAVAILABLE if status >= 500 else ErrorCategory.REMOTE_REJECTED
        )
        return TransportError(
            f"Remote returned HTTP {status}",
            category=category,
            http_status=status,
            reached_remote=True,
            original=exc,
        )
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(
            str(exc) or "Request timed out",
            category=ErrorCategory.TIMEOUT,
            original=exc,
        )
    if isinstance(exc, httpx.RemoteProtocolError):
        return TransportError(
            str(exc) or "Remote closed the connection",
            category=ErrorCategory.REMOTE_UNAVAILABLE,
            original=exc,
        )
    if isinstance(exc, httpx.TransportError):
        return TransportError(
            str(exc) or "Connection failed",
            category=ErrorCategory.NO_CONNECTIVITY,
            original=exc,
        )
    if isinstance(exc, (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError)):
        return TransportError(
            f"Malformed response: {exc}",
            category=ErrorCategory.MALFORMED_RESPONSE,
            reached_remote=True,
            original=exc,
        )
    return TransportError(str(exc), category=ErrorCategory.REMOTE_UNAVAILABLE, original=exc)


def is_transient(exc: BaseException) -> bool:
    """Retry predicate for the transport: timeouts, connect errors and 5xx."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))
