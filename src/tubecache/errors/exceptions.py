"""Custom exception hierarchy for tubecache."""

from __future__ import annotations

from typing import Any

from tubecache.types import ErrorCategory, FetchError


class TubeCacheError(Exception):
    """Base exception for all tubecache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class CacheWriteFailed(TubeCacheError):
    """A durable store write failed. Logged by the engine, never surfaced."""

    def __init__(self, message: str = "", namespace: str = "", key: str = "") -> None:
        super().__init__(message)
        self.namespace = namespace
        self.key = key


class CacheDeserializeFailed(TubeCacheError):
    """A stored entry could not be decoded. Treated as a miss."""

    def __init__(self, message: str = "", namespace: str = "", key: str = "") -> None:
        super().__init__(message)
        self.namespace = namespace
        self.key = key


class QuotaExhausted(TubeCacheError):
    """Admission denied: the call would exceed today's budget.

    Only raised by ``QuotaGovernor.reserve``; the facade turns it into a
    ``FetchStatus.QUOTA_EXHAUSTED`` result.
    """

    def __init__(self, message: str = "", cost: int = 0, remaining: int = 0) -> None:
        super().__init__(message)
        self.cost = cost
        self.remaining = remaining


class TransportError(TubeCacheError):
    """The remote call failed.

    ``reached_remote`` is True when the remote service answered (so the
    call was billed) and False for pre-flight failures such as DNS or
    connect errors.
    """

    def __init__(
        self,
        message: str = "",
        category: ErrorCategory = ErrorCategory.REMOTE_UNAVAILABLE,
        http_status: int | None = None,
        reached_remote: bool = False,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.http_status = http_status
        self.reached_remote = reached_remote
        self.original = original

    @property
    def transient(self) -> bool:
        return self.category in (
            ErrorCategory.TIMEOUT,
            ErrorCategory.NO_CONNECTIVITY,
            ErrorCategory.REMOTE_UNAVAILABLE,
        )

    def to_fetch_error(self) -> FetchError:
        return FetchError(
            category=self.category,
            message=self.message,
            http_status=self.http_status,
        )


class ConfigurationError(TubeCacheError):
    """Invalid configuration or arguments (negative TTL, negative cost, ...)."""
