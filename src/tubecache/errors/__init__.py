"""Error handling: exception taxonomy and transport error classification."""

from tubecache.errors.exceptions import (
    CacheDeserializeFailed,
    CacheWriteFailed,
    ConfigurationError,
    QuotaExhausted,
    TransportError,
    TubeCacheError,
)

__all__ = [
    "TubeCacheError",
    "CacheWriteFailed",
    "CacheDeserializeFailed",
    "QuotaExhausted",
    "TransportError",
    "ConfigurationError",
]
