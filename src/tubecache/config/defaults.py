"""Package-level default configuration values."""

from __future__ import annotations

from typing import Any

# Remote API
DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MAX_RETRIES = 3

# Cache settings
DEFAULT_MAX_CACHE_MB = 100
DEFAULT_SWEEP_INTERVAL_SECONDS = 3600.0

# Per-namespace TTLs in seconds; None never expires by time
DEFAULT_TTL_SECONDS: dict[str, float | None] = {
    "cache": None,
    "videos": 6 * 3600.0,
    "blogs": 24 * 3600.0,
    "analytics": 30 * 60.0,
}

# Quota settings
DEFAULT_DAILY_QUOTA_LIMIT = 10_000
DEFAULT_QUOTA_COSTS: dict[str, int] = {
    "search": 100,
    "videos": 1,
    "channels": 1,
}
DEFAULT_QUOTA_RETENTION_DAYS = None

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "base_url": DEFAULT_BASE_URL,
        "request_timeout": DEFAULT_REQUEST_TIMEOUT,
        "max_retries": DEFAULT_MAX_RETRIES,
        "max_cache_mb": DEFAULT_MAX_CACHE_MB,
        "sweep_interval_seconds": DEFAULT_SWEEP_INTERVAL_SECONDS,
        "ttl_seconds": dict(DEFAULT_TTL_SECONDS),
        "daily_quota_limit": DEFAULT_DAILY_QUOTA_LIMIT,
        "quota_costs": dict(DEFAULT_QUOTA_COSTS),
        "quota_retention_days": DEFAULT_QUOTA_RETENTION_DAYS,
        "log_level": DEFAULT_LOG_LEVEL,
    }
