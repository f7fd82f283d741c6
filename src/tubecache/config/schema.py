"""Pydantic model for runtime settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tubecache.config.defaults import (
    DEFAULT_BASE_URL,
    DEFAULT_DAILY_QUOTA_LIMIT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_CACHE_MB,
    DEFAULT_MAX_RETRIES,
    DEFAULT_QUOTA_COSTS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_TTL_SECONDS,
)
from tubecache.types import CallKind, Namespace

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Validated configuration surface for the cache, governor and transport."""

    api_key: str | None = None
    channel_id: str | None = None
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)

    cache_db_path: Path | None = None
    max_cache_mb: float = Field(default=DEFAULT_MAX_CACHE_MB, gt=0)
    sweep_interval_seconds: float = Field(default=DEFAULT_SWEEP_INTERVAL_SECONDS, gt=0)
    ttl_seconds: dict[Namespace, float | None] = Field(
        default_factory=lambda: {Namespace(k): v for k, v in DEFAULT_TTL_SECONDS.items()}
    )

    daily_quota_limit: int = Field(default=DEFAULT_DAILY_QUOTA_LIMIT, ge=0)
    quota_costs: dict[CallKind, int] = Field(
        default_factory=lambda: {CallKind(k): v for k, v in DEFAULT_QUOTA_COSTS.items()}
    )
    quota_retention_days: int | None = Field(default=None, ge=1)

    log_level: str = DEFAULT_LOG_LEVEL

    model_config = {"extra": "ignore"}

    @field_validator("ttl_seconds")
    @classmethod
    def _check_ttls(cls, value: dict[Namespace, float | None]) -> dict[Namespace, float | None]:
        if Namespace.PREFERENCES in value:
            raise ValueError("preferences namespace does not expire")
        for ns, ttl in value.items():
            if ttl is not None and ttl < 0:
                raise ValueError(f"TTL for '{ns}' must be non-negative, got {ttl}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {value!r}")
        return level

    @field_validator("quota_costs")
    @classmethod
    def _check_costs(cls, value: dict[CallKind, int]) -> dict[CallKind, int]:
        for kind, cost in value.items():
            if cost < 0:
                raise ValueError(f"Cost for '{kind}' must be non-negative, got {cost}")
        merged = {CallKind(k): v for k, v in DEFAULT_QUOTA_COSTS.items()}
        merged.update(value)
        return merged

    @property
    def max_cache_bytes(self) -> int:
        return int(self.max_cache_mb * 1024 * 1024)

    @property
    def max_call_cost(self) -> int:
        return max(self.quota_costs.values(), default=0)

    def ttl_for(self, namespace: Namespace) -> float | None:
        return self.ttl_seconds.get(namespace)

    def cost_for(self, call: CallKind) -> int:
        return self.quota_costs[call]
