"""Cache entry and statistics models."""

from __future__ import annotations

import json
import time
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from tubecache.errors.exceptions import CacheDeserializeFailed


def encode_value(value: Any) -> bytes:
    """Canonical JSON encoding used for both storage and size accounting."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


class CacheEntry(BaseModel):
    """A cached value with its write time and optional TTL."""

    namespace: str
    key: str
    value: Any = None
    stored_at: float = Field(default_factory=time.time)
    ttl_seconds: float | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.ttl_seconds is None:
            return False
        now = time.time() if now is None else now
        return now > self.stored_at + self.ttl_seconds

    @property
    def expires_at(self) -> float | None:
        if self.ttl_seconds is None:
            return None
        return self.stored_at + self.ttl_seconds

    @property
    def size_bytes(self) -> int:
        return len(encode_value(self.value))

    @property
    def sort_key(self) -> tuple[float, str, str]:
        """Eviction order: oldest write first, then namespace, then key."""
        return (self.stored_at, self.namespace, self.key)

    def to_bytes(self) -> bytes:
        return encode_value(
            {"value": self.value, "stored_at": self.stored_at, "ttl": self.ttl_seconds}
        )

    @classmethod
    def from_bytes(cls, namespace: str, key: str, data: bytes) -> CacheEntry:
        try:
            raw = json.loads(data.decode("utf-8"))
            return cls(
                namespace=namespace,
                key=key,
                value=raw["value"],
                stored_at=raw["stored_at"],
                ttl_seconds=raw.get("ttl"),
            )
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
            raise CacheDeserializeFailed(
                f"Cannot decode entry {namespace}/{key}: {e}", namespace=namespace, key=key
            ) from e


class CacheStatistics(BaseModel):
    """Derived snapshot of cached content. Preferences are excluded from totals."""

    total_items: int = 0
    total_bytes: int = 0
    namespaces: dict[str, int] = Field(default_factory=dict)
    preference_items: int = 0

    @property
    def size_mb(self) -> float:
        return self.total_bytes / (1024 * 1024)

    @property
    def formatted_size(self) -> str:
        return format_bytes(self.total_bytes)


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f} MB"
    return f"{size / (1024 * 1024 * 1024):.1f} GB"
