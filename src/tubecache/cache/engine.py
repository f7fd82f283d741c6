"""Cache engine: expiry, size accounting and eviction over the durable store."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import Any, NamedTuple, TypeVar

from pydantic import BaseModel, ValidationError

from tubecache.cache.entry import CacheEntry, CacheStatistics, encode_value
from tubecache.cache.store import DurableStore
from tubecache.errors.exceptions import (
    CacheDeserializeFailed,
    CacheWriteFailed,
    ConfigurationError,
)
from tubecache.types import (
    CONTENT_NAMESPACES,
    PAYLOAD_ADAPTER,
    ChannelStats,
    Namespace,
    Video,
    VideoPage,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_STORE_ERRORS = (sqlite3.Error, OSError)

# Where each payload type lives when no namespace is given.
_MODEL_NAMESPACES: dict[type[BaseModel], Namespace] = {
    Video: Namespace.VIDEOS,
    VideoPage: Namespace.VIDEOS,
    ChannelStats: Namespace.ANALYTICS,
}


class _Slot(NamedTuple):
    """One stored row as seen by a scan. ``entry`` is None when undecodable."""

    stored_at: float
    namespace: str
    key: str
    size: int
    entry: CacheEntry | None


class CacheEngine:
    """Best-effort cache over a DurableStore.

    Writes never raise: store failures are logged and dropped. Reads return
    None on miss, expiry (after deleting the entry) or undecodable data.
    Mutations share one coarse lock so size accounting never sees a
    half-applied update.
    """

    def __init__(
        self,
        store: DurableStore,
        max_bytes: int | None = None,
        default_ttls: dict[Namespace, float | None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._max_bytes = max_bytes
        self._default_ttls = dict(default_ttls or {})
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def store(self) -> DurableStore:
        return self._store

    @property
    def max_bytes(self) -> int | None:
        return self._max_bytes

    def default_ttl(self, namespace: Namespace | str) -> float | None:
        return self._default_ttls.get(Namespace(namespace))

    # ── Content operations ──

    def put(
        self,
        namespace: Namespace | str,
        key: str,
        value: Any,
        ttl: float | timedelta | None = None,
    ) -> None:
        """Store ``value`` with ``stored_at = now``. Never raises on store failure."""
        ns = _content_namespace(namespace)
        ttl_seconds = _normalize_ttl(ttl)
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")

        entry = CacheEntry(
            namespace=ns.value,
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl_seconds=ttl_seconds,
        )
        try:
            data = entry.to_bytes()
            with self._lock:
                self._store.put(ns.value, key, data)
        except (TypeError, ValueError, *_STORE_ERRORS) as e:
            failure = CacheWriteFailed(
                f"Failed to cache {ns.value}/{key}: {e}", namespace=ns.value, key=key
            )
            logger.error("%s", failure, exc_info=e)
            return
        logger.debug("Cache put %s/%s (ttl=%s)", ns.value, key, ttl_seconds)

    def get(self, namespace: Namespace | str, key: str) -> Any:
        """Return the live value for ``key`` or None."""
        entry = self.get_entry(namespace, key)
        return entry.value if entry is not None else None

    def get_entry(self, namespace: Namespace | str, key: str) -> CacheEntry | None:
        ns = _content_namespace(namespace)
        with self._lock:
            entry = self._read(ns, key)
            if entry is None:
                logger.debug("Cache miss %s/%s", ns.value, key)
                return None
            if entry.is_expired(self._clock()):
                self._delete(ns, key)
                logger.debug("Cache expired %s/%s", ns.value, key)
                return None
        logger.debug("Cache hit %s/%s", ns.value, key)
        return entry

    def remove(self, namespace: Namespace | str, key: str) -> None:
        """Delete ``key``; absent keys are not an error."""
        ns = _content_namespace(namespace)
        with self._lock:
            self._delete(ns, key)

    def contains(self, namespace: Namespace | str, key: str) -> bool:
        """True iff a live entry exists. Never deletes."""
        ns = _content_namespace(namespace)
        entry = self._read(ns, key)
        return entry is not None and not entry.is_expired(self._clock())

    def clear(self, namespace: Namespace | str | None = None) -> int:
        """Wipe one namespace, the general cache namespace by default."""
        ns = _content_namespace(namespace or Namespace.CACHE)
        with self._lock:
            try:
                count = self._store.clear(ns.value)
            except _STORE_ERRORS as e:
                logger.error("Failed to clear namespace %s", ns.value, exc_info=e)
                return 0
        logger.info("Cleared %d entries from %s", count, ns.value)
        return count

    # ── Typed payloads ──

    def put_model(
        self,
        key: str,
        payload: Video | ChannelStats | VideoPage,
        namespace: Namespace | str | None = None,
        ttl: float | timedelta | None = None,
    ) -> None:
        """Store a domain payload with its namespace's configured TTL."""
        ns = Namespace(namespace) if namespace else _MODEL_NAMESPACES[type(payload)]
        if ttl is None:
            ttl = self.default_ttl(ns)
        self.put(ns, key, payload, ttl=ttl)

    def get_model(
        self,
        namespace: Namespace | str,
        key: str,
        expected: type[M] | None = None,
    ) -> M | Video | ChannelStats | VideoPage | None:
        """Decode a stored payload; a wrong or corrupt payload is a miss."""
        value = self.get(namespace, key)
        if value is None:
            return None
        try:
            payload = PAYLOAD_ADAPTER.validate_python(value)
        except ValidationError as e:
            failure = CacheDeserializeFailed(
                f"Cached payload {namespace}/{key} is invalid: {e}",
                namespace=str(namespace),
                key=key,
            )
            logger.warning("%s", failure)
            return None
        if expected is not None and not isinstance(payload, expected):
            logger.warning(
                "Cached payload %s/%s is %s, expected %s",
                namespace, key, type(payload).__name__, expected.__name__,
            )
            return None
        return payload

    # ── Preferences ──

    def set_pref(self, key: str, value: Any) -> None:
        try:
            data = encode_value(value)
            with self._lock:
                self._store.put(Namespace.PREFERENCES.value, key, data)
        except (TypeError, ValueError, *_STORE_ERRORS) as e:
            logger.error("Failed to set preference %s", key, exc_info=e)
            return
        logger.debug("Preference set: %s", key)

    def get_pref(self, key: str, default: Any = None) -> Any:
        try:
            data = self._store.get(Namespace.PREFERENCES.value, key)
        except _STORE_ERRORS as e:
            logger.error("Failed to read preference %s", key, exc_info=e)
            return default
        if data is None:
            return default
        try:
            return json.loads(data.decode("utf-8"))
        except ValueError as e:
            logger.warning("Preference %s is unreadable: %s", key, e)
            return default

    def remove_pref(self, key: str) -> None:
        with self._lock:
            try:
                self._store.delete(Namespace.PREFERENCES.value, key)
            except _STORE_ERRORS as e:
                logger.error("Failed to remove preference %s", key, exc_info=e)
                return
        logger.debug("Preference removed: %s", key)

    def pref_keys(self) -> list[str]:
        try:
            return self._store.keys(Namespace.PREFERENCES.value)
        except _STORE_ERRORS as e:
            logger.error("Failed to list preferences", exc_info=e)
            return []

    # ── Maintenance ──

    def evict_expired(self) -> int:
        """Delete every expired (or undecodable) entry in all content namespaces."""
        with self._lock:
            now = self._clock()
            doomed = [
                slot
                for slot in self._scan(CONTENT_NAMESPACES)
                if slot.entry is None or slot.entry.is_expired(now)
            ]
            for slot in doomed:
                self._delete(Namespace(slot.namespace), slot.key)
        if doomed:
            logger.info("Cleaned up %d expired cache items", len(doomed))
        return len(doomed)

    def evict_by_size(self, max_bytes: int | None = None) -> int:
        """Remove oldest-written entries until total size <= ``max_bytes``.

        Order is (stored_at, namespace, key) ascending across all content
        namespaces; only the shortest prefix needed to reach the bound is
        removed. Returns the number of removed entries.
        """
        limit = self._max_bytes if max_bytes is None else max_bytes
        if limit is None:
            return 0
        if limit < 0:
            raise ConfigurationError(f"max_bytes must be non-negative, got {limit}")

        with self._lock:
            slots = sorted(self._scan(CONTENT_NAMESPACES))
            total = sum(slot.size for slot in slots)
            if total <= limit:
                return 0
            removed = 0
            for slot in slots:
                if total <= limit:
                    break
                self._delete(Namespace(slot.namespace), slot.key)
                total -= slot.size
                removed += 1
        logger.info("Removed %d items to reduce cache size to %d bytes", removed, total)
        return removed

    def stats(self) -> CacheStatistics:
        counts: dict[str, int] = {}
        total_bytes = 0
        for slot in self._scan(CONTENT_NAMESPACES):
            counts[slot.namespace] = counts.get(slot.namespace, 0) + 1
            total_bytes += slot.size
        try:
            prefs = self._store.count(Namespace.PREFERENCES.value)
        except _STORE_ERRORS:
            prefs = 0
        stats = CacheStatistics(
            total_items=sum(counts.values()),
            total_bytes=total_bytes,
            namespaces={ns.value: counts.get(ns.value, 0) for ns in CONTENT_NAMESPACES},
            preference_items=prefs,
        )
        logger.debug("Cache stats: items=%d size=%s", stats.total_items, stats.formatted_size)
        return stats

    def close(self) -> None:
        self._store.close()

    # ── Internals ──

    def _read(self, ns: Namespace, key: str) -> CacheEntry | None:
        try:
            data = self._store.get(ns.value, key)
        except _STORE_ERRORS as e:
            logger.error("Failed to read %s/%s", ns.value, key, exc_info=e)
            return None
        if data is None:
            return None
        try:
            return CacheEntry.from_bytes(ns.value, key, data)
        except CacheDeserializeFailed as e:
            logger.warning("%s", e)
            return None

    def _delete(self, ns: Namespace, key: str) -> None:
        try:
            self._store.delete(ns.value, key)
        except _STORE_ERRORS as e:
            logger.error("Failed to delete %s/%s", ns.value, key, exc_info=e)

    def _scan(self, namespaces: Iterable[Namespace]) -> list[_Slot]:
        slots: list[_Slot] = []
        for ns in namespaces:
            try:
                rows = list(self._store.items(ns.value))
            except _STORE_ERRORS as e:
                logger.error("Failed to scan namespace %s", ns.value, exc_info=e)
                continue
            for key, data in rows:
                try:
                    entry = CacheEntry.from_bytes(ns.value, key, data)
                except CacheDeserializeFailed:
                    slots.append(_Slot(float("-inf"), ns.value, key, len(data), None))
                    continue
                slots.append(_Slot(entry.stored_at, ns.value, key, entry.size_bytes, entry))
        return slots


def _content_namespace(namespace: Namespace | str) -> Namespace:
    ns = Namespace(namespace)
    if ns is Namespace.PREFERENCES:
        raise ConfigurationError("Use the preference accessors for the preferences namespace")
    return ns


def _normalize_ttl(ttl: float | timedelta | None) -> float | None:
    if ttl is None:
        return None
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds < 0:
        raise ConfigurationError(f"TTL must be non-negative, got {seconds}")
    return seconds
