"""Top-level entry point: TubeCache wires store, engine, governor and client."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import date
from typing import Any

from tubecache.cache.engine import CacheEngine
from tubecache.cache.entry import CacheStatistics
from tubecache.cache.store import DurableStore
from tubecache.client.facade import ResourceClient, Transport
from tubecache.client.transport import VideoApiTransport
from tubecache.config.loader import load_settings
from tubecache.config.schema import Settings
from tubecache.maintenance import MaintenanceLoop
from tubecache.quota.governor import QuotaGovernor
from tubecache.types import FetchResult, ListParams, QuotaState, ResourceKind

logger = logging.getLogger(__name__)


class TubeCache:
    """One cache engine and one quota governor per process, shared by all callers."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
        is_online: Callable[[], bool] | None = None,
        on_quota_change: Callable[[QuotaState], None] | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._store = DurableStore(db_path=self._settings.cache_db_path)
        self._engine = CacheEngine(
            self._store,
            max_bytes=self._settings.max_cache_bytes,
            default_ttls=self._settings.ttl_seconds,
            clock=clock,
        )
        self._governor = QuotaGovernor(
            self._engine,
            daily_limit=self._settings.daily_quota_limit,
            today=today,
            on_change=on_quota_change,
            retention_days=self._settings.quota_retention_days,
        )
        self._owns_transport = transport is None
        self._transport = transport or VideoApiTransport(
            api_key=self._settings.api_key,
            channel_id=self._settings.channel_id,
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout,
            max_attempts=self._settings.max_retries,
        )
        self._client = ResourceClient(
            self._engine,
            self._governor,
            self._transport,
            settings=self._settings,
            is_online=is_online,
        )
        self._maintenance = MaintenanceLoop(
            self._engine,
            interval_seconds=self._settings.sweep_interval_seconds,
            max_bytes=self._settings.max_cache_bytes,
        )
        logger.info("TubeCache initialized (db=%s)", self._store.path)

    @classmethod
    def from_config(cls, **overrides: Any) -> TubeCache:
        """Build from the merged config hierarchy plus runtime overrides."""
        return cls(settings=load_settings(**overrides))

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def engine(self) -> CacheEngine:
        return self._engine

    @property
    def governor(self) -> QuotaGovernor:
        return self._governor

    @property
    def client(self) -> ResourceClient:
        return self._client

    @property
    def maintenance(self) -> MaintenanceLoop:
        return self._maintenance

    async def fetch_by_id(self, kind: ResourceKind | str, resource_id: str | None = None) -> FetchResult:
        return await self._client.fetch_by_id(kind, resource_id)

    async def fetch_list(
        self, kind: ResourceKind | str, params: ListParams | None = None
    ) -> FetchResult:
        return await self._client.fetch_list(kind, params)

    def remaining_quota(self) -> int:
        return self._client.remaining_quota()

    def cache_info(self) -> CacheStatistics:
        return self._client.cache_info()

    async def close(self) -> None:
        await self._maintenance.stop()
        if self._owns_transport and isinstance(self._transport, VideoApiTransport):
            await self._transport.close()
        self._engine.close()

    async def __aenter__(self) -> TubeCache:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
