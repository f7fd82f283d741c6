"""Fetch-or-degrade facade: cache check, quota check, remote call, cache store."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from tubecache.cache.engine import CacheEngine
from tubecache.cache.entry import CacheStatistics
from tubecache.cache.keys import channel_key, list_key, video_key
from tubecache.config.schema import Settings
from tubecache.errors.exceptions import ConfigurationError, QuotaExhausted, TransportError
from tubecache.quota.governor import QuotaGovernor
from tubecache.types import (
    CallKind,
    ChannelStats,
    ErrorCategory,
    FetchResult,
    FetchStatus,
    ListParams,
    Namespace,
    ResourceKind,
    SearchHits,
    Video,
    VideoPage,
)

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the facade needs from the remote collaborator."""

    async def search(
        self,
        page_token: str | None = None,
        max_results: int = 20,
        query: str | None = None,
        on_response: Callable[[], None] | None = None,
        allow_retry: Callable[[], bool] | None = None,
    ) -> SearchHits: ...

    async def videos(
        self,
        video_ids: list[str],
        on_response: Callable[[], None] | None = None,
        allow_retry: Callable[[], bool] | None = None,
    ) -> list[Video]: ...

    async def channel(
        self,
        channel_id: str | None = None,
        on_response: Callable[[], None] | None = None,
        allow_retry: Callable[[], bool] | None = None,
    ) -> ChannelStats | None: ...


@dataclass
class _Step:
    """Outcome of one admitted-or-denied remote step."""

    value: Any = None
    cost: int = 0
    error: TransportError | None = None
    denied: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.denied


class ResourceClient:
    """Serves resources from cache when possible, from the remote API when
    the quota allows, and degrades to typed results otherwise.

    Expected conditions (miss, quota exhaustion, offline, remote errors)
    come back as FetchResult variants. Only programmer errors raise.
    """

    def __init__(
        self,
        engine: CacheEngine,
        governor: QuotaGovernor,
        transport: Transport,
        settings: Settings | None = None,
        is_online: Callable[[], bool] | None = None,
    ) -> None:
        self._engine = engine
        self._governor = governor
        self._transport = transport
        self._settings = settings or Settings()
        self._is_online = is_online

    async def fetch_by_id(
        self, kind: ResourceKind | str, resource_id: str | None = None
    ) -> FetchResult:
        """Fetch a single video or channel-statistics document."""
        kind = ResourceKind(kind)
        if kind is ResourceKind.VIDEO:
            if not resource_id:
                raise ConfigurationError("A video id is required")
            return await self._fetch_video(resource_id)
        if kind is ResourceKind.CHANNEL:
            channel_id = resource_id or self._settings.channel_id
            if not channel_id:
                raise ConfigurationError("No channel id given or configured")
            return await self._fetch_channel(channel_id)
        raise ConfigurationError(f"'{kind.value}' is a listing; use fetch_list()")

    async def fetch_list(
        self, kind: ResourceKind | str, params: ListParams | None = None
    ) -> FetchResult:
        """Fetch one page of channel videos or search results."""
        kind = ResourceKind(kind)
        params = params or ListParams()
        if kind not in (ResourceKind.CHANNEL_VIDEOS, ResourceKind.SEARCH):
            raise ConfigurationError(f"'{kind.value}' is not a listing; use fetch_by_id()")
        if kind is ResourceKind.SEARCH and not params.query:
            raise ConfigurationError("Search listings need a query")
        return await self._fetch_listing(kind, params)

    async def channel_stats(self, channel_id: str | None = None) -> FetchResult:
        return await self.fetch_by_id(ResourceKind.CHANNEL, channel_id)

    def remaining_quota(self) -> int:
        return self._governor.remaining()

    def cache_info(self) -> CacheStatistics:
        return self._engine.stats()

    # ── Resource kinds ──

    async def _fetch_video(self, video_id: str) -> FetchResult:
        key = video_key(video_id)
        cached = self._engine.get_model(Namespace.VIDEOS, key, Video)
        if cached is not None:
            logger.debug("Video %s served from cache", video_id)
            return FetchResult(status=FetchStatus.CACHED, value=cached)

        step = await self._call(CallKind.VIDEOS, self._transport.videos, [video_id])
        if not step.ok:
            return _failed(step)
        if not step.value:
            return FetchResult(status=FetchStatus.NOT_FOUND, cost_consumed=step.cost)

        video = step.value[0]
        self._engine.put_model(key, video)
        logger.info("Fetched video details for: %s", video_id)
        return FetchResult(status=FetchStatus.OK, value=video, cost_consumed=step.cost)

    async def _fetch_channel(self, channel_id: str) -> FetchResult:
        key = channel_key(channel_id)
        cached = self._engine.get_model(Namespace.ANALYTICS, key, ChannelStats)
        if cached is not None:
            logger.debug("Channel stats %s served from cache", channel_id)
            return FetchResult(status=FetchStatus.CACHED, value=cached)

        step = await self._call(CallKind.CHANNELS, self._transport.channel, channel_id)
        if not step.ok:
            return _failed(step)
        if step.value is None:
            return FetchResult(status=FetchStatus.NOT_FOUND, cost_consumed=step.cost)

        self._engine.put_model(key, step.value)
        logger.info("Fetched channel statistics for %s", channel_id)
        return FetchResult(status=FetchStatus.OK, value=step.value, cost_consumed=step.cost)

    async def _fetch_listing(self, kind: ResourceKind, params: ListParams) -> FetchResult:
        key = list_key(kind, params, self._settings.channel_id)
        cached = self._engine.get_model(Namespace.VIDEOS, key, VideoPage)
        if cached is not None:
            logger.debug("Listing %s served from cache", key)
            return FetchResult(status=FetchStatus.CACHED, value=cached)

        # Step 1: search. Nothing fetched yet, so failures are not partial.
        search = await self._call(
            CallKind.SEARCH,
            self._transport.search,
            page_token=params.page_token,
            max_results=params.max_results,
            query=params.query if kind is ResourceKind.SEARCH else None,
        )
        if not search.ok:
            return _failed(search)

        hits: SearchHits = search.value
        if not hits.items:
            page = VideoPage(next_page_token=hits.next_page_token, total_results=hits.total_results)
            return FetchResult(status=FetchStatus.OK, value=page, cost_consumed=search.cost)

        # Step 2: enrich with statistics and durations.
        enrich = await self._call(CallKind.VIDEOS, self._transport.videos, hits.video_ids)
        cost = search.cost + enrich.cost
        if not enrich.ok:
            logger.warning(
                "Listing %s truncated to search results: %s",
                key, "quota exhausted" if enrich.denied else enrich.error,
            )
            page = VideoPage(
                videos=hits.items,
                next_page_token=hits.next_page_token,
                total_results=hits.total_results,
            )
            return FetchResult(
                status=FetchStatus.PARTIAL,
                value=page,
                error=enrich.error.to_fetch_error() if enrich.error else None,
                cost_consumed=cost,
            )

        by_id = {video.id: video for video in enrich.value}
        videos = [by_id[video_id] for video_id in hits.video_ids if video_id in by_id]
        for video in videos:
            self._engine.put_model(video_key(video.id), video)
        if kind is ResourceKind.CHANNEL_VIDEOS and params.exclude_shorts:
            videos = [video for video in videos if not video.is_short]

        page = VideoPage(
            videos=videos,
            next_page_token=hits.next_page_token,
            total_results=hits.total_results,
        )
        self._engine.put_model(key, page)
        logger.info("Fetched %d videos from the API for %s", len(videos), kind.value)
        return FetchResult(status=FetchStatus.OK, value=page, cost_consumed=cost)

    # ── Quota-governed call ──

    async def _call(
        self,
        call: CallKind,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> _Step:
        """Run one remote step under a quota reservation.

        Every answered attempt consumes the call's cost, including error
        answers and retried ones. Pre-flight failures, denials and
        cancellations before a response consume nothing. A retry happens
        only when today's budget still covers it.
        """
        if self._is_online is not None and not self._is_online():
            logger.warning("No internet connection for %s request", call.value)
            return _Step(error=TransportError(
                "No internet connection",
                category=ErrorCategory.NO_CONNECTIVITY,
            ))

        cost = self._settings.cost_for(call)
        try:
            with self._governor.reserve(cost) as reservation:
                try:
                    value = await fn(
                        *args,
                        on_response=reservation.commit,
                        allow_retry=reservation.extend,
                        **kwargs,
                    )
                except TransportError as exc:
                    if exc.reached_remote and not reservation.committed:
                        reservation.commit()
                    return _Step(cost=reservation.units, error=exc)
                if not reservation.committed:
                    reservation.commit()
                cost = reservation.units
        except QuotaExhausted as exc:
            logger.warning("Skipping %s call: %s", call.value, exc)
            return _Step(denied=True)
        return _Step(value=value, cost=cost)


def _failed(step: _Step) -> FetchResult:
    if step.error is None:
        return FetchResult(status=FetchStatus.QUOTA_EXHAUSTED)
    if step.error.http_status == 404:
        return FetchResult(status=FetchStatus.NOT_FOUND, cost_consumed=step.cost)
    return FetchResult(
        status=FetchStatus.ERROR,
        error=step.error.to_fetch_error(),
        cost_consumed=step.cost,
    )
