"""Async transport for the video data API (YouTube Data API v3 compatible)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from tubecache.config.defaults import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
)
from tubecache.errors.classify import classify_http_error, is_transient
from tubecache.errors.exceptions import TransportError
from tubecache.types import (
    ChannelStats,
    ErrorCategory,
    SearchHits,
    Video,
    parse_iso_duration,
)

logger = logging.getLogger(__name__)

ResponseHook = Callable[[], None]
RetryGate = Callable[[], bool]


class VideoApiTransport:
    """Performs the HTTP calls and parses payloads into domain models.

    Owns retries for transient failures; every failure that escapes is a
    TransportError. ``on_response`` is invoked once per answered attempt,
    so callers can bill every response including retried ones, even when
    parsing or status handling fails afterwards. ``allow_retry`` is asked
    before each retry and can veto it.
    """

    def __init__(
        self,
        api_key: str | None = None,
        channel_id: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_RETRIES,
        retry_wait: float = 1.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._channel_id = channel_id
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    @property
    def channel_id(self) -> str | None:
        return self._channel_id

    async def search(
        self,
        page_token: str | None = None,
        max_results: int = 20,
        query: str | None = None,
        on_response: ResponseHook | None = None,
        allow_retry: RetryGate | None = None,
    ) -> SearchHits:
        """List videos of the channel, newest first, or search them by ``query``."""
        params: dict[str, Any] = {
            "channelId": self._channel_id,
            "part": "id,snippet",
            "type": "video",
            "order": "relevance" if query else "date",
            "maxResults": max_results,
        }
        if query:
            params["q"] = query
        if page_token:
            params["pageToken"] = page_token

        data = await self._get("/search", params, on_response, allow_retry)
        return self._parse_search(data)

    async def videos(
        self,
        video_ids: list[str],
        on_response: ResponseHook | None = None,
        allow_retry: RetryGate | None = None,
    ) -> list[Video]:
        """Fetch full details (statistics, duration) for up to 50 ids."""
        params = {"id": ",".join(video_ids), "part": "id,snippet,statistics,contentDetails"}
        data = await self._get("/videos", params, on_response, allow_retry)
        try:
            return [self._parse_video(item) for item in _items(data)]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise classify_http_error(e) from e

    async def channel(
        self,
        channel_id: str | None = None,
        on_response: ResponseHook | None = None,
        allow_retry: RetryGate | None = None,
    ) -> ChannelStats | None:
        """Fetch channel statistics; None when the channel does not exist."""
        params = {"id": channel_id or self._channel_id, "part": "statistics,snippet"}
        data = await self._get("/channels", params, on_response, allow_retry)
        try:
            items = _items(data)
            return self._parse_channel(items[0]) if items else None
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise classify_http_error(e) from e

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
        on_response: ResponseHook | None,
        allow_retry: RetryGate | None = None,
    ) -> dict[str, Any]:
        params = {k: v for k, v in params.items() if v is not None}
        if self._api_key:
            params["key"] = self._api_key
        logger.debug("API request: GET %s %s", path, _redact(params))

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_retry_predicate(allow_retry)),
                wait=wait_exponential(multiplier=self._retry_wait, min=0, max=30),
                stop=stop_after_attempt(self._max_attempts),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.get(path, params=params)
                    if on_response is not None:
                        on_response()
                    logger.debug("API response: %s - Status: %d", path, response.status_code)
                    response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            error = classify_http_error(e)
            logger.error("API error on %s: %s (%s)", path, error.message, error.category.value)
            raise error from e

        if not isinstance(data, dict):
            raise TransportError(
                f"Expected a JSON object from {path}",
                category=ErrorCategory.MALFORMED_RESPONSE,
                reached_remote=True,
            )
        return data

    @staticmethod
    def _parse_search(data: dict[str, Any]) -> SearchHits:
        items: list[Video] = []
        try:
            for item in _items(data):
                video_id = (item.get("id") or {}).get("videoId")
                if not video_id:
                    continue
                snippet = item.get("snippet") or {}
                items.append(Video(
                    id=video_id,
                    title=snippet.get("title", ""),
                    description=snippet.get("description", ""),
                    thumbnail_url=_thumbnail(snippet),
                    channel_title=snippet.get("channelTitle", ""),
                    published_at=snippet.get("publishedAt"),
                ))
            page_info = data.get("pageInfo") or {}
            return SearchHits(
                items=items,
                next_page_token=data.get("nextPageToken"),
                total_results=int(page_info.get("totalResults", 0)),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise classify_http_error(ValueError(str(e))) from e

    @staticmethod
    def _parse_video(item: dict[str, Any]) -> Video:
        snippet = item.get("snippet") or {}
        statistics = item.get("statistics") or {}
        duration = (item.get("contentDetails") or {}).get("duration", "")
        return Video(
            id=item["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            thumbnail_url=_thumbnail(snippet),
            channel_title=snippet.get("channelTitle", ""),
            published_at=snippet.get("publishedAt"),
            view_count=int(statistics.get("viewCount", 0)),
            like_count=int(statistics.get("likeCount", 0)),
            comment_count=int(statistics.get("commentCount", 0)),
            duration=duration,
            duration_seconds=parse_iso_duration(duration),
            tags=list(snippet.get("tags") or []),
        )

    @staticmethod
    def _parse_channel(item: dict[str, Any]) -> ChannelStats:
        snippet = item.get("snippet") or {}
        statistics = item.get("statistics") or {}
        return ChannelStats(
            channel_id=item["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            thumbnail_url=_thumbnail(snippet),
            subscriber_count=int(statistics.get("subscriberCount", 0)),
            video_count=int(statistics.get("videoCount", 0)),
            view_count=int(statistics.get("viewCount", 0)),
            fetched_at=datetime.now(timezone.utc),
        )


def _items(data: dict[str, Any]) -> list[Any]:
    items = data.get("items") or []
    if not isinstance(items, list):
        raise TypeError(f"'items' must be a list, got {type(items).__name__}")
    return items


def _retry_predicate(allow_retry: RetryGate | None) -> Callable[[BaseException], bool]:
    """Retry transient failures, and only while ``allow_retry`` agrees."""

    def predicate(exc: BaseException) -> bool:
        if not is_transient(exc):
            return False
        return allow_retry is None or allow_retry()

    return predicate


def _thumbnail(snippet: dict[str, Any]) -> str:
    thumbnails = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return ""


def _redact(params: dict[str, Any]) -> dict[str, Any]:
    return {k: ("***" if k == "key" else v) for k, v in params.items()}
