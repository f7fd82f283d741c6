"""Shared Pydantic models for tubecache."""

from __future__ import annotations

import re
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

# ── Enums ──


class Namespace(StrEnum):
    CACHE = "cache"
    VIDEOS = "videos"
    BLOGS = "blogs"
    ANALYTICS = "analytics"
    PREFERENCES = "preferences"


# Everything except preferences counts as cached content.
CONTENT_NAMESPACES: tuple[Namespace, ...] = tuple(
    ns for ns in Namespace if ns is not Namespace.PREFERENCES
)


class CallKind(StrEnum):
    """Remote endpoints, each with its own quota cost."""

    SEARCH = "search"
    VIDEOS = "videos"
    CHANNELS = "channels"


class ResourceKind(StrEnum):
    VIDEO = "video"
    CHANNEL = "channel"
    CHANNEL_VIDEOS = "channel_videos"
    SEARCH = "search"


class FetchStatus(StrEnum):
    OK = "ok"
    CACHED = "cached"
    PARTIAL = "partial"
    QUOTA_EXHAUSTED = "quota_exhausted"
    NOT_FOUND = "not_found"
    ERROR = "error"


class ErrorCategory(StrEnum):
    TIMEOUT = "timeout"
    NO_CONNECTIVITY = "no_connectivity"
    REMOTE_REJECTED = "remote_rejected"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    MALFORMED_RESPONSE = "malformed_response"


class QuotaStatus(StrEnum):
    AVAILABLE = "available"
    EXHAUSTED = "exhausted"


# ── Domain payloads ──

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")

SHORT_MAX_SECONDS = 60


def parse_iso_duration(value: str) -> int:
    """Convert an ISO-8601 duration such as ``PT1H2M3S`` to seconds."""
    if not value:
        return 0
    match = _DURATION_RE.match(value)
    if match is None:
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


class Video(BaseModel):
    kind: Literal["video"] = "video"
    id: str
    title: str = ""
    description: str = ""
    thumbnail_url: str = ""
    channel_title: str = ""
    published_at: datetime | None = None
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    duration: str = ""
    duration_seconds: int = 0
    tags: list[str] = Field(default_factory=list)

    @property
    def is_short(self) -> bool:
        return 0 < self.duration_seconds <= SHORT_MAX_SECONDS

    @property
    def formatted_duration(self) -> str:
        hours, rest = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"


class ChannelStats(BaseModel):
    kind: Literal["channel_stats"] = "channel_stats"
    channel_id: str
    title: str = ""
    description: str = ""
    thumbnail_url: str = ""
    subscriber_count: int = 0
    video_count: int = 0
    view_count: int = 0
    fetched_at: datetime | None = None


class VideoPage(BaseModel):
    kind: Literal["video_page"] = "video_page"
    videos: list[Video] = Field(default_factory=list)
    next_page_token: str | None = None
    total_results: int = 0


Payload = Annotated[Video | ChannelStats | VideoPage, Field(discriminator="kind")]

PAYLOAD_ADAPTER: TypeAdapter[Video | ChannelStats | VideoPage] = TypeAdapter(Payload)


class SearchHits(BaseModel):
    """First step of a listing: ids plus snippet-level video records."""

    items: list[Video] = Field(default_factory=list)
    next_page_token: str | None = None
    total_results: int = 0

    @property
    def video_ids(self) -> list[str]:
        return [v.id for v in self.items]


# ── Request / result models ──


class ListParams(BaseModel):
    page_token: str | None = None
    max_results: int = Field(default=20, ge=1, le=50)
    query: str | None = None
    exclude_shorts: bool = True


class FetchError(BaseModel):
    category: ErrorCategory
    message: str = ""
    http_status: int | None = None


class FetchResult(BaseModel):
    """Outcome of a facade call. Never raised, always returned."""

    status: FetchStatus
    value: Any = None
    error: FetchError | None = None
    cost_consumed: int = 0

    @property
    def ok(self) -> bool:
        return self.status in (FetchStatus.OK, FetchStatus.CACHED)

    @property
    def from_cache(self) -> bool:
        return self.status == FetchStatus.CACHED


class QuotaState(BaseModel):
    date_key: str
    units_consumed: int = Field(default=0, ge=0)
    daily_limit: int
    status: QuotaStatus = QuotaStatus.AVAILABLE

    @property
    def remaining(self) -> int:
        return max(0, self.daily_limit - self.units_consumed)
