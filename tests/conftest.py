from datetime import date, timedelta

import pytest

from tubecache.cache.engine import CacheEngine
from tubecache.cache.store import DurableStore
from tubecache.errors.exceptions import TransportError
from tubecache.quota.governor import QuotaGovernor
from tubecache.types import ChannelStats, Namespace, SearchHits, Video


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDay:
    """Manually advanced calendar day."""

    def __init__(self, start: date = date(2024, 3, 1)) -> None:
        self.today = start

    def __call__(self) -> date:
        return self.today

    def next_day(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


class FakeTransport:
    """Scripted stand-in for the remote API.

    ``responses`` maps an endpoint name to either a value or an exception
    to raise. Every call is recorded; ``on_response`` is invoked before
    returning or raising remote (reached_remote) errors.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.videos_by_id: dict[str, Video] = {}
        self.hits = SearchHits()
        self.channels: dict[str, ChannelStats] = {}
        self.errors: dict[str, Exception] = {}

    async def search(
        self, page_token=None, max_results=20, query=None, on_response=None, allow_retry=None
    ):
        self.calls.append(("search", (page_token, max_results, query)))
        self._maybe_fail("search", on_response)
        if on_response:
            on_response()
        return self.hits

    async def videos(self, video_ids, on_response=None, allow_retry=None):
        self.calls.append(("videos", tuple(video_ids)))
        self._maybe_fail("videos", on_response)
        if on_response:
            on_response()
        return [self.videos_by_id[v] for v in video_ids if v in self.videos_by_id]

    async def channel(self, channel_id=None, on_response=None, allow_retry=None):
        self.calls.append(("channel", (channel_id,)))
        self._maybe_fail("channel", on_response)
        if on_response:
            on_response()
        return self.channels.get(channel_id)

    def count(self, endpoint: str) -> int:
        return sum(1 for name, _ in self.calls if name == endpoint)

    def _maybe_fail(self, endpoint, on_response):
        error = self.errors.get(endpoint)
        if error is None:
            return
        if isinstance(error, TransportError) and error.reached_remote and on_response:
            on_response()
        raise error


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def day():
    return FakeDay()


@pytest.fixture
def store(tmp_path):
    s = DurableStore(db_path=tmp_path / "cache.db")
    yield s
    s.close()


@pytest.fixture
def engine(store, clock):
    return CacheEngine(
        store,
        default_ttls={Namespace.VIDEOS: 6 * 3600.0, Namespace.ANALYTICS: 1800.0},
        clock=clock,
    )


@pytest.fixture
def governor(engine, day):
    return QuotaGovernor(engine, daily_limit=100, today=day)


@pytest.fixture
def transport():
    return FakeTransport()


def make_video(video_id: str, seconds: int = 300, **kwargs) -> Video:
    return Video(
        id=video_id,
        title=kwargs.pop("title", f"Video {video_id}"),
        duration=f"PT{seconds}S",
        duration_seconds=seconds,
        **kwargs,
    )


@pytest.fixture(name="make_video")
def make_video_fixture():
    return make_video
