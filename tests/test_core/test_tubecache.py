import pytest

from tubecache import FetchStatus, TubeCache
from tubecache.config.schema import Settings
from tubecache.quota.governor import quota_pref_key


@pytest.fixture
def settings(tmp_path):
    return Settings(
        cache_db_path=tmp_path / "cache.db",
        channel_id="UC1",
        daily_quota_limit=50,
        quota_costs={"search": 10},
    )


def build(settings, transport, clock, day, **kwargs):
    return TubeCache(settings=settings, transport=transport, clock=clock, today=day, **kwargs)


class TestTubeCache:
    async def test_fetch_and_quota(self, settings, transport, clock, day, make_video):
        transport.videos_by_id["X"] = make_video("X")
        async with build(settings, transport, clock, day) as tc:
            result = await tc.fetch_by_id("video", "X")
            assert result.status is FetchStatus.OK
            assert tc.remaining_quota() == 49
            assert tc.cache_info().total_items == 1

    async def test_state_survives_restart(self, settings, transport, clock, day, make_video):
        transport.videos_by_id["X"] = make_video("X")
        async with build(settings, transport, clock, day) as tc:
            await tc.fetch_by_id("video", "X")

        async with build(settings, transport, clock, day) as tc:
            assert tc.remaining_quota() == 49
            result = await tc.fetch_by_id("video", "X")
            assert result.status is FetchStatus.CACHED
        assert transport.count("videos") == 1

    async def test_configured_ttls_apply(self, settings, transport, clock, day):
        async with build(settings, transport, clock, day) as tc:
            assert tc.engine.default_ttl("analytics") == 1800.0
            assert tc.engine.max_bytes == settings.max_cache_bytes

    async def test_quota_change_callback(self, settings, transport, clock, day, make_video):
        seen = []
        transport.videos_by_id["X"] = make_video("X")
        async with build(settings, transport, clock, day, on_quota_change=seen.append) as tc:
            await tc.fetch_by_id("video", "X")
        assert [state.units_consumed for state in seen] == [1]

    async def test_retention_purges_old_counters(self, settings, transport, clock, day):
        async with build(settings, transport, clock, day) as tc:
            tc.engine.set_pref(quota_pref_key("2024-01-01"), 7)

        retained = settings.model_copy(update={"quota_retention_days": 7})
        async with build(retained, transport, clock, day) as tc:
            assert tc.engine.get_pref(quota_pref_key("2024-01-01")) is None

    async def test_listing(self, settings, transport, clock, day, make_video):
        from tubecache.types import SearchHits, Video

        transport.hits = SearchHits(items=[Video(id="a")], total_results=1)
        transport.videos_by_id["a"] = make_video("a")
        async with build(settings, transport, clock, day) as tc:
            result = await tc.fetch_list("channel_videos")
            assert result.status is FetchStatus.OK
            assert tc.remaining_quota() == 39
