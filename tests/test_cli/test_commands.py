"""Tests for CLI commands."""

import logging

import pytest
from click.testing import CliRunner

from tubecache import cli as cli_module
from tubecache.cache.engine import CacheEngine
from tubecache.cache.store import DurableStore
from tubecache.cli import cli
from tubecache.config import hierarchy
from tubecache.config.schema import Settings
from tubecache.core import TubeCache
from tubecache.errors.exceptions import TransportError
from tubecache.types import ErrorCategory, SearchHits, Video


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.setattr(hierarchy, "_GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml")
    monkeypatch.chdir(tmp_path)
    for env_key in hierarchy._ENV_MAP:
        monkeypatch.delenv(env_key, raising=False)
    monkeypatch.setenv("TUBECACHE_CACHE_DB_PATH", str(tmp_path / "cli.db"))
    yield
    logging.getLogger("tubecache").setLevel(logging.NOTSET)


@pytest.fixture
def offline_cache(tmp_path, monkeypatch, transport, day):
    """Route the CLI to a TubeCache backed by the scripted transport."""
    settings = Settings(
        cache_db_path=tmp_path / "cli.db", channel_id="UC1", daily_quota_limit=50,
        quota_costs={"search": 10},
    )
    monkeypatch.setattr(
        cli_module, "_open", lambda **kw: TubeCache(settings, transport=transport, today=day)
    )
    return transport


class TestCLIGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "tubecache" in result.output

    def test_subcommands_listed(self, runner):
        result = runner.invoke(cli, ["--help"])
        for name in ("cache", "quota", "fetch"):
            assert name in result.output


class TestCacheCommands:
    def test_stats_empty(self, runner):
        result = runner.invoke(cli, ["cache", "stats"])
        assert result.exit_code == 0
        assert "Entries" in result.output

    def test_clear_requires_confirmation(self, runner):
        result = runner.invoke(cli, ["cache", "clear"], input="n\n")
        assert result.exit_code != 0

    def test_clear(self, runner, tmp_path):
        with DurableStore(tmp_path / "cli.db") as store:
            CacheEngine(store).put("videos", "video:1", {"a": 1})

        result = runner.invoke(cli, ["cache", "clear", "--namespace", "videos", "--yes"])
        assert result.exit_code == 0
        assert "Cleared 1 entries from videos" in result.output

    def test_clear_rejects_preferences(self, runner):
        result = runner.invoke(cli, ["cache", "clear", "--namespace", "preferences", "--yes"])
        assert result.exit_code != 0

    def test_sweep(self, runner):
        result = runner.invoke(cli, ["cache", "sweep", "--max-mb", "1"])
        assert result.exit_code == 0
        assert "Expired: 0" in result.output

    def test_configured_log_level_applies(self, runner, monkeypatch):
        monkeypatch.setenv("TUBECACHE_LOG_LEVEL", "error")
        result = runner.invoke(cli, ["cache", "stats"])
        assert result.exit_code == 0
        assert logging.getLogger("tubecache").level == logging.ERROR

    def test_invalid_config_exits(self, runner, monkeypatch):
        monkeypatch.setenv("TUBECACHE_DAILY_QUOTA_LIMIT", "-5")
        result = runner.invoke(cli, ["cache", "stats"])
        assert result.exit_code == 1


class TestQuotaCommands:
    def test_show(self, runner):
        result = runner.invoke(cli, ["quota", "show"])
        assert result.exit_code == 0
        assert "10,000" in result.output
        assert "available" in result.output

    def test_reset(self, runner, offline_cache):
        tc = cli_module._open()
        tc.governor.consume(30)
        tc.engine.close()

        result = runner.invoke(cli, ["quota", "reset", "--yes"])
        assert result.exit_code == 0
        assert "Quota reset" in result.output

        tc = cli_module._open()
        assert tc.remaining_quota() == 50
        tc.engine.close()


class TestFetchCommands:
    def test_fetch_video(self, runner, offline_cache, make_video):
        offline_cache.videos_by_id["abc"] = make_video("abc", seconds=95, title="Hello")
        result = runner.invoke(cli, ["fetch", "video", "abc"])
        assert result.exit_code == 0
        assert "Hello" in result.output
        assert "1:35" in result.output

    def test_fetch_video_not_found(self, runner, offline_cache):
        result = runner.invoke(cli, ["fetch", "video", "missing"])
        assert result.exit_code == 1

    def test_fetch_video_error(self, runner, offline_cache):
        offline_cache.errors["videos"] = TransportError(
            "refused", category=ErrorCategory.NO_CONNECTIVITY
        )
        result = runner.invoke(cli, ["fetch", "video", "abc"])
        assert result.exit_code == 1

    def test_fetch_videos(self, runner, offline_cache, make_video):
        offline_cache.hits = SearchHits(
            items=[Video(id="a"), Video(id="s")], next_page_token="NEXT", total_results=2
        )
        offline_cache.videos_by_id["a"] = make_video("a", seconds=600)
        offline_cache.videos_by_id["s"] = make_video("s", seconds=20)
        result = runner.invoke(cli, ["fetch", "videos"])
        assert result.exit_code == 0
        assert "Video a" in result.output
        assert "Video s" not in result.output
        assert "NEXT" in result.output

    def test_fetch_videos_with_query(self, runner, offline_cache, make_video):
        offline_cache.hits = SearchHits(items=[Video(id="a")], total_results=1)
        offline_cache.videos_by_id["a"] = make_video("a")
        result = runner.invoke(cli, ["fetch", "videos", "--query", "cats"])
        assert result.exit_code == 0
        assert offline_cache.calls[0] == ("search", (None, 20, "cats"))

    def test_max_results_bounds(self, runner):
        result = runner.invoke(cli, ["fetch", "videos", "--max-results", "51"])
        assert result.exit_code != 0
