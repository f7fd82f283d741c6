"""Tests for the SQLite durable store."""

from tubecache.cache.store import DurableStore


class TestDurableStore:
    def test_put_get(self, store):
        store.put("videos", "k1", b"hello")
        assert store.get("videos", "k1") == b"hello"

    def test_get_miss(self, store):
        assert store.get("videos", "missing") is None

    def test_namespaces_are_independent(self, store):
        store.put("videos", "k", b"a")
        store.put("blogs", "k", b"b")
        assert store.get("videos", "k") == b"a"
        assert store.get("blogs", "k") == b"b"
        assert store.count("videos") == 1
        assert store.count("blogs") == 1

    def test_overwrite_existing_key(self, store):
        store.put("videos", "k", b"first")
        store.put("videos", "k", b"second")
        assert store.get("videos", "k") == b"second"
        assert store.count("videos") == 1

    def test_delete(self, store):
        store.put("videos", "k", b"x")
        assert store.delete("videos", "k") is True
        assert store.delete("videos", "k") is False
        assert store.get("videos", "k") is None

    def test_keys_sorted(self, store):
        for key in ("b", "a", "c"):
            store.put("cache", key, b"x")
        assert store.keys("cache") == ["a", "b", "c"]

    def test_items(self, store):
        store.put("cache", "a", b"1")
        store.put("cache", "b", b"2")
        assert list(store.items("cache")) == [("a", b"1"), ("b", b"2")]

    def test_clear_only_one_namespace(self, store):
        store.put("cache", "a", b"1")
        store.put("preferences", "p", b"2")
        assert store.clear("cache") == 1
        assert store.count("cache") == 0
        assert store.count("preferences") == 1

    def test_namespaces(self, store):
        store.put("videos", "a", b"1")
        store.put("analytics", "b", b"2")
        assert store.namespaces() == ["analytics", "videos"]

    def test_persistence(self, tmp_path):
        db_path = tmp_path / "cache.db"
        with DurableStore(db_path=db_path) as first:
            first.put("preferences", "quota_used_2024-03-01", b"42")

        with DurableStore(db_path=db_path) as second:
            assert second.get("preferences", "quota_used_2024-03-01") == b"42"
