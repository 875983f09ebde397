"""
Tests for the two-tier dictionary cache.

The durable tier runs against an in-memory SQLite database and the
key-value tier against an in-memory stand-in for the Redis client.
"""

from __future__ import annotations

from typing import Any, Optional

from datetime import UTC, datetime, timedelta

import pytest
import redis
from sqlalchemy.exc import SQLAlchemyError

from cache import (
    CACHE_NAMESPACE,
    CacheSnapshot,
    CacheStore,
    DurableSnapshotStore,
    KeyValueSnapshotStore,
    RedisWrapper,
)
from errors import CacheWriteError


NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_snapshot(
    timestamp: datetime = NOW, schema_version: str = "1.0.0", tag: bytes = b"1"
) -> CacheSnapshot:
    return CacheSnapshot(
        compressed_words=b"words:" + tag,
        compressed_frequencies=b"freq:" + tag,
        timestamp=timestamp,
        schema_version=schema_version,
    )


class BrokenTier:
    """A cache tier whose backend is down"""

    name = "broken"

    def read(self, key: str) -> Optional[CacheSnapshot]:
        raise SQLAlchemyError("database is down")

    def write(self, key: str, snapshot: CacheSnapshot) -> None:
        raise SQLAlchemyError("database is down")

    def delete(self, key: str) -> None:
        raise SQLAlchemyError("database is down")


class FailingRedisClient:
    """A Redis client that cannot connect"""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        self.calls += 1
        raise redis.exceptions.ConnectionError("Connection refused")

    get = set = delete = _fail


class TestSnapshot:
    """Test snapshot validity rules."""

    def test_fresh_snapshot_is_valid(self) -> None:
        s = make_snapshot()
        assert s.is_valid(NOW + timedelta(days=6), timedelta(days=7), "1.0.0")

    def test_stale_snapshot_is_invalid(self) -> None:
        """Snapshots older than seven days must not be used."""
        s = make_snapshot()
        assert not s.is_valid(NOW + timedelta(days=8), timedelta(days=7), "1.0.0")
        assert not s.is_valid(NOW + timedelta(days=7), timedelta(days=7), "1.0.0")

    def test_schema_mismatch_is_invalid(self) -> None:
        s = make_snapshot(schema_version="0.9.0")
        assert not s.is_valid(NOW, timedelta(days=7), "1.0.0")

    def test_serializable_form(self) -> None:
        s = make_snapshot()
        j = s.to_serializable()
        assert set(j) == {
            "compressedWords",
            "compressedFrequencyTable",
            "timestamp",
            "schemaVersion",
        }
        assert CacheSnapshot.from_serializable(j) == s


class TestDurableTier:
    """Test the SQLAlchemy-backed tier."""

    def test_read_missing(self, durable_store: DurableSnapshotStore) -> None:
        assert durable_store.read("nothing") is None

    def test_write_and_read(self, durable_store: DurableSnapshotStore) -> None:
        s = make_snapshot()
        durable_store.write("key", s)
        loaded = durable_store.read("key")
        assert loaded == s
        assert loaded is not None and loaded.timestamp.tzinfo is not None

    def test_last_writer_wins(self, durable_store: DurableSnapshotStore) -> None:
        durable_store.write("key", make_snapshot(tag=b"1"))
        durable_store.write("key", make_snapshot(tag=b"2"))
        loaded = durable_store.read("key")
        assert loaded is not None
        assert loaded.compressed_words == b"words:2"

    def test_delete(self, durable_store: DurableSnapshotStore) -> None:
        durable_store.write("key", make_snapshot())
        durable_store.delete("key")
        assert durable_store.read("key") is None
        # Deleting a missing entry is harmless
        durable_store.delete("key")


class TestKeyValueTier:
    """Test the Redis-backed tier."""

    def test_write_and_read(self, kv_store: KeyValueSnapshotStore, fake_redis: Any) -> None:
        s = make_snapshot()
        kv_store.write("key", s)
        assert f"{CACHE_NAMESPACE}|key" in fake_redis.data
        assert kv_store.read("key") == s

    def test_read_missing(self, kv_store: KeyValueSnapshotStore) -> None:
        assert kv_store.read("key") is None

    def test_unexpected_entry(self, fake_redis: Any) -> None:
        """An entry that is not a snapshot is an error."""
        wrapper = RedisWrapper(client=fake_redis)
        wrapper.set("key", {"some": "thing"}, namespace=CACHE_NAMESPACE)
        with pytest.raises(ValueError):
            KeyValueSnapshotStore(wrapper).read("key")

    def test_connection_failure(self) -> None:
        """Connection errors are retried once, then reported as a miss."""
        client = FailingRedisClient()
        store = KeyValueSnapshotStore(RedisWrapper(client=client))
        assert store.read("key") is None
        assert client.calls == 2
        with pytest.raises(CacheWriteError):
            store.write("key", make_snapshot())


class TestCacheStore:
    """Test tier selection in the CacheStore."""

    def test_durable_tier_preferred(
        self, cache_store: CacheStore, durable_store: DurableSnapshotStore,
        kv_store: KeyValueSnapshotStore,
    ) -> None:
        assert cache_store.write(make_snapshot()) == "durable"
        assert durable_store.read(cache_store.key) is not None
        assert kv_store.read(cache_store.key) is None
        assert cache_store.read() == make_snapshot()

    def test_fallback_on_write(self, kv_store: KeyValueSnapshotStore) -> None:
        """When the durable tier fails, the snapshot goes to the key-value tier."""
        store = CacheStore("key", BrokenTier(), kv_store)
        assert store.write(make_snapshot()) == "key-value"
        assert kv_store.read("key") == make_snapshot()

    def test_fallback_on_read(self, kv_store: KeyValueSnapshotStore) -> None:
        kv_store.write("key", make_snapshot())
        store = CacheStore("key", BrokenTier(), kv_store)
        assert store.read() == make_snapshot()

    def test_read_tries_both_tiers(
        self, durable_store: DurableSnapshotStore, kv_store: KeyValueSnapshotStore
    ) -> None:
        """A miss in the durable tier falls through to the key-value tier."""
        kv_store.write("key", make_snapshot(tag=b"kv"))
        store = CacheStore("key", durable_store, kv_store)
        loaded = store.read()
        assert loaded is not None
        assert loaded.compressed_words == b"words:kv"

    def test_read_skips_rejected_snapshot(
        self, durable_store: DurableSnapshotStore, kv_store: KeyValueSnapshotStore
    ) -> None:
        """A snapshot the caller rejects moves the read on to the next tier."""
        durable_store.write("key", make_snapshot(timestamp=NOW - timedelta(days=30)))
        kv_store.write("key", make_snapshot(tag=b"kv"))
        store = CacheStore("key", durable_store, kv_store)
        assert store.read() == make_snapshot(timestamp=NOW - timedelta(days=30))
        loaded = store.read(lambda s: s.is_valid(NOW, timedelta(days=7), "1.0.0"))
        assert loaded == make_snapshot(tag=b"kv")
        assert store.read(lambda s: False) is None

    def test_read_from_single_tier(self, kv_store: KeyValueSnapshotStore) -> None:
        kv_store.write("key", make_snapshot())
        broken = BrokenTier()
        store = CacheStore("key", broken, kv_store)
        assert [t.name for t in store.tiers] == [broken.name, "key-value"]
        assert store.read_from(broken) is None
        assert store.read_from(kv_store) == make_snapshot()

    def test_no_tier_accepts(self) -> None:
        store = CacheStore("key", BrokenTier())
        with pytest.raises(CacheWriteError):
            store.write(make_snapshot())
        assert store.read() is None

    def test_clear(self, cache_store: CacheStore, kv_store: KeyValueSnapshotStore) -> None:
        cache_store.write(make_snapshot())
        kv_store.write(cache_store.key, make_snapshot())
        cache_store.clear()
        assert cache_store.read() is None
