"""
Pytest configuration and fixtures for the dictionary engine tests.

The fixtures provide a small sample corpus, an in-memory stand-in for
the Redis client, an in-memory SQLite database for the durable cache
tier, and word list fetchers that never touch the network.

Usage:
    pytest tests/
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

import threading
from datetime import timedelta

import pytest

from cache import (
    CacheStore,
    DurableSnapshotStore,
    KeyValueSnapshotStore,
    RedisWrapper,
    create_cache_engine,
)
from config import CACHE_SCHEMA_VERSION, DEFAULT_CACHE_KEY, EngineConfig
from errors import FetchFailed
from matcher import MatchEngine
from retry import RetryPolicy
from wordfreq import FrequencyTable, score_all
from wordset import WordSet


SAMPLE_WORDS = [
    "CAT", "CATS", "SCAT", "ACT", "ACTS", "CAST", "BAT", "EAT", "TEA",
    "ATE", "ETA", "CATE", "TACE", "CHAT", "TACO", "COAT", "QI", "QAT",
    "QUIT", "THE", "RHYTHM", "AUDIO", "ZA",
]


class FakeRedis:
    """In-memory stand-in for the subset of the redis.Redis
    client that RedisWrapper uses"""

    def __init__(self) -> None:
        self.data: Dict[str, Any] = {}
        self.expiry: Dict[str, Optional[int]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            return self.data.get(key)

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        with self._lock:
            self.data[key] = value.encode("utf-8") if isinstance(value, str) else value
            self.expiry[key] = ex
            return True

    def delete(self, key: str) -> int:
        with self._lock:
            self.expiry.pop(key, None)
            return 1 if self.data.pop(key, None) is not None else 0


class FakeFetcher:
    """A word list fetcher that counts its calls and can be
    told to fail a number of times before succeeding"""

    def __init__(self, text: str, failures: int = 0) -> None:
        self.text = text
        self.failures = failures
        self.calls: List[str] = []

    def __call__(self, url: str, timeout: float) -> str:
        self.calls.append(url)
        if len(self.calls) <= self.failures:
            raise FetchFailed(f"Simulated failure #{len(self.calls)}")
        return self.text


@pytest.fixture
def sample_words() -> List[str]:
    return list(SAMPLE_WORDS)


@pytest.fixture
def sample_text() -> str:
    # Mixed case, surrounding whitespace, blank lines and an
    # over-long line, as found in real word list resources
    lines = [w.lower() if i % 3 == 0 else w for i, w in enumerate(SAMPLE_WORDS)]
    return "\n".join(["  " + lines[0] + "  ", ""] + lines[1:] + ["A", "X" * 16, ""])


@pytest.fixture
def wordset() -> WordSet:
    return WordSet(SAMPLE_WORDS)


@pytest.fixture
def frequencies() -> FrequencyTable:
    table = FrequencyTable()
    for record in score_all(SAMPLE_WORDS):
        table.add(record)
    return table


@pytest.fixture
def engine(wordset: WordSet, frequencies: FrequencyTable) -> MatchEngine:
    return MatchEngine(wordset, frequencies)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def durable_store() -> Iterator[DurableSnapshotStore]:
    store = DurableSnapshotStore(create_cache_engine("sqlite://"))
    yield store
    store.close()


@pytest.fixture
def kv_store(fake_redis: FakeRedis) -> KeyValueSnapshotStore:
    return KeyValueSnapshotStore(RedisWrapper(client=fake_redis))


@pytest.fixture
def cache_store(
    durable_store: DurableSnapshotStore, kv_store: KeyValueSnapshotStore
) -> CacheStore:
    return CacheStore(DEFAULT_CACHE_KEY, durable_store, kv_store)


@pytest.fixture
def config() -> EngineConfig:
    """A configuration that never waits between fetch attempts"""
    return EngineConfig(
        wordlist_url="http://wordlist.test/words.txt",
        cache_database_url="sqlite://",
        redis_host="localhost",
        redis_port=6379,
        cache_key=DEFAULT_CACHE_KEY,
        schema_version=CACHE_SCHEMA_VERSION,
        max_cache_age=timedelta(days=7),
        fetch_attempts=3,
        fetch_backoff=0.0,
        fetch_timeout=5.0,
        frequency_chunk_size=4,
        search_result_limit=10000,
        log_level="DEBUG",
        echo_sql=False,
    )


@pytest.fixture
def sleeps() -> List[float]:
    """Records the delays requested by a RetryPolicy"""
    return []


@pytest.fixture
def fast_policy(sleeps: List[float]) -> RetryPolicy:
    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryPolicy(max_attempts=3, backoff=1.0, timeout=5.0, sleep=record_sleep)


@pytest.fixture
def make_fetcher(sample_text: str) -> Any:
    """Factory for fake word list fetchers serving the sample text"""

    def factory(failures: int = 0, text: Optional[str] = None) -> FakeFetcher:
        return FakeFetcher(sample_text if text is None else text, failures)

    return factory
