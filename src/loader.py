"""

    Dictionary loader

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    DictionaryLoader orchestrates the acquisition of the word list:

    1. Try the cache (durable tier, then key-value tier). A snapshot is
       used only if it is younger than the configured maximum age and
       carries the current schema version. A snapshot that fails these
       checks, or fails to decode, is skipped and the next tier is tried.

    2. Otherwise, fetch the raw word list over the network, with bounded
       retries and linear backoff (see retry.py). If all attempts fail,
       SourceUnavailable is raised.

    3. Normalize the lines into a WordSet and compute the frequency
       records in chunks, yielding to the event loop between chunks.

    4. Write a fresh snapshot back to the cache. This happens in a
       background task; a failed write is logged but never fails the load.

    The loader is an ordinary object, constructed by whoever owns it.
    It holds no global state.

"""

from __future__ import annotations

from typing import (
    Callable,
    Literal,
    Optional,
    Set,
)

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime

import requests

import compressor
from cache import CacheSnapshot, CacheStore
from config import EngineConfig
from errors import (
    CacheWriteError,
    CorruptPayload,
    FetchFailed,
    SourceUnavailable,
)
from retry import RetryPolicy
from wordfreq import FrequencyTable, score
from wordset import WordSet


LoadSource = Literal["cache", "network"]
FetchFunc = Callable[[str, float], str]
ClockFunc = Callable[[], datetime]


def fetch_word_list(url: str, timeout: float) -> str:
    """Fetch the raw word list resource, returning its text.
    Any request failure is reported as FetchFailed."""
    try:
        response = requests.get(
            url,
            headers={"Cache-Control": "public, max-age=86400"},
            timeout=timeout,
        )
        response.raise_for_status()
        response.encoding = "utf-8"
        return response.text
    except requests.RequestException as e:
        raise FetchFailed(f"Unable to fetch word list from {url}: {e}") from e


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class LoadedDictionary:
    """The result of a successful load"""

    words: WordSet
    frequencies: FrequencyTable
    source: LoadSource


def build_snapshot(
    words: WordSet, frequencies: FrequencyTable, now: datetime, schema_version: str
) -> CacheSnapshot:
    """Create a fresh cache snapshot of a loaded dictionary"""
    return CacheSnapshot(
        compressed_words=compressor.encode(words),
        compressed_frequencies=compressor.encode_frequencies(frequencies),
        timestamp=now,
        schema_version=schema_version,
    )


async def compute_frequencies(words: WordSet, chunk_size: int) -> FrequencyTable:
    """Score all words, yielding to the event loop between chunks
    so that other scheduled work is not starved"""
    table = FrequencyTable()
    wl = words.sorted()
    chunk_size = max(1, chunk_size)
    for i in range(0, len(wl), chunk_size):
        for w in wl[i : i + chunk_size]:
            table.add(score(w))
        await asyncio.sleep(0)
    return table


class DictionaryLoader:
    """Loads the dictionary from the cache or the network"""

    def __init__(
        self,
        config: EngineConfig,
        store: Optional[CacheStore] = None,
        *,
        fetch: FetchFunc = fetch_word_list,
        policy: Optional[RetryPolicy] = None,
        clock: ClockFunc = utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._fetch = fetch
        self._policy = policy or RetryPolicy(
            max_attempts=config.fetch_attempts,
            backoff=config.fetch_backoff,
            timeout=config.fetch_timeout,
        )
        self._clock = clock
        # Background cache write tasks that have not yet completed
        self._pending: Set[asyncio.Task[None]] = set()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def load(self) -> LoadedDictionary:
        """Load the dictionary, preferring a valid cached snapshot"""
        t0 = time.time()
        cached = await self._load_from_cache()
        if cached is not None:
            logging.info(
                f"Loaded {len(cached.words)} words from cache in {time.time() - t0:.2f} seconds"
            )
            return cached
        return await self.refresh()

    async def refresh(self) -> LoadedDictionary:
        """Load the dictionary from the network, bypassing the cache,
        and write a fresh snapshot back to the cache"""
        t0 = time.time()
        words = await self._load_from_network()
        frequencies = await compute_frequencies(words, self._config.frequency_chunk_size)
        logging.info(
            f"Loaded {len(words)} words from network in {time.time() - t0:.2f} seconds"
        )
        if self._store is not None:
            self._schedule_writeback(words, frequencies)
        return LoadedDictionary(words=words, frequencies=frequencies, source="network")

    async def flush(self) -> None:
        """Wait for any pending cache writes to complete"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _snapshot_is_usable(self, snapshot: CacheSnapshot) -> bool:
        cfg = self._config
        return snapshot.is_valid(self._clock(), cfg.max_cache_age, cfg.schema_version)

    async def _load_from_cache(self) -> Optional[LoadedDictionary]:
        store = self._store
        if store is None:
            return None
        # Each tier is judged on its own: a stale or corrupt snapshot
        # in one tier does not hide a usable one in the next
        for tier in store.tiers:
            snapshot = await asyncio.to_thread(store.read_from, tier)
            if snapshot is None:
                continue
            if not self._snapshot_is_usable(snapshot):
                logging.info(
                    f"Ignoring {tier.name} snapshot from {snapshot.timestamp.isoformat()}, "
                    f"schema version {snapshot.schema_version}"
                )
                continue
            try:
                words = await asyncio.to_thread(compressor.decode, snapshot.compressed_words)
                frequencies = await asyncio.to_thread(
                    compressor.decode_frequencies, snapshot.compressed_frequencies
                )
            except CorruptPayload as e:
                logging.warning(f"Cached dictionary in {tier.name} tier is corrupt: {e}")
                continue
            return LoadedDictionary(words=words, frequencies=frequencies, source="cache")
        return None

    async def _load_from_network(self) -> WordSet:
        url = self._config.wordlist_url
        timeout = self._config.fetch_timeout

        async def attempt() -> str:
            return await asyncio.to_thread(self._fetch, url, timeout)

        try:
            text = await self._policy.run(attempt, what=f"fetching {url}")
        except FetchFailed as e:
            raise SourceUnavailable(
                f"Word list unavailable after {self._policy.max_attempts} attempts: {e}"
            ) from e
        return WordSet.from_text(text)

    def _schedule_writeback(self, words: WordSet, frequencies: FrequencyTable) -> None:
        """Write a snapshot to the cache in a background task"""
        task = asyncio.create_task(self._write_snapshot(words, frequencies))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write_snapshot(self, words: WordSet, frequencies: FrequencyTable) -> None:
        store = self._store
        assert store is not None
        try:
            snapshot = await asyncio.to_thread(
                build_snapshot,
                words,
                frequencies,
                self._clock(),
                self._config.schema_version,
            )
            await asyncio.to_thread(store.write, snapshot)
        except CacheWriteError as e:
            logging.error(f"Unable to cache dictionary: {e}")
        except Exception as e:
            # A failed cache write must never fail an otherwise successful load
            logging.exception(f"Unexpected error while caching dictionary: {repr(e)}")
