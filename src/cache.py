"""

    Cache - two-tier storage for dictionary snapshots

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    This module stores a versioned, timestamped snapshot of the compressed
    dictionary and its frequency table, so that the word list does not
    need to be fetched over the network on every start.

    There are two tiers:

    DurableSnapshotStore
        A SQLAlchemy-backed table, holding one row per cache key.
        This is the primary tier.

    KeyValueSnapshotStore
        A Redis-backed store, used as a fallback when the durable tier
        is unavailable. Redis only supports numeric and string value types,
        so snapshots are JSON-encoded through the RedisWrapper class, which
        roughly emulates a memcache instance.

    CacheStore combines the two. Writes overwrite the whole entry for the
    fixed cache key, so a reader only ever sees a complete prior snapshot
    or none at all.

"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Union,
)
from types import ModuleType

import base64
import importlib
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import redis
from sqlalchemy import DateTime, LargeBinary, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from errors import CacheWriteError


@dataclass(frozen=True)
class CacheSnapshot:
    """A complete cached copy of the dictionary"""

    compressed_words: bytes
    compressed_frequencies: bytes
    # Creation instant, timezone-aware UTC
    timestamp: datetime
    schema_version: str

    def age(self, now: datetime) -> timedelta:
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return now - ts

    def is_valid(self, now: datetime, max_age: timedelta, schema_version: str) -> bool:
        """A snapshot may be reused only if it is younger than max_age
        and was written with the current schema version"""
        return self.schema_version == schema_version and self.age(now) < max_age

    def to_serializable(self) -> Dict[str, Any]:
        return {
            "compressedWords": base64.b64encode(self.compressed_words).decode("ascii"),
            "compressedFrequencyTable": base64.b64encode(
                self.compressed_frequencies
            ).decode("ascii"),
            "timestamp": self.timestamp.isoformat(),
            "schemaVersion": self.schema_version,
        }

    @classmethod
    def from_serializable(cls, j: Dict[str, Any]) -> CacheSnapshot:
        ts = datetime.fromisoformat(j["timestamp"])
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return cls(
            compressed_words=base64.b64decode(j["compressedWords"]),
            compressed_frequencies=base64.b64decode(j["compressedFrequencyTable"]),
            timestamp=ts,
            schema_version=str(j["schemaVersion"]),
        )


class SnapshotStore(Protocol):
    """Interface of a single cache tier"""

    name: str

    def read(self, key: str) -> Optional[CacheSnapshot]: ...

    def write(self, key: str, snapshot: CacheSnapshot) -> None: ...

    def delete(self, key: str) -> None: ...


# Durable tier


class Base(DeclarativeBase):
    """Base class for the cache's SQLAlchemy models."""

    pass


class DictionarySnapshotRow(Base):
    """A stored dictionary snapshot, one row per cache key"""

    __tablename__ = "dictionary_snapshots"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    compressed_words: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    compressed_frequencies: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    schema_version: Mapped[str] = mapped_column(String(32), nullable=False)


def create_cache_engine(database_url: str, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the durable cache tier.

    In-memory SQLite databases get a static pool so that every
    session, in any thread, sees the same database.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url, echo=echo, connect_args={"check_same_thread": False}
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


class DurableSnapshotStore:
    """Snapshot storage in a relational database"""

    name = "durable"

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Commits on successful exit, rolls back on exception."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def read(self, key: str) -> Optional[CacheSnapshot]:
        with self._session_factory() as session:
            row = session.get(DictionarySnapshotRow, key)
            if row is None:
                return None
            ts = row.timestamp
            if ts.tzinfo is None:
                # SQLite does not store the time zone
                ts = ts.replace(tzinfo=UTC)
            return CacheSnapshot(
                compressed_words=bytes(row.compressed_words),
                compressed_frequencies=bytes(row.compressed_frequencies),
                timestamp=ts,
                schema_version=row.schema_version,
            )

    def write(self, key: str, snapshot: CacheSnapshot) -> None:
        with self.transaction() as session:
            session.merge(
                DictionarySnapshotRow(
                    key=key,
                    compressed_words=snapshot.compressed_words,
                    compressed_frequencies=snapshot.compressed_frequencies,
                    timestamp=snapshot.timestamp,
                    schema_version=snapshot.schema_version,
                )
            )

    def delete(self, key: str) -> None:
        with self.transaction() as session:
            row = session.get(DictionarySnapshotRow, key)
            if row is not None:
                session.delete(row)

    def close(self) -> None:
        """Close the database engine and all connections."""
        self._engine.dispose()


# Key-value tier

# A cache of imported modules, used to create fresh instances
# when de-serializing JSON objects
_modules: Dict[str, ModuleType] = dict()


def serialize(obj: Any) -> Dict[str, Any]:
    """Return a JSON-serializable representation of an object"""
    cls = obj.__class__
    cls_name = cls.__name__
    module_name = cls.__module__
    # We must be able to recreate an instance of this class
    # during de-serialization
    assert hasattr(obj, "to_serializable"), f"No serializer for {module_name}.{cls_name}"
    assert hasattr(cls, "from_serializable")
    assert module_name and module_name != "__main__"
    return dict(__cls__=cls_name, __module__=module_name, __obj__=obj.to_serializable())


def _dumps(obj: Any) -> str:
    """Returns the given object in JSON format, using the custom serializer
    for composite objects"""
    return json.dumps(obj, default=serialize, ensure_ascii=False, separators=(",", ":"))


def _loads(j: Union[None, str, bytes]) -> Any:
    """Return an instance of a serializable class,
    initialized from a JSON string"""
    if j is None:
        return None
    d: Union[int, str, List[Any], Dict[str, Any]] = json.loads(j)
    if not isinstance(d, dict):
        # This is a primitive object (number, string, list)
        return d
    cls_name = d.get("__cls__")
    if cls_name is None:
        # This is not a custom-serialized instance:
        # return it as-is, i.e. as a plain dict
        return d
    # Obtain the module containing the object's class
    module_name = d["__module__"]
    m = _modules.get(module_name)
    if m is None:
        # Not already imported: do it now
        m = _modules[module_name] = importlib.import_module(module_name)
    cls = getattr(m, cls_name)
    # ...and create the instance by calling from_serializable() on the class
    return cls.from_serializable(d["__obj__"])


class RedisWrapper:
    """Wrapper class around the Redis client,
    making it appear as a simplified memcache instance"""

    def __init__(
        self,
        redis_host: Optional[str] = None,
        redis_port: Optional[int] = None,
        *,
        client: Any = None,
    ) -> None:
        if client is not None:
            # Externally provided client (any object with get/set/delete)
            self._client = client
            return
        redis_host = redis_host or "localhost"
        redis_port = redis_port or 6379
        self._client = redis.Redis(
            host=redis_host, port=redis_port, retry_on_timeout=True
        )

    def _call_with_retry(
        self, func: Callable[..., Any], errval: Any, *args: Any, **kwargs: Any
    ) -> Any:
        """Call a client function, attempting one retry
        upon a connection error"""
        attempts = 0
        while attempts < 2:
            try:
                return func(*args, **kwargs)
            except (
                redis.exceptions.ConnectionError,
                redis.exceptions.TimeoutError,
            ) as e:
                if attempts == 0:
                    logging.warning(f"Retrying Redis call after {repr(e)}")
                else:
                    logging.error(f"Redis error {repr(e)} persisted after retrying")
                attempts += 1
        return errval

    @staticmethod
    def _key(key: str, namespace: Optional[str]) -> str:
        # Redis doesn't have namespaces, so we prepend the namespace id to the key
        return namespace + "|" + key if namespace else key

    def set(
        self,
        key: str,
        value: Any,
        time: Optional[int] = None,
        namespace: Optional[str] = None,
    ) -> Any:
        """Store a value in the cache, under the given key
        and within the given namespace, with an optional
        expiry time in seconds. Returns None if the call failed."""
        return self._call_with_retry(
            self._client.set, None, self._key(key, namespace), _dumps(value), ex=time
        )

    def get(self, key: str, namespace: Optional[str] = None) -> Any:
        """Fetch a value from the cache, under the given key and within
        the given namespace. Returns None if the key is not found."""
        return _loads(
            self._call_with_retry(self._client.get, None, self._key(key, namespace))
        )

    def delete(self, key: str, namespace: Optional[str] = None) -> Any:
        """Delete a value from the cache"""
        return self._call_with_retry(
            self._client.delete, False, self._key(key, namespace)
        )


CACHE_NAMESPACE = "dictionary"


class KeyValueSnapshotStore:
    """Snapshot storage in a key-value store"""

    name = "key-value"

    def __init__(self, wrapper: RedisWrapper, namespace: str = CACHE_NAMESPACE) -> None:
        self._kv = wrapper
        self._namespace = namespace

    def read(self, key: str) -> Optional[CacheSnapshot]:
        value = self._kv.get(key, namespace=self._namespace)
        if value is None:
            return None
        if not isinstance(value, CacheSnapshot):
            # A legacy or foreign entry under our key
            raise ValueError(f"Unexpected cache entry type {type(value).__name__}")
        return value

    def write(self, key: str, snapshot: CacheSnapshot) -> None:
        if self._kv.set(key, snapshot, namespace=self._namespace) is None:
            raise CacheWriteError("Key-value store did not accept the snapshot")

    def delete(self, key: str) -> None:
        self._kv.delete(key, namespace=self._namespace)


# Errors that cause a cache tier to be treated as unavailable
_TIER_ERRORS = (
    SQLAlchemyError,
    redis.exceptions.RedisError,
    CacheWriteError,
    AttributeError,
    KeyError,
    ValueError,
    TypeError,
)


class CacheStore:
    """Two-tier snapshot cache: durable storage first,
    falling back to a simple key-value store"""

    def __init__(
        self,
        key: str,
        durable: Optional[SnapshotStore] = None,
        fallback: Optional[SnapshotStore] = None,
    ) -> None:
        self.key = key
        self._tiers: List[SnapshotStore] = [t for t in (durable, fallback) if t is not None]

    @property
    def tiers(self) -> List[SnapshotStore]:
        return list(self._tiers)

    def read_from(self, tier: SnapshotStore) -> Optional[CacheSnapshot]:
        """Return the snapshot held by a single tier, or None.
        A failing tier is logged and treated as a miss."""
        try:
            snapshot = tier.read(self.key)
        except _TIER_ERRORS as e:
            logging.warning(f"Cache read from {tier.name} tier failed: {repr(e)}")
            return None
        if snapshot is not None:
            logging.info(f"Found dictionary snapshot in {tier.name} cache")
        return snapshot

    def read(
        self, accept: Optional[Callable[[CacheSnapshot], bool]] = None
    ) -> Optional[CacheSnapshot]:
        """Return the snapshot from the first tier that has one
        (and, if given, for which accept() returns True), or None"""
        for tier in self._tiers:
            snapshot = self.read_from(tier)
            if snapshot is not None and (accept is None or accept(snapshot)):
                return snapshot
        return None

    def write(self, snapshot: CacheSnapshot) -> str:
        """Write the snapshot to the first tier that accepts it,
        returning the name of that tier"""
        for tier in self._tiers:
            try:
                tier.write(self.key, snapshot)
            except _TIER_ERRORS as e:
                logging.warning(f"Cache write to {tier.name} tier failed: {repr(e)}")
                continue
            logging.info(f"Dictionary snapshot written to {tier.name} cache")
            return tier.name
        raise CacheWriteError("No cache tier accepted the dictionary snapshot")

    def clear(self) -> None:
        """Remove the cache entry from all tiers"""
        for tier in self._tiers:
            try:
                tier.delete(self.key)
            except _TIER_ERRORS as e:
                logging.warning(f"Cache delete in {tier.name} tier failed: {repr(e)}")


def open_cache_store(
    key: str,
    database_url: Optional[str],
    redis_host: Optional[str] = None,
    redis_port: Optional[int] = None,
    echo: bool = False,
) -> CacheStore:
    """Create a CacheStore from connection settings. A durable tier
    that cannot be opened is left out, with a warning."""
    durable: Optional[DurableSnapshotStore] = None
    if database_url:
        try:
            durable = DurableSnapshotStore(create_cache_engine(database_url, echo=echo))
        except SQLAlchemyError as e:
            logging.warning(f"Durable cache unavailable, using key-value store: {repr(e)}")
    fallback = KeyValueSnapshotStore(RedisWrapper(redis_host, redis_port))
    return CacheStore(key, durable, fallback)
