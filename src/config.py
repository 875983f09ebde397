"""

    Configuration data

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl


    This module reads a number of configuration parameters
    from environment variables, and sets up logging.

"""

from __future__ import annotations

from typing import Optional

import os
import logging
from dataclasses import dataclass
from datetime import timedelta
from logging.config import dictConfig


DEFAULT_WORDLIST_URL = "http://localhost:8080/dictionaries/CSW24.txt"
DEFAULT_CACHE_DATABASE_URL = "sqlite:///dictionary-cache.db"

# Fixed identity of the dictionary cache entry
DEFAULT_CACHE_KEY = "dictionary_cache_v2"
# Snapshots written with a different schema version are ignored
CACHE_SCHEMA_VERSION = "1.0.0"


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes")


@dataclass
class EngineConfig:
    """Configuration settings for the dictionary engine"""

    # Where the raw word list is fetched from
    wordlist_url: str

    # Durable cache tier: SQLAlchemy database URL
    cache_database_url: str
    # Fallback cache tier: Redis host and port
    redis_host: str
    redis_port: int

    cache_key: str
    schema_version: str
    max_cache_age: timedelta

    # Network fetch policy
    fetch_attempts: int
    fetch_backoff: float
    fetch_timeout: float

    # Number of words scored between cooperative yields
    frequency_chunk_size: int

    # Maximum number of results sorted and returned by a search
    search_result_limit: int

    log_level: str
    echo_sql: bool

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create configuration from environment variables."""
        return cls(
            wordlist_url=os.environ.get("WORDLIST_URL", DEFAULT_WORDLIST_URL),
            cache_database_url=os.environ.get(
                "CACHE_DATABASE_URL", DEFAULT_CACHE_DATABASE_URL
            ),
            redis_host=os.environ.get("REDISHOST", "localhost"),
            redis_port=int(os.environ.get("REDISPORT", "6379")),
            cache_key=os.environ.get("CACHE_KEY", DEFAULT_CACHE_KEY),
            schema_version=os.environ.get("CACHE_SCHEMA_VERSION", CACHE_SCHEMA_VERSION),
            max_cache_age=timedelta(
                days=float(os.environ.get("CACHE_MAX_AGE_DAYS", "7"))
            ),
            fetch_attempts=int(os.environ.get("FETCH_ATTEMPTS", "3")),
            fetch_backoff=float(os.environ.get("FETCH_BACKOFF_SECONDS", "1.0")),
            fetch_timeout=float(os.environ.get("FETCH_TIMEOUT_SECONDS", "10.0")),
            frequency_chunk_size=int(os.environ.get("FREQUENCY_CHUNK_SIZE", "5000")),
            search_result_limit=int(os.environ.get("SEARCH_RESULT_LIMIT", "10000")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            echo_sql=_env_bool("CACHE_ECHO_SQL"),
        )


# Global configuration instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the engine configuration, initializing from environment if needed."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def set_config(config: Optional[EngineConfig]) -> None:
    """Set the engine configuration (useful for testing)."""
    global _config
    _config = config


def init_logging(level: Optional[str] = None) -> None:
    """Configure the root logger"""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "[%(asctime)s] %(levelname)s in %(module)s: %(message)s",
                }
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "default",
                }
            },
            "root": {
                "level": level or get_config().log_level,
                "handlers": ["stream"],
            },
        }
    )
    logging.debug("Logging initialized")
