"""

    Error types for the word study engine

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    Loading the dictionary can fail in a handful of well-defined ways.
    Some of these (CorruptPayload, FetchFailed, CacheWriteError) are
    recovered from inside the loader, while others (SourceUnavailable,
    DictionaryNotReady, InvalidQuery) are surfaced to the caller,
    typically as an error message through the worker's response channel.

"""

from __future__ import annotations


class DictionaryError(Exception):
    """Base class for all errors raised by the engine"""

    pass


class SourceUnavailable(DictionaryError):
    """Raised when neither the cache nor the network can provide
    the word list"""

    pass


class CorruptPayload(DictionaryError):
    """Raised when a cached payload cannot be decoded"""

    pass


class FetchFailed(DictionaryError):
    """A single attempt at fetching the word list failed"""

    pass


class FetchTimeout(FetchFailed):
    """A single fetch attempt exceeded its time limit"""

    pass


class CacheWriteError(DictionaryError):
    """No cache tier accepted a snapshot write"""

    pass


class DictionaryNotReady(DictionaryError):
    """A query arrived before the dictionary was loaded"""

    def __init__(self, message: str = "Dictionary not loaded yet.") -> None:
        super().__init__(message)


class InvalidQuery(DictionaryError, ValueError):
    """The search parameters are malformed"""

    pass
