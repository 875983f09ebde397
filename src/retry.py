"""

    Retry policy for fetching remote resources

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    RetryPolicy runs an asynchronous operation up to max_attempts times,
    racing each attempt against a timeout and waiting attempt * backoff
    seconds between attempts (linear backoff: 1s, 2s, ...).

    A timeout is converted to FetchTimeout and counts as one attempt,
    just like any other FetchFailed error. Other exceptions are not
    retried. When all attempts have failed, the last error is re-raised.

"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

import asyncio
import logging
from dataclasses import dataclass, field

from errors import FetchFailed, FetchTimeout


T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RetryPolicy:
    """Bounded retries with linear backoff and a per-attempt timeout"""

    max_attempts: int = 3
    # Seconds to wait after the first failed attempt; multiplied
    # by the attempt number for subsequent ones
    backoff: float = 1.0
    # Seconds allowed for each attempt; None means no limit
    timeout: Optional[float] = 10.0
    sleep: SleepFunc = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff < 0:
            raise ValueError("backoff must be non-negative")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt"""
        return attempt * self.backoff

    async def _attempt(self, op: Callable[[], Awaitable[T]]) -> T:
        if self.timeout is None:
            return await op()
        try:
            return await asyncio.wait_for(op(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeout(f"Timed out after {self.timeout:.1f} seconds") from e

    async def run(self, op: Callable[[], Awaitable[T]], what: str = "operation") -> T:
        """Run the operation until it succeeds or the attempts are exhausted"""
        last_error: Optional[FetchFailed] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(op)
            except FetchFailed as e:
                last_error = e
                logging.warning(
                    f"Attempt {attempt}/{self.max_attempts} at {what} failed: {e}"
                )
                if attempt < self.max_attempts:
                    await self.sleep(self.delay(attempt))
        assert last_error is not None
        raise last_error
