"""Concurrency gate, start-rate governor and retry handler for AI requests."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..errors import ConfigurationError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyGate:
    """Counting semaphore bounding simultaneous tasks.

    ``execute`` queues when at capacity and runs immediately otherwise.
    At any instant ``running_count <= max_concurrent``.
    """

    def __init__(self, max_concurrent: int, description: str = "tasks"):
        if max_concurrent <= 0:
            raise ConfigurationError(
                f"max_concurrent for {description} must be positive, got {max_concurrent}"
            )
        self.max_concurrent = max_concurrent
        self.description = description
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._running = 0
        self._waiting = 0
        self.peak_running = 0
        self.completed = 0
        self.failed = 0

    @property
    def running_count(self) -> int:
        return self._running

    @property
    def queue_size(self) -> int:
        return self._waiting

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        self._waiting += 1
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting -= 1

        self._running += 1
        self.peak_running = max(self.peak_running, self._running)
        try:
            result = await fn()
        except BaseException:
            self.failed += 1
            raise
        else:
            self.completed += 1
            return result
        finally:
            self._running -= 1
            self._semaphore.release()

    async def execute_all(
        self, fns: list[Callable[[], Awaitable[T]]], return_exceptions: bool = False
    ) -> list[Any]:
        """Run every task under the same bound. Results keep input order."""
        return await asyncio.gather(
            *(self.execute(fn) for fn in fns), return_exceptions=return_exceptions
        )

    def stats(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "max_concurrent": self.max_concurrent,
            "running": self._running,
            "queued": self._waiting,
            "peak_running": self.peak_running,
            "completed": self.completed,
            "failed": self.failed,
        }


class RateGovernor:
    """Paces task starts through a ConcurrencyGate.

    The minimum delay is measured from the previous task's start, not its
    completion. Failures propagate unchanged; retrying is the caller's job.
    """

    def __init__(self, gate: ConcurrencyGate, delay_seconds: float = 0.0):
        self.gate = gate
        self.delay_seconds = max(0.0, delay_seconds)
        self._last_start: Optional[float] = None
        self._start_lock = asyncio.Lock()

    async def _wait_turn(self) -> None:
        async with self._start_lock:
            if self._last_start is not None and self.delay_seconds > 0:
                wait = self._last_start + self.delay_seconds - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_start = time.monotonic()

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        async def _paced() -> T:
            await self._wait_turn()
            return await fn()

        return await self.gate.execute(_paced)


class RetryHandler:
    """Retries transient provider failures with exponential backoff.

    Backoff schedule: base_delay * 2^attempt with +/-25% jitter. The loop
    makes at most ``max_retries + 1`` attempts, then re-raises the last
    error. Non-transient errors are raised immediately.
    """

    _TRANSIENT_KEYWORDS = (
        "rate limit",
        "rate_limit",
        "429",
        "too many requests",
        "timeout",
        "timed out",
        "overloaded",
        "502",
        "503",
        "504",
        "connection reset",
        "temporarily unavailable",
    )

    def __init__(
        self,
        max_retries: int = 5,
        base_delay: float = 1.0,
        jitter: float = 0.25,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_retries = max(0, max_retries)
        self.base_delay = base_delay
        self.jitter = jitter
        self._sleep = sleep

    def is_transient(self, error: Exception) -> bool:
        if isinstance(error, TransientProviderError):
            return True
        msg = str(error).lower()
        return any(kw in msg for kw in self._TRANSIENT_KEYWORDS)

    def delay_for(self, attempt: int) -> float:
        wait = self.base_delay * (2 ** attempt)
        jitter = wait * self.jitter * (2 * random.random() - 1)
        return max(0.0, wait + jitter)

    async def execute_with_retry(
        self, fn: Callable[..., Awaitable[T]], *args: Any, label: str = "request", **kwargs: Any
    ) -> T:
        """Await fn, retrying transient errors."""
        for attempt in range(self.max_retries + 1):
            try:
                return await fn(*args, **kwargs)
            except Exception as e:
                if not self.is_transient(e) or attempt >= self.max_retries:
                    raise
                wait = self.delay_for(attempt)
                logger.warning(
                    "Transient failure on %s. Retry %d/%d in %.1fs: %s",
                    label,
                    attempt + 1,
                    self.max_retries,
                    wait,
                    e,
                )
                await self._sleep(wait)

        # Unreachable: the last attempt either returns or raises
        raise RuntimeError("retry loop exited without result")
