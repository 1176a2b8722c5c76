"""Bounded retry with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

BackoffFn = Callable[[int], float]


@dataclass
class RetryResult(Generic[T]):
    """Outcome of :func:`retry_async`: either a value or the last error."""

    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


async def interruptible_sleep(stop_event: asyncio.Event, seconds: float) -> None:
    """Sleep for *seconds*, returning early once *stop_event* is set."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return


def exponential_backoff(base: float = 1.0, factor: float = 2.0, max_delay: float = 30.0) -> BackoffFn:
    """Return a backoff function giving ``base * factor**(attempt-1)``, capped."""

    def _delay(attempt: int) -> float:
        return min(base * factor ** (attempt - 1), max_delay)

    return _delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    backoff_fn: BackoffFn | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    stop_event: asyncio.Event | None = None,
) -> RetryResult[T]:
    """Run *operation* until it succeeds or *max_attempts* is exhausted.

    Exceptions listed in *retry_on* are retried after ``backoff_fn(attempt)``
    seconds; anything else propagates immediately.  No sleep happens after
    the final attempt.  Once *stop_event* is set no further attempt is made
    and the last error is returned.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if backoff_fn is None:
        backoff_fn = exponential_backoff()

    last_error: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            value = await operation()
            return RetryResult(value=value, attempts=attempt)
        except retry_on as exc:
            last_error = exc
            if attempt == max_attempts or (stop_event is not None and stop_event.is_set()):
                return RetryResult(error=last_error, attempts=attempt)
            delay = backoff_fn(attempt)
            logger.info(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt,
                max_attempts,
                exc,
                delay,
            )
            await sleep(delay)
            if stop_event is not None and stop_event.is_set():
                return RetryResult(error=last_error, attempts=attempt)

    return RetryResult(error=last_error, attempts=max_attempts)
