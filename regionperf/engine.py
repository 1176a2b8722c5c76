"""Core measurement engine for regionperf.

Runs the sampler against every endpoint in rounds:

  warm-up (discarded) -> timed collection window -> statistics

Rounds are paced to a fixed cadence: after a round finishes the loop
sleeps whatever is left of the configured interval.  The window is
measured with a monotonic clock and the loop never starts a round once
the window has closed, so the run overshoots the configured duration by
at most one round.

Public API:
    collect  -- run the warm-up and collection loop with a given sampler
    measure  -- probe connectivity, collect and reduce into a FullResult
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from regionperf.config import WARMUP_ROUNDS
from regionperf.models import CollectionResult, Endpoint, FullResult, MeasurementConfig, ensure_unique_names
from regionperf.retry import interruptible_sleep
from regionperf.sampler import open_sampler
from regionperf.stats import build_report

logger = logging.getLogger(__name__)

# Signature: (percent_elapsed, seconds_remaining, rounds_completed)
ProgressCallback = Callable[[float, float, int], None]


class Sampler(Protocol):
    async def sample(self, url: str) -> Optional[float]: ...


async def _sample_round(
    sampler: Sampler,
    endpoints: Sequence[Endpoint],
    parallel: bool = False,
) -> list[Optional[float]]:
    """Sample every endpoint once, returning results in endpoint order."""
    if parallel:
        return list(await asyncio.gather(*(sampler.sample(e.url) for e in endpoints)))

    results = []
    for endpoint in endpoints:
        results.append(await sampler.sample(endpoint.url))
    return results


async def collect(
    endpoints: Sequence[Endpoint],
    config: MeasurementConfig,
    sampler: Sampler,
    progress_callback: ProgressCallback | None = None,
    stop_event: asyncio.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> CollectionResult:
    """Run the warm-up rounds and the timed collection window.

    Parameters
    ----------
    endpoints:
        Targets sampled once per round, in order.
    config:
        Supplies the interval, duration and parallel flag.
    sampler:
        Object with an async ``sample(url)`` returning milliseconds or
        ``None`` on failure.
    progress_callback:
        Called after each timed round.
    stop_event:
        When set, the loop stops before the next round and any pending
        sleep returns immediately.  The samples gathered so far are kept.
    clock, sleep:
        Time sources, replaceable for tests.
    """
    endpoints = list(endpoints)
    ensure_unique_names(endpoints)
    if stop_event is None:
        stop_event = asyncio.Event()
    if sleep is None:
        sleep = functools.partial(interruptible_sleep, stop_event)

    result = CollectionResult(
        series={e.name: [] for e in endpoints},
        failures={e.name: 0 for e in endpoints},
    )

    # ---- Warm-up: results dropped, time not counted ----
    for i in range(WARMUP_ROUNDS):
        if stop_event.is_set():
            break
        logger.debug("Warm-up round %d/%d", i + 1, WARMUP_ROUNDS)
        await _sample_round(sampler, endpoints, config.parallel)

    # ---- Timed window ----
    duration_s = config.duration_seconds
    start = clock()
    deadline = start + duration_s

    while not stop_event.is_set() and clock() < deadline:
        round_start = clock()
        latencies = await _sample_round(sampler, endpoints, config.parallel)

        for endpoint, latency in zip(endpoints, latencies):
            if latency is None:
                result.failures[endpoint.name] += 1
            else:
                result.series[endpoint.name].append(latency)
        result.rounds += 1

        now = clock()
        if progress_callback:
            percent = min((now - start) / duration_s * 100.0, 100.0)
            progress_callback(percent, max(deadline - now, 0.0), result.rounds)

        pause = min(config.interval_seconds - (now - round_start), deadline - now)
        if pause > 0 and not stop_event.is_set():
            await sleep(pause)

    result.elapsed_s = clock() - start
    result.cancelled = stop_event.is_set()
    if result.cancelled:
        logger.info("Collection stopped after %d rounds (%.1fs)", result.rounds, result.elapsed_s)
    return result


async def measure(
    config: MeasurementConfig,
    progress_callback: ProgressCallback | None = None,
    stop_event: asyncio.Event | None = None,
) -> FullResult:
    """Probe connectivity, run the collection loop and build the report.

    Setting *stop_event* also cuts the startup check short; the result then
    comes back cancelled with whatever was gathered.

    Raises
    ------
    ConnectivityError
        If no enabled endpoint answers the startup probe.
    """
    endpoints = config.enabled_endpoints
    if stop_event is None:
        stop_event = asyncio.Event()
    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

    async with open_sampler(config, endpoints, stop_event=stop_event) as sampler:
        collected = await collect(
            endpoints,
            config,
            sampler,
            progress_callback=progress_callback,
            stop_event=stop_event,
        )

    return FullResult(
        rows=build_report(endpoints, collected),
        config=config,
        rounds=collected.rounds,
        elapsed_s=collected.elapsed_s,
        cancelled=collected.cancelled,
        timestamp=timestamp,
    )
