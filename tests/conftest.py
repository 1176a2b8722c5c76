"""Pytest configuration and fixtures for the regionperf tests."""

from __future__ import annotations

from typing import Callable, Optional, Union

import pytest

from regionperf.models import Endpoint, MeasurementConfig

Latency = Union[Optional[float], Callable[[int], Optional[float]]]


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeSampler:
    """Returns scripted latencies per URL, charging *cost_s* of clock time per call.

    A latency may be a callable taking the 1-based call number across all
    URLs, to vary results over time.
    """

    def __init__(self, clock: FakeClock, latencies: dict[str, Latency], cost_s: float = 0.0):
        self.clock = clock
        self.latencies = latencies
        self.cost_s = cost_s
        self.calls: list[str] = []

    async def sample(self, url: str) -> Optional[float]:
        self.calls.append(url)
        self.clock.advance(self.cost_s)
        value = self.latencies[url]
        return value(len(self.calls)) if callable(value) else value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def two_endpoints() -> tuple[Endpoint, Endpoint]:
    """Two endpoints in different geographies."""
    return (
        Endpoint("alpha", "https://alpha.example.test/blob", "Europe"),
        Endpoint("beta", "https://beta.example.test/blob", "Americas"),
    )


def make_config(endpoints=(), **overrides) -> MeasurementConfig:
    values = {"interval_seconds": 5.0, "duration_minutes": 0.5, "probe_attempts": 1}
    values.update(overrides)
    return MeasurementConfig(endpoints=tuple(endpoints), **values)
