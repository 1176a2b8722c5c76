"""Data models for regionperf."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from regionperf.config import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PROBE_ATTEMPTS,
    DEFAULT_TIMEOUT,
)
from regionperf.errors import ConfigurationError


@dataclass(frozen=True)
class Endpoint:
    """A named probe target."""

    name: str  # Region name (e.g. "eastus")
    url: str
    geography: str = "Custom"  # Global region used to group the report
    enabled: bool = True


@dataclass
class LatencyStats:
    """Aggregated statistics for one region's sample series."""

    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    median: float = 0.0
    p95: float = 0.0
    stdev: float = 0.0
    jitter: float = 0.0


@dataclass
class CollectionResult:
    """Samples gathered by the collection loop."""

    series: dict[str, list[float]] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    rounds: int = 0
    elapsed_s: float = 0.0
    cancelled: bool = False


@dataclass
class ReportRow:
    """One line of the final report."""

    region: str
    geography: str
    url: str = ""
    sample_count: int = 0
    failure_count: int = 0
    stats: Optional[LatencyStats] = None  # None means no successful samples

    @property
    def has_data(self) -> bool:
        return self.stats is not None

    @property
    def minimum(self) -> Optional[float]:
        return self.stats.min if self.stats else None

    @property
    def maximum(self) -> Optional[float]:
        return self.stats.max if self.stats else None

    @property
    def average(self) -> Optional[float]:
        return self.stats.avg if self.stats else None

    @property
    def jitter(self) -> Optional[float]:
        return self.stats.jitter if self.stats else None


@dataclass(frozen=True)
class MeasurementConfig:
    """Configuration for a measurement run."""

    endpoints: tuple[Endpoint, ...] = ()
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    duration_minutes: float = DEFAULT_DURATION_MINUTES
    timeout: float = DEFAULT_TIMEOUT
    probe_attempts: int = DEFAULT_PROBE_ATTEMPTS
    parallel: bool = False
    tls_fallback: bool = False
    verbose: bool = False
    quiet: bool = False
    json_output: bool = False
    csv_output: bool = False
    output_file: Optional[str] = None

    def __post_init__(self) -> None:
        ensure_unique_names(self.endpoints)

    @property
    def duration_seconds(self) -> float:
        return self.duration_minutes * 60.0

    @property
    def enabled_endpoints(self) -> tuple[Endpoint, ...]:
        return tuple(e for e in self.endpoints if e.enabled)

    @property
    def interactive(self) -> bool:
        return not self.quiet and not self.json_output and not self.csv_output


@dataclass
class FullResult:
    """Complete measurement run results."""

    rows: list[ReportRow] = field(default_factory=list)
    config: Optional[MeasurementConfig] = None
    rounds: int = 0
    elapsed_s: float = 0.0
    cancelled: bool = False
    timestamp: Optional[str] = None


def ensure_unique_names(endpoints: Iterable[Endpoint]) -> None:
    """Reject endpoint lists where two targets share a name.

    Samples are keyed by name, so a clash would merge two hosts into one
    series.
    """
    counts = Counter(e.name for e in endpoints)
    duplicates = sorted(name for name, count in counts.items() if count > 1)
    if duplicates:
        raise ConfigurationError(f"Duplicate endpoint names: {', '.join(duplicates)}")
