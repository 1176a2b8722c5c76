"""Statistical aggregation for latency measurements."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from regionperf.models import CollectionResult, Endpoint, LatencyStats, ReportRow


def compute_stats(values: Sequence[float]) -> Optional[LatencyStats]:
    """Compute statistical summary from a series of latencies.

    Returns ``None`` for an empty series so callers can tell "no data" apart
    from a genuine zero.
    """
    if not values:
        return None

    sorted_vals = sorted(values)
    n = len(sorted_vals)

    avg = math.fsum(sorted_vals) / n
    # Float division can land a hair outside [min, max]
    avg = min(max(avg, sorted_vals[0]), sorted_vals[-1])

    variance = math.fsum((v - avg) ** 2 for v in sorted_vals) / n if n > 1 else 0.0

    return LatencyStats(
        min=sorted_vals[0],
        max=sorted_vals[-1],
        avg=avg,
        median=_percentile(sorted_vals, 50),
        p95=_percentile(sorted_vals, 95),
        stdev=math.sqrt(variance),
        jitter=compute_jitter(values),
    )


def _percentile(sorted_vals: list[float], pct: float) -> float:
    """Compute the given percentile from pre-sorted values."""
    n = len(sorted_vals)
    if n == 1:
        return sorted_vals[0]
    k = (pct / 100) * (n - 1)
    f = math.floor(k)
    c = math.ceil(k)
    if f == c:
        return sorted_vals[int(k)]
    return sorted_vals[f] * (c - k) + sorted_vals[c] * (k - f)


def compute_jitter(values: Sequence[float]) -> float:
    """Compute jitter as average absolute difference between consecutive samples."""
    if len(values) < 2:
        return 0.0
    diffs = [abs(values[i + 1] - values[i]) for i in range(len(values) - 1)]
    return sum(diffs) / len(diffs)


def build_report(endpoints: Sequence[Endpoint], result: CollectionResult) -> list[ReportRow]:
    """Reduce collected series into report rows ordered by geography, then region."""
    rows = []
    for endpoint in endpoints:
        series = result.series.get(endpoint.name, [])
        rows.append(
            ReportRow(
                region=endpoint.name,
                geography=endpoint.geography,
                url=endpoint.url,
                sample_count=len(series),
                failure_count=result.failures.get(endpoint.name, 0),
                stats=compute_stats(series),
            )
        )
    return sorted(rows, key=lambda r: (r.geography, r.region))
