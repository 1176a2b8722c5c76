"""JSON and CSV export for measurement results."""

from __future__ import annotations

import csv
import io
import json

from regionperf.config import REPORT_COLUMNS
from regionperf.models import FullResult, ReportRow


def export_json(result: FullResult, indent: int = 2) -> str:
    """Export full results as JSON string."""
    data = _build_export_dict(result)
    return json.dumps(data, indent=indent, default=str)


def export_csv(result: FullResult) -> str:
    """Export results as CSV string (one row per region).

    Regions without samples get empty statistic cells rather than zeros.
    """
    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([
        "Timestamp",
        "Geography",
        *REPORT_COLUMNS,
        "MedianLatencyMilliseconds",
        "P95LatencyMilliseconds",
        "Samples",
        "Failures",
    ])

    for row in result.rows:
        stats = row.stats
        writer.writerow([
            result.timestamp or "",
            row.geography,
            row.region,
            *(
                [stats.min, stats.max, stats.avg, stats.jitter, stats.median, stats.p95]
                if stats
                else [""] * 6
            ),
            row.sample_count,
            row.failure_count,
        ])

    return output.getvalue()


def write_to_file(content: str, filepath: str) -> None:
    """Write export content to a file."""
    with open(filepath, "w") as f:
        f.write(content)


def _build_export_dict(result: FullResult) -> dict:
    """Build a serializable dictionary from FullResult."""
    data: dict = {}

    if result.timestamp:
        data["timestamp"] = result.timestamp

    if result.config:
        data["config"] = {
            "interval_seconds": result.config.interval_seconds,
            "duration_minutes": result.config.duration_minutes,
            "timeout": result.config.timeout,
            "parallel": result.config.parallel,
            "tls_fallback": result.config.tls_fallback,
        }

    data["rounds"] = result.rounds
    data["elapsed_seconds"] = round(result.elapsed_s, 3)
    data["cancelled"] = result.cancelled
    data["regions"] = [_row_to_dict(row) for row in result.rows]
    return data


def _row_to_dict(row: ReportRow) -> dict:
    """Convert a ReportRow to a serializable dict; missing stats become null."""
    rdata: dict = {
        "region": row.region,
        "geography": row.geography,
        "url": row.url,
        "samples": row.sample_count,
        "failures": row.failure_count,
        "stats": None,
    }
    if row.stats:
        rdata["stats"] = {
            "min": row.stats.min,
            "max": row.stats.max,
            "avg": row.stats.avg,
            "median": row.stats.median,
            "p95": row.stats.p95,
            "stdev": row.stats.stdev,
            "jitter": row.stats.jitter,
        }
    return rdata
