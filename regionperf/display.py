"""Rich terminal output for regionperf."""

from __future__ import annotations

from itertools import groupby
from typing import Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from regionperf.config import (
    FAST_THRESHOLD_MS,
    JITTER_THRESHOLDS,
    MEDIUM_THRESHOLD_MS,
    REPORT_COLUMNS,
)
from regionperf.models import Endpoint, FullResult, ReportRow

console = Console()

NO_DATA = Text("no data", style="dim italic red")


def _color_for_ms(value: float, jitter: bool = False) -> str:
    """Return a Rich color name based on latency value."""
    if jitter:
        fast, medium = JITTER_THRESHOLDS["fast"], JITTER_THRESHOLDS["medium"]
    else:
        fast, medium = FAST_THRESHOLD_MS, MEDIUM_THRESHOLD_MS
    if value <= fast:
        return "green"
    elif value <= medium:
        return "yellow"
    return "red"


def _fmt_ms(value: Optional[float], jitter: bool = False, colorize: bool = True) -> Text:
    """Format a millisecond value; ``None`` renders as "no data"."""
    if value is None:
        return NO_DATA.copy()
    text = f"{value:.1f}ms"
    if colorize:
        return Text(text, style=_color_for_ms(value, jitter))
    return Text(text)


# ── Progress tracking ─────────────────────────────────────────────────


class ProgressTracker:
    """Live progress display for the collection window."""

    def __init__(self, duration_s: float, endpoint_count: int):
        self.duration_s = duration_s
        self.endpoint_count = endpoint_count
        self.percent = 0.0
        self.remaining_s = duration_s
        self.rounds = 0
        self.collecting = False  # False until the first timed round lands
        self.live: Optional[Live] = None

    def _build_table(self) -> Table:
        table = Table(show_header=False, expand=False, border_style="dim")
        table.add_column("Progress", min_width=20)
        table.add_column("Status")

        bar_width = 30
        filled = min(int(self.percent / 100 * bar_width), bar_width)
        bar = "[green]" + "█" * filled + "[/green]" + "[dim]░[/dim]" * (bar_width - filled)
        if self.collecting:
            status = (
                f"{self.percent:.0f}% | ~{self.remaining_s:.0f}s remaining | "
                f"round {self.rounds} x {self.endpoint_count} regions"
            )
        else:
            status = f"connecting and warming up {self.endpoint_count} regions..."
        table.add_row(bar, status)
        return table

    def start(self) -> None:
        self.live = Live(self._build_table(), console=console, refresh_per_second=4)
        self.live.start()

    def update(self, percent: float, remaining_s: float, rounds: int) -> None:
        self.percent = percent
        self.remaining_s = remaining_s
        self.rounds = rounds
        self.collecting = True
        if self.live:
            self.live.update(self._build_table())

    def finish(self) -> None:
        if self.live:
            self.live.stop()


# ── Report rendering ──────────────────────────────────────────────────


def build_report_table(rows: Sequence[ReportRow], verbose: bool = False) -> Table:
    """Build the per-region summary table, one section per geography."""
    table = Table(
        show_header=True,
        border_style="bright_black",
        expand=False,
        pad_edge=True,
        header_style="bold",
    )
    region_col, min_col, max_col, avg_col, jitter_col = REPORT_COLUMNS
    table.add_column(region_col, style="bold", min_width=14)
    table.add_column(min_col, justify="right")
    table.add_column(max_col, justify="right")
    table.add_column(avg_col, justify="right")
    table.add_column(jitter_col, justify="right")
    table.add_column("Samples", justify="right", style="dim")
    if verbose:
        table.add_column("Median", justify="right")
        table.add_column("P95", justify="right")
        table.add_column("Failed", justify="right", style="dim")

    groups = [(geo, list(grp)) for geo, grp in groupby(rows, key=lambda r: r.geography)]
    for gi, (geography, members) in enumerate(groups):
        if len(groups) > 1:
            table.add_row(Text(geography, style="cyan"), *[""] * (len(table.columns) - 1))
        for ri, row in enumerate(members):
            cells = [
                row.region,
                _fmt_ms(row.minimum),
                _fmt_ms(row.maximum),
                _fmt_ms(row.average),
                _fmt_ms(row.jitter, jitter=True),
                str(row.sample_count),
            ]
            if verbose:
                cells.append(_fmt_ms(row.stats.median if row.stats else None))
                cells.append(_fmt_ms(row.stats.p95 if row.stats else None))
                cells.append(str(row.failure_count))
            last = ri == len(members) - 1 and gi < len(groups) - 1
            table.add_row(*cells, end_section=last)

    return table


def render_report(result: FullResult, verbose: bool = False) -> None:
    """Render the complete measurement results."""
    if not result.rows:
        console.print("[dim]No regions measured.[/dim]")
        return

    console.print()
    console.print(build_report_table(result.rows, verbose=verbose))

    summary = f"{result.rounds} rounds in {result.elapsed_s:.0f}s"
    if result.cancelled:
        summary += " [yellow](interrupted, partial results)[/yellow]"
    console.print(f"  [dim]{summary}[/dim]")

    missing = [r.region for r in result.rows if not r.has_data]
    if missing:
        render_warning(f"No successful samples for: {', '.join(missing)}")


def render_regions(endpoints: Sequence[Endpoint]) -> None:
    """List the built-in regions and whether each is enabled by default."""
    table = Table(show_header=True, border_style="bright_black", header_style="bold")
    table.add_column("Region", style="bold")
    table.add_column("Geography")
    table.add_column("Default", justify="center")
    table.add_column("URL", style="dim")
    for e in sorted(endpoints, key=lambda e: (e.geography, e.name)):
        table.add_row(e.name, e.geography, "✓" if e.enabled else "", e.url)
    console.print(table)


def render_error(message: str) -> None:
    """Display an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def render_warning(message: str) -> None:
    """Display a warning message."""
    console.print(f"[yellow]Warning:[/yellow] {message}")
