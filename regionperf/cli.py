"""CLI entry point and orchestration for regionperf."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

import click
from rich.console import Console
from rich.logging import RichHandler

from regionperf import __version__
from regionperf.config import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PROBE_ATTEMPTS,
    DEFAULT_TIMEOUT,
    ENV_PREFIX,
    MIN_PYTHON,
)
from regionperf.errors import ConfigurationError, RegionPerfError
from regionperf.models import FullResult, MeasurementConfig, ensure_unique_names

logger = logging.getLogger(__name__)


@click.command(context_settings={"auto_envvar_prefix": ENV_PREFIX})
@click.option("-i", "--interval-seconds", default=DEFAULT_INTERVAL_SECONDS, type=click.FloatRange(min=0, min_open=True),
              help="Target seconds between the start of consecutive rounds", show_default=True)
@click.option("-d", "--duration-minutes", default=DEFAULT_DURATION_MINUTES, type=click.FloatRange(min=0),
              help="Length of the timed collection window", show_default=True)
@click.option("-t", "--timeout", default=DEFAULT_TIMEOUT, type=click.FloatRange(min=0, min_open=True),
              help="Request timeout in seconds", show_default=True)
@click.option("-r", "--regions", default="", help="Comma-separated regions [default: enabled set]")
@click.option("--all-regions", is_flag=True, help="Measure every built-in region")
@click.option("-u", "--url", "urls", multiple=True, metavar="NAME=URL", help="Extra endpoint to measure (repeatable)")
@click.option("--parallel", is_flag=True, help="Sample all regions of a round concurrently")
@click.option("--tls-fallback", is_flag=True, help="Retry the connectivity probe with older TLS versions")
@click.option("--probe-attempts", default=DEFAULT_PROBE_ATTEMPTS, type=click.IntRange(min=1),
              help="Connectivity probe attempts per TLS configuration", show_default=True)
@click.option("--json", "json_output", is_flag=True, help="Output JSON to stdout")
@click.option("--csv", "csv_output", is_flag=True, help="Output CSV to stdout")
@click.option("-o", "--output", default=None, help="Write results to file")
@click.option("-q", "--quiet", is_flag=True, help="Suppress progress, show only results")
@click.option("-v", "--verbose", is_flag=True, help="Show median/P95 columns and debug logging")
@click.option("--list-regions", is_flag=True, help="List built-in regions and exit")
@click.version_option(version=__version__)
def main(
    interval_seconds: float,
    duration_minutes: float,
    timeout: float,
    regions: str,
    all_regions: bool,
    urls: tuple[str, ...],
    parallel: bool,
    tls_fallback: bool,
    probe_attempts: int,
    json_output: bool,
    csv_output: bool,
    output: str | None,
    quiet: bool,
    verbose: bool,
    list_regions: bool,
) -> None:
    """regionperf: Azure region latency measurement tool.

    Repeatedly downloads a small blob from each selected region for a
    fixed window and reports minimum, maximum, average latency and jitter.
    """
    from regionperf.display import render_error, render_regions, render_warning
    from regionperf.regions import get_endpoint_map, parse_custom_endpoint, select_endpoints

    if sys.version_info < MIN_PYTHON:
        render_error(f"Python {'.'.join(map(str, MIN_PYTHON))} or newer is required")
        sys.exit(1)

    _configure_logging(verbose=verbose, quiet=quiet)

    if list_regions:
        render_regions(list(get_endpoint_map().values()))
        return

    interactive = not quiet and not json_output and not csv_output
    if interactive:
        for var in ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy"):
            if os.environ.get(var):
                render_warning(f"Proxy detected ({var}={os.environ[var]}), results include the proxy hop")
                break

    try:
        names = [n for n in regions.split(",") if n.strip()]
        custom = [parse_custom_endpoint(u) for u in urls]
        if custom and not names and not all_regions:
            endpoints = tuple(custom)
        else:
            endpoints = select_endpoints(names, include_all=all_regions) + tuple(custom)
        if not endpoints:
            raise ConfigurationError("No regions selected")
        ensure_unique_names(endpoints)
    except ConfigurationError as exc:
        render_error(str(exc))
        sys.exit(1)

    config = MeasurementConfig(
        endpoints=endpoints,
        interval_seconds=interval_seconds,
        duration_minutes=duration_minutes,
        timeout=timeout,
        probe_attempts=probe_attempts,
        parallel=parallel,
        tls_fallback=tls_fallback,
        verbose=verbose,
        quiet=quiet,
        json_output=json_output,
        csv_output=csv_output,
        output_file=output,
    )

    try:
        result = asyncio.run(_run(config))
    except RegionPerfError as exc:
        render_error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        if interactive:
            from regionperf.display import console
            console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)

    _handle_output(result, config)


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Send log records to stderr through Rich."""
    level = logging.DEBUG if verbose else (logging.ERROR if quiet else logging.WARNING)
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    root = logging.getLogger("regionperf")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    """Turn SIGINT/SIGTERM into a graceful stop of the collection loop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops: Ctrl+C falls back to KeyboardInterrupt
            logger.debug("Signal handler for %s not supported", sig)


async def _run(config: MeasurementConfig) -> FullResult:
    """Main async orchestration."""
    from regionperf.display import ProgressTracker, console
    from regionperf.engine import measure

    stop_event = asyncio.Event()
    _install_stop_handlers(stop_event)

    progress = None
    if config.interactive:
        progress = ProgressTracker(config.duration_seconds, len(config.enabled_endpoints))
        console.print(
            f"[bold]Measuring {len(config.enabled_endpoints)} regions for "
            f"{config.duration_minutes:g} min, every {config.interval_seconds:g}s...[/bold]\n"
        )
        progress.start()

    def on_progress(percent: float, remaining_s: float, rounds: int) -> None:
        if progress:
            progress.update(percent, remaining_s, rounds)

    try:
        return await measure(config, progress_callback=on_progress, stop_event=stop_event)
    finally:
        if progress:
            progress.finish()


def _handle_output(result: FullResult, config: MeasurementConfig) -> None:
    """Handle output rendering and export."""
    from regionperf.display import console, render_report
    from regionperf.export import export_csv, export_json, write_to_file

    if config.json_output or config.csv_output:
        content = export_json(result) if config.json_output else export_csv(result)
        if config.output_file:
            write_to_file(content, config.output_file)
            if not config.quiet:
                console.print(f"[dim]Results written to {config.output_file}[/dim]")
        else:
            click.echo(content)
        return

    render_report(result, verbose=config.verbose)

    # Also write to file if -o specified (table mode writes JSON)
    if config.output_file:
        write_to_file(export_json(result), config.output_file)
        console.print(f"\n[dim]Results written to {config.output_file}[/dim]")


if __name__ == "__main__":
    main()
