"""HTTP latency sampler and startup connectivity probe.

One :class:`httpx.AsyncClient` is shared by every sample so the connection
pool stays warm; together with the warm-up rounds this keeps TCP and TLS
setup out of the recorded latencies.

Public API:
    LatencySampler -- time a single GET against a URL
    build_client   -- create the shared client
    open_sampler   -- probe connectivity and yield a ready sampler
"""

from __future__ import annotations

import asyncio
import functools
import logging
import ssl
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional, Sequence

import httpx

from regionperf.config import (
    PROBE_BACKOFF_BASE,
    PROBE_BACKOFF_FACTOR,
    PROBE_BACKOFF_MAX,
    PROBE_HEADERS,
)
from regionperf.errors import ConnectivityError
from regionperf.models import Endpoint, MeasurementConfig
from regionperf.retry import exponential_backoff, interruptible_sleep, retry_async

logger = logging.getLogger(__name__)

# Tried in order, only when the TLS compatibility shim is switched on.
TLS_FALLBACK_VERSIONS: list[ssl.TLSVersion] = [
    ssl.TLSVersion.TLSv1_2,
    ssl.TLSVersion.TLSv1_1,
    ssl.TLSVersion.TLSv1,
]

ClientFactory = Callable[[MeasurementConfig, Optional[ssl.TLSVersion]], httpx.AsyncClient]


class LatencySampler:
    """Times GET requests over a persistent client."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def sample(self, url: str) -> Optional[float]:
        """Return the round-trip time to *url* in milliseconds.

        Returns ``None`` when the request fails or the status is not 2xx;
        per-request errors never escape this method.
        """
        t0 = time.perf_counter()
        try:
            response = await self.client.get(url, headers=PROBE_HEADERS)
        except httpx.HTTPError as exc:
            logger.debug("Request to %s failed: %s", url, exc)
            return None
        elapsed_ms = (time.perf_counter() - t0) * 1000.0

        if not response.is_success:
            logger.debug("Request to %s returned HTTP %d", url, response.status_code)
            return None
        return elapsed_ms

    async def aclose(self) -> None:
        await self.client.aclose()


# ---------------------------------------------------------------------------
# Client construction
# ---------------------------------------------------------------------------

def _build_ssl_context(tls_version: Optional[ssl.TLSVersion] = None) -> ssl.SSLContext:
    """Build a verifying SSL context, optionally pinned to one TLS version."""
    ctx = ssl.create_default_context()
    if tls_version is not None:
        ctx.minimum_version = tls_version
        ctx.maximum_version = tls_version
    return ctx


def build_client(
    config: MeasurementConfig,
    tls_version: Optional[ssl.TLSVersion] = None,
) -> httpx.AsyncClient:
    """Create the shared client with an explicit timeout and HTTP/2 enabled."""
    return httpx.AsyncClient(
        http2=True,
        verify=_build_ssl_context(tls_version),
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=True,
    )


# ---------------------------------------------------------------------------
# Startup connectivity probe
# ---------------------------------------------------------------------------

async def probe_endpoints(
    sampler: LatencySampler,
    endpoints: Sequence[Endpoint],
    stop_event: asyncio.Event | None = None,
) -> list[str]:
    """Sample each endpoint once and return the names that answered.

    If *stop_event* is set the remaining endpoints are skipped and the names
    found so far are returned, possibly none.

    Raises
    ------
    ConnectivityError
        If not a single endpoint answered.
    """
    reachable = []
    for endpoint in endpoints:
        if stop_event is not None and stop_event.is_set():
            return reachable
        if await sampler.sample(endpoint.url) is not None:
            reachable.append(endpoint.name)
    if not reachable:
        raise ConnectivityError(f"None of {len(endpoints)} endpoints responded")
    return reachable


@asynccontextmanager
async def open_sampler(
    config: MeasurementConfig,
    endpoints: Sequence[Endpoint] | None = None,
    client_factory: ClientFactory | None = None,
    stop_event: asyncio.Event | None = None,
) -> AsyncIterator[LatencySampler]:
    """Yield a sampler whose client has reached at least one endpoint.

    The probe is retried ``config.probe_attempts`` times with exponential
    backoff.  With ``config.tls_fallback`` set, a failed probe is repeated
    under progressively older pinned TLS versions before giving up.

    Setting *stop_event* ends the probe at the next endpoint or backoff and
    yields the current sampler as is, so the caller can wind down normally.
    The client is closed on every exit path.

    Raises
    ------
    ConnectivityError
        If every attempted configuration failed to reach any endpoint.
    """
    if endpoints is None:
        endpoints = config.enabled_endpoints
    if client_factory is None:
        client_factory = build_client
    if stop_event is None:
        stop_event = asyncio.Event()

    tls_versions: list[Optional[ssl.TLSVersion]] = [None]
    if config.tls_fallback:
        tls_versions.extend(TLS_FALLBACK_VERSIONS)

    backoff = exponential_backoff(PROBE_BACKOFF_BASE, PROBE_BACKOFF_FACTOR, PROBE_BACKOFF_MAX)
    last_error: BaseException | None = None

    for tls_version in tls_versions:
        if tls_version is not None:
            logger.warning("Retrying connectivity probe with %s pinned", tls_version.name)
        try:
            client = client_factory(config, tls_version)
        except (ssl.SSLError, ValueError) as exc:
            logger.warning("Cannot build client for %s: %s", tls_version, exc)
            last_error = exc
            continue

        sampler = LatencySampler(client)
        try:
            outcome = await retry_async(
                lambda: probe_endpoints(sampler, endpoints, stop_event),
                max_attempts=config.probe_attempts,
                backoff_fn=backoff,
                retry_on=(ConnectivityError,),
                sleep=functools.partial(interruptible_sleep, stop_event),
                stop_event=stop_event,
            )
            if stop_event.is_set():
                logger.info("Stop requested during connectivity probe")
                yield sampler
                return
            if outcome.ok:
                logger.info("Reachable endpoints: %s", ", ".join(outcome.value or []))
                yield sampler
                return
            last_error = outcome.error
        finally:
            await sampler.aclose()

    hint = "" if config.tls_fallback else " (use --tls-fallback to try older TLS versions)"
    raise ConnectivityError(f"No endpoint is reachable: {last_error}{hint}")
