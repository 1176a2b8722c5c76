"""Unit tests for the warm-up and collection loop."""

import asyncio

import httpx
import pytest

from conftest import FakeClock, FakeSampler, make_config
from regionperf import engine, sampler as sampler_mod
from regionperf.config import WARMUP_ROUNDS
from regionperf.engine import collect, measure
from regionperf.errors import ConfigurationError
from regionperf.models import Endpoint
from regionperf.export import export_json
from regionperf.stats import build_report


def _sampler(clock, endpoints, alpha=50.0, beta=None, cost_s=0.0):
    return FakeSampler(clock, {endpoints[0].url: alpha, endpoints[1].url: beta}, cost_s=cost_s)


async def _collect(endpoints, config, sampler, clock, **kwargs):
    return await collect(endpoints, config, sampler, clock=clock, sleep=clock.sleep, **kwargs)


class TestWarmup:
    """Two discarded rounds run before the timed window."""

    @pytest.mark.asyncio
    async def test_exactly_two_warmup_rounds_with_zero_duration(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints)
        config = make_config(two_endpoints, duration_minutes=0)

        result = await _collect(two_endpoints, config, fake, clock)

        assert WARMUP_ROUNDS == 2
        assert len(fake.calls) == 2 * len(two_endpoints)
        assert result.rounds == 0
        assert result.series == {"alpha": [], "beta": []}

    @pytest.mark.asyncio
    async def test_warmup_samples_are_discarded(self, clock, two_endpoints):
        # Calls 1-4 are warm-up (2 rounds x 2 endpoints)
        fake = _sampler(clock, two_endpoints, alpha=lambda n: 999.0 if n <= 4 else 50.0)
        config = make_config(two_endpoints)

        result = await _collect(two_endpoints, config, fake, clock)

        assert 999.0 not in result.series["alpha"]
        assert result.series["alpha"] == [50.0] * result.rounds

    @pytest.mark.asyncio
    async def test_warmup_time_not_counted(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints, cost_s=10.0)
        config = make_config(two_endpoints, duration_minutes=0)

        result = await _collect(two_endpoints, config, fake, clock)

        assert result.elapsed_s == 0.0


class TestCollectionLoop:
    @pytest.mark.asyncio
    async def test_failures_never_enter_series(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints)
        config = make_config(two_endpoints)

        result = await _collect(two_endpoints, config, fake, clock)

        assert result.rounds == 6  # rounds start at 0, 5, ..., 25 within 30s
        assert result.series["beta"] == []
        assert result.failures["beta"] == result.rounds
        assert None not in result.series["alpha"]
        assert result.failures["alpha"] == 0

    @pytest.mark.asyncio
    async def test_sleep_fills_remainder_of_interval(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints, cost_s=1.0)
        config = make_config(two_endpoints)

        await _collect(two_endpoints, config, fake, clock)

        assert clock.sleeps
        assert all(s == pytest.approx(3.0) for s in clock.sleeps)

    @pytest.mark.asyncio
    async def test_no_sleep_when_round_exceeds_interval(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints, cost_s=4.0)
        config = make_config(two_endpoints)

        result = await _collect(two_endpoints, config, fake, clock)

        assert clock.sleeps == []
        assert result.rounds == 4  # 8s rounds start at 0, 8, 16, 24

    @pytest.mark.asyncio
    async def test_run_time_within_one_round_of_duration(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints, cost_s=4.0)
        config = make_config(two_endpoints)
        round_s = 4.0 * len(two_endpoints)

        result = await _collect(two_endpoints, config, fake, clock)

        duration_s = config.duration_seconds
        assert duration_s <= result.elapsed_s <= duration_s + round_s

    @pytest.mark.asyncio
    async def test_sleep_is_clamped_to_window(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints)
        config = make_config(two_endpoints, interval_seconds=50.0)

        result = await _collect(two_endpoints, config, fake, clock)

        assert result.rounds == 1
        assert clock.sleeps == [pytest.approx(30.0)]
        assert result.elapsed_s == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_progress_reports_percent_and_remaining(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints, cost_s=1.0)
        config = make_config(two_endpoints)
        updates = []

        result = await _collect(
            two_endpoints, config, fake, clock,
            progress_callback=lambda pct, rem, rounds: updates.append((pct, rem, rounds)),
        )

        assert len(updates) == result.rounds
        percents = [u[0] for u in updates]
        assert percents == sorted(percents)
        assert all(0.0 <= p <= 100.0 for p in percents)
        assert updates[0][1] == pytest.approx(28.0)
        assert [u[2] for u in updates] == list(range(1, result.rounds + 1))

    @pytest.mark.asyncio
    async def test_parallel_rounds_match_sequential(self, two_endpoints):
        seq_clock, par_clock = FakeClock(), FakeClock()
        seq = await _collect(
            two_endpoints, make_config(two_endpoints), _sampler(seq_clock, two_endpoints), seq_clock,
        )
        par = await _collect(
            two_endpoints, make_config(two_endpoints, parallel=True),
            _sampler(par_clock, two_endpoints), par_clock,
        )

        assert par.rounds == seq.rounds
        assert par.series == seq.series
        assert par.failures == seq.failures


class TestCancellation:
    @pytest.mark.asyncio
    async def test_stop_between_rounds_keeps_samples(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints)
        config = make_config(two_endpoints)
        stop = asyncio.Event()

        def on_progress(pct, rem, rounds):
            if rounds == 3:
                stop.set()

        result = await _collect(
            two_endpoints, config, fake, clock, progress_callback=on_progress, stop_event=stop,
        )

        assert result.cancelled
        assert result.rounds == 3
        assert result.series["alpha"] == [50.0] * 3

    @pytest.mark.asyncio
    async def test_stop_before_start_skips_everything(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints)
        stop = asyncio.Event()
        stop.set()

        result = await _collect(two_endpoints, make_config(two_endpoints), fake, clock, stop_event=stop)

        assert fake.calls == []
        assert result.rounds == 0
        assert result.cancelled

    @pytest.mark.asyncio
    async def test_stop_during_startup_check_returns_promptly(self, monkeypatch):
        endpoints = [Endpoint(f"r{i}", f"https://r{i}.example.test/blob") for i in range(4)]
        calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            await asyncio.sleep(0.5)
            return httpx.Response(503)

        monkeypatch.setattr(
            sampler_mod, "build_client",
            lambda config, tls_version=None: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        config = make_config(endpoints, probe_attempts=3)
        stop = asyncio.Event()
        asyncio.get_running_loop().call_later(0.1, stop.set)

        loop = asyncio.get_running_loop()
        started = loop.time()
        result = await measure(config, stop_event=stop)

        assert loop.time() - started < 1.5
        assert calls == ["r0.example.test"]
        assert result.cancelled
        assert result.rounds == 0
        assert all(r.stats is None for r in result.rows)

    @pytest.mark.asyncio
    async def test_duplicate_names_are_rejected(self, clock):
        endpoints = [
            Endpoint("lab", "https://a.example.test/"),
            Endpoint("lab", "https://b.example.test/"),
        ]
        fake = FakeSampler(clock, {e.url: 50.0 for e in endpoints})

        with pytest.raises(ConfigurationError, match="lab"):
            await _collect(endpoints, make_config(), fake, clock)
        assert fake.calls == []


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_fixed_latency_and_dead_endpoint(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints, alpha=50.0, beta=None)
        config = make_config(two_endpoints, duration_minutes=1.0)

        result = await _collect(two_endpoints, config, fake, clock)
        rows = {r.region: r for r in build_report(two_endpoints, result)}

        alpha = rows["alpha"]
        assert alpha.minimum == alpha.maximum == alpha.average == 50.0
        assert alpha.jitter == 0.0
        assert not rows["beta"].has_data
        assert rows["beta"].average is None

    @pytest.mark.asyncio
    async def test_zero_duration_reports_no_data_everywhere(self, clock, two_endpoints):
        fake = _sampler(clock, two_endpoints)
        config = make_config(two_endpoints, duration_minutes=0)

        result = await _collect(two_endpoints, config, fake, clock)
        rows = build_report(two_endpoints, result)

        assert [r.has_data for r in rows] == [False, False]

    @pytest.mark.asyncio
    async def test_measure_through_mock_transport(self, monkeypatch, two_endpoints):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "alpha.example.test":
                return httpx.Response(200, content=b"{}")
            return httpx.Response(503)

        monkeypatch.setattr(
            sampler_mod, "build_client",
            lambda config, tls_version=None: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        config = make_config(two_endpoints, duration_minutes=0)

        result = await measure(config)

        assert engine.WARMUP_ROUNDS == 2
        assert result.rounds == 0
        assert [r.region for r in result.rows] == ["beta", "alpha"]  # Americas before Europe
        assert all(r.stats is None for r in result.rows)
        assert '"stats": null' in export_json(result)
