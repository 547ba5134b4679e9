"""Shared test fixtures for the perftest_engine test suite."""
from __future__ import annotations

import time
from typing import Callable, Iterable

import numpy as np
import pytest

from perftest_engine.api.jobs.runner import PerfTestRunner
from perftest_engine.api.jobs.store import PerfTestRegistry
from perftest_engine.api.services.perf_test_service import PerformanceTestService
from perftest_engine.simulation.engine import LoadSimulationEngine


# ── Deterministic random / time sources ──────────────────────────────


class ScriptedRandom:
    """Replays fixed draws in place of a ``numpy.random.Generator``.

    ``uniforms`` are fractions of the requested ``[low, high)`` range, so
    ``uniform(0, 200)`` with a scripted ``0.5`` returns ``100``.  Once a
    script runs out, ``uniform`` returns ``low`` and ``random`` returns 0.5.
    """

    def __init__(self, uniforms: Iterable[float] = (), randoms: Iterable[float] = ()) -> None:
        self._uniforms = list(uniforms)
        self._randoms = list(randoms)
        self.uniform_calls = []

    def uniform(self, low: float, high: float) -> float:
        self.uniform_calls.append((low, high))
        frac = self._uniforms.pop(0) if self._uniforms else 0.0
        return low + frac * (high - low)

    def random(self) -> float:
        return self._randoms.pop(0) if self._randoms else 0.5


class FakeTimer:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def scripted_random():
    return ScriptedRandom


@pytest.fixture
def fake_timer():
    return FakeTimer()


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    """Poll *predicate* until it is true or *timeout* seconds pass."""

    def _wait(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait


# ── Engine fixtures ──────────────────────────────────────────────────


@pytest.fixture
def registry():
    return PerfTestRegistry()


@pytest.fixture
def runner(registry):
    """Runner whose tests 'run' for 1% of their configured duration."""
    r = PerfTestRunner(
        registry,
        max_workers=4,
        max_queued=16,
        rng=np.random.default_rng(42),
        time_scale=0.01,
    )
    yield r
    r.shutdown(wait=True)


@pytest.fixture
def fast_engine(fake_timer):
    """Load simulator that advances a fake clock instead of sleeping."""
    return LoadSimulationEngine(
        rng=np.random.default_rng(7),
        sleep=fake_timer.sleep,
        timer=fake_timer,
    )


@pytest.fixture
def service(registry, runner, fast_engine):
    return PerformanceTestService(registry=registry, runner=runner, engine=fast_engine)


# ── API fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def app(service):
    """FastAPI app bound to the per-test service."""
    from perftest_engine.api.config import ApiSettings
    from perftest_engine.api.main import create_app

    return create_app(ApiSettings(), service=service)


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
