"""
Load Simulation Engine - a blocking, in-process stand-in for a load test.

Every "request" is an artificial sleep of ``base_delay_ms + U[0, jitter)``
milliseconds that fails with a fixed probability.  Nothing is sent over the
network and nothing is stored in the test registry.

Runtime is roughly ``request_count * (base_delay_ms + jitter / 2)``; callers
bound ``request_count`` before invoking ``run``.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

from ..api.jobs.models import InvalidInputError, PerfTestStatus, SimulationResult
from ..config import SIMULATION_FAILURE_PROBABILITY, SIMULATION_JITTER_MS
from ..evaluation.aggregator import RequestOutcome, aggregate
from ..utils.random_source import ensure_synchronized

logger = logging.getLogger(__name__)


class LoadSimulationEngine:
    """Run simulated requests and aggregate their latency statistics.

    Parameters
    ----------
    rng : optional
        Random source exposing ``uniform(low, high)`` and ``random()``;
        defaults to a fresh ``numpy.random.Generator``.
    sleep : callable
        Blocking sleep taking seconds.  Injected by tests.
    timer : callable
        Monotonic clock in seconds used to time requests and the whole run.
    clock : callable
        Wall clock for the result's start/end timestamps.
    """

    def __init__(
        self,
        rng: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        timer: Callable[[], float] = time.perf_counter,
        clock: Optional[Callable[[], datetime]] = None,
        jitter_ms: float = SIMULATION_JITTER_MS,
        failure_probability: float = SIMULATION_FAILURE_PROBABILITY,
    ) -> None:
        self._rng = ensure_synchronized(rng)
        self._sleep = sleep
        self._timer = timer
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._jitter_ms = jitter_ms
        self._failure_probability = failure_probability

    def run(self, request_count: int, base_delay_ms: int) -> SimulationResult:
        """Simulate *request_count* sequential requests.

        Raises
        ------
        InvalidInputError
            If ``request_count < 1`` or ``base_delay_ms < 0``.
        """
        if request_count < 1:
            raise InvalidInputError(f"request_count must be >= 1, got {request_count}")
        if base_delay_ms < 0:
            raise InvalidInputError(f"base_delay_ms must be >= 0, got {base_delay_ms}")

        logger.info("Simulating load with %d requests and %dms delay", request_count, base_delay_ms)

        outcomes: List[RequestOutcome] = []
        run_start = self._timer()
        for _ in range(request_count):
            req_start = self._timer()
            delay_ms = base_delay_ms + self._rng.uniform(0.0, self._jitter_ms)
            self._sleep(delay_ms / 1000.0)
            success = self._rng.random() >= self._failure_probability
            outcomes.append(RequestOutcome(elapsed_ms=(self._timer() - req_start) * 1000.0, success=success))
        total_sec = self._timer() - run_start

        metrics = aggregate(outcomes, total_sec)
        end_time = self._clock()
        logger.info(
            "Load simulation finished in %.2fs",
            total_sec,
            extra={"metrics": metrics.model_dump()},
        )
        return SimulationResult(
            id=f"load-simulation-{int(end_time.timestamp() * 1000)}",
            status=PerfTestStatus.COMPLETED,
            start_time=end_time - timedelta(seconds=total_sec),
            end_time=end_time,
            duration_seconds=int(total_sec),
            load_level=request_count,
            delay_ms=base_delay_ms,
            metrics=metrics,
        )
