"""
Metrics Aggregator - latency and throughput statistics for simulated runs.

Two producers share the ``PerformanceMetrics`` value type:

* ``aggregate`` reduces a stream of per-request outcomes (the load simulation).
* ``synthesize_metrics`` fabricates plausible, formula-constrained numbers for
  a background test, since no real load is generated.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from .metrics import PerformanceMetrics
from ..config import (
    SYNTHETIC_AVG_BASE_MS,
    SYNTHETIC_AVG_SPREAD_MS,
    SYNTHETIC_MAX_SPREAD_MS,
    SYNTHETIC_MIN_BASE_MS,
    SYNTHETIC_MIN_SPREAD_MS,
    SYNTHETIC_SUCCESS_RATIO,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestOutcome:
    """One simulated request: how long it took and whether it succeeded."""

    elapsed_ms: float
    success: bool


def _error_rate(failed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return failed / total * 100.0


class MetricsAccumulator:
    """Streaming min / max / mean reduction over request outcomes.

    ``min`` stays unset until the first sample arrives, so an empty stream
    reports ``0`` instead of a sentinel such as ``float("inf")``.
    """

    def __init__(self) -> None:
        self._sum_ms = 0.0
        self._min_ms: Optional[float] = None
        self._max_ms = 0.0
        self._successes = 0
        self._failures = 0

    @property
    def count(self) -> int:
        return self._successes + self._failures

    def add(self, outcome: RequestOutcome) -> None:
        elapsed = float(outcome.elapsed_ms)
        self._sum_ms += elapsed
        if self._min_ms is None or elapsed < self._min_ms:
            self._min_ms = elapsed
        if elapsed > self._max_ms:
            self._max_ms = elapsed
        if outcome.success:
            self._successes += 1
        else:
            self._failures += 1

    def result(self, total_elapsed_sec: float) -> PerformanceMetrics:
        """Summarise everything added so far.

        Parameters
        ----------
        total_elapsed_sec : float
            Wall-clock duration of the whole run, used for throughput.  A
            non-positive value yields zero throughput.
        """
        total = self.count
        if total == 0:
            return PerformanceMetrics.empty()
        throughput = total / total_elapsed_sec if total_elapsed_sec > 0 else 0.0
        return PerformanceMetrics(
            average_response_time_ms=self._sum_ms / total,
            min_response_time_ms=self._min_ms if self._min_ms is not None else 0.0,
            max_response_time_ms=self._max_ms,
            total_requests=total,
            successful_requests=self._successes,
            failed_requests=self._failures,
            throughput_per_sec=throughput,
            error_rate_percent=_error_rate(self._failures, total),
        )


def aggregate(outcomes: Iterable[RequestOutcome], total_elapsed_sec: float) -> PerformanceMetrics:
    """Reduce *outcomes* into a ``PerformanceMetrics`` snapshot.

    Parameters
    ----------
    outcomes : iterable of RequestOutcome
        Per-request results, consumed once.
    total_elapsed_sec : float
        Wall-clock seconds the run took.

    Returns
    -------
    PerformanceMetrics
        All-zero metrics when *outcomes* is empty.
    """
    acc = MetricsAccumulator()
    for outcome in outcomes:
        acc.add(outcome)
    return acc.result(total_elapsed_sec)


def synthesize_metrics(
    load_level: int,
    duration_seconds: int,
    rng: Optional[np.random.Generator] = None,
) -> PerformanceMetrics:
    """Generate mock metrics for a background test from its configuration.

    ``total = load_level * duration_seconds`` with a fixed success ratio; the
    response times are randomised inside fixed bands::

        average = 100 + U(0, 200)
        min     =  50 + U(0, 50)
        max     = average + U(0, 500)

    Parameters
    ----------
    load_level, duration_seconds : int
        Test configuration; both positive by construction.
    rng : numpy.random.Generator, optional
        Random source.  Anything exposing ``uniform(low, high)`` works, which
        lets tests pin the synthesized values.
    """
    if rng is None:
        rng = np.random.default_rng()

    total = load_level * duration_seconds
    successful = math.floor(total * SYNTHETIC_SUCCESS_RATIO)
    failed = total - successful

    average = SYNTHETIC_AVG_BASE_MS + float(rng.uniform(0.0, SYNTHETIC_AVG_SPREAD_MS))
    minimum = SYNTHETIC_MIN_BASE_MS + float(rng.uniform(0.0, SYNTHETIC_MIN_SPREAD_MS))
    maximum = average + float(rng.uniform(0.0, SYNTHETIC_MAX_SPREAD_MS))

    return PerformanceMetrics(
        average_response_time_ms=average,
        min_response_time_ms=minimum,
        max_response_time_ms=maximum,
        total_requests=total,
        successful_requests=successful,
        failed_requests=failed,
        throughput_per_sec=total / duration_seconds if duration_seconds > 0 else 0.0,
        error_rate_percent=_error_rate(failed, total),
    )
