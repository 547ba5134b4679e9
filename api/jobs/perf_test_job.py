"""Background performance test executor."""
from __future__ import annotations

import threading
from typing import Any, Optional

from ...evaluation.aggregator import synthesize_metrics
from .models import PerformanceMetrics


class PerfTestCancelled(Exception):
    """Raised by the executor when cooperative cancellation is detected."""


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    """Raise ``PerfTestCancelled`` if the cancellation event is set."""
    if cancel_event is not None and cancel_event.is_set():
        raise PerfTestCancelled("Test cancelled")


def execute_perf_test_job(
    load_level: int,
    duration_seconds: int,
    rng: Any = None,
    cancel_event: Optional[threading.Event] = None,
    time_scale: float = 1.0,
) -> PerformanceMetrics:
    """Simulate a test running for *duration_seconds*, then return its metrics.

    The wait happens on *cancel_event* so a cancellation wakes the worker
    immediately instead of after the full duration.  *time_scale* shrinks the
    wait (tests use it to avoid sleeping for whole seconds).
    """
    _check_cancelled(cancel_event)
    wait_sec = min(duration_seconds * time_scale, threading.TIMEOUT_MAX)
    if cancel_event is None:
        threading.Event().wait(wait_sec)
    elif cancel_event.wait(wait_sec):
        raise PerfTestCancelled("Test cancelled while running")
    return synthesize_metrics(load_level, duration_seconds, rng=rng)
