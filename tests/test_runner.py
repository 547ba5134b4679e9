"""Tests for the background lifecycle runner."""
import threading
import time

import pytest

from perftest_engine.api.jobs.models import (
    InvalidTransitionError,
    PerformanceMetrics,
    PerfTestConfig,
    PerfTestStatus,
)
from perftest_engine.api.jobs.perf_test_job import PerfTestCancelled
from perftest_engine.api.jobs.runner import (
    PerfTestQueueFullError,
    PerfTestRunner,
    RunnerShutdownError,
)
from perftest_engine.api.jobs.store import PerfTestNotFoundError, PerfTestRegistry


def _create(registry, duration=1, load=5, name="Runner test"):
    return registry.create(
        PerfTestConfig.create(name=name, duration_seconds=duration, load_level=load)
    )


def _status(registry, test_id):
    return registry.get(test_id).status


class GatedJob:
    """Job function that blocks until released (or cancelled)."""

    def __init__(self, ignore_cancel=False):
        self.release = threading.Event()
        self.started = threading.Event()
        self.ignore_cancel = ignore_cancel
        self.calls = 0

    def __call__(self, load_level, duration_seconds, rng=None, cancel_event=None, time_scale=1.0):
        self.calls += 1
        self.started.set()
        while not self.release.wait(0.01):
            if cancel_event is not None and cancel_event.is_set() and not self.ignore_cancel:
                raise PerfTestCancelled("cancelled")
        total = load_level * duration_seconds
        return PerformanceMetrics(
            average_response_time_ms=100.0,
            min_response_time_ms=50.0,
            max_response_time_ms=150.0,
            total_requests=total,
            successful_requests=total,
            failed_requests=0,
            throughput_per_sec=float(load_level),
            error_rate_percent=0.0,
        )


@pytest.fixture
def gated_runner():
    registry = PerfTestRegistry()
    job = GatedJob()
    runner = PerfTestRunner(registry, max_workers=2, max_queued=3, job_fn=job)
    yield registry, runner, job
    job.release.set()
    runner.shutdown(wait=True)


# ── Lifecycle ────────────────────────────────────────────────────────


def test_start_moves_to_running_then_completed(registry, runner, wait_for):
    rec = _create(registry, duration=2, load=5)
    started = runner.start(rec.id)
    assert started.status == PerfTestStatus.RUNNING
    assert started.start_time >= rec.start_time

    assert wait_for(lambda: _status(registry, rec.id) == PerfTestStatus.COMPLETED)
    done = registry.get(rec.id)
    assert done.end_time is not None
    assert done.end_time >= done.start_time
    assert done.metrics.total_requests == 10
    assert done.metrics.successful_requests == 9
    assert done.metrics.failed_requests == 1
    assert wait_for(lambda: not runner.is_active(rec.id))


def test_metrics_follow_scripted_draws(registry, scripted_random, wait_for):
    runner = PerfTestRunner(
        registry,
        max_workers=1,
        rng=scripted_random(uniforms=[0.0, 1.0, 0.5]),
        time_scale=0.0,
    )
    try:
        rec = _create(registry, duration=4, load=25)
        runner.start(rec.id)
        assert wait_for(lambda: _status(registry, rec.id).is_terminal)
        m = registry.get(rec.id).metrics
        assert m.total_requests == 100
        assert m.successful_requests == 95
        assert m.average_response_time_ms == pytest.approx(100.0)
        assert m.min_response_time_ms == pytest.approx(100.0)
        assert m.max_response_time_ms == pytest.approx(350.0)
        assert m.throughput_per_sec == pytest.approx(25.0)
        assert m.error_rate_percent == pytest.approx(5.0)
    finally:
        runner.shutdown()


def test_job_error_marks_failed_with_empty_metrics(registry, wait_for):
    def _boom(*args, **kwargs):
        raise RuntimeError("simulated crash")

    runner = PerfTestRunner(registry, max_workers=1, job_fn=_boom)
    try:
        rec = _create(registry)
        runner.start(rec.id)
        assert wait_for(lambda: _status(registry, rec.id) == PerfTestStatus.FAILED)
        failed = registry.get(rec.id)
        assert failed.metrics == PerformanceMetrics.empty()
        assert failed.end_time >= failed.start_time
    finally:
        runner.shutdown()


def test_cancel_marks_failed(gated_runner, wait_for):
    registry, runner, job = gated_runner
    rec = _create(registry)
    runner.start(rec.id)
    assert job.started.wait(2)
    assert runner.cancel(rec.id) is True
    assert wait_for(lambda: _status(registry, rec.id) == PerfTestStatus.FAILED)
    assert registry.get(rec.id).metrics.total_requests == 0


def test_cancel_unknown_returns_false(runner):
    assert runner.cancel("nothing-here") is False


def test_double_start_is_rejected(gated_runner):
    registry, runner, job = gated_runner
    rec = _create(registry)
    runner.start(rec.id)
    with pytest.raises(InvalidTransitionError):
        runner.start(rec.id)
    assert job.calls <= 1


def test_restart_after_completion_is_rejected(registry, runner, wait_for):
    rec = _create(registry)
    runner.start(rec.id)
    assert wait_for(lambda: _status(registry, rec.id).is_terminal)
    with pytest.raises(InvalidTransitionError):
        runner.start(rec.id)


def test_start_unknown_raises_not_found(runner):
    with pytest.raises(PerfTestNotFoundError):
        runner.start("missing")


# ── Delete while running ─────────────────────────────────────────────


def test_deleted_test_is_not_resurrected(gated_runner, wait_for):
    registry, runner, job = gated_runner
    rec = _create(registry)
    runner.start(rec.id)
    assert job.started.wait(2)
    registry.delete(rec.id)
    runner.forget(rec.id)
    assert wait_for(lambda: not runner.is_active(rec.id))
    assert rec.id not in registry
    assert len(registry) == 0


def test_late_result_after_delete_is_discarded():
    registry = PerfTestRegistry()
    job = GatedJob(ignore_cancel=True)
    runner = PerfTestRunner(registry, max_workers=1, job_fn=job)
    try:
        rec = _create(registry)
        runner.start(rec.id)
        assert job.started.wait(2)
        registry.delete(rec.id)
        runner.forget(rec.id)
        job.release.set()
        deadline = time.monotonic() + 3
        while runner.is_active(rec.id) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert not runner.is_active(rec.id)
        with pytest.raises(PerfTestNotFoundError):
            registry.get(rec.id)
    finally:
        runner.shutdown()


# ── Bounds ───────────────────────────────────────────────────────────


def test_queue_full_rejects_and_leaves_test_pending(gated_runner):
    registry, runner, job = gated_runner
    for _ in range(3):
        runner.start(_create(registry).id)
    extra = _create(registry)
    with pytest.raises(PerfTestQueueFullError):
        runner.start(extra.id)
    assert _status(registry, extra.id) == PerfTestStatus.PENDING
    assert runner.active_count == 3


def test_concurrency_never_exceeds_pool_size(registry, wait_for):
    lock = threading.Lock()
    state = {"now": 0, "peak": 0}

    def _job(load_level, duration_seconds, **kwargs):
        with lock:
            state["now"] += 1
            state["peak"] = max(state["peak"], state["now"])
        time.sleep(0.03)
        with lock:
            state["now"] -= 1
        return PerformanceMetrics.empty()

    runner = PerfTestRunner(registry, max_workers=3, max_queued=50, job_fn=_job)
    try:
        ids = [_create(registry).id for _ in range(12)]
        for test_id in ids:
            runner.start(test_id)
        assert wait_for(lambda: all(_status(registry, i).is_terminal for i in ids), timeout=5)
        assert 1 <= state["peak"] <= 3
        assert runner.max_workers == 3
    finally:
        runner.shutdown()


def test_shutdown_fails_in_flight_and_rejects_new(gated_runner):
    registry, runner, job = gated_runner
    rec = _create(registry)
    runner.start(rec.id)
    assert job.started.wait(2)
    runner.shutdown(wait=True)
    assert _status(registry, rec.id) == PerfTestStatus.FAILED
    with pytest.raises(RunnerShutdownError):
        runner.start(_create(registry).id)


# ── Event stream ─────────────────────────────────────────────────────


async def test_subscribe_events_reports_transitions(gated_runner):
    registry, runner, job = gated_runner
    rec = _create(registry)
    runner.start(rec.id)

    events = []
    agen = runner.subscribe_events(rec.id)
    first = await agen.__anext__()
    assert first["event"] == "status"
    assert first["data"]["status"] == "RUNNING"
    job.release.set()
    async for event in agen:
        events.append(event["event"])
    assert events == ["completed", "done"]


async def test_subscribe_events_on_finished_test(registry, runner, wait_for):
    rec = _create(registry)
    runner.start(rec.id)
    assert wait_for(lambda: _status(registry, rec.id).is_terminal)
    events = [e async for e in runner.subscribe_events(rec.id)]
    assert [e["event"] for e in events] == ["status", "done"]
    assert events[0]["data"]["status"] == "COMPLETED"


async def test_subscribe_events_on_unknown_test(runner):
    events = [e async for e in runner.subscribe_events("missing")]
    assert events == [{"event": "done", "test_id": "missing"}]
