"""Lifecycle controller: starts tests and runs them on a bounded worker pool."""
from __future__ import annotations

import asyncio
import logging
import threading
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncGenerator, Callable, Dict, List, Tuple

from ...config import MAX_QUEUED_TESTS, WORKER_POOL_SIZE
from ...utils.random_source import ensure_synchronized
from .models import InvalidTransitionError, PerformanceMetrics, PerfTestRecord, PerfTestStatus
from .perf_test_job import PerfTestCancelled, execute_perf_test_job
from .store import PerfTestNotFoundError, PerfTestRegistry

logger = logging.getLogger(__name__)


class PerfTestQueueFullError(Exception):
    """Raised when too many tests are already in flight."""


class RunnerShutdownError(Exception):
    """Raised when a test is started after the runner was shut down."""


class PerfTestRunner:
    """Moves tests PENDING -> RUNNING and finishes them in background threads.

    The pool is created once and bounded by ``max_workers``.  ``start`` only
    records the RUNNING transition and schedules execution; the terminal
    write happens later through ``PerfTestRegistry.update``.
    """

    def __init__(
        self,
        registry: PerfTestRegistry,
        max_workers: int = WORKER_POOL_SIZE,
        max_queued: int = MAX_QUEUED_TESTS,
        rng: Any = None,
        job_fn: Callable[..., PerformanceMetrics] = execute_perf_test_job,
        time_scale: float = 1.0,
    ) -> None:
        self._registry = registry
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="perftest")
        self._max_workers = max_workers
        self._max_queued = max_queued
        self._rng = ensure_synchronized(rng)
        self._job_fn = job_fn
        self._time_scale = time_scale
        self._lock = threading.Lock()
        self._cancel_events: Dict[str, threading.Event] = {}
        self._sub_lock = threading.Lock()
        self._subscribers: Dict[str, List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = {}
        self._shutdown = False

    # ── Introspection ────────────────────────────────────────────────

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def active_count(self) -> int:
        """Number of tests running or waiting for a worker."""
        with self._lock:
            return len(self._cancel_events)

    def is_active(self, test_id: str) -> bool:
        with self._lock:
            return test_id in self._cancel_events

    # ── Start & Run ──────────────────────────────────────────────────

    def start(self, test_id: str) -> PerfTestRecord:
        """Transition *test_id* to RUNNING and schedule its execution.

        Raises
        ------
        PerfTestNotFoundError
            Unknown id.
        InvalidTransitionError
            The test is not PENDING (already started or finished).
        PerfTestQueueFullError
            ``max_queued`` tests are already in flight.
        RunnerShutdownError
            ``shutdown`` has been called.
        """
        with self._lock:
            if self._shutdown:
                raise RunnerShutdownError("Test runner is shut down")
            if len(self._cancel_events) >= self._max_queued:
                raise PerfTestQueueFullError(
                    f"Test queue full. {self._max_queued} tests in flight. Try again later."
                )

            def _to_running(rec: PerfTestRecord) -> PerfTestRecord:
                return rec.transition(PerfTestStatus.RUNNING, start_time=self._registry.now())

            rec = self._registry.update(test_id, _to_running)
            cancel_event = threading.Event()
            self._cancel_events[test_id] = cancel_event
            self._emit(test_id, {"event": "started", "test_id": test_id})
            self._executor.submit(self._run, rec, cancel_event)

        logger.info("Started test %s (%s) for %ss", test_id, rec.name, rec.duration_seconds)
        return rec

    def _run(self, rec: PerfTestRecord, cancel_event: threading.Event) -> None:
        test_id = rec.id
        event = "failed"
        try:
            logger.info("Executing test: %s", rec.name)
            try:
                metrics = self._job_fn(
                    rec.load_level,
                    rec.duration_seconds,
                    rng=self._rng,
                    cancel_event=cancel_event,
                    time_scale=self._time_scale,
                )
                status = PerfTestStatus.COMPLETED
            except PerfTestCancelled:
                logger.warning("Test interrupted: %s (%s)", rec.name, test_id)
                metrics, status = PerformanceMetrics.empty(), PerfTestStatus.FAILED
            except Exception as exc:
                logger.error("Test %s failed: %s\n%s", test_id, exc, traceback.format_exc())
                metrics, status = PerformanceMetrics.empty(), PerfTestStatus.FAILED

            try:
                final = self._registry.update(
                    test_id, lambda cur: self._finish(cur, status, metrics)
                )
            except PerfTestNotFoundError:
                event = "deleted"
                logger.info("Test %s was deleted before it finished; discarding result", test_id)
                return
            except InvalidTransitionError as exc:
                logger.warning("Discarding result for test %s: %s", test_id, exc)
                return

            if final.status is PerfTestStatus.COMPLETED:
                event = "completed"
                logger.info(
                    "Test completed: %s",
                    rec.name,
                    extra={"metrics": final.metrics.model_dump() if final.metrics else {}},
                )
        except Exception as exc:
            logger.error("Unexpected error finishing test %s: %s\n%s", test_id, exc, traceback.format_exc())
        finally:
            with self._lock:
                self._cancel_events.pop(test_id, None)
            self._emit(test_id, {"event": event, "test_id": test_id})
            self._emit(test_id, {"event": "done", "test_id": test_id})

    def _finish(
        self,
        current: PerfTestRecord,
        status: PerfTestStatus,
        metrics: PerformanceMetrics,
    ) -> PerfTestRecord:
        end_time = max(self._registry.now(), current.start_time)
        return current.transition(status, end_time=end_time, metrics=metrics)

    # ── Cancel & Shutdown ────────────────────────────────────────────

    def cancel(self, test_id: str) -> bool:
        """Signal an in-flight test to stop; it finishes as FAILED.

        Returns False if the test is not running or queued.
        """
        with self._lock:
            cancel_event = self._cancel_events.get(test_id)
        if cancel_event is None:
            return False
        cancel_event.set()
        return True

    def forget(self, test_id: str) -> None:
        """Release a deleted test: cancel it, or close its event streams."""
        if not self.cancel(test_id):
            self._emit(test_id, {"event": "done", "test_id": test_id})

    def shutdown(self, wait: bool = True) -> None:
        """Cancel every in-flight test and stop the worker pool."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            events = list(self._cancel_events.values())
        for cancel_event in events:
            cancel_event.set()
        logger.info("Shutting down test runner (%d in flight)", len(events))
        self._executor.shutdown(wait=wait)

    # ── SSE Event Streaming ──────────────────────────────────────────

    async def subscribe_events(self, test_id: str) -> AsyncGenerator[Dict[str, Any], None]:
        """Yield lifecycle events for a test until it is done or deleted."""
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        entry = (loop, queue)
        with self._sub_lock:
            self._subscribers.setdefault(test_id, []).append(entry)
        try:
            # Subscribe first, then snapshot, so no transition is missed.
            try:
                rec = self._registry.get(test_id)
            except PerfTestNotFoundError:
                yield {"event": "done", "test_id": test_id}
                return
            yield {"event": "status", "data": rec.model_dump(mode="json")}
            if rec.status.is_terminal:
                yield {"event": "done", "test_id": test_id}
                return

            while True:
                event = await queue.get()
                yield event
                if event.get("event") == "done":
                    break
        finally:
            with self._sub_lock:
                subs = self._subscribers.get(test_id, [])
                if entry in subs:
                    subs.remove(entry)
                if not subs:
                    self._subscribers.pop(test_id, None)

    def _emit(self, test_id: str, event: Dict[str, Any]) -> None:
        with self._sub_lock:
            subs = list(self._subscribers.get(test_id, ()))
        for loop, queue in subs:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, event)
            except RuntimeError:
                logger.debug("Dropping %s event for %s: loop closed", event.get("event"), test_id)
