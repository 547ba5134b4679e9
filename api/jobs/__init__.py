"""In-memory performance test registry and background lifecycle runner."""
from .models import (
    InvalidInputError,
    InvalidTransitionError,
    PerformanceMetrics,
    PerfTestConfig,
    PerfTestRecord,
    PerfTestStatus,
    SimulationResult,
)
from .store import PerfTestNotFoundError, PerfTestRegistry
from .runner import PerfTestQueueFullError, PerfTestRunner, RunnerShutdownError
from .perf_test_job import PerfTestCancelled, execute_perf_test_job

__all__ = [
    "InvalidInputError",
    "InvalidTransitionError",
    "PerfTestCancelled",
    "PerfTestConfig",
    "PerfTestNotFoundError",
    "PerfTestQueueFullError",
    "PerfTestRecord",
    "PerfTestRegistry",
    "PerfTestRunner",
    "PerfTestStatus",
    "PerformanceMetrics",
    "RunnerShutdownError",
    "SimulationResult",
    "execute_perf_test_job",
]
