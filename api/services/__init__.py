"""Service layer wrapping the registry, runner and simulator."""
from .perf_test_service import PerformanceTestService

__all__ = ["PerformanceTestService"]
