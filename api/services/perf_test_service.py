"""Performance test operations exposed to the HTTP layer."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from ...config import (
    MAX_SIMULATED_DELAY_MS,
    MAX_SIMULATED_REQUESTS,
    MIN_SIMULATED_DELAY_MS,
    MIN_SIMULATED_REQUESTS,
)
from ...simulation.engine import LoadSimulationEngine
from ...utils.random_source import ensure_synchronized
from ..jobs.models import InvalidInputError, PerfTestConfig, PerfTestRecord, SimulationResult
from ..jobs.runner import PerfTestRunner
from ..jobs.store import PerfTestRegistry

logger = logging.getLogger(__name__)


class PerformanceTestService:
    """Facade over the registry, the lifecycle runner and the load simulator.

    Built once per application and handed to the routers; tests build their
    own isolated instances.
    """

    def __init__(
        self,
        registry: Optional[PerfTestRegistry] = None,
        runner: Optional[PerfTestRunner] = None,
        engine: Optional[LoadSimulationEngine] = None,
        rng: Any = None,
        max_requests: int = MAX_SIMULATED_REQUESTS,
        max_delay_ms: int = MAX_SIMULATED_DELAY_MS,
    ) -> None:
        rng = ensure_synchronized(rng)
        # PerfTestRegistry defines __len__, so an empty one is falsy.
        self.registry = registry if registry is not None else PerfTestRegistry()
        self.runner = runner if runner is not None else PerfTestRunner(self.registry, rng=rng)
        self.engine = engine if engine is not None else LoadSimulationEngine(rng=rng)
        self._max_requests = max_requests
        self._max_delay_ms = max_delay_ms

    def create_test(
        self,
        name: str,
        duration_seconds: int,
        load_level: int,
        description: Optional[str] = None,
    ) -> PerfTestRecord:
        config = PerfTestConfig.create(
            name=name,
            duration_seconds=duration_seconds,
            load_level=load_level,
            description=description,
        )
        logger.info("Creating performance test: %s", config.name)
        return self.registry.create(config)

    def start_test(self, test_id: str) -> PerfTestRecord:
        logger.info("Starting performance test: %s", test_id)
        return self.runner.start(test_id)

    def get_test(self, test_id: str) -> PerfTestRecord:
        return self.registry.get(test_id)

    def list_tests(self) -> List[PerfTestRecord]:
        return self.registry.list()

    def delete_test(self, test_id: str) -> None:
        """Remove a test; a still-running execution is cancelled and its result dropped."""
        logger.info("Deleting performance test: %s", test_id)
        self.registry.delete(test_id)
        self.runner.forget(test_id)

    def simulate_load(self, requests: int, delay_ms: int) -> SimulationResult:
        """Run a blocking load simulation after checking its bounds.

        Blocks for about ``requests * (delay_ms + 25)`` milliseconds.
        """
        if not MIN_SIMULATED_REQUESTS <= requests <= self._max_requests:
            raise InvalidInputError(
                f"requests must be between {MIN_SIMULATED_REQUESTS} and {self._max_requests}"
            )
        if not MIN_SIMULATED_DELAY_MS <= delay_ms <= self._max_delay_ms:
            raise InvalidInputError(
                f"delayMs must be between {MIN_SIMULATED_DELAY_MS} and {self._max_delay_ms}"
            )
        return self.engine.run(requests, delay_ms)

    def shutdown(self) -> None:
        self.runner.shutdown(wait=True)
