"""Performance test data models."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from ...evaluation.metrics import PerformanceMetrics


class InvalidInputError(ValueError):
    """Caller-supplied configuration violates a stated constraint."""


class InvalidTransitionError(Exception):
    """Requested status change is not allowed by the lifecycle graph."""


class PerfTestStatus(str, enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PerfTestStatus.COMPLETED, PerfTestStatus.FAILED)

    def can_transition_to(self, target: "PerfTestStatus") -> bool:
        """Return True if ``self -> target`` is a legal lifecycle step."""
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    PerfTestStatus.PENDING: frozenset({PerfTestStatus.RUNNING}),
    PerfTestStatus.RUNNING: frozenset({PerfTestStatus.COMPLETED, PerfTestStatus.FAILED}),
    PerfTestStatus.COMPLETED: frozenset(),
    PerfTestStatus.FAILED: frozenset(),
}


# Signed 32-bit ceiling; also keeps the running wait below threading.TIMEOUT_MAX.
MAX_DURATION_SECONDS = 2_147_483_647
MAX_LOAD_LEVEL = 2_147_483_647


class PerfTestConfig(BaseModel):
    """Caller-supplied configuration for a new performance test."""

    model_config = ConfigDict(frozen=True)

    name: str
    duration_seconds: int
    load_level: int
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "PerfTestConfig":
        if not self.name or not self.name.strip():
            raise ValueError("Test name is required")
        if self.duration_seconds <= 0:
            raise ValueError("Duration must be positive")
        if self.duration_seconds > MAX_DURATION_SECONDS:
            raise ValueError(f"Duration must be at most {MAX_DURATION_SECONDS} seconds")
        if self.load_level <= 0:
            raise ValueError("Load level must be positive")
        if self.load_level > MAX_LOAD_LEVEL:
            raise ValueError(f"Load level must be at most {MAX_LOAD_LEVEL}")
        return self

    @classmethod
    def create(cls, **fields) -> "PerfTestConfig":
        """Validate *fields*, raising ``InvalidInputError`` on the first violation."""
        try:
            return cls(**fields)
        except ValidationError as exc:
            first = exc.errors()[0]
            msg = str(first.get("msg", exc)).removeprefix("Value error, ")
            loc = ".".join(str(p) for p in first.get("loc", ()))
            raise InvalidInputError(f"{loc}: {msg}" if loc else msg) from exc


class PerfTestRecord(BaseModel):
    """In-memory representation of one performance test and its lifecycle.

    Instances are immutable.  The registry swaps whole values on update, so a
    reader always sees a record produced by exactly one update.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    status: PerfTestStatus = PerfTestStatus.PENDING
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: int
    load_level: int
    description: Optional[str] = None
    metrics: Optional[PerformanceMetrics] = None
    revision: int = 0

    @model_validator(mode="after")
    def _check_invariants(self) -> "PerfTestRecord":
        if self.status.is_terminal and self.metrics is None:
            raise ValueError(f"{self.status.value} record must carry metrics")
        if not self.status.is_terminal and self.metrics is not None:
            raise ValueError(f"{self.status.value} record must not carry metrics")
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time precedes start_time")
        return self

    def transition(self, status: PerfTestStatus, **changes) -> "PerfTestRecord":
        """Return a copy moved to *status*, enforcing the lifecycle graph."""
        if not self.status.can_transition_to(status):
            raise InvalidTransitionError(
                f"Test '{self.id}' cannot move from {self.status.value} to {status.value}"
            )
        # model_copy skips validation, so rebuild through the constructor.
        return PerfTestRecord(**{**self.model_dump(), "status": status, **changes})


class SimulationResult(BaseModel):
    """Outcome of a synchronous load simulation. Never stored in the registry."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = "Load Simulation"
    status: PerfTestStatus = PerfTestStatus.COMPLETED
    start_time: datetime
    end_time: datetime
    duration_seconds: int
    load_level: int
    delay_ms: int
    description: str = "Simulated load test"
    metrics: PerformanceMetrics
