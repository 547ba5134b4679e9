"""
Structured configuration for the performance test engine using typed dataclasses.

This is the AUTHORITATIVE source of truth for all configuration values.
``config.py`` imports from here for backward compatibility.

Each subsystem gets its own dataclass.

Usage:
    from config_structured import get_config
    cfg = get_config()
    cfg.executor.max_workers         # bounded background pool size
    cfg.simulation.jitter_ms         # upper bound of per-request jitter
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LogFormat(Enum):
    """Output format for the root log handler."""
    STRUCTURED = "structured"
    JSON = "json"


# ── Executor ─────────────────────────────────────────────────────────


@dataclass
class ExecutorConfig:
    """Background execution pool for started tests."""
    max_workers: int = 10     # concurrent RUNNING tests actually sleeping
    max_queued: int = 100     # in-flight tests (running + waiting for a worker)

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_queued < self.max_workers:
            raise ValueError(
                f"max_queued ({self.max_queued}) must be >= max_workers ({self.max_workers})"
            )


# ── Simulation ───────────────────────────────────────────────────────


@dataclass
class SimulationConfig:
    """Load simulation and synthetic metric parameters."""
    jitter_ms: float = 50.0
    failure_probability: float = 0.05
    synthetic_success_ratio: float = 0.95
    synthetic_avg_base_ms: float = 100.0
    synthetic_avg_spread_ms: float = 200.0
    synthetic_min_base_ms: float = 50.0
    synthetic_min_spread_ms: float = 50.0
    synthetic_max_spread_ms: float = 500.0

    def __post_init__(self):
        if self.jitter_ms < 0:
            raise ValueError(f"jitter_ms must be non-negative, got {self.jitter_ms}")
        if not 0.0 <= self.failure_probability <= 1.0:
            raise ValueError(
                f"failure_probability must be in [0, 1], got {self.failure_probability}"
            )
        if not 0.0 <= self.synthetic_success_ratio <= 1.0:
            raise ValueError(
                f"synthetic_success_ratio must be in [0, 1], got {self.synthetic_success_ratio}"
            )


# ── Boundary validation ──────────────────────────────────────────────


@dataclass
class ValidationConfig:
    """Bounds enforced before a load simulation is invoked."""
    min_requests: int = 1
    max_requests: int = 10000
    min_delay_ms: int = 0
    max_delay_ms: int = 5000

    def __post_init__(self):
        if self.min_requests < 1:
            raise ValueError("min_requests must be >= 1")
        if self.max_requests < self.min_requests:
            raise ValueError("max_requests must be >= min_requests")
        if self.min_delay_ms < 0 or self.max_delay_ms < self.min_delay_ms:
            raise ValueError("delay bounds must satisfy 0 <= min_delay_ms <= max_delay_ms")


# ── Logging ──────────────────────────────────────────────────────────


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: LogFormat = LogFormat.STRUCTURED

    def __post_init__(self):
        if isinstance(self.format, str):
            self.format = LogFormat(self.format)
        self.level = self.level.upper()


# ── Top-level ────────────────────────────────────────────────────────


@dataclass
class EngineConfig:
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config, overriding selected fields from ``PTE_*`` variables."""
        return cls(
            executor=ExecutorConfig(
                max_workers=int(os.environ.get("PTE_WORKER_POOL_SIZE", 10)),
                max_queued=int(os.environ.get("PTE_MAX_QUEUED_TESTS", 100)),
            ),
            logging=LoggingConfig(
                level=os.environ.get("PTE_LOG_LEVEL", "INFO"),
                format=os.environ.get("PTE_LOG_FORMAT", "structured"),
            ),
        )


_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Return the process-wide structured config, built on first use."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config
