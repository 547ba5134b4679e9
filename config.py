"""
Central configuration for the performance test engine.

Flat-constant interface.  Every value is derived from the structured config
singleton in ``config_structured.py`` so there is a single source of truth.

Config Status Legend
====================
  ACTIVE      - Imported and used by running code.  Changing the value
                affects live behaviour.

Search for ``# STATUS:`` to locate all annotations.
"""
from typing import Optional

try:
    from .config_structured import get_config as _get_config
except ImportError:
    from config_structured import get_config as _get_config

_cfg = _get_config()

# ── Background execution ───────────────────────────────────────────────
WORKER_POOL_SIZE = _cfg.executor.max_workers      # STATUS: ACTIVE - api/jobs/runner.py; bounded thread pool size
MAX_QUEUED_TESTS = _cfg.executor.max_queued       # STATUS: ACTIVE - api/jobs/runner.py; in-flight cap before 429

# ── Load simulation ────────────────────────────────────────────────────
SIMULATION_JITTER_MS = _cfg.simulation.jitter_ms                      # STATUS: ACTIVE - simulation/engine.py; U[0, jitter) added per request
SIMULATION_FAILURE_PROBABILITY = _cfg.simulation.failure_probability  # STATUS: ACTIVE - simulation/engine.py; per-request failure chance

# ── Synthetic metrics ──────────────────────────────────────────────────
SYNTHETIC_SUCCESS_RATIO = _cfg.simulation.synthetic_success_ratio  # STATUS: ACTIVE - evaluation/aggregator.py
SYNTHETIC_AVG_BASE_MS = _cfg.simulation.synthetic_avg_base_ms      # STATUS: ACTIVE - evaluation/aggregator.py
SYNTHETIC_AVG_SPREAD_MS = _cfg.simulation.synthetic_avg_spread_ms  # STATUS: ACTIVE - evaluation/aggregator.py
SYNTHETIC_MIN_BASE_MS = _cfg.simulation.synthetic_min_base_ms      # STATUS: ACTIVE - evaluation/aggregator.py
SYNTHETIC_MIN_SPREAD_MS = _cfg.simulation.synthetic_min_spread_ms  # STATUS: ACTIVE - evaluation/aggregator.py
SYNTHETIC_MAX_SPREAD_MS = _cfg.simulation.synthetic_max_spread_ms  # STATUS: ACTIVE - evaluation/aggregator.py

# ── Boundary validation ────────────────────────────────────────────────
MIN_SIMULATED_REQUESTS = _cfg.validation.min_requests  # STATUS: ACTIVE - api/services/perf_test_service.py
MAX_SIMULATED_REQUESTS = _cfg.validation.max_requests  # STATUS: ACTIVE - api/services/perf_test_service.py
MIN_SIMULATED_DELAY_MS = _cfg.validation.min_delay_ms  # STATUS: ACTIVE - api/services/perf_test_service.py
MAX_SIMULATED_DELAY_MS = _cfg.validation.max_delay_ms  # STATUS: ACTIVE - api/services/perf_test_service.py

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL = _cfg.logging.level            # STATUS: ACTIVE - api/main.py; "DEBUG", "INFO", "WARNING", "ERROR"
LOG_FORMAT = _cfg.logging.format.value    # STATUS: ACTIVE - api/main.py; "structured" or "json"


# ── Config Validation ──────────────────────────────────────────────

def validate_config(
    worker_pool_size: Optional[int] = None,
    max_queued_tests: Optional[int] = None,
    log_level: Optional[str] = None,
) -> list:
    """Check config for common misconfigurations.

    Returns a list of dicts: [{"level": "WARNING"|"ERROR", "message": str}].
    Called on server startup with the values the app was actually built
    from; omitted arguments fall back to the module constants.
    """
    import logging

    pool = WORKER_POOL_SIZE if worker_pool_size is None else worker_pool_size
    queued = MAX_QUEUED_TESTS if max_queued_tests is None else max_queued_tests
    level = (LOG_LEVEL if log_level is None else log_level).upper()

    issues = []

    # 1. Unknown log level falls back to INFO silently
    if not isinstance(getattr(logging, level, None), int):
        issues.append({
            "level": "WARNING",
            "message": f"LOG_LEVEL={level!r} is not a logging level; INFO will be used.",
        })

    # 2. Worst-case simulation blocks a request thread for a very long time
    worst_case_sec = MAX_SIMULATED_REQUESTS * (MAX_SIMULATED_DELAY_MS + SIMULATION_JITTER_MS) / 1000.0
    if worst_case_sec > 3600:
        issues.append({
            "level": "WARNING",
            "message": (
                f"A maximal load simulation ({MAX_SIMULATED_REQUESTS} requests at "
                f"{MAX_SIMULATED_DELAY_MS}ms delay) blocks for ~{worst_case_sec / 3600:.1f}h. "
                "Lower MAX_SIMULATED_REQUESTS or MAX_SIMULATED_DELAY_MS if callers time out."
            ),
        })

    # 3. Pool must hold at least one worker
    if pool < 1:
        issues.append({
            "level": "ERROR",
            "message": f"WORKER_POOL_SIZE ({pool}) must be >= 1.",
        })

    # 4. Pool larger than the in-flight cap can never be saturated
    if pool > queued:
        issues.append({
            "level": "ERROR",
            "message": f"WORKER_POOL_SIZE ({pool}) exceeds MAX_QUEUED_TESTS ({queued}).",
        })

    # 5. A failure probability of 1.0 makes every simulated request fail
    if SIMULATION_FAILURE_PROBABILITY >= 1.0:
        issues.append({
            "level": "WARNING",
            "message": "SIMULATION_FAILURE_PROBABILITY is 1.0; every simulated request will fail.",
        })

    return issues
