"""Shared random sources for simulated latency and synthetic metrics."""
from __future__ import annotations

import threading
from typing import Any, Optional

import numpy as np


class SynchronizedRandom:
    """Serialise draws from one generator across worker threads.

    ``numpy.random.Generator`` is not thread-safe; every background test and
    every concurrent simulation may draw from the same instance.
    """

    def __init__(self, rng: Any = None, seed: Optional[int] = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._lock = threading.Lock()

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        with self._lock:
            return float(self._rng.uniform(low, high))

    def random(self) -> float:
        with self._lock:
            return float(self._rng.random())


def ensure_synchronized(rng: Any = None) -> SynchronizedRandom:
    """Wrap *rng* (or a fresh generator) unless it is already synchronized."""
    if isinstance(rng, SynchronizedRandom):
        return rng
    return SynchronizedRandom(rng)
