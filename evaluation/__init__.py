"""
Evaluation Layer - latency / throughput metrics for simulated runs.
"""

from .metrics import PerformanceMetrics
from .aggregator import MetricsAccumulator, RequestOutcome, aggregate, synthesize_metrics

__all__ = [
    "MetricsAccumulator",
    "PerformanceMetrics",
    "RequestOutcome",
    "aggregate",
    "synthesize_metrics",
]
