"""Pydantic schemas for API request/response models."""
from .envelope import ApiResponse, ResponseMeta
from .perf_tests import MetricsResponse, PerformanceTestRequest, PerformanceTestResponse

__all__ = [
    "ApiResponse",
    "MetricsResponse",
    "PerformanceTestRequest",
    "PerformanceTestResponse",
    "ResponseMeta",
]
