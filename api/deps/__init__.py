"""Dependency injection providers."""
from .providers import get_perf_test_service, get_settings

__all__ = [
    "get_perf_test_service",
    "get_settings",
]
