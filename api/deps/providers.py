"""Dependency providers for FastAPI ``Depends()``."""
from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from ..config import ApiSettings
from ..services.perf_test_service import PerformanceTestService


@lru_cache
def get_settings() -> ApiSettings:
    return ApiSettings()


def get_perf_test_service(request: Request) -> PerformanceTestService:
    """Return the service owned by the running application.

    ``create_app`` builds the service and stores it on ``app.state``, so each
    app (and each test) has its own isolated registry.
    """
    return request.app.state.perf_test_service
