"""FastAPI application factory and server entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import validate_config
from ..utils.logging import configure_logging
from .config import ApiSettings
from .deps.providers import get_settings
from .errors import register_error_handlers
from .jobs.runner import PerfTestRunner
from .jobs.store import PerfTestRegistry
from .services.perf_test_service import PerformanceTestService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings: ApiSettings = app.state.settings
    configure_logging(settings.log_level, settings.log_format)
    logger.info("Starting performance test API on %s:%s", settings.host, settings.port)

    # Run config validation on startup
    issues = validate_config(
        worker_pool_size=settings.worker_pool_size,
        max_queued_tests=settings.max_queued_tests,
        log_level=settings.log_level,
    )
    for issue in issues:
        if issue.get("level") == "ERROR":
            logger.error("Config validation: %s", issue.get("message", ""))
        else:
            logger.warning("Config validation: %s", issue.get("message", ""))
    if not issues:
        logger.info("Config validation: all checks passed")

    yield

    # Cleanup: in-flight tests are cancelled and finish as FAILED
    app.state.perf_test_service.shutdown()
    logger.info("Shutting down performance test API")


def build_service(settings: ApiSettings) -> PerformanceTestService:
    """Construct the registry / runner / simulator stack for one app."""
    registry = PerfTestRegistry()
    runner = PerfTestRunner(
        registry,
        max_workers=settings.worker_pool_size,
        max_queued=settings.max_queued_tests,
    )
    return PerformanceTestService(registry=registry, runner=runner)


def create_app(
    settings: Optional[ApiSettings] = None,
    service: Optional[PerformanceTestService] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Performance Test API",
        description="Register, run and poll simulated performance tests; run synchronous load simulations.",
        version="1.0.0",
        lifespan=_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.perf_test_service = service if service is not None else build_service(settings)

    # CORS
    origins = [o.strip() for o in settings.cors_origins.split(",")]
    allow_creds = "*" not in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_creds,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handlers
    register_error_handlers(app)

    from .routers import all_routers

    for router in all_routers():
        app.include_router(router)

    return app


def run_server() -> None:
    """CLI entry point: ``python -m perftest_engine.api.main``."""
    import uvicorn

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run_server()
