"""Settings for the API layer."""
from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from ..config import LOG_FORMAT, LOG_LEVEL, MAX_QUEUED_TESTS, WORKER_POOL_SIZE


class ApiSettings(BaseSettings):
    """Immutable settings loaded from environment / .env file.

    The pool settings size the runner built by ``build_service`` and obey the
    same bounds as ``ExecutorConfig``.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: str = "*"
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT
    worker_pool_size: int = Field(default=WORKER_POOL_SIZE, ge=1)
    max_queued_tests: int = Field(default=MAX_QUEUED_TESTS, ge=1)

    model_config = {"env_prefix": "PTE_API_"}

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "ApiSettings":
        if self.max_queued_tests < self.worker_pool_size:
            raise ValueError(
                f"max_queued_tests ({self.max_queued_tests}) must be >= "
                f"worker_pool_size ({self.worker_pool_size})"
            )
        return self
