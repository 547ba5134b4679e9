"""Latency / throughput snapshot shared by test records and simulations."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PerformanceMetrics(BaseModel):
    """Aggregated latency / throughput statistics for one run."""

    model_config = ConfigDict(frozen=True)

    average_response_time_ms: float = 0.0
    min_response_time_ms: float = 0.0
    max_response_time_ms: float = 0.0
    total_requests: int = Field(default=0, ge=0)
    successful_requests: int = Field(default=0, ge=0)
    failed_requests: int = Field(default=0, ge=0)
    throughput_per_sec: float = 0.0
    error_rate_percent: float = 0.0

    @model_validator(mode="after")
    def _check_counts(self) -> "PerformanceMetrics":
        if self.successful_requests + self.failed_requests != self.total_requests:
            raise ValueError(
                f"successful ({self.successful_requests}) + failed ({self.failed_requests}) "
                f"!= total ({self.total_requests})"
            )
        return self

    @classmethod
    def empty(cls) -> "PerformanceMetrics":
        """Zeroed snapshot recorded when a test fails."""
        return cls()
