"""Standard API response envelope."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseMeta(BaseModel):
    """Metadata attached to every API response."""

    generated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    warnings: List[str] = Field(default_factory=list)
    elapsed_ms: Optional[float] = None


class ApiResponse(BaseModel, Generic[T]):
    """Generic API response wrapper."""

    ok: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None
    meta: ResponseMeta = Field(default_factory=ResponseMeta)

    @classmethod
    def success(
        cls,
        data: Any,
        message: Optional[str] = None,
        *,
        meta: Optional[ResponseMeta] = None,
        **meta_kwargs,
    ) -> "ApiResponse":
        """Build a success response."""
        if meta is None:
            meta = ResponseMeta(**meta_kwargs)
        return cls(ok=True, message=message, data=data, meta=meta)

    @classmethod
    def fail(cls, error: str, *, warnings: Optional[List[str]] = None) -> "ApiResponse":
        """Build an error response."""
        meta = ResponseMeta(warnings=warnings or [])
        return cls(ok=False, error=error, meta=meta)
