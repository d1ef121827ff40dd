import time
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tripweaver.schemas.results import utcnow


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class ApiEnvelope(BaseModel):
    """Caller-facing response wrapper shared by every route."""

    success: bool
    data: Any = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    source: str
    cached: bool = False
    response_time_ms: int = 0

    @classmethod
    def ok(cls, data: Any, *, source: str, started: float, cached: bool = False) -> "ApiEnvelope":
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json")
        return cls(
            success=True,
            data=data,
            source=source,
            cached=cached,
            response_time_ms=_elapsed_ms(started),
        )

    @classmethod
    def from_result(cls, result, *, source: str, started: float) -> "ApiEnvelope":
        """Wrap a ``CachedResult`` (or anything with ``data``/``cached``)."""
        return cls.ok(
            result.data,
            source=source,
            started=started,
            cached=bool(getattr(result, "cached", False)),
        )

    @classmethod
    def failure(cls, error: str, *, source: str, started: float) -> "ApiEnvelope":
        return cls(
            success=False,
            error=error,
            source=source,
            response_time_ms=_elapsed_ms(started),
        )
