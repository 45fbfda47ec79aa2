from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


_INTEGER_STRING = re.compile(r"[+-]?\d{1,19}")


class PasteCreateRequest(BaseModel):
    """
    Shape of the create body.

    Fields accept any JSON value so that every rule, type checks included, is
    enforced by the service and reported with one set of reasons.
    """

    model_config = ConfigDict(extra="ignore")

    content: Any = Field(default=None, description="Paste content")
    ttl_seconds: Any = Field(
        default=None,
        description="Optional time-to-live in seconds (>= 1)",
    )
    max_views: Any = Field(
        default=None,
        description="Optional maximum number of views (>= 1)",
    )

    @field_validator("ttl_seconds", "max_views", mode="before")
    @classmethod
    def _coerce_integral(cls, value: Any) -> Any:
        # Integral strings and floats become ints; bools and anything else
        # pass through unchanged for the service to reject.
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and _INTEGER_STRING.fullmatch(value.strip()):
            return int(value.strip())
        return value


class PasteCreateResponse(BaseModel):
    id: str
    url: str


class PasteFetchResponse(BaseModel):
    content: str
    remaining_views: Optional[int]
    expires_at: Optional[str]

    @classmethod
    def from_dto(cls, dto: dict[str, Any]) -> PasteFetchResponse:
        return cls(
            content=dto["content"],
            remaining_views=dto["remaining_views"],
            expires_at=ms_to_iso(dto["expires_at"]),
        )


class HealthResponse(BaseModel):
    ok: bool = True
    error: Optional[str] = None


def ms_to_iso(value_ms: Optional[int]) -> Optional[str]:
    """Render epoch milliseconds as an ISO-8601 UTC string, e.g. ``2024-01-01T00:00:00.000Z``."""
    if value_ms is None:
        return None
    seconds, millis = divmod(value_ms, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
