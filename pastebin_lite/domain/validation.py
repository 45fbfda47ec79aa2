from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

from .clock import MAX_TIMESTAMP_MS


# 100 years.
MAX_TTL_SECONDS = 100 * 365 * 24 * 60 * 60
# remaining_views is a 32-bit signed column.
MAX_VIEWS = 2**31 - 1


class ValidationReason(str, enum.Enum):
    CONTENT_REQUIRED = "content_required"
    CONTENT_BLANK = "content_blank"
    CONTENT_TOO_LARGE = "content_too_large"
    TTL_NOT_INTEGER = "ttl_not_integer"
    TTL_NOT_POSITIVE = "ttl_not_positive"
    TTL_TOO_LARGE = "ttl_too_large"
    MAX_VIEWS_NOT_INTEGER = "max_views_not_integer"
    MAX_VIEWS_NOT_POSITIVE = "max_views_not_positive"
    MAX_VIEWS_TOO_LARGE = "max_views_too_large"


@dataclass(frozen=True)
class FieldError:
    field: str
    reason: ValidationReason
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "field": self.field,
            "reason": self.reason.value,
            "message": self.message,
        }


def _is_integer(value: Any) -> bool:
    # bool is an int subclass but never a valid count.
    return isinstance(value, int) and not isinstance(value, bool)


def validate_paste_input(
    content: Any,
    ttl_seconds: Any = None,
    max_views: Any = None,
    *,
    max_content_bytes: Optional[int] = None,
    now_ms: Optional[int] = None,
) -> list[FieldError]:
    """
    Validate paste creation input.

    Every failing field is reported; an empty list means the input is valid.
    With ``now_ms`` the TTL is also checked to give a storable expiry time.
    """
    errors: list[FieldError] = []

    if not isinstance(content, str):
        errors.append(
            FieldError(
                "content",
                ValidationReason.CONTENT_REQUIRED,
                "content is required and must be a string",
            )
        )
    elif content.strip() == "":
        errors.append(
            FieldError(
                "content",
                ValidationReason.CONTENT_BLANK,
                "content must be a non-empty string",
            )
        )
    elif max_content_bytes is not None and len(content.encode("utf-8")) > max_content_bytes:
        errors.append(
            FieldError(
                "content",
                ValidationReason.CONTENT_TOO_LARGE,
                f"content must be at most {max_content_bytes} bytes when UTF-8 encoded",
            )
        )

    if ttl_seconds is not None:
        if not _is_integer(ttl_seconds):
            errors.append(
                FieldError(
                    "ttl_seconds",
                    ValidationReason.TTL_NOT_INTEGER,
                    "ttl_seconds must be an integer",
                )
            )
        elif ttl_seconds < 1:
            errors.append(
                FieldError(
                    "ttl_seconds",
                    ValidationReason.TTL_NOT_POSITIVE,
                    "ttl_seconds must be an integer >= 1",
                )
            )
        elif ttl_seconds > MAX_TTL_SECONDS or (
            now_ms is not None and now_ms + ttl_seconds * 1000 > MAX_TIMESTAMP_MS
        ):
            errors.append(
                FieldError(
                    "ttl_seconds",
                    ValidationReason.TTL_TOO_LARGE,
                    f"ttl_seconds must be at most {MAX_TTL_SECONDS}",
                )
            )

    if max_views is not None:
        if not _is_integer(max_views):
            errors.append(
                FieldError(
                    "max_views",
                    ValidationReason.MAX_VIEWS_NOT_INTEGER,
                    "max_views must be an integer",
                )
            )
        elif max_views < 1:
            errors.append(
                FieldError(
                    "max_views",
                    ValidationReason.MAX_VIEWS_NOT_POSITIVE,
                    "max_views must be an integer >= 1",
                )
            )
        elif max_views > MAX_VIEWS:
            errors.append(
                FieldError(
                    "max_views",
                    ValidationReason.MAX_VIEWS_TOO_LARGE,
                    f"max_views must be at most {MAX_VIEWS}",
                )
            )

    return errors
