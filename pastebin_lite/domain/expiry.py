from __future__ import annotations

from typing import Optional

from .models import PasteRecord


class PasteInvariantViolation(Exception):
    """Raised when a stored paste is in a state the data model forbids."""


def is_time_expired(expires_at: Optional[int], now_ms: int) -> bool:
    """True iff an expiry time is set and ``now_ms`` has reached it."""
    return expires_at is not None and now_ms >= expires_at


def is_view_expired(remaining_views: Optional[int]) -> bool:
    """True iff a view budget is set and it is used up."""
    return remaining_views is not None and remaining_views <= 0


def is_expired(record: PasteRecord, now_ms: int) -> bool:
    """
    Decide whether ``record`` is inaccessible at ``now_ms``.

    Pure: evaluate it against a freshly read record on every access.
    """
    return is_time_expired(record.expires_at, now_ms) or is_view_expired(
        record.remaining_views
    )


def ensure_invariants(record: PasteRecord) -> None:
    """
    Raise ``PasteInvariantViolation`` if ``record`` is corrupted.

    Bad values are reported as-is, never clamped.
    """

    if record.remaining_views is not None and record.remaining_views < 0:
        raise PasteInvariantViolation(
            f"Paste {record.id} has negative remaining_views={record.remaining_views}."
        )
    if not record.content:
        raise PasteInvariantViolation(f"Paste {record.id} has empty content.")
