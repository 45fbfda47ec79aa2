from __future__ import annotations

import threading
import time
from typing import Callable, Optional


Clock = Callable[[], int]

# Timestamps are stored in signed 64-bit columns.
MAX_TIMESTAMP_MS = 2**63 - 1


def system_clock_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def resolve_now(clock: Clock, override_ms: Optional[int] = None) -> int:
    """Return ``override_ms`` when given, otherwise read ``clock``."""
    if override_ms is not None:
        return int(override_ms)
    return int(clock())


def parse_time_override(raw: Optional[str]) -> Optional[int]:
    """
    Parse a millisecond timestamp supplied by a caller.

    Returns ``None`` for missing, non-integer or out-of-range values so the
    wall clock is used instead.
    """
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    if not 0 <= value <= MAX_TIMESTAMP_MS:
        return None
    return value


class FixedClock:
    """Manually driven clock for deterministic tests."""

    def __init__(self, now_ms: int = 0) -> None:
        self._now_ms = now_ms
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            return self._now_ms

    def set(self, now_ms: int) -> None:
        with self._lock:
            self._now_ms = now_ms

    def advance(self, delta_ms: int) -> int:
        with self._lock:
            self._now_ms += delta_ms
            return self._now_ms
