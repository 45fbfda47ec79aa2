from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from flask import Flask
from sqlalchemy.orm import Session

from pastebin_lite.db import get_database
from pastebin_lite.domain.clock import Clock, system_clock_ms
from pastebin_lite.repositories.paste_repository import PasteRepository


logger = logging.getLogger(__name__)

EXTENSION_KEY = "pastebin_lite.expiry_purger"
WORKER_CORRELATION_ID = "expiry-purger"

_start_lock = threading.Lock()


def run_purge_cycle(
    session_factory: Callable[[], Session],
    clock: Clock = system_clock_ms,
) -> int:
    """Delete every paste that is unreadable now. Returns the number removed."""

    session = session_factory()
    try:
        purged = PasteRepository(session=session).purge_expired(clock())
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if purged:
        logger.info(
            "Expiry purger: removed expired pastes",
            extra={
                "event": "expiry_purge_removed",
                "purged": purged,
                "correlation_id": WORKER_CORRELATION_ID,
            },
        )
    return purged


def _purge_loop(
    session_factory: Callable[[], Session],
    interval_seconds: float,
    stop_event: threading.Event,
) -> None:
    """Background loop that periodically removes expired pastes."""

    while not stop_event.is_set():
        try:
            run_purge_cycle(session_factory)
        except Exception:  # pragma: no cover - keep the worker alive
            logger.exception(
                "Error in expiry purger loop",
                extra={
                    "event": "expiry_purge_error",
                    "correlation_id": WORKER_CORRELATION_ID,
                },
            )
        stop_event.wait(interval_seconds)


def start_expiry_purger(app: Flask) -> threading.Event:
    """
    Start the expiry purger in a background thread.

    Idempotent per application: a second call returns the running worker's
    stop event. Setting the event ends the loop after the current cycle.
    """

    with _start_lock:
        existing = app.extensions.get(EXTENSION_KEY)
        if existing is not None:
            return existing

        stop_event = threading.Event()
        thread = threading.Thread(
            target=_purge_loop,
            args=(
                get_database(app).session_factory,
                float(app.config.get("EXPIRY_PURGE_INTERVAL_SECONDS", 60.0)),
                stop_event,
            ),
            name="expiry-purger",
            daemon=True,
        )
        thread.start()
        app.extensions[EXTENSION_KEY] = stop_event
        logger.info(
            "Expiry purger started",
            extra={
                "event": "expiry_purge_started",
                "correlation_id": WORKER_CORRELATION_ID,
            },
        )
        return stop_event
