from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, NoReturn, Optional

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from pastebin_lite.domain.clock import Clock, resolve_now, system_clock_ms
from pastebin_lite.domain.expiry import ensure_invariants, is_expired
from pastebin_lite.domain.identifiers import generate_paste_id
from pastebin_lite.domain.models import PasteRecord
from pastebin_lite.domain.validation import FieldError, validate_paste_input
from pastebin_lite.observability import get_correlation_id
from pastebin_lite.repositories.paste_repository import PasteRepository


logger = logging.getLogger(__name__)

# Errors meaning the store could not be reached or did not answer in time.
STORE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


def _record_to_dto(record: PasteRecord) -> dict[str, Any]:
    """Convert a PasteRecord to a plain dict DTO."""
    return {
        "id": record.id,
        "content": record.content,
        "created_at": record.created_at,
        "expires_at": record.expires_at,
        "remaining_views": record.remaining_views,
    }


class PasteError(Exception):
    """Base class for paste-related errors."""


class PasteValidationError(PasteError):
    """Raised when creating a paste with invalid parameters."""

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(error.message for error in self.errors))


class PasteNotFoundError(PasteError):
    """
    Raised when a paste cannot be served.

    Absent, expired and exhausted pastes all surface as this error.
    """


class StoreUnavailableError(PasteError):
    """Raised when the paste store cannot be reached."""


class PasteIdCollisionError(PasteError):
    """Raised when no unused paste id could be found."""


@dataclass
class PasteService:
    """
    Application service coordinating the paste lifecycle.

    Owns session lifecycle: creates a session per use case, commits on success,
    rolls back on exception, and closes the session in a finally block.
    Returns plain dict DTOs; no ORM entities escape this layer. Paste state is
    re-read from the store on every call.
    """

    session_factory: Callable[[], Session]
    clock: Clock = system_clock_ms
    id_generator: Callable[[int], str] = generate_paste_id
    max_content_bytes: Optional[int] = None
    max_id_attempts: int = 5

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------
    def create_paste(
        self,
        *,
        content: Any,
        ttl_seconds: Any = None,
        max_views: Any = None,
        now_ms: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Create a new paste enforcing business rules:

        - ``content`` must be a non-blank string (within ``max_content_bytes``)
        - ``ttl_seconds`` (if provided) must be an integer >= 1
        - ``max_views`` (if provided) must be an integer >= 1

        All violations are reported together in one ``PasteValidationError``.
        """
        now = resolve_now(self.clock, now_ms)

        errors = validate_paste_input(
            content,
            ttl_seconds,
            max_views,
            max_content_bytes=self.max_content_bytes,
            now_ms=now,
        )
        if errors:
            logger.warning(
                "Invalid parameters when creating paste",
                extra={
                    "event": "paste_create_invalid_parameters",
                    "correlation_id": get_correlation_id(),
                },
            )
            raise PasteValidationError(errors)

        expires_at = now + ttl_seconds * 1000 if ttl_seconds is not None else None

        for attempt in range(1, self.max_id_attempts + 1):
            record = PasteRecord(
                id=self.id_generator(now),
                content=content,
                created_at=now,
                expires_at=expires_at,
                remaining_views=max_views,
            )
            session = self.session_factory()
            try:
                paste_repo = PasteRepository(session=session)
                try:
                    stored = paste_repo.insert_paste(record)
                    session.commit()
                except IntegrityError:
                    session.rollback()
                    if paste_repo.get_paste_by_id(record.id) is None:
                        raise
                    logger.warning(
                        "Generated paste id already in use",
                        extra={
                            "event": "paste_id_collision",
                            "paste_id": record.id,
                            "attempt": attempt,
                            "correlation_id": get_correlation_id(),
                        },
                    )
                    continue

                logger.info(
                    "Paste created",
                    extra={
                        "event": "paste_created",
                        "paste_id": stored.id,
                        "remaining_views": stored.remaining_views,
                        "correlation_id": get_correlation_id(),
                    },
                )
                return _record_to_dto(stored)
            except STORE_UNAVAILABLE_ERRORS as exc:
                session.rollback()
                self._store_unavailable(exc)
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        raise PasteIdCollisionError(
            f"Could not allocate a unique paste id after {self.max_id_attempts} attempts."
        )

    # -------------------------------------------------------------------------
    # Retrieval / viewing
    # -------------------------------------------------------------------------
    def fetch_paste(
        self,
        paste_id: str,
        *,
        now_ms: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Retrieve a paste for viewing, enforcing expiry and view rules.

        Rules:
        - Absent → ``PasteNotFoundError``
        - Expired by time or by views at ``now`` → ``PasteNotFoundError``
        - No view budget → content is returned, nothing is written
        - Otherwise one view is consumed by a single conditional update; if
          another request took the last view first → ``PasteNotFoundError``

        A record with a negative view budget raises ``PasteInvariantViolation``.
        """
        now = resolve_now(self.clock, now_ms)

        session = self.session_factory()
        try:
            paste_repo = PasteRepository(session=session)

            logger.info(
                "Paste access attempt",
                extra={
                    "event": "paste_access_attempt",
                    "paste_id": paste_id,
                    "correlation_id": get_correlation_id(),
                },
            )

            record = paste_repo.get_paste_by_id(paste_id)
            if record is None:
                self._not_found(paste_id, "absent")

            ensure_invariants(record)
            if is_expired(record, now):
                self._not_found(paste_id, "expired")

            if record.remaining_views is None:
                session.commit()
                self._log_access_success(record)
                return _record_to_dto(record)

            if record.remaining_views <= 0:
                self._not_found(paste_id, "view_limit_reached")

            updated = paste_repo.decrement_remaining_views_atomic(record.id)
            if updated is None:
                self._not_found(paste_id, "view_limit_race_lost")

            ensure_invariants(updated)
            session.commit()
            self._log_access_success(updated)
            return _record_to_dto(updated)
        except STORE_UNAVAILABLE_ERRORS as exc:
            session.rollback()
            self._store_unavailable(exc)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    @staticmethod
    def _not_found(paste_id: str, reason: str) -> NoReturn:
        logger.info(
            "Paste access denied",
            extra={
                "event": "paste_access_denied",
                "paste_id": paste_id,
                "reason": reason,
                "correlation_id": get_correlation_id(),
            },
        )
        raise PasteNotFoundError(f"Paste {paste_id} not found.")

    @staticmethod
    def _log_access_success(record: PasteRecord) -> None:
        logger.info(
            "Paste access successful",
            extra={
                "event": "paste_access_success",
                "paste_id": record.id,
                "remaining_views": record.remaining_views,
                "correlation_id": get_correlation_id(),
            },
        )

    @staticmethod
    def _store_unavailable(exc: Exception) -> NoReturn:
        logger.error(
            "Paste store unavailable",
            extra={
                "event": "paste_store_unavailable",
                "error_type": type(exc).__name__,
                "correlation_id": get_correlation_id(),
            },
        )
        raise StoreUnavailableError("Paste store is unavailable.") from exc
