from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import Delete, Select, Update, delete, or_, select, update
from sqlalchemy.orm import Session

from pastebin_lite.domain.models import PASTE_RECORD_COLUMNS, Paste, PasteRecord
from pastebin_lite.observability import get_correlation_id


logger = logging.getLogger(__name__)


class PasteRepository:
    """
    Repository for Paste records.

    All database interaction for Paste should go through this class. Records
    are returned as detached ``PasteRecord`` values; the caller owns the
    session and is responsible for committing.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_paste(self, record: PasteRecord) -> PasteRecord:
        """
        Persist a new Paste.

        Raises ``sqlalchemy.exc.IntegrityError`` on flush if the id is taken.
        """

        paste = Paste(
            id=record.id,
            content=record.content,
            created_at=record.created_at,
            expires_at=record.expires_at,
            remaining_views=record.remaining_views,
        )
        self._session.add(paste)
        self._session.flush()
        return paste.to_record()

    def get_paste_by_id(self, paste_id: str) -> Optional[PasteRecord]:
        """Return a Paste by its id, or ``None`` if not found."""

        stmt: Select[tuple[Paste]] = select(Paste).where(Paste.id == paste_id)
        paste = self._session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return paste.to_record() if paste is not None else None

    def decrement_remaining_views_atomic(self, paste_id: str) -> Optional[PasteRecord]:
        """
        Consume one view of a Paste in a single guarded UPDATE.

        The row is only touched while ``remaining_views > 0``; the
        post-decrement record is returned by the same statement. Returns
        ``None`` when nothing matched: the paste is absent, has no view
        budget, or another request took the last view.
        """

        stmt: Update = (
            update(Paste)
            .where(Paste.id == paste_id, Paste.remaining_views > 0)
            .values(remaining_views=Paste.remaining_views - 1)
            .returning(*PASTE_RECORD_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        row = self._session.execute(stmt).one_or_none()
        if row is None:
            return None

        record = PasteRecord(*row)
        logger.info(
            "Paste view consumed",
            extra={
                "event": "paste_views_decremented",
                "paste_id": record.id,
                "remaining_views": record.remaining_views,
                "correlation_id": get_correlation_id(),
            },
        )
        return record

    def purge_expired(self, now_ms: int) -> int:
        """
        Delete pastes that can no longer be read at ``now_ms``.

        Returns the number of rows removed. Caller is responsible for committing.
        """

        stmt: Delete = (
            delete(Paste)
            .where(
                or_(
                    Paste.expires_at <= now_ms,
                    Paste.remaining_views <= 0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)
