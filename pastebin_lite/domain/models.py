from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from pastebin_lite.db import Base


PASTE_ID_MAX_LENGTH = 32


class Paste(Base):
    """Paste entity persisted via SQLAlchemy. Timestamps are epoch milliseconds."""

    __tablename__ = "pastes"
    __table_args__ = (
        CheckConstraint(
            "length(content) >= 1",
            name="ck_pastes_content_not_empty",
        ),
        CheckConstraint(
            "remaining_views IS NULL OR remaining_views >= 0",
            name="ck_pastes_remaining_views_non_negative",
        ),
    )

    id: Mapped[str] = mapped_column(String(PASTE_ID_MAX_LENGTH), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        nullable=True,
        index=True,
    )
    remaining_views: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    @validates("content")
    def _validate_immutable_content(self, key: str, value: str) -> str:
        """
        Enforce that ``content`` is immutable after initial creation.

        The value can be set on new instances, but any subsequent attempt to
        change it will raise an error.
        """

        if getattr(self, "content", None) is not None and self.content != value:
            raise ValueError("Paste content is immutable and cannot be modified.")
        return value

    def to_record(self) -> PasteRecord:
        return PasteRecord(
            id=self.id,
            content=self.content,
            created_at=self.created_at,
            expires_at=self.expires_at,
            remaining_views=self.remaining_views,
        )


@dataclass(frozen=True)
class PasteRecord:
    """Snapshot of a stored paste, detached from any session."""

    id: str
    content: str
    created_at: int
    expires_at: Optional[int] = None
    remaining_views: Optional[int] = None


# Column expressions returned by UPDATE ... RETURNING, in PasteRecord order.
PASTE_RECORD_COLUMNS = (
    Paste.id,
    Paste.content,
    Paste.created_at,
    Paste.expires_at,
    Paste.remaining_views,
)
