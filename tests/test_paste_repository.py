from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pastebin_lite.domain.models import Paste, PasteRecord
from pastebin_lite.repositories.paste_repository import PasteRepository


def _store(session: Session, **overrides) -> PasteRecord:
    values = {"id": "p1", "content": "hello", "created_at": 1_000}
    values.update(overrides)
    record = PasteRepository(session=session).insert_paste(PasteRecord(**values))
    session.commit()
    return record


def test_insert_and_get(session: Session, paste_repo: PasteRepository) -> None:
    stored = _store(session, expires_at=5_000, remaining_views=3)

    assert paste_repo.get_paste_by_id("p1") == stored
    assert stored == PasteRecord("p1", "hello", 1_000, 5_000, 3)


def test_get_missing_returns_none(paste_repo: PasteRepository) -> None:
    assert paste_repo.get_paste_by_id("nope") is None


def test_insert_duplicate_id_fails(session: Session, session_factory) -> None:
    _store(session)

    with session_factory() as other:
        with pytest.raises(IntegrityError):
            PasteRepository(session=other).insert_paste(PasteRecord("p1", "other", 2_000))
        other.rollback()


def test_negative_view_budget_rejected_by_store(paste_repo: PasteRepository) -> None:
    with pytest.raises(IntegrityError):
        paste_repo.insert_paste(PasteRecord("p1", "hello", 1_000, remaining_views=-1))


def test_paste_content_is_immutable(session: Session) -> None:
    _store(session)
    paste = session.get(Paste, "p1")
    assert paste is not None

    with pytest.raises(ValueError):
        paste.content = "new content"


def test_decrement_returns_post_decrement_record(session: Session, paste_repo: PasteRepository) -> None:
    _store(session, remaining_views=2)

    first = paste_repo.decrement_remaining_views_atomic("p1")
    second = paste_repo.decrement_remaining_views_atomic("p1")
    session.commit()

    assert first is not None and first.remaining_views == 1
    assert second is not None and second.remaining_views == 0
    assert second.content == "hello"
    assert paste_repo.get_paste_by_id("p1").remaining_views == 0


def test_decrement_never_goes_below_zero(session: Session, paste_repo: PasteRepository) -> None:
    _store(session, remaining_views=0)

    assert paste_repo.decrement_remaining_views_atomic("p1") is None
    session.commit()
    assert paste_repo.get_paste_by_id("p1").remaining_views == 0


def test_decrement_leaves_unlimited_paste_alone(session: Session, paste_repo: PasteRepository) -> None:
    _store(session, remaining_views=None)

    assert paste_repo.decrement_remaining_views_atomic("p1") is None
    assert paste_repo.get_paste_by_id("p1").remaining_views is None


def test_decrement_missing_paste(paste_repo: PasteRepository) -> None:
    assert paste_repo.decrement_remaining_views_atomic("nope") is None


def test_purge_removes_only_unreadable_pastes(session: Session, paste_repo: PasteRepository) -> None:
    _store(session, id="timed-out", expires_at=2_000)
    _store(session, id="exhausted", remaining_views=0)
    _store(session, id="still-timed", expires_at=2_001)
    _store(session, id="has-views", remaining_views=1)
    _store(session, id="forever")

    purged = paste_repo.purge_expired(2_000)
    session.commit()

    assert purged == 2
    remaining = session.execute(select(Paste.id).order_by(Paste.id)).scalars().all()
    assert remaining == ["forever", "has-views", "still-timed"]
    assert session.execute(select(func.count()).select_from(Paste)).scalar_one() == 3
