from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pastebin_lite import create_app
from pastebin_lite.db import Base, build_engine, build_session_factory, get_database
from pastebin_lite.domain import models as _models  # noqa: F401
from pastebin_lite.domain.clock import FixedClock
from pastebin_lite.repositories.paste_repository import PasteRepository
from pastebin_lite.services.paste_service import PasteService


def sqlite_url(path: Path) -> str:
    return f"sqlite+pysqlite:///{path}"


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="function")
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """
    Create a fresh file-backed SQLite database for each test function.

    A file (rather than ``:memory:``) lets every pooled connection, and so
    every thread, see the same tables.
    """

    engine = build_engine(sqlite_url(tmp_path / "pastes.db"))
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def paste_repo(session: Session) -> PasteRepository:
    return PasteRepository(session=session)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(1_000)


@pytest.fixture
def paste_service(session_factory: sessionmaker[Session], clock: FixedClock) -> PasteService:
    """Service with its own session factory; each call gets a new session from the test engine."""
    return PasteService(session_factory=session_factory, clock=clock)


# ---------------------------------------------------------------------------
# Application fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(tmp_path: Path) -> Generator[Flask, None, None]:
    app = create_app(
        "testing",
        {
            "SQLALCHEMY_DATABASE_URI": sqlite_url(tmp_path / "api.db"),
            "PUBLIC_BASE_URL": None,
        },
    )
    engine = get_database(app).engine
    Base.metadata.create_all(engine)
    try:
        yield app
    finally:
        engine.dispose()


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()
