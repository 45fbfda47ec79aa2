from __future__ import annotations

import typing as t
from dataclasses import dataclass

from flask import Flask
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker


Base = declarative_base()

EXTENSION_KEY = "pastebin_lite.db"


@dataclass(frozen=True)
class Database:
    """Engine and session factory owned by a single application instance."""

    engine: Engine
    session_factory: sessionmaker[Session]


def build_engine(
    database_uri: str,
    *,
    echo: bool = False,
    options: t.Mapping[str, t.Any] | None = None,
) -> Engine:
    """
    Create a SQLAlchemy engine for ``database_uri``.

    SQLite connections are shared across threads by the pool and wait on
    locks instead of failing immediately.
    """
    kwargs: dict[str, t.Any] = dict(options or {})
    if make_url(database_uri).get_backend_name() == "sqlite":
        connect_args = dict(kwargs.pop("connect_args", {}))
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        kwargs["connect_args"] = connect_args

    return create_engine(database_uri, echo=echo, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(app: Flask) -> Database:
    """
    Build the engine and session factory for the Flask app.

    Reads the database URL from ``app.config['SQLALCHEMY_DATABASE_URI']``.
    The result is stored on ``app.extensions`` and handed explicitly to the
    services that need it.
    """
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
    if not database_uri:
        raise RuntimeError(
            "SQLALCHEMY_DATABASE_URI is not configured on the Flask app."
        )

    engine = build_engine(
        database_uri,
        echo=app.config.get("SQLALCHEMY_ECHO", False),
        options=app.config.get("SQLALCHEMY_ENGINE_OPTIONS"),
    )
    database = Database(engine=engine, session_factory=build_session_factory(engine))
    app.extensions[EXTENSION_KEY] = database
    return database


def get_database(app: Flask) -> Database:
    """Return the database handle created by ``init_db(app)``."""
    try:
        return t.cast(Database, app.extensions[EXTENSION_KEY])
    except KeyError:
        raise RuntimeError("Database is not initialized. Call init_db(app) first.") from None
