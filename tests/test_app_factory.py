from __future__ import annotations

from pathlib import Path

from flask import Flask

from pastebin_lite import create_app
from pastebin_lite.api.pastes import SERVICE_EXTENSION_KEY
from pastebin_lite.config import DevelopmentConfig, TestingConfig, get_config
from pastebin_lite.db import get_database
from pastebin_lite.services.paste_service import PasteService
from pastebin_lite.worker.expiry_purger import EXTENSION_KEY as PURGER_KEY


def test_create_app_returns_flask_instance() -> None:
    app = create_app("testing")
    assert isinstance(app, Flask)
    assert app.config["TESTING"] is True


def test_create_app_wires_service_and_database(tmp_path: Path) -> None:
    app = create_app(
        "testing",
        {"SQLALCHEMY_DATABASE_URI": f"sqlite+pysqlite:///{tmp_path / 'x.db'}"},
    )

    service = app.extensions[SERVICE_EXTENSION_KEY]
    assert isinstance(service, PasteService)
    assert service.session_factory is get_database(app).session_factory


def test_each_app_gets_its_own_database(tmp_path: Path) -> None:
    first = create_app("testing", {"SQLALCHEMY_DATABASE_URI": f"sqlite+pysqlite:///{tmp_path / 'a.db'}"})
    second = create_app("testing", {"SQLALCHEMY_DATABASE_URI": f"sqlite+pysqlite:///{tmp_path / 'b.db'}"})

    assert get_database(first).engine is not get_database(second).engine


def test_purger_not_started_when_testing() -> None:
    app = create_app("testing", {"EXPIRY_PURGE_ENABLED": True})
    assert PURGER_KEY not in app.extensions


def test_get_config_falls_back_to_development() -> None:
    assert get_config(None) is DevelopmentConfig
    assert get_config("unknown") is DevelopmentConfig
    assert get_config("test") is TestingConfig
