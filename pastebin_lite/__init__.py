from __future__ import annotations

import functools
import os
from collections.abc import Mapping
from typing import Any

from flask import Flask
from flask_cors import CORS

from .api.pastes import SERVICE_EXTENSION_KEY, api_bp
from .config import get_config
from .db import init_db
from .domain.identifiers import generate_paste_id
from .observability import init_observability
from .services.paste_service import PasteService
from .worker.expiry_purger import start_expiry_purger


def create_app(
    env_name: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Flask:
    """
    Application factory for the paste service.

    The configuration is selected based on the provided ``env_name`` or,
    if not given, the ``APP_ENV`` environment variable (falling back to
    ``development``). ``overrides`` is applied on top of it.
    """
    if env_name is None:
        env_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__)
    app_config = get_config(env_name)
    app.config.from_object(app_config)
    if overrides:
        app.config.update(overrides)

    CORS(app)

    # Initialize infrastructure layers
    database = init_db(app)
    init_observability(app)

    # The service is built once and shared by all requests.
    app.extensions[SERVICE_EXTENSION_KEY] = PasteService(
        session_factory=database.session_factory,
        id_generator=functools.partial(
            generate_paste_id,
            random_length=app.config["PASTE_ID_RANDOM_LENGTH"],
        ),
        max_content_bytes=app.config.get("MAX_CONTENT_BYTES"),
        max_id_attempts=app.config["PASTE_ID_MAX_ATTEMPTS"],
    )

    app.register_blueprint(api_bp)

    if app.config.get("EXPIRY_PURGE_ENABLED") and not app.config.get("TESTING", False):
        start_expiry_purger(app)

    return app
