from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Optional

from flask import Blueprint, current_app, request, url_for
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pastebin_lite.api.schemas import (
    HealthResponse,
    PasteCreateRequest,
    PasteCreateResponse,
    PasteFetchResponse,
)
from pastebin_lite.db import get_database
from pastebin_lite.domain.clock import parse_time_override
from pastebin_lite.domain.expiry import PasteInvariantViolation
from pastebin_lite.observability import get_correlation_id
from pastebin_lite.services.paste_service import (
    PasteIdCollisionError,
    PasteNotFoundError,
    PasteService,
    PasteValidationError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")

SERVICE_EXTENSION_KEY = "pastebin_lite.paste_service"
TEST_NOW_HEADER = "X-Test-Now-Ms"

_NO_STORE = {"Cache-Control": "no-store"}


def get_paste_service() -> PasteService:
    return current_app.extensions[SERVICE_EXTENSION_KEY]


def _request_now_ms() -> Optional[int]:
    """Time override from the request, honoured only in test mode."""
    if not current_app.config.get("TEST_MODE", False):
        return None
    return parse_time_override(request.headers.get(TEST_NOW_HEADER))


def _paste_url(paste_id: str) -> str:
    base_url = current_app.config.get("PUBLIC_BASE_URL")
    if base_url:
        return f"{base_url.rstrip('/')}{url_for('api.fetch_paste', paste_id=paste_id)}"
    return url_for("api.fetch_paste", paste_id=paste_id, _external=True)


@api_bp.route("/healthz", methods=["GET"])
def healthz() -> tuple[dict, int]:
    """Health check confirming the database answers."""

    try:
        with get_database(current_app).engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning(
            "Health check failed",
            extra={
                "event": "healthz_store_unavailable",
                "error_type": type(exc).__name__,
                "correlation_id": get_correlation_id(),
            },
        )
        body = HealthResponse(ok=False, error="Database connection unavailable")
        return body.model_dump(), HTTPStatus.SERVICE_UNAVAILABLE

    return HealthResponse().model_dump(exclude_none=True), HTTPStatus.OK


@api_bp.route("/pastes", methods=["POST"])
def create_paste() -> tuple[dict, int]:
    """
    Create a new paste.

    Pydantic normalises the body; every rule is enforced by the service and
    reported as a list of ``{field, reason, message}``. A body that is not a
    JSON object counts as empty.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    payload = PasteCreateRequest.model_validate(body)

    try:
        dto = get_paste_service().create_paste(
            content=payload.content,
            ttl_seconds=payload.ttl_seconds,
            max_views=payload.max_views,
            now_ms=_request_now_ms(),
        )
    except PasteValidationError as exc:
        return {
            "error": "Validation failed",
            "details": [error.to_dict() for error in exc.errors],
        }, HTTPStatus.BAD_REQUEST
    except StoreUnavailableError as exc:
        return {"error": str(exc)}, HTTPStatus.SERVICE_UNAVAILABLE
    except PasteIdCollisionError:
        logger.exception(
            "Paste id allocation failed",
            extra={"event": "paste_create_failed", "correlation_id": get_correlation_id()},
        )
        return {"error": "Failed to create paste"}, HTTPStatus.INTERNAL_SERVER_ERROR

    created = PasteCreateResponse(id=dto["id"], url=_paste_url(dto["id"]))
    return created.model_dump(), HTTPStatus.CREATED


@api_bp.route("/pastes/<paste_id>", methods=["GET"])
def fetch_paste(paste_id: str) -> tuple[dict, int, dict]:
    """
    Fetch a paste. Each successful request on a view-limited paste counts as
    one view.
    """
    try:
        dto = get_paste_service().fetch_paste(paste_id, now_ms=_request_now_ms())
    except PasteNotFoundError:
        return {"error": "Paste not found"}, HTTPStatus.NOT_FOUND, _NO_STORE
    except StoreUnavailableError as exc:
        return {"error": str(exc)}, HTTPStatus.SERVICE_UNAVAILABLE, _NO_STORE
    except PasteInvariantViolation:
        logger.exception(
            "Stored paste violates invariants",
            extra={
                "event": "paste_invariant_violation",
                "paste_id": paste_id,
                "correlation_id": get_correlation_id(),
            },
        )
        return {"error": "Failed to fetch paste"}, HTTPStatus.INTERNAL_SERVER_ERROR, _NO_STORE

    body = PasteFetchResponse.from_dto(dto)
    return body.model_dump(), HTTPStatus.OK, _NO_STORE
