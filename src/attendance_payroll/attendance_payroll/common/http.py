from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from flask import Flask, jsonify, request

from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def status_for(error: DomainError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"success": False, "message": str(e)}), status_for(e)

    @app.errorhandler(500)
    def handle_internal_error(e):
        logger.error(
            "unhandled error on %s %s",
            request.method,
            request.path,
            exc_info=getattr(e, "original_exception", None),
        )
        return jsonify({"success": False, "message": "Internal server error"}), 500


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("JSON object body expected")
    return body


def query_date(name: str) -> Optional[date]:
    value = (request.args.get(name) or "").strip()
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")


def query_bool(name: str) -> Optional[bool]:
    value = (request.args.get(name) or "").strip().lower()
    if not value:
        return None
    return value in {"1", "true", "yes"}


def body_date(body: dict, name: str, *, required: bool = False) -> Optional[date]:
    value = str(body.get(name) or "").strip()
    if not value:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    try:
        return parse_iso_date(value[:10])
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD")
