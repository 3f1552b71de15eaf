"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authsvc.api.deps import json_response, timing
from authsvc.core.extensions import db

bp = Blueprint("health", __name__)


def _cache_status() -> str:
    client = current_app.extensions.get("redis_client")
    if client is None:
        return "disabled"
    try:
        client.ping()
    except RedisError:
        current_app.logger.exception("healthcheck.cache_error")
        return "fail"
    return "ok"


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and cache health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    cache_status = _cache_status()
    healthy = db_status == "ok" and cache_status != "fail"
    payload = {
        "status": "ok" if healthy else "degraded",
        "db": db_status,
        "cache": cache_status,
    }
    status = 200 if healthy else 503
    return json_response(payload, message=payload["status"], status=status)
