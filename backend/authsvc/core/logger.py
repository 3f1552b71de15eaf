"""JSON logging for the auth service.

Every record is one JSON object on stdout. Inside a request the record carries
the correlation id taken from ``X-Request-ID`` / ``X-Correlation-ID`` (or a
fresh UUID4), and the same id is echoed back on the response.

Auth flows attach ``event`` and ``subject_id`` through ``extra=``; the
``timing`` decorator attaches ``endpoint`` and ``elapsed_ms``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Optional record attributes copied into the payload when present
EXTRA_FIELDS = ("event", "subject_id", "endpoint", "elapsed_ms")

# Chatty third-party loggers kept at WARNING unless the app runs in DEBUG
QUIET_LOGGERS = ("urllib3", "werkzeug")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting logic
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on records that do not already carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _incoming_request_id() -> str | None:
    for header in CORRELATION_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return None


def ensure_request_id() -> str:
    """
    Return the correlation id of the current request.

    The first call in a request resolves it from the headers (or generates a
    UUID4) and caches it on ``g``. Outside a request a throwaway UUID4 is
    returned.
    """
    if not has_request_context():
        return str(uuid4())
    if "request_id" not in g:
        g.request_id = _incoming_request_id() or str(uuid4())
    return g.request_id


def _level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single JSON stdout handler on the root logger."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_level(level))

    if root.level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def init_app(app: Flask) -> None:
    """Resolve the request id per request and echo it on every response."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _bind_request_id() -> None:  # pragma: no cover - integration glue
        # g outlives the request when an app context is already pushed
        g.pop("request_id", None)
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response):  # pragma: no cover - integration glue
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id"]
