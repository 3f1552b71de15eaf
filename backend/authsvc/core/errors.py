"""Centralized JSON error handling for the API.

Every error leaves the app in the same envelope as successful responses::

    {"error": true, "code": <http status>, "message": "...", "data": {...}?}
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, cast

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authsvc.core.logger import ensure_request_id
from authsvc.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    EntropySourceError,
    InvalidStateError,
    NotFoundError,
    ServiceError,
    SigningError,
    StoreError,
    UpstreamError,
    UpstreamFailure,
)

log = logging.getLogger(__name__)


def envelope(
    *, status: int, message: str, data: Any = None, error: bool | None = None
) -> dict[str, Any]:
    """
    Build the response envelope shared by success and error payloads.

    :param status: HTTP status code, echoed as ``code``.
    :param message: Human-readable summary (safe for clients).
    :param data: Optional payload; omitted when ``None``.
    :param error: Defaults to ``status >= 400``.
    :returns: Envelope dictionary.
    :rtype: dict
    """
    body: dict[str, Any] = {
        "error": status >= 400 if error is None else error,
        "code": int(status),
        "message": message,
    }
    if data is not None:
        body["data"] = data
    return body


def _error_response(status: int, message: str, data: Any = None) -> tuple[Response, int]:
    return jsonify(envelope(status=status, message=message, data=data)), status


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    data : Any, optional
        Optional structured payload (e.g., validation messages).
    """

    def __init__(self, message: str, status_code: int = 400, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.data = data


class BadRequest(APIError):
    """400 for malformed input or a rejected OAuth ``state``."""

    def __init__(self, message: str = "Bad request", data: Any = None) -> None:
        super().__init__(message, status_code=HTTPStatus.BAD_REQUEST, data=data)


class Unauthorized(APIError):
    """401 when authentication fails."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED)


class NotFound(APIError):
    """404 when resources are missing."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND)


class Conflict(APIError):
    """409 for uniqueness/constraint collisions."""

    def __init__(self, message: str = "Conflict") -> None:
        super().__init__(message, status_code=HTTPStatus.CONFLICT)


class BadGateway(APIError):
    """502 when the identity provider cannot be reached or misbehaves."""

    def __init__(self, message: str = "Bad gateway") -> None:
        super().__init__(message, status_code=HTTPStatus.BAD_GATEWAY)


class InternalError(APIError):
    """500 with a generic, client-safe message."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)


def _provider_rejected(exc: UpstreamError) -> bool:
    """The provider answered and refused the authorization code."""
    return (
        not exc.transport
        and exc.kind is UpstreamFailure.EXCHANGE_FAILED
        and exc.status is not None
        and 400 <= exc.status < 500
    )


def from_service_error(exc: Exception) -> Exception:
    """
    Map a service-layer error to its :class:`APIError`.

    Non-service exceptions are returned untouched.
    """
    if isinstance(exc, InvalidStateError):
        return BadRequest(str(exc))
    if isinstance(exc, AuthenticationError):
        return Unauthorized(str(exc))
    if isinstance(exc, NotFoundError):
        return NotFound(f"{exc.entity} not found")
    if isinstance(exc, ConflictError):
        return Conflict(f"{exc.entity}: {exc.detail}")
    if isinstance(exc, UpstreamError):
        if _provider_rejected(exc):
            return Unauthorized(str(exc))
        return BadGateway(str(exc))
    if isinstance(exc, StoreError | SigningError | EntropySourceError):
        # Messages are fixed per class; driver text stays in the logs.
        return InternalError(str(exc))
    if isinstance(exc, ServiceError):
        return BadRequest(str(exc))
    return exc


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Every handled error uses the response envelope.
    - 5xx are logged with ``exc_info`` for traceability; 4xx as warnings.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        level = log.error if err.status_code >= 500 else log.warning
        level(
            "APIError: status=%s msg=%s request_id=%s",
            err.status_code,
            err.message,
            ensure_request_id(),
        )
        return _error_response(err.status_code, err.message, err.data)

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        api_err = cast(APIError, from_service_error(err))
        if api_err.status_code >= 500:
            log.error(
                "ServiceError: type=%s status=%s request_id=%s",
                type(err).__name__,
                api_err.status_code,
                ensure_request_id(),
                exc_info=err,
            )
        else:
            log.warning(
                "ServiceError: type=%s status=%s msg=%s request_id=%s",
                type(err).__name__,
                api_err.status_code,
                api_err.message,
                ensure_request_id(),
            )
        return _error_response(api_err.status_code, api_err.message, api_err.data)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        message = (err.description or HTTPStatus(status).phrase).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        level = log.error if status >= 500 else log.warning
        level(
            "HTTPException: status=%s detail=%s request_id=%s",
            status,
            message,
            ensure_request_id(),
        )
        return _error_response(status, message)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        log.warning("ValidationError: request_id=%s", ensure_request_id())
        return _error_response(
            HTTPStatus.BAD_REQUEST, "Validation failed", {"errors": err.messages}
        )

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Do not leak raw DB error to clients
        log.error("IntegrityError: request_id=%s", ensure_request_id(), exc_info=True)
        return _error_response(HTTPStatus.CONFLICT, "Resource conflict")

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        log.error("OperationalError: request_id=%s", ensure_request_id(), exc_info=True)
        return _error_response(HTTPStatus.SERVICE_UNAVAILABLE, "Service temporarily unavailable")

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Unexpected server-side error; never leak internal details
        log.error("Unhandled exception: request_id=%s", ensure_request_id(), exc_info=True)
        return _error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Unexpected error")
