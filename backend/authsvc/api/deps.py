"""Shared API helpers for responses, auth guarding and service wiring."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authsvc.core.errors import envelope
from authsvc.core.logger import ensure_request_id
from authsvc.services._shared.base import ServiceContext
from authsvc.services._shared.errors import StoreError, TokenError, TokenFailure
from authsvc.services._shared.ports import IdentityProvider, SessionStore, TokenProvider
from authsvc.services.auth.service import AuthService

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def json_response(
    data: Any = None, *, message: str = "", status: int = 200
) -> Response:
    """Return ``data`` wrapped in the standard response envelope."""

    response = jsonify(envelope(status=status, message=message, data=data))
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


# ----------------------------- collaborators ------------------------------


def get_token_provider() -> TokenProvider:
    return current_app.extensions["token_provider"]


def get_session_store() -> SessionStore:
    store = current_app.extensions.get("session_store")
    if store is None:
        raise StoreError("Session store is not configured")
    return store


def get_identity_provider() -> IdentityProvider:
    return current_app.extensions["identity_provider"]


def get_auth_service() -> AuthService:
    """Build the request's :class:`AuthService` from app-wide collaborators."""

    return AuthService(
        token_provider=get_token_provider(),
        session_store=get_session_store(),
        identity_provider=get_identity_provider(),
        state_ttl=timedelta(seconds=int(current_app.config.get("OAUTH_STATE_TTL", 600))),
        ctx=ServiceContext(request_id=ensure_request_id()),
    )


# ------------------------------- access guard ------------------------------


def bearer_token() -> str:
    """
    Extract the raw token from ``Authorization: Bearer <token>``.

    :raises TokenError: ``MISSING`` when the header is absent, ``MALFORMED``
        when it is not a single bearer credential.
    """
    header = request.headers.get("Authorization")
    if not header:
        raise TokenError(TokenFailure.MISSING)
    if not header.startswith(BEARER_PREFIX):
        raise TokenError(TokenFailure.MALFORMED)
    token = header[len(BEARER_PREFIX) :].strip()
    if not token or " " in token:
        raise TokenError(TokenFailure.MALFORMED)
    return token


def require_session(func: F) -> F:
    """
    Admit the request only with a live, non-revoked access token.

    Revocation is checked before the signature, so a blacklisted token is
    reported as revoked even once it has expired. On success ``g.subject_id``
    and ``g.access_token`` are set for the view.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        if get_session_store().is_blacklisted(token):
            log.warning("auth.token_revoked", extra={"event": "auth.token_revoked"})
            raise TokenError(TokenFailure.REVOKED)
        try:
            subject_id = get_token_provider().verify_access_token(token)
        except TokenError as exc:
            log.warning(
                "auth.token_rejected kind=%s",
                exc.kind.name,
                extra={"event": "auth.token_rejected"},
            )
            raise
        g.subject_id = subject_id
        g.access_token = token
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
