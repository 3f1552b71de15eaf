"""Authentication endpoints using the service layer."""

from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, g, redirect, request

from authsvc.api.deps import get_auth_service, json_response, require_session, timing
from authsvc.core.errors import Unauthorized
from authsvc.schemas import (
    AccessTokenSchema,
    CallbackQuerySchema,
    FederatedLoginSchema,
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    TokenPairSchema,
)
from authsvc.services._shared.errors import NotFoundError
from authsvc.services.auth.dto import (
    FederatedLoginIn,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
)

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
callback_schema = CallbackQuerySchema()
token_pair_schema = TokenPairSchema()
access_token_schema = AccessTokenSchema()
federated_schema = FederatedLoginSchema()


@bp.post("/register")
@timing
def register():
    """Create a password identity and return its first token pair."""

    data = register_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().register(RegisterIn(**data))
    return json_response(token_pair_schema.dump(pair), message="Registration successful")


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    try:
        pair = get_auth_service().login(LoginIn(**data))
    except NotFoundError as exc:
        # Unknown email and wrong password are indistinguishable to clients
        raise Unauthorized("Invalid credentials") from exc
    return json_response(token_pair_schema.dump(pair), message="Login successful")


@bp.get("/login/google")
@timing
def login_google():
    """Redirect the browser to the provider's consent screen."""

    url = get_auth_service().begin_federated_login()
    return redirect(url, code=307)


@bp.get("/login/google/callback")
@timing
def login_google_callback():
    """Finish the authorization-code flow and open a session."""

    data = callback_schema.load(request.args)
    result = get_auth_service().federated_login(FederatedLoginIn(**data))
    return json_response(federated_schema.dump(asdict(result)), message="Login successful")


@bp.post("/logout")
@timing
@require_session
def logout():
    """Revoke the presented access token and drop the refresh token."""

    get_auth_service().logout(LogoutIn(subject_id=g.subject_id, access_token=g.access_token))
    return json_response(message="Logout successful")


@bp.post("/refresh")
@timing
@require_session
def refresh():
    """Exchange the stored refresh token for a new access token."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    out = get_auth_service().refresh(
        RefreshIn(subject_id=g.subject_id, refresh_token=data["refresh_token"])
    )
    return json_response(access_token_schema.dump(out), message="Token refreshed successfully")
