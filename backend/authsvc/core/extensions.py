"""Global Flask extension instances and initialization helpers."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Global naming convention for all constraints
convention = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

# Global singletons (import-safe)
db: SQLAlchemy = SQLAlchemy(session_options={"autoflush": False}, metadata=metadata)
jwt = JWTManager()
redis_client: redis.Redis | None = None


def init_cors(app: Flask) -> None:
    """Configure CORS for ``/api/*`` from ``CORS_ORIGINS``.

    A blank value or ``"*"`` allows any origin but disables credentials.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )


def init_app(app: Flask) -> None:
    """Initialize SQLAlchemy, JWT, Redis and the auth collaborators.

    Parameters
    ----------
    app: flask.Flask
        Application used to bind extension instances. The credential codec,
        session store and identity provider are built once here and kept in
        ``app.extensions`` under ``token_provider``, ``session_store`` and
        ``identity_provider``.
    """
    db.init_app(app)

    # Ensure models are imported so metadata is complete for create_all
    from authsvc import models as _models  # noqa: F401

    jwt.init_app(app)
    init_cors(app)

    from authsvc.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
    from authsvc.infra.oauth.google_identity_provider import (
        GoogleIdentityProvider,
        GoogleOAuthConfig,
    )

    app.extensions["token_provider"] = JWTTokenProvider(
        access_ttl=app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    )
    app.extensions["identity_provider"] = GoogleIdentityProvider(
        config=GoogleOAuthConfig.from_mapping(app.config)
    )

    global redis_client
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        redis_client = None
        app.extensions.pop("redis_client", None)
        app.extensions["session_store"] = None
        return

    redis_client = redis.Redis.from_url(redis_url)
    try:
        redis_client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {redis_url!r}") from exc
    app.extensions["redis_client"] = redis_client

    from authsvc.infra.redis.redis_session_store import RedisSessionStore

    app.extensions["session_store"] = RedisSessionStore(redis_client)

