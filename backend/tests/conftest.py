"""Pytest fixtures for the auth service.

Each test runs inside a pushed application context against a fresh
in-memory SQLite schema. Redis is replaced by ``fakeredis`` and the Google
provider by :class:`FakeIdentityProvider`.
"""

from __future__ import annotations

import os

import fakeredis
import pytest
from authsvc.core.config import TestingConfig
from authsvc.core.extensions import db as _db
from authsvc.factory import create_app
from authsvc.infra.redis.redis_session_store import RedisSessionStore
from authsvc.services._shared.ports import FakeIdentityProvider


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("REDIS_URL", None)
    app = create_app(TestingConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(autouse=True)
def app_ctx(app):
    """Push an app context and build a clean schema for every test."""
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def session(app_ctx):
    """Return the Flask-scoped SQLAlchemy session."""
    return _db.session


@pytest.fixture()
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture()
def session_store(fake_redis):
    return RedisSessionStore(fake_redis)


@pytest.fixture()
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture()
def wired_app(app, session_store, identity_provider):
    """Install the fakeredis store and fake provider on the shared app."""
    previous = {
        key: app.extensions.get(key) for key in ("session_store", "identity_provider")
    }
    app.extensions["session_store"] = session_store
    app.extensions["identity_provider"] = identity_provider
    try:
        yield app
    finally:
        app.extensions.update(previous)


@pytest.fixture()
def client(wired_app):
    return wired_app.test_client()

