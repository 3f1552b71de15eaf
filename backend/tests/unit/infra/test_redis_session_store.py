"""
Unit tests for RedisSessionStore using fakeredis.

Covers the refresh-token slot, the revocation set, the OAuth state nonce and
the translation of Redis failures into ``StoreError``.
"""

from __future__ import annotations

import hashlib
from datetime import timedelta

import fakeredis
import pytest
from authsvc.infra.redis.redis_session_store import RedisSessionStore
from authsvc.services._shared.errors import StoreError


@pytest.fixture
def store(fake_redis):
    return RedisSessionStore(fake_redis)


@pytest.fixture
def broken_store():
    """Store whose Redis server refuses every command."""
    server = fakeredis.FakeServer()
    server.connected = False
    return RedisSessionStore(fakeredis.FakeRedis(server=server))


def test_refresh_token_set_get_with_ttl(store, fake_redis):
    store.set_refresh_token(7, "rt-1", timedelta(minutes=5))

    assert store.get_refresh_token(7) == "rt-1"
    assert 0 < fake_redis.ttl("user:7:refresh_token") <= 300


def test_refresh_token_is_overwritten_per_subject(store, fake_redis):
    store.set_refresh_token(7, "rt-1", timedelta(minutes=5))
    store.set_refresh_token(7, "rt-2", timedelta(minutes=5))

    assert store.get_refresh_token(7) == "rt-2"
    assert fake_redis.keys("user:7:*") == [b"user:7:refresh_token"]


def test_delete_refresh_token(store):
    store.set_refresh_token(7, "rt-1", timedelta(minutes=5))
    store.delete_refresh_token(7)

    assert store.get_refresh_token(7) is None
    # deleting again is a no-op
    store.delete_refresh_token(7)


def test_missing_refresh_token_is_none(store):
    assert store.get_refresh_token(404) is None


def test_blacklist_stores_digest_not_raw_token(store, fake_redis):
    token = "header.payload.signature"
    store.blacklist_access_token(token, 7, timedelta(seconds=30))

    digest = hashlib.sha256(token.encode()).hexdigest()
    assert store.is_blacklisted(token) is True
    assert fake_redis.get(f"blacklist:{digest}") == b"7"
    assert 0 < fake_redis.ttl(f"blacklist:{digest}") <= 30
    assert not any(token.encode() in key for key in fake_redis.keys("*"))


def test_unknown_token_is_not_blacklisted(store):
    assert store.is_blacklisted("never-seen") is False


def test_non_positive_ttl_is_floored_to_one_second(store, fake_redis):
    store.set_refresh_token(7, "rt-1", timedelta(0))

    assert fake_redis.ttl("user:7:refresh_token") == 1


def test_oauth_state_is_single_use(store, fake_redis):
    store.save_oauth_state("nonce-1", timedelta(minutes=10))

    assert 0 < fake_redis.ttl("oauth_state:nonce-1") <= 600
    assert store.consume_oauth_state("nonce-1") is True
    assert store.consume_oauth_state("nonce-1") is False


def test_unknown_oauth_state_is_rejected(store):
    assert store.consume_oauth_state("forged") is False


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.set_refresh_token(1, "rt", timedelta(seconds=5)),
        lambda s: s.get_refresh_token(1),
        lambda s: s.delete_refresh_token(1),
        lambda s: s.blacklist_access_token("t", 1, timedelta(seconds=5)),
        lambda s: s.is_blacklisted("t"),
        lambda s: s.save_oauth_state("n", timedelta(seconds=5)),
        lambda s: s.consume_oauth_state("n"),
    ],
)
def test_redis_failures_become_store_errors(broken_store, call):
    with pytest.raises(StoreError):
        call(broken_store)
