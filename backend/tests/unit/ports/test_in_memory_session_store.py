"""Unit tests for the process-local session store used by service tests."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest
from authsvc.services._shared.ports import InMemorySessionStore


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(clock=clock)


def test_refresh_token_expires_after_ttl(store, clock):
    store.set_refresh_token(1, "rt", timedelta(seconds=60))

    clock.now += 59
    assert store.get_refresh_token(1) == "rt"

    clock.now += 1
    assert store.get_refresh_token(1) is None


def test_blacklist_entry_expires_with_token(store, clock):
    store.blacklist_access_token("tok", 1, timedelta(seconds=10))
    assert store.is_blacklisted("tok") is True

    clock.now += 10
    assert store.is_blacklisted("tok") is False


def test_state_consumed_once(store):
    store.save_oauth_state("s", timedelta(minutes=10))

    assert store.consume_oauth_state("s") is True
    assert store.consume_oauth_state("s") is False


def test_expired_state_cannot_be_consumed(store, clock):
    store.save_oauth_state("s", timedelta(seconds=5))
    clock.now += 6

    assert store.consume_oauth_state("s") is False


def test_ttl_of_reports_remaining_seconds(store, clock):
    store.set_refresh_token(3, "rt", timedelta(seconds=30))
    clock.now += 10

    assert store.ttl_of("user:3:refresh_token") == pytest.approx(20)
    assert store.ttl_of("missing") is None


def test_concurrent_consumers_share_one_state():
    store = InMemorySessionStore()
    workers = 8

    for n in range(50):
        state = f"state-{n}"
        store.save_oauth_state(state, timedelta(minutes=5))
        barrier = threading.Barrier(workers)
        results: list[bool] = []

        def consume(state=state, barrier=barrier, results=results):
            barrier.wait()
            results.append(store.consume_oauth_state(state))

        threads = [threading.Thread(target=consume) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
