from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Protocol

from authsvc.services._shared.ports.token_provider import SubjectId


def blacklist_key(token: str) -> str:
    """Revocation entries are keyed by the token digest, never the raw token."""
    return "blacklist:" + hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionStore(Protocol):
    """
    Key-value store for session state with per-entry expiry.

    Two namespaces are load-bearing: the live refresh token per subject and
    the revoked access tokens. A third holds single-use OAuth ``state``
    nonces. Every method may raise :class:`StoreError` on backend failure;
    callers never retry.
    """

    def set_refresh_token(self, subject_id: SubjectId, token: str, ttl: timedelta) -> None: ...

    def get_refresh_token(self, subject_id: SubjectId) -> str | None: ...

    def delete_refresh_token(self, subject_id: SubjectId) -> None: ...

    def blacklist_access_token(self, token: str, subject_id: SubjectId, ttl: timedelta) -> None: ...

    def is_blacklisted(self, token: str) -> bool: ...

    def save_oauth_state(self, state: str, ttl: timedelta) -> None: ...

    def consume_oauth_state(self, state: str) -> bool: ...


class InMemorySessionStore(SessionStore):
    """
    Process-local session store honoring TTLs lazily on read.

    .. note::
       Meant for unit tests and single-process development. ``clock`` returns
       epoch seconds and can be replaced to simulate expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _put(self, key: str, value: str, ttl: timedelta) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + max(1.0, ttl.total_seconds()))

    def _get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, deadline = entry
            if deadline <= self._clock():
                del self._entries[key]
                return None
            return value

    def _pop(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None or entry[1] <= self._clock():
            return None
        return entry[0]

    # -------------------------- API ----------------------------

    def set_refresh_token(self, subject_id: SubjectId, token: str, ttl: timedelta) -> None:
        self._put(f"user:{subject_id}:refresh_token", token, ttl)

    def get_refresh_token(self, subject_id: SubjectId) -> str | None:
        return self._get(f"user:{subject_id}:refresh_token")

    def delete_refresh_token(self, subject_id: SubjectId) -> None:
        self._pop(f"user:{subject_id}:refresh_token")

    def blacklist_access_token(self, token: str, subject_id: SubjectId, ttl: timedelta) -> None:
        self._put(blacklist_key(token), str(subject_id), ttl)

    def is_blacklisted(self, token: str) -> bool:
        return self._get(blacklist_key(token)) is not None

    def save_oauth_state(self, state: str, ttl: timedelta) -> None:
        self._put(f"oauth_state:{state}", "1", ttl)

    def consume_oauth_state(self, state: str) -> bool:
        return self._pop(f"oauth_state:{state}") is not None

    def ttl_of(self, key: str) -> float | None:
        """Return remaining seconds for ``key`` (test inspection helper)."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        return entry[1] - self._clock()
