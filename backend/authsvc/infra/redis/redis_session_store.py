from __future__ import annotations

import logging
from datetime import timedelta
from typing import cast

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

from authsvc.services._shared.errors import StoreError
from authsvc.services._shared.ports import SessionStore, SubjectId, blacklist_key

log = logging.getLogger(__name__)


def _seconds(ttl: timedelta) -> int:
    # Redis rejects non-positive expiries; keep at least one second.
    return max(1, int(ttl.total_seconds()))


class RedisSessionStore(SessionStore):
    """
    Redis-backed session state.

    Keys
    ----
    - ``user:{subject}:refresh_token`` → live refresh token (overwritten per login)
    - ``blacklist:{sha256(token)}`` → subject id of a revoked access token
    - ``oauth_state:{nonce}`` → single-use OAuth ``state`` marker

    Every entry carries a TTL, so expiry is enforced by Redis itself.

    :param r: A Redis client (already connected).
    """

    def __init__(self, r: redis.Redis):
        self.r = r

    @staticmethod
    def _k_refresh(subject_id: SubjectId) -> str:
        return f"user:{subject_id}:refresh_token"

    @staticmethod
    def _k_state(state: str) -> str:
        return f"oauth_state:{state}"

    # -------------------- refresh tokens --------------------

    def set_refresh_token(self, subject_id: SubjectId, token: str, ttl: timedelta) -> None:
        try:
            self.r.set(self._k_refresh(subject_id), token, ex=_seconds(ttl))
        except RedisError as exc:
            log.error("session_store.set_refresh_failed subject=%s", subject_id, exc_info=True)
            raise StoreError("Failed to store refresh token") from exc

    def get_refresh_token(self, subject_id: SubjectId) -> str | None:
        try:
            raw = self.r.get(self._k_refresh(subject_id))
        except RedisError as exc:
            log.error("session_store.get_refresh_failed subject=%s", subject_id, exc_info=True)
            raise StoreError("Failed to read refresh token") from exc
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    def delete_refresh_token(self, subject_id: SubjectId) -> None:
        try:
            self.r.delete(self._k_refresh(subject_id))
        except RedisError as exc:
            log.error("session_store.delete_refresh_failed subject=%s", subject_id, exc_info=True)
            raise StoreError("Failed to remove refresh token") from exc

    # -------------------- revocation --------------------

    def blacklist_access_token(self, token: str, subject_id: SubjectId, ttl: timedelta) -> None:
        try:
            # idempotent marker; expires together with the token
            self.r.set(blacklist_key(token), str(subject_id), ex=_seconds(ttl))
        except RedisError as exc:
            log.error("session_store.blacklist_failed subject=%s", subject_id, exc_info=True)
            raise StoreError("Failed to blacklist token") from exc

    def is_blacklisted(self, token: str) -> bool:
        try:
            return cast(int, self.r.exists(blacklist_key(token))) == 1
        except RedisError as exc:
            log.error("session_store.blacklist_lookup_failed", exc_info=True)
            raise StoreError("Failed to check token revocation") from exc

    # -------------------- OAuth state --------------------

    def save_oauth_state(self, state: str, ttl: timedelta) -> None:
        try:
            self.r.set(self._k_state(state), "1", ex=_seconds(ttl))
        except RedisError as exc:
            log.error("session_store.save_state_failed", exc_info=True)
            raise StoreError("Failed to store OAuth state") from exc

    def consume_oauth_state(self, state: str) -> bool:
        """Delete the nonce; only the caller that removed it may proceed."""
        try:
            return cast(int, self.r.delete(self._k_state(state))) == 1
        except RedisError as exc:
            log.error("session_store.consume_state_failed", exc_info=True)
            raise StoreError("Failed to verify OAuth state") from exc
