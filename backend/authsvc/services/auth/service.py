# authsvc/services/auth/service.py
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError

from authsvc.models.user import User
from authsvc.services._shared.base import BaseService, ServiceContext
from authsvc.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidStateError,
    LogoutFailedError,
    NotFoundError,
    RefreshFailure,
    RefreshRejectedError,
    StoreError,
    violates,
)
from authsvc.services._shared.ports import (
    IdentityProvider,
    ProviderProfile,
    SessionStore,
    SubjectId,
    TokenProvider,
)
from authsvc.services.auth.dto import (
    AccessTokenOut,
    FederatedLoginIn,
    FederatedLoginOut,
    IdentitySummaryOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)
from authsvc.uow.base import UnitOfWork

log = logging.getLogger(__name__)

DEFAULT_STATE_TTL = timedelta(minutes=10)
STATE_NONCE_BYTES = 32
MIN_REVOCATION_TTL = timedelta(seconds=1)


class AuthService(BaseService):
    """
    Session lifecycle: register, login, logout, refresh and federation.

    Access tokens come from the :class:`TokenProvider`; refresh tokens, the
    revocation set and OAuth ``state`` nonces live in the :class:`SessionStore`.
    A subject has at most one live refresh token: every issue overwrites it.

    :param token_provider: Credential codec.
    :param session_store: Refresh-token / blacklist / state store.
    :param identity_provider: Federated provider (authorization-code flow).
    :param state_ttl: Lifetime of a pending OAuth ``state`` nonce.
    :param ctx: Request-scoped context (request id for log correlation).
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        session_store: SessionStore,
        identity_provider: IdentityProvider,
        state_ttl: timedelta = DEFAULT_STATE_TTL,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.tokens = token_provider
        self.store = session_store
        self.provider = identity_provider
        self.state_ttl = state_ttl

    # ------------------------------------------------------------------ #
    # Password flows
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> TokenPairOut:
        """
        Create a password identity and open its session.

        Identity creation and refresh-token storage share one unit of work,
        so a store failure leaves no identity behind.

        :raises ConflictError: If the email is already registered.
        :raises StoreError: If the refresh token cannot be stored.
        """
        with self.rw_uow() as uow:
            if uow.users.exists_by_email(dto.email):
                raise ConflictError("User", "email already registered")

            user = User(email=dto.email, name=dto.name)
            user.password = dto.password
            self._add_identity(uow, user)
            subject_id = user.id

            pair = self._open_session(subject_id)

        log.info("auth.register", extra=self._log_extra("auth.register", subject_id))
        return pair

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Verify credentials and issue a fresh pair, replacing any prior refresh token.

        :raises NotFoundError: Unknown email.
        :raises InvalidCredentialsError: Wrong password, or the identity has
            no password (federated only).
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(dto.email)
            if user is None:
                raise NotFoundError("User", dto.email)
            if not user.verify_password(dto.password):
                log.warning(
                    "auth.login_rejected",
                    extra=self._log_extra("auth.login_rejected", user.id),
                )
                raise InvalidCredentialsError()
            subject_id = user.id

        pair = self._open_session(subject_id)
        log.info("auth.login", extra=self._log_extra("auth.login", subject_id))
        return pair

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the access token for its remaining lifetime and drop the refresh token.

        The two store writes are not atomic: if deletion fails after the
        blacklist write, the refresh token survives until its own TTL.

        :raises LogoutFailedError: If either store write fails.
        """
        remaining = self.tokens.expires_at(dto.access_token) - datetime.now(UTC)
        ttl = max(remaining, MIN_REVOCATION_TTL)
        try:
            self.store.blacklist_access_token(dto.access_token, dto.subject_id, ttl)
            self.store.delete_refresh_token(dto.subject_id)
        except StoreError as exc:
            log.error(
                "auth.logout_failed",
                extra=self._log_extra("auth.logout_failed", dto.subject_id),
            )
            raise LogoutFailedError() from exc

        log.info("auth.logout", extra=self._log_extra("auth.logout", dto.subject_id))

    def refresh(self, dto: RefreshIn) -> AccessTokenOut:
        """
        Issue a new access token if ``dto.refresh_token`` is the stored one.

        The refresh token itself is not rotated.

        :raises RefreshRejectedError: ``EXPIRED`` when nothing is stored (or the
            lookup failed), ``MISMATCH`` when the presented token differs.
        """
        try:
            stored = self.store.get_refresh_token(dto.subject_id)
        except StoreError as exc:
            log.error(
                "auth.refresh_lookup_failed",
                extra=self._log_extra("auth.refresh_lookup_failed", dto.subject_id),
            )
            raise RefreshRejectedError(RefreshFailure.EXPIRED) from exc

        if stored is None:
            raise RefreshRejectedError(RefreshFailure.EXPIRED)
        if not hmac.compare_digest(stored.encode("utf-8"), dto.refresh_token.encode("utf-8")):
            log.warning(
                "auth.refresh_mismatch",
                extra=self._log_extra("auth.refresh_mismatch", dto.subject_id),
            )
            raise RefreshRejectedError(RefreshFailure.MISMATCH)

        token = self.tokens.issue_access_token(dto.subject_id)
        log.info("auth.refresh", extra=self._log_extra("auth.refresh", dto.subject_id))
        return AccessTokenOut(token=token)

    # ------------------------------------------------------------------ #
    # Federation
    # ------------------------------------------------------------------ #

    def begin_federated_login(self) -> str:
        """
        Persist a fresh single-use ``state`` nonce and return the provider URL.

        :raises StoreError: If the nonce cannot be stored.
        """
        state = secrets.token_urlsafe(STATE_NONCE_BYTES)
        self.store.save_oauth_state(state, self.state_ttl)
        return self.provider.authorization_url(state)

    def federated_login(self, dto: FederatedLoginIn) -> FederatedLoginOut:
        """
        Complete the authorization-code flow.

        ``state`` is consumed before the provider is contacted; an unknown or
        replayed nonce never reaches the exchange.

        :raises InvalidStateError: ``state`` missing, unknown or already used.
        :raises UpstreamError: Provider exchange or profile failure.
        :raises ConflictError: The email belongs to a different identity.
        """
        if not dto.state or not self.store.consume_oauth_state(dto.state):
            log.warning(
                "auth.oauth_state_rejected", extra=self._log_extra("auth.oauth_state_rejected")
            )
            raise InvalidStateError()

        profile = self.provider.exchange_and_fetch_profile(dto.code)

        try:
            with self.rw_uow() as uow:
                user = self._resolve_federated(uow, profile)
                summary = IdentitySummaryOut(email=user.email, name=user.name)
                subject_id = user.id
                pair = self._open_session(subject_id)
        except IntegrityError as exc:
            # A concurrent callback created the identity first
            summary, subject_id = self._reload_federated(profile, exc)
            pair = self._open_session(subject_id)

        log.info(
            "auth.federated_login",
            extra=self._log_extra("auth.federated_login", subject_id),
        )
        return FederatedLoginOut(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=summary,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _log_extra(self, event: str, subject_id: SubjectId | None = None) -> dict[str, object]:
        extra: dict[str, object] = {"event": event}
        if subject_id is not None:
            extra["subject_id"] = subject_id
        if self.ctx.request_id is not None:
            extra["request_id"] = self.ctx.request_id
        return extra

    def _open_session(self, subject_id: SubjectId) -> TokenPairOut:
        access = self.tokens.issue_access_token(subject_id)
        refresh = self.tokens.issue_refresh_token()
        self.store.set_refresh_token(subject_id, refresh, self.tokens.ttl)
        return TokenPairOut(access_token=access, refresh_token=refresh)

    def _resolve_federated(self, uow: UnitOfWork, profile: ProviderProfile) -> User:
        """
        Find or create the identity for ``profile``.

        A unique violation on insert propagates as ``IntegrityError`` so the
        caller can retry the lookup once the transaction is rolled back.
        """
        user = uow.users.get_by_provider(profile.provider, profile.subject)
        if user is not None:
            return user

        if uow.users.exists_by_email(profile.email):
            raise ConflictError("User", "email already registered with another sign-in method")

        user = User(
            email=profile.email,
            name=profile.name,
            provider=profile.provider,
            provider_id=profile.subject,
        )
        uow.users.add(user)
        return user

    def _reload_federated(
        self, profile: ProviderProfile, exc: IntegrityError
    ) -> tuple[IdentitySummaryOut, SubjectId]:
        with self.ro_uow() as uow:
            user = uow.users.get_by_provider(profile.provider, profile.subject)
            if user is not None:
                return IdentitySummaryOut(email=user.email, name=user.name), user.id
        if violates(exc, "uq_users_email"):
            raise ConflictError(
                "User", "email already registered with another sign-in method"
            ) from exc
        raise exc

    @staticmethod
    def _add_identity(uow: UnitOfWork, user: User) -> None:
        """Flush a new identity, turning a racing unique violation into a conflict."""
        try:
            uow.users.add(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email") or violates(exc, "uq_users_provider"):
                raise ConflictError("User", "identity already exists") from exc
            raise
