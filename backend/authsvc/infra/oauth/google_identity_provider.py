"""Google OAuth2 authorization-code adapter built on ``requests``."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import requests
from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate

from authsvc.services._shared.errors import UpstreamError, UpstreamFailure
from authsvc.services._shared.ports import IdentityProvider, ProviderProfile

log = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


@dataclass(frozen=True, slots=True)
class GoogleOAuthConfig:
    """
    Client registration and endpoints for the Google provider.

    Built once at application start and injected into
    :class:`GoogleIdentityProvider`.
    """

    client_id: str
    client_secret: str
    redirect_url: str
    scopes: tuple[str, ...] = ("openid", "profile", "email")
    auth_url: str = GOOGLE_AUTH_URL
    token_url: str = GOOGLE_TOKEN_URL
    userinfo_url: str = GOOGLE_USERINFO_URL
    timeout: float = 10.0

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> GoogleOAuthConfig:
        """Build the config from a Flask ``app.config``-like mapping."""
        return cls(
            client_id=str(config.get("GOOGLE_CLIENT_ID", "")),
            client_secret=str(config.get("GOOGLE_CLIENT_SECRET", "")),
            redirect_url=str(config.get("GOOGLE_REDIRECT_URL", "")),
            timeout=float(config.get("OAUTH_HTTP_TIMEOUT", 10.0)),
        )


class TokenResponseSchema(Schema):
    """Subset of the token endpoint response we rely on."""

    class Meta:
        unknown = EXCLUDE

    access_token = fields.String(required=True, validate=validate.Length(min=1))


class GoogleProfileSchema(Schema):
    """Userinfo (v2) payload."""

    class Meta:
        unknown = EXCLUDE

    id = fields.String(required=True, validate=validate.Length(min=1))
    email = fields.Email(required=True)
    name = fields.String(load_default="")


_token_schema = TokenResponseSchema()
_profile_schema = GoogleProfileSchema()


@dataclass
class GoogleIdentityProvider(IdentityProvider):
    """
    Authorization-code exchange and profile retrieval against Google.

    :param config: Client registration and endpoints.
    :param http: Optional ``requests.Session`` (injected in tests).
    """

    config: GoogleOAuthConfig
    http: requests.Session = field(default_factory=requests.Session)
    name: str = "google"

    def authorization_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_url,
                "response_type": "code",
                "scope": " ".join(self.config.scopes),
                "state": state,
            }
        )
        return f"{self.config.auth_url}?{query}"

    def exchange_and_fetch_profile(self, code: str) -> ProviderProfile:
        """
        Trade ``code`` for a provider token, then load the user's profile.

        :raises UpstreamError: ``EXCHANGE_FAILED``, ``PROFILE_FETCH_FAILED`` or
            ``PROFILE_DECODE_FAILED``; ``transport`` is set for network errors.
        """
        access_token = self._exchange(code)
        payload = self._fetch_profile(access_token)
        try:
            data = _profile_schema.load(payload)
        except ValidationError as exc:
            log.warning("oauth.profile_decode_failed errors=%s", exc.messages)
            raise UpstreamError(UpstreamFailure.PROFILE_DECODE_FAILED) from exc
        return ProviderProfile(
            provider=self.name,
            subject=data["id"],
            email=data["email"],
            name=data["name"],
        )

    # ------------------------------------------------------------------ #

    def _exchange(self, code: str) -> str:
        try:
            resp = self.http.post(
                self.config.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "redirect_uri": self.config.redirect_url,
                },
                headers={"Accept": "application/json"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            log.error("oauth.exchange_transport_error", exc_info=True)
            raise UpstreamError(UpstreamFailure.EXCHANGE_FAILED, transport=True) from exc

        if not resp.ok:
            log.warning("oauth.exchange_rejected status=%s", resp.status_code)
            raise UpstreamError(UpstreamFailure.EXCHANGE_FAILED, status=resp.status_code)

        try:
            token = _token_schema.load(resp.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamError(
                UpstreamFailure.EXCHANGE_FAILED, status=resp.status_code
            ) from exc
        return str(token["access_token"])

    def _fetch_profile(self, access_token: str) -> Any:
        try:
            resp = self.http.get(
                self.config.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            log.error("oauth.profile_transport_error", exc_info=True)
            raise UpstreamError(UpstreamFailure.PROFILE_FETCH_FAILED, transport=True) from exc

        if resp.status_code != 200:
            log.warning("oauth.profile_rejected status=%s", resp.status_code)
            raise UpstreamError(UpstreamFailure.PROFILE_FETCH_FAILED, status=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(UpstreamFailure.PROFILE_DECODE_FAILED) from exc
