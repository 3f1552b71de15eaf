"""Unit tests for the Google authorization-code adapter (HTTP mocked with ``responses``)."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses
from authsvc.infra.oauth.google_identity_provider import (
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    GoogleIdentityProvider,
    GoogleOAuthConfig,
)
from authsvc.services._shared.errors import UpstreamError, UpstreamFailure


@pytest.fixture()
def provider() -> GoogleIdentityProvider:
    config = GoogleOAuthConfig(
        client_id="client-123",
        client_secret="shh",
        redirect_url="http://localhost/api/v1/auth/login/google/callback",
        timeout=2.0,
    )
    return GoogleIdentityProvider(config=config)


def _token_ok():
    responses.add(
        responses.POST,
        GOOGLE_TOKEN_URL,
        json={"access_token": "ya29.token", "token_type": "Bearer", "expires_in": 3599},
        status=200,
    )


def test_authorization_url_carries_client_and_state(provider):
    url = urlparse(provider.authorization_url("nonce-1"))
    query = parse_qs(url.query)

    assert url.netloc == "accounts.google.com"
    assert query["client_id"] == ["client-123"]
    assert query["redirect_uri"] == ["http://localhost/api/v1/auth/login/google/callback"]
    assert query["response_type"] == ["code"]
    assert query["scope"] == ["openid profile email"]
    assert query["state"] == ["nonce-1"]


def test_from_mapping_reads_flask_config():
    config = GoogleOAuthConfig.from_mapping(
        {
            "GOOGLE_CLIENT_ID": "id",
            "GOOGLE_CLIENT_SECRET": "secret",
            "GOOGLE_REDIRECT_URL": "http://cb",
            "OAUTH_HTTP_TIMEOUT": 3,
        }
    )

    assert (config.client_id, config.client_secret, config.redirect_url) == (
        "id",
        "secret",
        "http://cb",
    )
    assert config.timeout == 3.0


@responses.activate
def test_exchange_and_fetch_profile_success(provider):
    _token_ok()
    responses.add(
        responses.GET,
        GOOGLE_USERINFO_URL,
        json={"id": "1089", "email": "ana@example.com", "name": "Ana", "picture": "x"},
        status=200,
    )

    profile = provider.exchange_and_fetch_profile("auth-code")

    assert (profile.provider, profile.subject, profile.email, profile.name) == (
        "google",
        "1089",
        "ana@example.com",
        "Ana",
    )
    token_body = parse_qs(responses.calls[0].request.body)
    assert token_body["code"] == ["auth-code"]
    assert token_body["grant_type"] == ["authorization_code"]
    assert responses.calls[1].request.headers["Authorization"] == "Bearer ya29.token"


@responses.activate
def test_rejected_code_is_an_application_failure(provider):
    responses.add(responses.POST, GOOGLE_TOKEN_URL, json={"error": "invalid_grant"}, status=400)

    with pytest.raises(UpstreamError) as exc:
        provider.exchange_and_fetch_profile("bad-code")

    assert exc.value.kind is UpstreamFailure.EXCHANGE_FAILED
    assert exc.value.transport is False
    assert exc.value.status == 400
    assert len(responses.calls) == 1


@responses.activate
def test_token_endpoint_network_failure_is_transport(provider):
    responses.add(
        responses.POST, GOOGLE_TOKEN_URL, body=requests.ConnectionError("connection refused")
    )

    with pytest.raises(UpstreamError) as exc:
        provider.exchange_and_fetch_profile("code")

    assert exc.value.kind is UpstreamFailure.EXCHANGE_FAILED
    assert exc.value.transport is True


@responses.activate
def test_token_response_without_access_token(provider):
    responses.add(responses.POST, GOOGLE_TOKEN_URL, json={"token_type": "Bearer"}, status=200)

    with pytest.raises(UpstreamError) as exc:
        provider.exchange_and_fetch_profile("code")

    assert exc.value.kind is UpstreamFailure.EXCHANGE_FAILED
    assert exc.value.transport is False


@responses.activate
def test_profile_non_200_is_fetch_failure(provider):
    _token_ok()
    responses.add(responses.GET, GOOGLE_USERINFO_URL, json={"error": "nope"}, status=401)

    with pytest.raises(UpstreamError) as exc:
        provider.exchange_and_fetch_profile("code")

    assert exc.value.kind is UpstreamFailure.PROFILE_FETCH_FAILED
    assert exc.value.status == 401
    assert exc.value.transport is False


@responses.activate
def test_profile_network_failure_is_transport(provider):
    _token_ok()
    responses.add(responses.GET, GOOGLE_USERINFO_URL, body=requests.Timeout("slow"))

    with pytest.raises(UpstreamError) as exc:
        provider.exchange_and_fetch_profile("code")

    assert exc.value.kind is UpstreamFailure.PROFILE_FETCH_FAILED
    assert exc.value.transport is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"body": "<html>not json</html>", "content_type": "text/html"},
        {"json": {"id": "1", "name": "No Email"}},
        {"json": {"id": "1", "email": "not-an-email"}},
    ],
)
@responses.activate
def test_profile_decode_failures(provider, kwargs):
    _token_ok()
    responses.add(responses.GET, GOOGLE_USERINFO_URL, status=200, **kwargs)

    with pytest.raises(UpstreamError) as exc:
        provider.exchange_and_fetch_profile("code")

    assert exc.value.kind is UpstreamFailure.PROFILE_DECODE_FAILED
