"""Integration tests for the ``/api/v1/auth`` endpoints."""

from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlparse

import pytest
from authsvc.services._shared.errors import UpstreamError, UpstreamFailure
from authsvc.services._shared.ports import ProviderProfile

from tests.factories.user import DEFAULT_PASSWORD, UserFactory

BASE = "/api/v1/auth"


def _register(client, email="user@example.com", password="secret123", name="User"):
    return client.post(
        f"{BASE}/register", json={"email": email, "password": password, "name": name}
    )


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _start_google(client) -> str:
    resp = client.get(f"{BASE}/login/google")
    assert resp.status_code == 307
    return parse_qs(urlparse(resp.headers["Location"]).query)["state"][0]


# --------------------------------------------------------------------------- #
# Register / login
# --------------------------------------------------------------------------- #


def test_register_returns_token_pair_in_envelope(client) -> None:
    resp = _register(client)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["error"] is False
    assert body["code"] == 200
    assert body["message"] == "Registration successful"
    assert set(body["data"]) == {"access_token", "refresh_token"}


def test_register_duplicate_email_is_conflict(client) -> None:
    assert _register(client).status_code == 200

    resp = _register(client, name="Other")

    assert resp.status_code == 409
    body = resp.get_json()
    assert body["error"] is True
    assert body["code"] == 409


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "not-an-email", "password": "x", "name": "N"},
        {"email": "a@example.com", "password": "", "name": "N"},
        {"email": "a@example.com", "password": "x"},
        {},
    ],
)
def test_register_validation_errors(client, payload) -> None:
    resp = client.post(f"{BASE}/register", json=payload)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Validation failed"
    assert "errors" in body["data"]


def test_login_unknown_email_and_wrong_password_look_the_same(client, session) -> None:
    UserFactory(email="known@example.com")
    session.commit()

    unknown = client.post(f"{BASE}/login", json={"email": "nobody@example.com", "password": "x"})
    wrong = client.post(f"{BASE}/login", json={"email": "known@example.com", "password": "nope"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.get_json()["message"] == wrong.get_json()["message"] == "Invalid credentials"


def test_login_success(client, session, session_store) -> None:
    user = UserFactory(email="known@example.com")
    session.commit()

    resp = client.post(
        f"{BASE}/login", json={"email": "known@example.com", "password": DEFAULT_PASSWORD}
    )

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert session_store.get_refresh_token(user.id) == data["refresh_token"]


def test_register_then_login_sequence(client) -> None:
    email, password = "e2e@example.com", "correct-horse"

    first = _register(client, email=email, password=password, name="E2E")
    assert first.status_code == 200
    first_refresh = first.get_json()["data"]["refresh_token"]

    assert _register(client, email=email, password=password, name="Again").status_code == 409

    wrong = client.post(f"{BASE}/login", json={"email": email, "password": "nope"})
    assert wrong.status_code == 401

    ok = client.post(f"{BASE}/login", json={"email": email, "password": password})
    assert ok.status_code == 200
    pair = ok.get_json()["data"]
    assert set(pair) == {"access_token", "refresh_token"}

    # login replaced the refresh token issued at registration
    stale = client.post(
        f"{BASE}/refresh",
        json={"refresh_token": first_refresh},
        headers=_bearer(pair["access_token"]),
    )
    assert stale.status_code == 401
    assert stale.get_json()["message"] == "Invalid refresh token"


# --------------------------------------------------------------------------- #
# Access guard, logout and refresh
# --------------------------------------------------------------------------- #


def test_register_refresh_logout_roundtrip(client) -> None:
    pair = _register(client, email="flow@example.com").get_json()["data"]
    headers = _bearer(pair["access_token"])

    refreshed = client.post(
        f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]}, headers=headers
    )
    assert refreshed.status_code == 200
    assert refreshed.get_json()["message"] == "Token refreshed successfully"
    assert refreshed.get_json()["data"]["token"]

    out = client.post(f"{BASE}/logout", headers=headers)
    assert out.status_code == 200
    assert out.get_json() == {"error": False, "code": 200, "message": "Logout successful"}

    again = client.post(
        f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]}, headers=headers
    )
    assert again.status_code == 401
    assert again.get_json()["message"] == "Token is blacklisted"


def test_revoked_token_is_logged_as_revoked(client, caplog) -> None:
    pair = _register(client, email="revoked@example.com").get_json()["data"]
    headers = _bearer(pair["access_token"])
    assert client.post(f"{BASE}/logout", headers=headers).status_code == 200

    with caplog.at_level(logging.WARNING, logger="authsvc.api.deps"):
        resp = client.post(f"{BASE}/logout", headers=headers)

    assert resp.status_code == 401
    records = [r for r in caplog.records if r.name == "authsvc.api.deps"]
    assert [(r.getMessage(), r.event) for r in records] == [
        ("auth.token_revoked", "auth.token_revoked")
    ]


@pytest.mark.parametrize(
    ("headers", "message"),
    [
        ({}, "Authorization header is required"),
        ({"Authorization": "Token abc"}, "Invalid token format"),
        ({"Authorization": "Bearer "}, "Invalid token format"),
        ({"Authorization": "Bearer not-a-jwt"}, "Invalid token format"),
    ],
)
def test_guard_rejects_bad_headers(client, headers, message) -> None:
    resp = client.post(f"{BASE}/logout", headers=headers)

    assert resp.status_code == 401
    assert resp.get_json()["message"] == message


def test_refresh_with_wrong_token_is_rejected(client) -> None:
    pair = _register(client).get_json()["data"]

    resp = client.post(
        f"{BASE}/refresh",
        json={"refresh_token": "definitely-not-it"},
        headers=_bearer(pair["access_token"]),
    )

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid refresh token"


def test_refresh_requires_body(client) -> None:
    pair = _register(client).get_json()["data"]

    resp = client.post(f"{BASE}/refresh", json={}, headers=_bearer(pair["access_token"]))

    assert resp.status_code == 400


# --------------------------------------------------------------------------- #
# Google federation
# --------------------------------------------------------------------------- #


def test_google_redirect_stores_state(client, fake_redis) -> None:
    resp = client.get(f"{BASE}/login/google")

    assert resp.status_code == 307
    location = urlparse(resp.headers["Location"])
    state = parse_qs(location.query)["state"][0]
    assert fake_redis.exists(f"oauth_state:{state}") == 1


def test_callback_with_unknown_state_never_exchanges(client, identity_provider) -> None:
    _start_google(client)

    resp = client.get(f"{BASE}/login/google/callback", query_string={"code": "c", "state": "forged"})

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid state"
    assert identity_provider.exchanged == []


def test_callback_without_state_is_bad_request(client, identity_provider) -> None:
    resp = client.get(f"{BASE}/login/google/callback", query_string={"code": "c"})

    assert resp.status_code == 400
    assert identity_provider.exchanged == []


def test_callback_success_then_replay(client, identity_provider) -> None:
    identity_provider.profile = ProviderProfile(
        provider="google", subject="g-42", email="ana@example.com", name="Ana"
    )
    state = _start_google(client)

    resp = client.get(f"{BASE}/login/google/callback", query_string={"code": "c", "state": state})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["user"] == {"email": "ana@example.com", "name": "Ana"}
    assert data["access_token"] and data["refresh_token"]

    replay = client.get(
        f"{BASE}/login/google/callback", query_string={"code": "c", "state": state}
    )
    assert replay.status_code == 400
    assert identity_provider.exchanged == ["c"]


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (UpstreamError(UpstreamFailure.EXCHANGE_FAILED, status=400), 401),
        (UpstreamError(UpstreamFailure.EXCHANGE_FAILED, transport=True), 502),
        (UpstreamError(UpstreamFailure.PROFILE_FETCH_FAILED, status=500), 502),
    ],
)
def test_callback_maps_provider_failures(client, identity_provider, error, status) -> None:
    identity_provider.error = error
    state = _start_google(client)

    resp = client.get(f"{BASE}/login/google/callback", query_string={"code": "c", "state": state})

    assert resp.status_code == status
    assert resp.get_json()["message"] == error.kind.value


def test_callback_email_conflict(client, identity_provider) -> None:
    _register(client, email="taken@example.com")
    identity_provider.profile = ProviderProfile(
        provider="google", subject="g-1", email="taken@example.com", name="T"
    )
    state = _start_google(client)

    resp = client.get(f"{BASE}/login/google/callback", query_string={"code": "c", "state": state})

    assert resp.status_code == 409


# --------------------------------------------------------------------------- #
# Cross-cutting
# --------------------------------------------------------------------------- #


def test_request_id_is_echoed(client) -> None:
    generated = _register(client, email="rid@example.com")
    assert generated.headers.get("X-Request-ID")

    resp = client.post(
        f"{BASE}/login",
        json={"email": "x@example.com", "password": "x"},
        headers={"X-Request-ID": "req-123"},
    )
    assert resp.headers["X-Request-ID"] == "req-123"


def test_missing_session_store_is_internal_error(client, app, monkeypatch) -> None:
    monkeypatch.setitem(app.extensions, "session_store", None)

    resp = _register(client)

    assert resp.status_code == 500
    assert resp.get_json()["error"] is True
