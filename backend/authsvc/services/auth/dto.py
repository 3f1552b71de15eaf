# authsvc/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

from authsvc.services._shared.ports import SubjectId

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for password registration.

    :param email: User email (normalized by the model).
    :type email: str
    :param password: Raw password (hashed by the model).
    :type password: str
    :param name: Display name.
    :type name: str
    """

    email: str
    password: str
    name: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param subject_id: Subject resolved by the access guard.
    :type subject_id: SubjectId
    :param access_token: The verified bearer token being revoked.
    :type access_token: str
    """

    subject_id: SubjectId
    access_token: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for access-token refresh.

    :param subject_id: Subject resolved by the access guard.
    :type subject_id: SubjectId
    :param refresh_token: Opaque refresh token presented by the client.
    :type refresh_token: str
    """

    subject_id: SubjectId
    refresh_token: str


@dataclass(frozen=True, slots=True)
class FederatedLoginIn:
    """
    Input DTO for the provider callback.

    :param code: Authorization code issued by the provider.
    :type code: str
    :param state: ``state`` echoed back by the provider.
    :type state: str
    """

    code: str
    state: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access JWT.
    :type access_token: str
    :param refresh_token: Opaque refresh token.
    :type refresh_token: str
    """

    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class AccessTokenOut:
    """New access token produced by a refresh."""

    token: str


@dataclass(frozen=True, slots=True)
class IdentitySummaryOut:
    """Public-safe view of an identity: no id, no password hash."""

    email: str
    name: str


@dataclass(frozen=True, slots=True)
class FederatedLoginOut:
    """Token pair plus identity summary returned by the provider callback."""

    access_token: str
    refresh_token: str
    user: IdentitySummaryOut
