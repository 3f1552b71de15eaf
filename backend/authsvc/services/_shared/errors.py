"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP directly. They serve as stable contracts between the token
codec, the session store, the identity provider and application services.

The translation to HTTP responses is handled by ``authsvc/core/errors.py``
(``from_service_error``, registered as the ``ServiceError`` handler).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    # PostgreSQL includes the constraint name; SQLite names the columns instead.
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    columns = {"uq_users_email": "users.email", "uq_users_provider": "users.provider"}
    marker = columns.get(constraint_name)
    return bool(marker and marker in message)


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them to APIError through BaseService.
    """

    pass


# --------------------------------------------------------------------------- #
# Lookup / uniqueness
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


# --------------------------------------------------------------------------- #
# Authentication
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """Base class for every rejected credential (maps to 401)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Password mismatch, or a password login against a federated identity."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class TokenFailure(Enum):
    """Why an inbound access token was rejected."""

    MISSING = "Authorization header is required"
    MALFORMED = "Invalid token format"
    BAD_SIGNATURE = "Invalid token signature"
    EXPIRED = "Token has expired"
    WRONG_ALGORITHM = "Unexpected signing method"
    REVOKED = "Token is blacklisted"


class TokenError(AuthenticationError):
    """
    Raised when an access token cannot be admitted.

    :param kind: Failure classification.
    :type kind: TokenFailure
    """

    def __init__(self, kind: TokenFailure) -> None:
        super().__init__(kind.value)
        self.kind = kind


class RefreshFailure(Enum):
    """Why a refresh attempt was rejected."""

    EXPIRED = "Invalid or expired refresh token"
    MISMATCH = "Invalid refresh token"


class RefreshRejectedError(AuthenticationError):
    """
    Raised when a presented refresh token does not match the stored one.

    :param kind: Failure classification.
    :type kind: RefreshFailure
    """

    def __init__(self, kind: RefreshFailure) -> None:
        super().__init__(kind.value)
        self.kind = kind


class InvalidStateError(ServiceError):
    """The OAuth ``state`` parameter is missing, unknown or already used."""

    def __init__(self, message: str = "Invalid state") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Federation
# --------------------------------------------------------------------------- #


class UpstreamFailure(Enum):
    """Stage of the provider round-trip that failed."""

    EXCHANGE_FAILED = "Failed to exchange authorization code"
    PROFILE_FETCH_FAILED = "Failed to fetch user info"
    PROFILE_DECODE_FAILED = "Failed to decode user info"


class UpstreamError(ServiceError):
    """
    Raised when the identity provider round-trip fails.

    :param kind: Stage that failed.
    :type kind: UpstreamFailure
    :param transport: ``True`` for network-level failures, ``False`` when the
        provider answered and rejected the request.
    :type transport: bool
    :param status: Provider HTTP status, when one was received.
    :type status: int | None
    """

    def __init__(
        self, kind: UpstreamFailure, *, transport: bool = False, status: int | None = None
    ) -> None:
        super().__init__(kind.value)
        self.kind = kind
        self.transport = transport
        self.status = status


# --------------------------------------------------------------------------- #
# Infrastructure
# --------------------------------------------------------------------------- #


class StoreError(ServiceError):
    """The session store could not complete an operation."""

    def __init__(self, message: str = "Session store unavailable") -> None:
        super().__init__(message)


class LogoutFailedError(StoreError):
    """Revocation or refresh-token deletion failed during logout."""

    def __init__(self, message: str = "Failed to log out") -> None:
        super().__init__(message)


class SigningError(ServiceError):
    """The access token could not be signed."""

    def __init__(self, message: str = "Failed to generate access token") -> None:
        super().__init__(message)


class EntropySourceError(ServiceError):
    """The secure random source could not produce a refresh token."""

    def __init__(self, message: str = "Failed to generate refresh token") -> None:
        super().__init__(message)
