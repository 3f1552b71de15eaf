"""
authsvc.services._shared.ports
==============================

Collection of *ports* (hexagonal interfaces) that define the contracts
for credential issuing, session state and identity federation.

These ports decouple the service layer from concrete implementations
of token signing, key-value storage and provider HTTP calls.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider` for access token signing/verification and
    refresh token generation.

- :mod:`session_store`:
    Defines :class:`~.SessionStore` for refresh tokens per subject, revoked
    access tokens and OAuth ``state`` nonces, all with expiry.

- :mod:`identity_provider`:
    Defines :class:`~.IdentityProvider` and :class:`~.ProviderProfile`:
    authorization-code exchange and profile retrieval.

Design Notes
------------
Concrete adapters (Redis, Flask-JWT-Extended, Google over ``requests``) live
under ``authsvc.infra``. In-memory doubles live next to their ports.
"""

from __future__ import annotations

from .identity_provider import FakeIdentityProvider, IdentityProvider, ProviderProfile
from .session_store import InMemorySessionStore, SessionStore, blacklist_key
from .token_provider import SubjectId, TokenProvider

__all__ = [
    "TokenProvider",
    "SubjectId",
    "SessionStore",
    "InMemorySessionStore",
    "blacklist_key",
    "IdentityProvider",
    "ProviderProfile",
    "FakeIdentityProvider",
]
