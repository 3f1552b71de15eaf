from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlencode

from authsvc.services._shared.errors import UpstreamError


@dataclass(frozen=True, slots=True)
class ProviderProfile:
    """
    Identity record returned by the federated provider.

    :ivar provider: Provider name stored on the local identity (e.g. ``"google"``).
    :ivar subject: Provider-assigned user id.
    :ivar email: Email reported by the provider.
    :ivar name: Display name reported by the provider.
    """

    provider: str
    subject: str
    email: str
    name: str


class IdentityProvider(Protocol):
    """Port for the OAuth2 authorization-code flow against one provider."""

    name: str

    def authorization_url(self, state: str) -> str: ...

    def exchange_and_fetch_profile(self, code: str) -> ProviderProfile: ...


@dataclass
class FakeIdentityProvider(IdentityProvider):
    """
    Deterministic provider used in tests.

    Returns ``profile`` for any code, or raises ``error`` when set. Every
    exchanged code is recorded in ``exchanged``.
    """

    profile: ProviderProfile | None = None
    error: UpstreamError | None = None
    name: str = "google"
    exchanged: list[str] = field(default_factory=list)

    def authorization_url(self, state: str) -> str:
        return "https://provider.test/authorize?" + urlencode({"state": state})

    def exchange_and_fetch_profile(self, code: str) -> ProviderProfile:
        self.exchanged.append(code)
        if self.error is not None:
            raise self.error
        if self.profile is None:
            return ProviderProfile(
                provider=self.name,
                subject=f"sub-{code}",
                email=f"{code}@provider.test",
                name=f"User {code}",
            )
        return self.profile
