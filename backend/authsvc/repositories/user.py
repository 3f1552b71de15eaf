"""User repository: identity lookups for authentication flows."""

from __future__ import annotations

from sqlalchemy import select

from authsvc.models.user import User
from authsvc.repositories.base import BaseRepository


def _norm_email(email: str) -> str:
    return email.lower().strip()


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles tokens or session state, only DB-level identity lookups.
    """

    model = User

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        return self._first(select(User).where(User.email == _norm_email(email)))

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(User.email == _norm_email(email))
        return bool(self.session.execute(stmt).first())

    def get_by_provider(self, provider: str, provider_id: str) -> User | None:
        """Fetch the identity linked to a federated ``(provider, subject)`` pair.

        :param provider: Provider name, e.g. ``"google"``.
        :param provider_id: Provider-assigned subject id.
        :returns: User instance or ``None``.
        """
        stmt = select(User).where(User.provider == provider, User.provider_id == provider_id)
        return self._first(stmt)
