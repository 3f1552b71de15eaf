"""Generic repository base for SQLAlchemy 2.x.

Repositories are persistence-only:

- They never implement use cases or domain policies.
- They never call commit/rollback; services own the Unit of Work.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select
from sqlalchemy.orm import Session

from authsvc.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Persistence-only repository for a single aggregate.

    Subclasses MUST define ``model``, the SQLAlchemy mapped class.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``authsvc.core.extensions``.

        :param session: Session shared across the Unit of Work scope.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, else the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def _first(self, stmt: Select[Any]) -> E | None:
        return cast(E | None, self.session.execute(stmt).scalars().first())

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity for persistence and flush to materialize the PK.

        :param instance: New entity instance.
        :type instance: E
        :returns: The same instance after ``flush()``.
        :rtype: E
        """
        self.session.add(instance)
        self.flush()
        return instance

    def flush(self) -> None:
        """Flush pending changes to the database without committing."""
        self.session.flush()
