"""Factory Boy base for model factories.

Factories write through ``db.session`` (the Flask-SQLAlchemy scoped session),
so they need the app context that the autouse ``app_ctx`` fixture pushes.
Objects are flushed, not committed: a test that exercises a unit of work
which rolls back must ``session.commit()`` its fixtures first.
"""

from __future__ import annotations

import factory
from authsvc.core.extensions import db


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        abstract = True
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "flush"
