"""
Abstract Unit of Work contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authsvc.repositories import UserRepository


class UnitOfWork(ABC):
    """
    Coordinates a transactional boundary for a use-case.

    Exposes repositories bound to the same session. Commits on success and
    rolls back on error.
    """

    users: UserRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
