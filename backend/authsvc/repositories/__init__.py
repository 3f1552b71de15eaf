"""Repository package exposing persistence-layer access for domain models."""

from __future__ import annotations

from authsvc.repositories.base import BaseRepository
from authsvc.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
]
