"""Service layer public API.

Re-exports
----------
- Base primitives (from ``authsvc.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Auth service (from ``authsvc.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`LogoutIn`,
      :class:`RefreshIn`, :class:`FederatedLoginIn`, :class:`TokenPairOut`,
      :class:`AccessTokenOut`, :class:`IdentitySummaryOut`,
      :class:`FederatedLoginOut`
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from .auth.dto import (
    AccessTokenOut,
    FederatedLoginIn,
    FederatedLoginOut,
    IdentitySummaryOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)
from .auth.service import AuthService

__all__ = [
    "BaseService",
    "ServiceContext",
    "AuthService",
    "RegisterIn",
    "LoginIn",
    "LogoutIn",
    "RefreshIn",
    "FederatedLoginIn",
    "TokenPairOut",
    "AccessTokenOut",
    "IdentitySummaryOut",
    "FederatedLoginOut",
]
