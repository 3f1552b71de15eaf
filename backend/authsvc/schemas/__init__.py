"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AccessTokenSchema,
    CallbackQuerySchema,
    FederatedLoginSchema,
    IdentitySummarySchema,
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    TokenPairSchema,
)

__all__ = [
    "RegisterSchema",
    "LoginSchema",
    "RefreshSchema",
    "CallbackQuerySchema",
    "TokenPairSchema",
    "AccessTokenSchema",
    "IdentitySummarySchema",
    "FederatedLoginSchema",
]
