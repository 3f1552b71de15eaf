"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class RegisterSchema(Schema):
    """Input payload for account registration."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))
    name = fields.String(required=True, validate=validate.Length(max=100))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload for exchanging a refresh token for an access token."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class CallbackQuerySchema(Schema):
    """Query string sent back by the provider to the redirect URL."""

    class Meta:
        unknown = EXCLUDE

    code = fields.String(required=True, validate=validate.Length(min=1))
    state = fields.String(required=True, validate=validate.Length(min=1))


class TokenPairSchema(Schema):
    """Response payload with an access/refresh pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)


class AccessTokenSchema(Schema):
    """Response payload of a refresh."""

    token = fields.String(required=True)


class IdentitySummarySchema(Schema):
    email = fields.Email(required=True)
    name = fields.String(required=True)


class FederatedLoginSchema(TokenPairSchema):
    """Response payload of the provider callback."""

    user = fields.Nested(IdentitySummarySchema, required=True)
