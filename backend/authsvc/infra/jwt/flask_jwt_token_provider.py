# authsvc/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import jwt as pyjwt
from flask_jwt_extended.exceptions import JWTExtendedException
from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from authsvc.services._shared.errors import (
    EntropySourceError,
    SigningError,
    TokenError,
    TokenFailure,
)
from authsvc.services._shared.ports import SubjectId, TokenProvider

REFRESH_TOKEN_BYTES = 32
ACCESS_TOKEN_TYPE = "access"


class AccessClaimsSchema(Schema):
    """Shape every verified access token must have."""

    class Meta:
        unknown = EXCLUDE

    sub = fields.String(required=True, validate=validate.Length(min=1))
    exp = fields.Integer(required=True)
    type = fields.String(required=True, validate=validate.Equal(ACCESS_TOKEN_TYPE))

    @post_load
    def coerce_subject(self, data: dict[str, Any], **_: Any) -> dict[str, Any]:
        sub = data["sub"]
        data["sub"] = int(sub) if sub.isdigit() else sub
        return data


_claims_schema = AccessClaimsSchema()


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Credential codec backed by Flask-JWT-Extended.

    Signing key, algorithm and accepted decode algorithms come from the app
    config (``JWT_SECRET_KEY``, ``JWT_ALGORITHM``, ``JWT_DECODE_ALGORITHMS``).

    .. note::
       Requires an active Flask app context with proper JWT settings.

    :param access_ttl: Access token lifetime (also used for refresh tokens).
    """

    access_ttl: timedelta

    @property
    def ttl(self) -> timedelta:
        return self.access_ttl

    def issue_access_token(self, subject_id: SubjectId) -> str:
        """
        Sign a token asserting ``subject_id`` that expires ``ttl`` from now.

        :raises SigningError: When the library cannot sign the token.
        """
        from flask_jwt_extended import create_access_token

        try:
            return cast(
                str,
                create_access_token(identity=str(subject_id), expires_delta=self.access_ttl),
            )
        except (pyjwt.PyJWTError, TypeError, ValueError) as exc:
            raise SigningError() from exc

    def issue_refresh_token(self) -> str:
        """
        Return 256 bits from the OS CSPRNG, URL-safe base64 encoded.

        :raises EntropySourceError: When the random source is unavailable.
        """
        try:
            raw = secrets.token_bytes(REFRESH_TOKEN_BYTES)
        except (OSError, NotImplementedError) as exc:
            raise EntropySourceError() from exc
        return base64.urlsafe_b64encode(raw).decode("ascii")

    def verify_access_token(self, token: str) -> SubjectId:
        """
        Verify algorithm, signature and expiry, then decode the subject.

        :raises TokenError: With the matching :class:`TokenFailure` kind.
        """
        return cast(SubjectId, self._claims(token)["sub"])

    def expires_at(self, token: str) -> datetime:
        exp = int(self._claims(token)["exp"])
        return datetime.fromtimestamp(exp, tz=UTC)

    # ------------------------------------------------------------------ #

    def _claims(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        try:
            raw = decode_token(token)
        except pyjwt.ExpiredSignatureError as exc:
            raise TokenError(TokenFailure.EXPIRED) from exc
        except pyjwt.InvalidAlgorithmError as exc:
            raise TokenError(TokenFailure.WRONG_ALGORITHM) from exc
        except pyjwt.InvalidSignatureError as exc:
            # Subclass of DecodeError: keep it above the generic branch
            raise TokenError(TokenFailure.BAD_SIGNATURE) from exc
        except (pyjwt.InvalidTokenError, JWTExtendedException) as exc:
            raise TokenError(TokenFailure.MALFORMED) from exc

        try:
            return cast(dict[str, Any], _claims_schema.load(raw))
        except ValidationError as exc:
            raise TokenError(TokenFailure.MALFORMED) from exc
