"""
Bearer token inspection.

Tokens are issued elsewhere; this service only verifies the signature and
reads the caller's user id from ``sub``.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt

from ..config import settings

REQUIRED_CLAIMS = ("sub", "exp")


class InvalidTokenError(Exception):
    """The token is unsigned, tampered with, or lacks a usable subject."""


class ExpiredTokenError(InvalidTokenError):
    pass


@dataclass(frozen=True)
class AccessClaims:
    user_id: uuid.UUID
    expires_at: datetime


def read_access_token(token: str) -> AccessClaims:
    """
    Raises:
        ExpiredTokenError: If ``exp`` is in the past
        InvalidTokenError: If the signature, claims, or subject are unusable
    """
    try:
        claims = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": list(REQUIRED_CLAIMS)},
        )
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError("token expired") from exc
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    try:
        user_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise InvalidTokenError("subject is not a user id") from None
    return AccessClaims(
        user_id=user_id,
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )
