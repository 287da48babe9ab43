import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from conducky.config import settings
from conducky.security.token_inspection import (
    ExpiredTokenError,
    InvalidTokenError,
    read_access_token,
)


def _token(claims, key=None):
    return jwt.encode(claims, key or settings.secret_key, algorithm=settings.algorithm)


def _expiry(minutes=5):
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


def test_subject_becomes_user_id():
    user_id = uuid.uuid4()

    claims = read_access_token(_token({"sub": str(user_id), "exp": _expiry()}))

    assert claims.user_id == user_id
    assert claims.expires_at > datetime.now(timezone.utc)


def test_expired_token_is_reported_separately():
    token = _token({"sub": str(uuid.uuid4()), "exp": _expiry(-5)})

    with pytest.raises(ExpiredTokenError):
        read_access_token(token)


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "not-a-uuid", "exp": None},
        {"exp": None},
        {"sub": str(uuid.uuid4())},
    ],
)
def test_unusable_claims_are_invalid(claims):
    if "exp" in claims:
        claims = {**claims, "exp": _expiry()}

    with pytest.raises(InvalidTokenError):
        read_access_token(_token(claims))


def test_foreign_signature_is_invalid():
    token = _token({"sub": str(uuid.uuid4()), "exp": _expiry()}, key="x" * 40)

    with pytest.raises(InvalidTokenError):
        read_access_token(token)
