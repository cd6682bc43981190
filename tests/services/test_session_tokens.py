"""Session token tests."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from notehub.config import settings
from notehub.services.auth import SessionError, create_token, decode_token, verify_token


@pytest.mark.asyncio
async def test_token_round_trip(session, user):
    token = create_token(user)

    payload = decode_token(token)
    assert payload["sub"] == user.id
    assert payload["email"] == user.email

    assert (await verify_token(session, token)).id == user.id


def test_expired_token():
    now = datetime.now(UTC)
    token = jwt.encode(
        {"sub": "abc", "iat": now - timedelta(days=2), "exp": now - timedelta(days=1)},
        settings.session_secret,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(SessionError):
        decode_token(token)


def test_wrong_signature():
    token = jwt.encode({"sub": "abc"}, "x" * 32, algorithm=settings.jwt_algorithm)

    with pytest.raises(SessionError):
        decode_token(token)


@pytest.mark.asyncio
async def test_unknown_user(session):
    token = jwt.encode({"sub": "missing"}, settings.session_secret, algorithm=settings.jwt_algorithm)

    with pytest.raises(SessionError, match="User not found"):
        await verify_token(session, token)
