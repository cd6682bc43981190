"""Session tokens: signed JWTs issued after a successful sign-in."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from notehub.config import settings
from notehub.models import User
from notehub.services.users import CredentialStore


class SessionError(Exception):
    """Session token is malformed, expired, or names an unknown user."""


def _claims_for(user_id: str, email: str, is_admin: bool) -> dict[str, Any]:
    now = datetime.now(UTC)
    return {
        "sub": user_id,
        "email": email,
        "is_admin": is_admin,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expiration_days),
    }


def create_token(user: User) -> str:
    """Create a session token for a user."""
    payload = _claims_for(user.id, user.email, user.is_admin)
    return jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a session token's signature and expiry."""
    try:
        return jwt.decode(token, settings.session_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise SessionError(f"Invalid token: {e}") from e


async def verify_token(session: AsyncSession, token: str) -> User:
    """Verify a session token and return the user it was issued to."""
    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise SessionError("Invalid token: missing user ID")

    user = await CredentialStore(session).get_by_id(user_id)
    if user is None:
        raise SessionError("User not found")
    return user
