"""Single-use tokens for email verification, password reset and magic links."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from notehub.models.base import utcnow


class TokenPurpose(str, Enum):
    """Which flow consumes a token."""

    VERIFY = "verify"
    RESET = "reset"
    MAGIC_LINK = "magic_link"


class VerificationToken(SQLModel, table=True):
    """Random token bound to an email address, a purpose and an expiry.

    At most one live token exists per (identifier, purpose); issuing a new
    one replaces the previous one for the same pair in place.
    """

    __tablename__ = "verification_tokens"
    __table_args__ = (
        UniqueConstraint("identifier", "purpose", name="verification_tokens_identifier_purpose_key"),
    )

    token: str = Field(primary_key=True, max_length=255, description="Random opaque token")
    identifier: str = Field(max_length=255, description="Email address")
    purpose: TokenPurpose = Field(description="Flow that consumes this token")
    expires: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
        description="Token expiration time",
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
