"""User and linked OAuth account models."""

from datetime import datetime

from pydantic import computed_field
from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from notehub.models.base import TimestampMixin, generate_nanoid


class User(TimestampMixin, SQLModel, table=True):
    """User account model.

    ``password_hash`` is unset for accounts created through OAuth or a
    magic link. ``email_verified_at`` is written once and never cleared.
    """

    __tablename__ = "users"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    email: str = Field(unique=True, index=True, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    image: str | None = Field(default=None, max_length=1024)
    password_hash: str | None = Field(default=None, max_length=255)
    email_verified_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[call-overload]
    )
    is_admin: bool = Field(default=False)

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None


class OAuthAccount(TimestampMixin, SQLModel, table=True):
    """Link between a user and an external identity provider account."""

    __tablename__ = "oauth_accounts"
    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="oauth_accounts_provider_uniq"),
    )

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE", index=True, max_length=21)
    provider: str = Field(max_length=50)
    provider_account_id: str = Field(max_length=255)


class UserRead(SQLModel):
    """Schema for reading a user."""

    id: str
    email: str
    name: str | None
    image: str | None
    email_verified_at: datetime | None
    is_admin: bool

    @computed_field  # type: ignore[prop-decorator]
    @property
    def email_verified(self) -> bool:
        return self.email_verified_at is not None
