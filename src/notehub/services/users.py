"""Storage for user identity records and their linked OAuth accounts."""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from notehub.models import OAuthAccount, User, utcnow


def normalize_email(email: str) -> str:
    """Emails are compared case-insensitively by storing them lower-cased."""
    return email.strip().lower()


class CredentialStore:
    """User lookups and writes on top of a database session.

    Writes are flushed, never committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == normalize_email(email))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> User | None:
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        email: str,
        name: str | None = None,
        password_hash: str | None = None,
        image: str | None = None,
        verified: bool = False,
    ) -> User:
        user = User(
            email=normalize_email(email),
            name=name,
            image=image,
            password_hash=password_hash,
            email_verified_at=utcnow() if verified else None,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def set_password(self, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        await self.session.flush()

    async def mark_verified(self, user: User) -> bool:
        """Record the verification time once. Returns False if already verified."""
        if user.email_verified_at is not None:
            return False
        user.email_verified_at = utcnow()
        await self.session.flush()
        return True

    async def get_by_oauth(self, provider: str, provider_account_id: str) -> User | None:
        stmt = (
            select(User)
            .join(OAuthAccount, OAuthAccount.user_id == User.id)  # type: ignore[arg-type]
            .where(
                OAuthAccount.provider == provider,
                OAuthAccount.provider_account_id == provider_account_id,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def link_oauth(self, user: User, provider: str, provider_account_id: str) -> OAuthAccount:
        account = OAuthAccount(
            user_id=user.id,
            provider=provider,
            provider_account_id=provider_account_id,
        )
        self.session.add(account)
        await self.session.flush()
        return account
