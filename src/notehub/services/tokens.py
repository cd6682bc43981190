"""Storage for single-use verification, reset and magic link tokens."""

from datetime import datetime, timedelta
from secrets import token_hex

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import delete, select

from notehub.models import TokenPurpose, VerificationToken, as_utc, utcnow

TOKEN_BYTES = 32


def generate_token() -> str:
    """Generate an unguessable URL-safe token (64 hex chars)."""
    return token_hex(TOKEN_BYTES)


def is_expired(token: VerificationToken, now: datetime | None = None) -> bool:
    return as_utc(token.expires) <= (now or utcnow())


def _dialect_insert(session: AsyncSession):
    """Pick the INSERT construct that supports ON CONFLICT for the bound database."""
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


class TokenStore:
    """Keyed token storage on top of a database session.

    Writes are flushed, never committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def issue(
        self,
        identifier: str,
        purpose: TokenPurpose,
        ttl: timedelta,
    ) -> VerificationToken:
        """Replace any token for (identifier, purpose) with a fresh one.

        A single upsert against the (identifier, purpose) unique constraint,
        so concurrent requests for the same pair leave exactly one row.
        """
        now = utcnow()
        insert = _dialect_insert(self.session)
        stmt = insert(VerificationToken).values(
            token=generate_token(),
            identifier=identifier,
            purpose=purpose,
            expires=now + ttl,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["identifier", "purpose"],
            set_={
                "token": stmt.excluded.token,
                "expires": stmt.excluded.expires,
                "created_at": stmt.excluded.created_at,
            },
        ).returning(VerificationToken)
        result = await self.session.scalars(
            stmt, execution_options={"populate_existing": True}
        )
        return result.one()

    async def find(self, token: str, purpose: TokenPurpose) -> VerificationToken | None:
        stmt = select(VerificationToken).where(
            VerificationToken.token == token,
            VerificationToken.purpose == purpose,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_live(self, token: str, purpose: TokenPurpose) -> VerificationToken | None:
        """Find a token that has not expired.

        An expired row is deleted when it is encountered.
        """
        verification = await self.find(token, purpose)
        if verification is None:
            return None
        if is_expired(verification):
            await self.session.delete(verification)
            await self.session.flush()
            return None
        return verification

    async def delete(self, verification: VerificationToken) -> None:
        await self.session.delete(verification)
        await self.session.flush()

    async def delete_for_identifier(
        self,
        identifier: str,
        purpose: TokenPurpose | None = None,
    ) -> int:
        """Delete tokens for an identifier, optionally only for one purpose."""
        stmt = delete(VerificationToken).where(VerificationToken.identifier == identifier)
        if purpose is not None:
            stmt = stmt.where(VerificationToken.purpose == purpose)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete every token whose expiry has passed. Returns the number removed."""
        stmt = (
            delete(VerificationToken)
            .where(VerificationToken.expires <= (now or utcnow()))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
