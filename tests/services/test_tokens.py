"""Token store tests."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from notehub.models import TokenPurpose, VerificationToken, utcnow
from notehub.services.tokens import TokenStore, generate_token, is_expired


def test_generate_token_is_random_hex():
    first, second = generate_token(), generate_token()

    assert len(first) == 64
    assert int(first, 16) >= 0
    assert first != second


def test_is_expired_handles_naive_datetimes():
    now = utcnow()
    past = VerificationToken(
        token="a", identifier="x@example.com", purpose=TokenPurpose.VERIFY,
        expires=(now - timedelta(seconds=1)).replace(tzinfo=None),
    )
    future = VerificationToken(
        token="b", identifier="x@example.com", purpose=TokenPurpose.VERIFY,
        expires=now + timedelta(hours=1),
    )

    assert is_expired(past, now)
    assert not is_expired(future, now)


class TestTokenStore:
    """Tests for TokenStore."""

    @pytest.mark.asyncio
    async def test_issue_and_find(self, session):
        store = TokenStore(session)

        issued = await store.issue("a@example.com", TokenPurpose.VERIFY, timedelta(hours=1))
        await session.commit()

        found = await store.find_live(issued.token, TokenPurpose.VERIFY)
        assert found is not None
        assert found.identifier == "a@example.com"

    @pytest.mark.asyncio
    async def test_find_is_scoped_by_purpose(self, session):
        store = TokenStore(session)
        issued = await store.issue("a@example.com", TokenPurpose.VERIFY, timedelta(hours=1))

        assert await store.find(issued.token, TokenPurpose.RESET) is None
        assert await store.find(issued.token, TokenPurpose.MAGIC_LINK) is None

    @pytest.mark.asyncio
    async def test_issue_replaces_only_same_purpose(self, session):
        store = TokenStore(session)
        verify = await store.issue("a@example.com", TokenPurpose.VERIFY, timedelta(hours=1))
        first_reset = await store.issue("a@example.com", TokenPurpose.RESET, timedelta(hours=1))
        second_reset = await store.issue("a@example.com", TokenPurpose.RESET, timedelta(hours=1))
        await session.commit()

        assert await store.find(verify.token, TokenPurpose.VERIFY) is not None
        assert await store.find(first_reset.token, TokenPurpose.RESET) is None
        assert await store.find(second_reset.token, TokenPurpose.RESET) is not None

    @pytest.mark.asyncio
    async def test_find_live_removes_expired(self, session):
        store = TokenStore(session)
        issued = await store.issue("a@example.com", TokenPurpose.RESET, timedelta(seconds=-1))

        assert await store.find_live(issued.token, TokenPurpose.RESET) is None
        assert await store.find(issued.token, TokenPurpose.RESET) is None

    @pytest.mark.asyncio
    async def test_delete_for_identifier_all_purposes(self, session):
        store = TokenStore(session)
        await store.issue("a@example.com", TokenPurpose.VERIFY, timedelta(hours=1))
        await store.issue("a@example.com", TokenPurpose.MAGIC_LINK, timedelta(hours=1))
        await store.issue("b@example.com", TokenPurpose.VERIFY, timedelta(hours=1))

        assert await store.delete_for_identifier("a@example.com") == 2
        assert await store.delete_for_identifier("b@example.com", TokenPurpose.RESET) == 0

    @pytest.mark.asyncio
    async def test_purge_expired(self, session, session_factory):
        store = TokenStore(session)
        await store.issue("old@example.com", TokenPurpose.VERIFY, timedelta(minutes=-5))
        await store.issue("old@example.com", TokenPurpose.RESET, timedelta(minutes=-1))
        live = await store.issue("new@example.com", TokenPurpose.VERIFY, timedelta(hours=1))
        await session.commit()

        async with session_factory() as other:
            deleted = await TokenStore(other).purge_expired()
            await other.commit()

            assert deleted == 2
            assert await TokenStore(other).find(live.token, TokenPurpose.VERIFY) is not None

    @pytest.mark.asyncio
    async def test_issue_keeps_one_row_per_pair(self, session):
        store = TokenStore(session)
        await store.issue("a@example.com", TokenPurpose.RESET, timedelta(hours=1))
        latest = await store.issue("a@example.com", TokenPurpose.RESET, timedelta(hours=2))
        await session.commit()

        result = await session.execute(
            select(VerificationToken).where(
                VerificationToken.identifier == "a@example.com",
                VerificationToken.purpose == TokenPurpose.RESET,
            )
        )
        rows = result.scalars().all()
        assert [row.token for row in rows] == [latest.token]
        assert not is_expired(rows[0], utcnow() + timedelta(minutes=90))

    @pytest.mark.asyncio
    async def test_second_row_for_pair_is_rejected(self, session):
        await TokenStore(session).issue("a@example.com", TokenPurpose.VERIFY, timedelta(hours=1))
        await session.commit()

        session.add(
            VerificationToken(
                token=generate_token(),
                identifier="a@example.com",
                purpose=TokenPurpose.VERIFY,
                expires=utcnow() + timedelta(hours=1),
            )
        )
        with pytest.raises(IntegrityError):
            await session.flush()
        await session.rollback()
