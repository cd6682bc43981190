"""Account lifecycle: registration, verification, password reset and sign-in.

Every flow validates its input before touching storage, and every store or
notifier call is bounded by ``settings.dependency_timeout_seconds``. Error
messages for token and credential failures are deliberately generic;
details go to the log only.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import TypeVar
from urllib.parse import urlencode

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notehub.config import settings
from notehub.models import TokenPurpose, User, VerificationToken
from notehub.schemas.auth import (
    EmailInput,
    RegisterInput,
    ResetPasswordInput,
    TokenEmailInput,
)
from notehub.services.email import (
    EmailMessage,
    magic_link_email,
    password_reset_email,
    verification_email,
)
from notehub.services.notifications import Notifier, get_notifier
from notehub.services.passwords import PasswordHasher, password_hasher
from notehub.services.tokens import TokenStore
from notehub.services.users import CredentialStore, normalize_email

InputT = TypeVar("InputT", bound=BaseModel)

# SAQ job settings for send_password_reset
RESET_JOB_TIMEOUT_SECONDS = 60
RESET_JOB_RETRIES = 3
RESET_JOB_RETRY_DELAY_SECONDS = 5.0


class AccountError(Exception):
    """Base class for failures reported to the caller."""

    status_code = 400
    message = "Invalid request"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class ValidationError(AccountError):
    """Input failed validation. Scoped to the first offending field."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class DuplicateAccountError(AccountError):
    message = "User with this email already exists"


class InvalidTokenError(AccountError):
    """Token is unknown, expired, or bound to a different email."""

    message = "Invalid or expired token"


class AccountNotFoundError(AccountError):
    status_code = 404
    message = "User not found"


class AuthFailure(AccountError):
    """Any credential mismatch. Never says which part was wrong."""

    status_code = 401
    message = "Invalid credentials"


class OAuthAccountNotLinkedError(AccountError):
    """The email belongs to an account that never signed in with this provider."""

    message = "To confirm your identity, sign in with the same method you used originally"


class DependencyFailure(AccountError):
    """Storage or another dependency was unreachable or failed."""

    status_code = 500
    message = "Internal server error"


@dataclass(frozen=True)
class RegistrationResult:
    user: User
    notification_sent: bool


@dataclass(frozen=True)
class OAuthIdentity:
    """Identity asserted by an external OAuth provider after its own checks."""

    provider: str
    provider_account_id: str
    email: str
    name: str | None = None
    image: str | None = None
    email_verified: bool = False


def parse_input(model: type[InputT], **data: object) -> InputT:
    """Validate raw input, raising a ValidationError for the first bad field."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = to_snake(str(error["loc"][0])) if error["loc"] else "__root__"
        ctx_error = error.get("ctx", {}).get("error")
        message = str(ctx_error) if isinstance(ctx_error, ValueError) else error["msg"]
        raise ValidationError(field, message) from e


def build_link(path: str, token: str, email: str) -> str:
    query = urlencode({"token": token, "email": email})
    return f"{settings.app_url.rstrip('/')}{path}?{query}"


class AccountService:
    """Orchestrates the account flows over one database session.

    Args:
        session: Session that owns the transaction for each flow
        notifier: Where rendered emails go (defaults to the configured notifier)
        hasher: Password hasher (defaults to the shared bcrypt hasher)
        logger: Receives one structured record per lifecycle event
        timeout: Upper bound in seconds for each store or notifier call
        defer_resets: Hand reset requests to the worker (defaults to queued email delivery)
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier | None = None,
        hasher: PasswordHasher | None = None,
        logger: logging.Logger | None = None,
        timeout: float | None = None,
        defer_resets: bool | None = None,
    ):
        self.session = session
        self.users = CredentialStore(session)
        self.tokens = TokenStore(session)
        self.notifier = notifier or get_notifier()
        self.hasher = hasher or password_hasher
        self.log = logger or logging.getLogger(__name__)
        self.timeout = timeout if timeout is not None else settings.dependency_timeout_seconds
        if defer_resets is None:
            defer_resets = settings.email_delivery == "queue"
        self.defer_resets = defer_resets

    # -- plumbing --------------------------------------------------------

    def _event(self, event: str, level: int = logging.INFO, **fields: object) -> None:
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        self.log.log(level, f"{event} {details}".strip(), extra={"event": event, **fields})

    @asynccontextmanager
    async def _store(self, operation: str) -> AsyncIterator[None]:
        """Bound a unit of store work and map storage failures to DependencyFailure."""
        try:
            async with asyncio.timeout(self.timeout):
                yield
        except TimeoutError as e:
            self._event("store_timeout", logging.ERROR, operation=operation)
            await self._rollback()
            raise DependencyFailure() from e
        except SQLAlchemyError as e:
            self.log.exception(f"Store failure during {operation}: {e!r}")
            await self._rollback()
            raise DependencyFailure() from e

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            self.log.warning(f"Rollback failed: {e!r}")

    async def _notify(self, to: str, message: EmailMessage, event: str) -> bool:
        """Hand a message to the notifier. Failures are logged, never raised."""
        try:
            async with asyncio.timeout(self.timeout):
                sent = await self.notifier.send(to, message)
        except Exception as e:
            self.log.warning(f"Notification {event} to {to} failed: {e!r}")
            sent = False
        if not sent:
            self._event("notification_failed", logging.WARNING, notification=event)
        return sent

    async def _enqueue_reset(self, email: str) -> None:
        """Queue a send_password_reset job. Failures are logged, never raised."""
        # Import here to avoid circular imports
        from notehub.tasks.queue import queue

        try:
            async with asyncio.timeout(self.timeout):
                job = await queue.enqueue(
                    "send_password_reset",
                    email=email,
                    timeout=RESET_JOB_TIMEOUT_SECONDS,
                    retries=RESET_JOB_RETRIES,
                    retry_delay=RESET_JOB_RETRY_DELAY_SECONDS,
                    retry_backoff=True,
                )
        except Exception as e:
            self.log.warning(f"Queueing password reset for {email} failed: {e!r}")
            job = None
        if job is None:
            self._event("notification_failed", logging.WARNING, notification="password_reset")

    async def _hash(self, password: str) -> str:
        return await asyncio.to_thread(self.hasher.hash, password)

    async def _consume(
        self,
        token: str,
        purpose: TokenPurpose,
        email: str | None = None,
    ) -> VerificationToken:
        """Look up a live token for a purpose, optionally checking its email.

        Raises InvalidTokenError with the same message for every failure.
        """
        verification = await self.tokens.find_live(token, purpose)
        if verification is None:
            # find_live may have removed an expired row
            await self.session.commit()
            self._event("token_rejected", purpose=purpose.value, reason="missing_or_expired")
            raise InvalidTokenError()
        if email is not None and verification.identifier != email:
            self._event("token_rejected", purpose=purpose.value, reason="identifier_mismatch")
            raise InvalidTokenError()
        return verification

    # -- flows -----------------------------------------------------------

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> RegistrationResult:
        """Create an unverified account and send its verification link."""
        data = parse_input(
            RegisterInput,
            name=name,
            email=email,
            password=password,
            confirm_password=confirm_password,
        )

        async with self._store("register"):
            if await self.users.get_by_email(data.email):
                self._event("register_duplicate")
                raise DuplicateAccountError()

            password_hash = await self._hash(data.password)
            try:
                user = await self.users.create(
                    email=data.email, name=data.name, password_hash=password_hash
                )
            except IntegrityError as e:
                # lost a race with a concurrent registration for the same email
                await self.session.rollback()
                raise DuplicateAccountError() from e

            verification = await self.tokens.issue(
                data.email,
                TokenPurpose.VERIFY,
                timedelta(hours=settings.verification_token_ttl_hours),
            )
            await self.session.commit()

        self._event("user_registered", user_id=user.id)

        url = build_link("/verify-email", verification.token, data.email)
        sent = await self._notify(data.email, verification_email(url, data.name), "verify_email")
        return RegistrationResult(user=user, notification_sent=sent)

    async def request_password_reset(self, email: str) -> None:
        """Accept a reset request. Returns nothing whether or not the account exists.

        With deferred resets the request only enqueues a send_password_reset
        job, so known and unknown emails take the same path; the lookup runs
        in the worker.
        """
        data = parse_input(EmailInput, email=email)

        if self.defer_resets:
            await self._enqueue_reset(data.email)
            self._event("password_reset_requested")
            return

        await self.send_password_reset(data.email)

    async def send_password_reset(self, email: str) -> bool:
        """Issue and send a reset link if the account exists.

        Returns whether a link was handed to the notifier.
        """
        email = normalize_email(email)

        async with self._store("send_password_reset"):
            user = await self.users.get_by_email(email)
            if user is None:
                self._event("password_reset_unknown_email")
                return False

            verification = await self.tokens.issue(
                email,
                TokenPurpose.RESET,
                timedelta(minutes=settings.reset_token_ttl_minutes),
            )
            await self.session.commit()

        self._event("password_reset_issued", user_id=user.id)

        url = build_link("/reset-password", verification.token, email)
        return await self._notify(email, password_reset_email(url, user.name), "password_reset")

    async def complete_password_reset(
        self,
        token: str,
        password: str,
        confirm_password: str,
    ) -> User:
        """Set a new password and consume the reset token."""
        data = parse_input(
            ResetPasswordInput,
            token=token,
            password=password,
            confirm_password=confirm_password,
        )

        async with self._store("complete_password_reset"):
            verification = await self._consume(data.token, TokenPurpose.RESET)

            user = await self.users.get_by_email(verification.identifier)
            if user is None:
                self._event("password_reset_orphan_token", logging.ERROR)
                raise AccountNotFoundError()

            # password first, token second: a failure in between leaves the token retryable
            await self.users.set_password(user, await self._hash(data.password))
            await self.tokens.delete(verification)
            await self.session.commit()

        self._event("password_reset_completed", user_id=user.id)
        return user

    async def verify_email(self, token: str, email: str) -> User:
        """Mark the account verified and consume the verification token."""
        data = parse_input(TokenEmailInput, token=token, email=email)

        async with self._store("verify_email"):
            verification = await self._consume(data.token, TokenPurpose.VERIFY, data.email)

            user = await self.users.get_by_email(data.email)
            if user is None:
                self._event("verify_email_orphan_token", logging.ERROR)
                raise AccountNotFoundError()

            await self.users.mark_verified(user)
            await self.tokens.delete(verification)
            await self.session.commit()

        self._event("email_verified", user_id=user.id)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Check email/password credentials.

        Every failure path performs one bcrypt comparison so response time
        does not reveal whether the account exists.
        """
        async with self._store("authenticate"):
            user = await self.users.get_by_email(email) if email else None

        if user is None or user.password_hash is None:
            await asyncio.to_thread(self.hasher.dummy_verify, password)
            self._event("authentication_failed")
            raise AuthFailure()

        if not await asyncio.to_thread(self.hasher.verify, password, user.password_hash):
            self._event("authentication_failed")
            raise AuthFailure()

        self._event("authenticated", user_id=user.id, method="credentials")
        return user

    async def request_magic_link(self, email: str) -> None:
        """Send a one-time sign-in link. Unknown emails get one too."""
        data = parse_input(EmailInput, email=email)

        async with self._store("request_magic_link"):
            user = await self.users.get_by_email(data.email)
            verification = await self.tokens.issue(
                data.email,
                TokenPurpose.MAGIC_LINK,
                timedelta(minutes=settings.magic_link_expiration_minutes),
            )
            await self.session.commit()

        self._event("magic_link_requested")

        url = build_link("/auth/magic-link", verification.token, data.email)
        name = user.name if user else None
        await self._notify(data.email, magic_link_email(url, name), "magic_link")

    async def consume_magic_link(self, token: str, email: str) -> User:
        """Sign in with a magic link, creating the account on first use."""
        data = parse_input(TokenEmailInput, token=token, email=email)

        async with self._store("consume_magic_link"):
            verification = await self._consume(data.token, TokenPurpose.MAGIC_LINK, data.email)

            user = await self.users.get_by_email(data.email)
            created = user is None
            if user is None:
                user = await self.users.create(email=data.email, verified=True)
            else:
                await self.users.mark_verified(user)
            await self.tokens.delete(verification)
            await self.session.commit()

        if created:
            self._event("user_registered", user_id=user.id, method="magic_link")
        self._event("authenticated", user_id=user.id, method="magic_link")
        return user

    async def sign_in_with_oauth(self, identity: OAuthIdentity) -> User:
        """Resolve an externally verified OAuth identity to a user."""
        email = normalize_email(identity.email)

        async with self._store("sign_in_with_oauth"):
            user = await self.users.get_by_oauth(identity.provider, identity.provider_account_id)
            if user is None:
                if await self.users.get_by_email(email) is not None:
                    self._event("oauth_not_linked", provider=identity.provider)
                    raise OAuthAccountNotLinkedError()

                user = await self.users.create(
                    email=email,
                    name=identity.name,
                    image=identity.image,
                    verified=identity.email_verified,
                )
                await self.users.link_oauth(user, identity.provider, identity.provider_account_id)
                await self.session.commit()
                self._event("user_registered", user_id=user.id, method=identity.provider)

        self._event("authenticated", user_id=user.id, method=identity.provider)
        return user
