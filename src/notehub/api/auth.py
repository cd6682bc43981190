"""Authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Query, status

from notehub.api.deps import AccountServiceDep, CurrentUser
from notehub.models import User
from notehub.models.user import UserRead
from notehub.schemas.auth import (
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenEmailRequest,
    TokenResponse,
)
from notehub.schemas.common import ErrorResponse, SuccessResponse
from notehub.services.auth import create_token

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)

# Same body whether or not the account exists
PASSWORD_RESET_REQUESTED = "If an account with that email exists, we have sent a password reset link."
MAGIC_LINK_REQUESTED = "If the address is valid, a sign-in link is on its way."


def _session_response(user: User) -> TokenResponse:
    return TokenResponse(access_token=create_token(user), user=UserRead.model_validate(user))


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(request: RegisterRequest, accounts: AccountServiceDep):
    """Create an account and email a verification link."""
    result = await accounts.register(
        name=request.name,
        email=request.email,
        password=request.password,
        confirm_password=request.confirm_password,
    )
    message = "User created successfully. Please check your email to verify your account."
    if not result.notification_sent:
        message = "User created successfully. We could not send the verification email yet."
    return RegisterResponse(
        message=message,
        user_id=result.user.id,
        email_sent=result.notification_sent,
    )


@router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password(request: EmailRequest, accounts: AccountServiceDep):
    """Request a password reset link.

    The response never reveals whether the email has an account.
    """
    await accounts.request_password_reset(request.email)
    return SuccessResponse(message=PASSWORD_RESET_REQUESTED)


@router.post("/reset-password", response_model=SuccessResponse)
async def reset_password(request: ResetPasswordRequest, accounts: AccountServiceDep):
    """Set a new password using a reset token."""
    await accounts.complete_password_reset(
        token=request.token,
        password=request.password,
        confirm_password=request.confirm_password,
    )
    return SuccessResponse(message="Password reset successfully")


@router.api_route("/verify-email", methods=["GET", "POST"], response_model=SuccessResponse)
async def verify_email(
    accounts: AccountServiceDep,
    token: Annotated[str | None, Query()] = None,
    email: Annotated[str | None, Query()] = None,
    body: Annotated[TokenEmailRequest | None, Body()] = None,
):
    """Confirm an email address. Token and email may come from the query or a JSON body."""
    await accounts.verify_email(
        token=token or (body.token if body else ""),
        email=email or (body.email if body else ""),
    )
    return SuccessResponse(message="Email verified successfully")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, accounts: AccountServiceDep):
    """Sign in with email and password."""
    user = await accounts.authenticate(request.email, request.password)
    return _session_response(user)


@router.post("/magic-link", response_model=SuccessResponse)
async def request_magic_link(request: EmailRequest, accounts: AccountServiceDep):
    """Email a one-time sign-in link."""
    await accounts.request_magic_link(request.email)
    return SuccessResponse(message=MAGIC_LINK_REQUESTED)


@router.post("/magic-link/verify", response_model=TokenResponse)
async def consume_magic_link(request: TokenEmailRequest, accounts: AccountServiceDep):
    """Exchange a magic link token for a session."""
    user = await accounts.consume_magic_link(request.token, request.email)
    return _session_response(user)


@router.get("/me", response_model=UserRead)
async def get_current_user_info(user: CurrentUser):
    """Get current authenticated user info."""
    return UserRead.model_validate(user)


@router.post("/logout", response_model=SuccessResponse)
async def logout():
    """Sessions are stateless JWTs; the client discards its token."""
    return SuccessResponse(message="Logged out successfully")


@router.post("/refresh", response_model=TokenResponse)
async def refresh(user: CurrentUser):
    """Issue a fresh session token with current user data and a new expiry."""
    return _session_response(user)
