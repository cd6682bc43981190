"""Account flow input validation and request/response bodies."""

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from notehub.models.user import UserRead

PASSWORD_MIN_LENGTH = 8
NAME_MIN_LENGTH = 2


def check_password_policy(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-zA-Z]", value):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    return value


def normalize_email_address(value: str) -> str:
    try:
        _, email = validate_email(value.strip())
    except PydanticCustomError as e:
        raise ValueError("Please enter a valid email address") from e
    return email.lower()


Password = Annotated[str, AfterValidator(check_password_policy)]
Email = Annotated[str, AfterValidator(normalize_email_address)]


class CamelModel(BaseModel):
    """Accepts both camelCase and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _PasswordConfirmation(CamelModel):
    password: Password
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        # password already failed its own validation; report that error instead
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords don't match")
        return value


# Validated inputs, built by AccountService before touching any store


class RegisterInput(_PasswordConfirmation):
    name: str
    email: Email

    @field_validator("name")
    @classmethod
    def name_long_enough(cls, value: str) -> str:
        value = value.strip()
        if len(value) < NAME_MIN_LENGTH:
            raise ValueError(f"Name must be at least {NAME_MIN_LENGTH} characters long")
        return value


class EmailInput(CamelModel):
    email: Email


class ResetPasswordInput(_PasswordConfirmation):
    token: str

    @field_validator("token")
    @classmethod
    def token_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Token is required")
        return value


class TokenEmailInput(CamelModel):
    token: str
    email: Email


# HTTP request bodies. Fields are plain strings so that policy errors are
# raised by the service with the same shape for every caller.


class RegisterRequest(CamelModel):
    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""


class EmailRequest(CamelModel):
    email: str = ""


class ResetPasswordRequest(CamelModel):
    token: str = ""
    password: str = ""
    confirm_password: str = ""


class TokenEmailRequest(CamelModel):
    token: str = ""
    email: str = ""


class LoginRequest(CamelModel):
    email: str = ""
    password: str = ""


class RegisterResponse(BaseModel):
    """201 body for a new account. ``userId`` keeps the client's field name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    user_id: str
    email_sent: bool


class TokenResponse(BaseModel):
    """Session token issued after a successful sign-in."""

    access_token: str
    token_type: str = "bearer"
    user: UserRead
