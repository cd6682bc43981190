"""Common schemas used across the API."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    field: str | None = None


class SuccessResponse(BaseModel):
    """Standard success response."""

    message: str
