"""Pydantic schemas for API requests/responses."""

from notehub.schemas.common import ErrorResponse, SuccessResponse

__all__ = [
    "ErrorResponse",
    "SuccessResponse",
]
