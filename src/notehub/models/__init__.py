"""SQLModel database models."""

from notehub.models.base import TimestampMixin, as_utc, generate_nanoid, utcnow
from notehub.models.note import Category, Note, NoteStatus, NoteTag, Tag
from notehub.models.user import OAuthAccount, User
from notehub.models.verification_token import TokenPurpose, VerificationToken

__all__ = [
    "Category",
    "Note",
    "NoteStatus",
    "NoteTag",
    "OAuthAccount",
    "Tag",
    "TimestampMixin",
    "TokenPurpose",
    "User",
    "VerificationToken",
    "as_utc",
    "generate_nanoid",
    "utcnow",
]
