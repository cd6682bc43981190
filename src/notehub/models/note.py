"""Notes, categories and tags."""

from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from notehub.models.base import TimestampMixin, generate_nanoid


class NoteStatus(str, Enum):
    """Publication status of a note."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class Category(TimestampMixin, SQLModel, table=True):
    """Per-user grouping for notes."""

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="categories_user_name_uniq"),)

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    name: str = Field(max_length=100)
    description: str | None = Field(default=None)
    color: str | None = Field(default=None, max_length=7)  # hex, e.g. "#10b981"
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)


class Tag(TimestampMixin, SQLModel, table=True):
    """Global label shared across users."""

    __tablename__ = "tags"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    name: str = Field(unique=True, index=True, max_length=50)
    color: str | None = Field(default=None, max_length=7)


class Note(TimestampMixin, SQLModel, table=True):
    """A user's note."""

    __tablename__ = "notes"

    id: str = Field(default_factory=generate_nanoid, primary_key=True, max_length=21)
    title: str = Field(max_length=255)
    content: str = Field(default="")
    status: NoteStatus = Field(default=NoteStatus.DRAFT)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE", max_length=21)
    category_id: str | None = Field(
        default=None, foreign_key="categories.id", index=True, ondelete="SET NULL", max_length=21
    )


class NoteTag(SQLModel, table=True):
    """Many-to-many link between notes and tags."""

    __tablename__ = "note_tags"

    note_id: str = Field(foreign_key="notes.id", primary_key=True, ondelete="CASCADE", max_length=21)
    tag_id: str = Field(foreign_key="tags.id", primary_key=True, ondelete="CASCADE", max_length=21)
