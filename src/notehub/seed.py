"""Sample data: a demo user with categories, tags and notes."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from notehub.models import Category, Note, NoteStatus, NoteTag, Tag, User
from notehub.services.users import CredentialStore

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"
DEMO_NAME = "Demo User"
DEMO_IMAGE = (
    "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=150&h=150&fit=crop&crop=face"
)

CATEGORIES = [
    ("Personal", "Personal notes and thoughts", "#10b981"),
    ("Work", "Work-related notes and tasks", "#3b82f6"),
    ("Ideas", "Creative ideas and inspiration", "#8b5cf6"),
]

TAGS = [
    ("important", "#ef4444"),
    ("urgent", "#f59e0b"),
    ("meeting", "#06b6d4"),
    ("project", "#84cc16"),
    ("learning", "#6366f1"),
]


@dataclass
class SeedNote:
    title: str
    content: str
    status: NoteStatus
    category: str
    tags: list[str] = field(default_factory=list)


def sample_notes(today: datetime | None = None) -> list[SeedNote]:
    today = today or datetime.now(UTC)
    return [
        SeedNote(
            title="Welcome to Your Note-Taking App",
            content="""# Welcome!

This is your first note in the app. Here are some features you can explore:

- **Rich text content** with markdown support
- **Categories** to organize your notes
- **Tags** for flexible labeling
- **Status tracking** (Draft, Published, Archived)

Start by creating your own notes and organizing them with categories and tags!""",
            status=NoteStatus.PUBLISHED,
            category="Personal",
            tags=["important"],
        ),
        SeedNote(
            title="Project Planning Meeting Notes",
            content=f"""# Project Planning Meeting - {today:%Y-%m-%d}

## Attendees
- John Doe
- Jane Smith
- Demo User

## Key Points
- Project deadline: End of next month
- Budget approved: $50,000
- Team size: 5 developers

## Action Items
- [ ] Set up development environment
- [ ] Create project timeline
- [ ] Schedule weekly check-ins

## Next Meeting
Next Friday at 2 PM""",
            status=NoteStatus.PUBLISHED,
            category="Work",
            tags=["meeting", "project", "important"],
        ),
        SeedNote(
            title="Learning Goals for This Quarter",
            content="""# Learning Goals

## Technical Skills
1. **FastAPI** - Dependency injection and lifespan handling
2. **SQLModel** - Advanced database modeling
3. **Typing** - Generics and protocols

## Soft Skills
- Public speaking
- Team leadership
- Project management

## Progress Tracking
- Weekly reviews
- Monthly assessments
- Quarterly retrospectives""",
            status=NoteStatus.DRAFT,
            category="Personal",
            tags=["learning", "project"],
        ),
        SeedNote(
            title="App Feature Ideas",
            content="""# Feature Ideas

## High Priority
- [ ] Dark mode toggle
- [ ] Search functionality
- [ ] Export notes to PDF
- [ ] Note templates

## Medium Priority
- [ ] Collaborative editing
- [ ] Note sharing
- [ ] Offline support

## Implementation Notes
Start with search functionality as it will have the biggest impact on user experience.""",
            status=NoteStatus.DRAFT,
            category="Ideas",
            tags=["project", "important"],
        ),
        SeedNote(
            title="Quick Thoughts",
            content="""# Random Thoughts

Just some quick ideas I want to remember:

- Coffee shop on 5th street has amazing pastries
- Book recommendation: "The Pragmatic Programmer"
- Remember to water the plants

Sometimes the best ideas come from the most random thoughts!""",
            status=NoteStatus.PUBLISHED,
            category="Personal",
        ),
    ]


@dataclass
class SeedResult:
    user: User
    categories: list[Category]
    tags: list[Tag]
    notes: list[Note]


async def _upsert_category(
    session: AsyncSession, user: User, name: str, description: str, color: str
) -> Category:
    stmt = select(Category).where(Category.user_id == user.id, Category.name == name)
    category = (await session.execute(stmt)).scalar_one_or_none()
    if category is None:
        category = Category(name=name, description=description, color=color, user_id=user.id)
        session.add(category)
        await session.flush()
    return category


async def _upsert_tag(session: AsyncSession, name: str, color: str) -> Tag:
    stmt = select(Tag).where(Tag.name == name)
    tag = (await session.execute(stmt)).scalar_one_or_none()
    if tag is None:
        tag = Tag(name=name, color=color)
        session.add(tag)
        await session.flush()
    return tag


async def seed_database(session: AsyncSession) -> SeedResult:
    """Create the demo user and its sample data.

    The user, categories and tags are upserted; notes are created on every run.
    """
    users = CredentialStore(session)
    user = await users.get_by_email(DEMO_EMAIL)
    if user is None:
        user = await users.create(email=DEMO_EMAIL, name=DEMO_NAME, image=DEMO_IMAGE)
    logger.info(f"Seed user: {user.name}")

    categories = [
        await _upsert_category(session, user, name, description, color)
        for name, description, color in CATEGORIES
    ]
    by_category = {category.name: category for category in categories}
    logger.info(f"Seed categories: {', '.join(by_category)}")

    tags = [await _upsert_tag(session, name, color) for name, color in TAGS]
    by_tag = {tag.name: tag for tag in tags}
    logger.info(f"Seed tags: {', '.join(by_tag)}")

    notes = []
    for sample in sample_notes():
        note = Note(
            title=sample.title,
            content=sample.content,
            status=sample.status,
            user_id=user.id,
            category_id=by_category[sample.category].id,
        )
        session.add(note)
        await session.flush()
        session.add_all(NoteTag(note_id=note.id, tag_id=by_tag[name].id) for name in sample.tags)
        notes.append(note)
        logger.info(f'Seed note: "{note.title}" with {len(sample.tags)} tags')

    await session.commit()
    return SeedResult(user=user, categories=categories, tags=tags, notes=notes)
