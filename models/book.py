"""Book and activity log data models."""

from dataclasses import dataclass
from typing import Optional

from models.chapter import Chapter
from models.enums import BookStatus


@dataclass(frozen=True)
class ActivityEntry:
    """One line of a book's append-only activity log."""
    id: str
    action: str
    details: str = ""
    timestamp: str = ""  # ISO-8601
    user_id: str = ""


@dataclass(frozen=True)
class Book:
    """Represents a book project and its chapter tree."""
    id: str
    user_id: str  # Owner
    author_name: str = ""
    title: str = ""
    description: str = ""
    status: BookStatus = BookStatus.DRAFT
    cover_url: Optional[str] = None
    chapters: tuple[Chapter, ...] = ()
    updated_at: str = ""
    time_spent_seconds: int = 0
    activity_log: tuple[ActivityEntry, ...] = ()  # Newest first

    @property
    def page_count(self) -> int:
        return sum(len(c.pages) for c in self.chapters)
