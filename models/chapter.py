"""Chapter, page and comment data models."""

from dataclasses import dataclass
from typing import Optional

from models.enums import CommentStatus


@dataclass(frozen=True)
class Comment:
    """A reviewer or author note attached to a page."""
    id: str
    page_id: str
    user_id: str = ""
    user_name: str = ""
    text: str = ""
    audio_url: Optional[str] = None
    selected_text: Optional[str] = None  # Verbatim anchor into page content
    status: CommentStatus = CommentStatus.PENDING
    created_at: str = ""


@dataclass(frozen=True)
class Page:
    """A page within a chapter. ``number`` is dotted, e.g. "2.3"."""
    id: str
    chapter_id: str
    number: str = ""
    title: str = ""
    content: str = ""
    comments: tuple[Comment, ...] = ()

    @property
    def ordinal(self) -> int:
        """Position component of the dotted number (1-based)."""
        _, _, tail = self.number.partition(".")
        return int(tail) if tail.isdigit() else 0


@dataclass(frozen=True)
class Chapter:
    """Represents a single chapter. ``number`` always equals index + 1."""
    id: str
    book_id: str
    number: int = 1
    title: str = ""
    pages: tuple[Page, ...] = ()
