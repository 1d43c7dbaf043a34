"""Conversion between entity dataclasses and store documents.

Documents use the camelCase keys of the hosted document store. Every value is
passed through ``clean_document`` before it leaves the process: the store
rejects unset values, so they are written as explicit nulls.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from models.book import ActivityEntry, Book
from models.chapter import Chapter, Comment, Page
from models.enums import BookStatus, CommentStatus, UserRole
from models.user import User

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for a value that was never provided."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def clean_document(data: Any) -> Any:
    """Recursively normalize a value into a store-safe JSON structure."""
    if data is None or data is UNSET:
        return None
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, (datetime, date)):
        return data.isoformat()
    if isinstance(data, dict):
        return {str(k): clean_document(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [clean_document(item) for item in data]
    return data


# ---- Encoding ----

def comment_to_document(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "pageId": comment.page_id,
        "userId": comment.user_id,
        "userName": comment.user_name,
        "text": comment.text,
        "audioUrl": comment.audio_url,
        "selectedText": comment.selected_text,
        "status": comment.status,
        "createdAt": comment.created_at,
    }


def page_to_document(page: Page) -> dict:
    return {
        "id": page.id,
        "chapterId": page.chapter_id,
        "number": page.number,
        "title": page.title,
        "content": page.content,
        "comments": [comment_to_document(c) for c in page.comments],
    }


def chapter_to_document(chapter: Chapter) -> dict:
    return {
        "id": chapter.id,
        "bookId": chapter.book_id,
        "number": chapter.number,
        "title": chapter.title,
        "pages": [page_to_document(p) for p in chapter.pages],
    }


def book_to_document(book: Book) -> dict:
    """Encode a Book as a cleaned, JSON-serializable document."""
    return clean_document({
        "id": book.id,
        "userId": book.user_id,
        "authorName": book.author_name,
        "title": book.title,
        "description": book.description,
        "coverUrl": book.cover_url,
        "status": book.status,
        "chapters": [chapter_to_document(c) for c in book.chapters],
        "updatedAt": book.updated_at,
        "timeSpentSeconds": book.time_spent_seconds,
        "activityLog": [
            {
                "id": e.id,
                "action": e.action,
                "details": e.details,
                "timestamp": e.timestamp,
                "userId": e.user_id,
            }
            for e in book.activity_log
        ],
    })


def user_to_document(user: User) -> dict:
    return clean_document({
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "photoURL": user.avatar_url,
        "joinedAt": user.joined_at,
        "bookCount": user.book_count,
        "isApproved": user.is_approved,
    })


# ---- Decoding ----

def _status(value: Optional[str], enum_cls, default):
    try:
        return enum_cls(value) if value else default
    except ValueError:
        logger.warning("Unknown %s value %r, using %s", enum_cls.__name__, value, default.value)
        return default


def comment_from_document(data: dict) -> Comment:
    return Comment(
        id=data.get("id", ""),
        page_id=data.get("pageId", ""),
        user_id=data.get("userId") or "",
        user_name=data.get("userName") or "",
        text=data.get("text") or "",
        audio_url=data.get("audioUrl"),
        selected_text=data.get("selectedText"),
        status=_status(data.get("status"), CommentStatus, CommentStatus.PENDING),
        created_at=data.get("createdAt") or "",
    )


def page_from_document(data: dict) -> Page:
    return Page(
        id=data.get("id", ""),
        chapter_id=data.get("chapterId", ""),
        number=data.get("number") or "",
        title=data.get("title") or "",
        content=data.get("content") or "",
        comments=tuple(comment_from_document(c) for c in data.get("comments") or []),
    )


def chapter_from_document(data: dict) -> Chapter:
    return Chapter(
        id=data.get("id", ""),
        book_id=data.get("bookId", ""),
        number=int(data.get("number") or 0),
        title=data.get("title") or "",
        pages=tuple(page_from_document(p) for p in data.get("pages") or []),
    )


def book_from_document(data: dict) -> Book:
    """Decode a stored book document, filling defaults for missing keys."""
    return Book(
        id=data.get("id", ""),
        user_id=data.get("userId", ""),
        author_name=data.get("authorName") or "",
        title=data.get("title") or "",
        description=data.get("description") or "",
        status=_status(data.get("status"), BookStatus, BookStatus.DRAFT),
        cover_url=data.get("coverUrl") or None,
        chapters=tuple(chapter_from_document(c) for c in data.get("chapters") or []),
        updated_at=data.get("updatedAt") or "",
        time_spent_seconds=int(data.get("timeSpentSeconds") or 0),
        activity_log=tuple(
            ActivityEntry(
                id=e.get("id", ""),
                action=e.get("action") or "",
                details=e.get("details") or "",
                timestamp=e.get("timestamp") or "",
                user_id=e.get("userId") or "",
            )
            for e in data.get("activityLog") or []
        ),
    )


def user_from_document(user_id: str, data: dict) -> User:
    return User(
        id=user_id,
        email=data.get("email") or "",
        name=data.get("name") or "",
        role=_status(data.get("role"), UserRole, UserRole.CUSTOMER),
        avatar_url=data.get("photoURL") or None,
        joined_at=data.get("joinedAt"),
        book_count=int(data.get("bookCount") or 0),
        is_approved=data.get("isApproved"),
    )
