"""Activity log maintenance and the derived version label."""

from dataclasses import replace
from typing import Optional

from models.book import ActivityEntry, Book
from models.ids import ACTIVITY_PREFIX, new_id, utc_now_iso

ACTIVITY_LOG_LIMIT = 50


def log_activity(
    book: Book,
    action: str,
    details: str,
    user_id: str,
    timestamp: Optional[str] = None,
    limit: int = ACTIVITY_LOG_LIMIT,
) -> Book:
    """Prepend an activity entry, keeping only the ``limit`` newest."""
    entry = ActivityEntry(
        id=new_id(ACTIVITY_PREFIX),
        action=str(getattr(action, "value", action)),
        details=details,
        timestamp=timestamp or utc_now_iso(),
        user_id=user_id,
    )
    return replace(book, activity_log=((entry,) + book.activity_log)[:limit])


def calculate_version(book: Book) -> str:
    """Cosmetic ``v{major}.{minor}.{patch}`` label.

    major: one milestone per 5 chapters, minor: total pages,
    patch: activity log length. Never persisted.
    """
    major = len(book.chapters) // 5 + 1
    minor = book.page_count
    patch = len(book.activity_log)
    return f"v{major}.{minor}.{patch}"


def format_time_spent(seconds: Optional[int]) -> str:
    if not seconds:
        return "0 Std 0 Min"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours} Std {minutes} Min"
