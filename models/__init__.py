"""Models package: book entities, enums, tree operations and document codec."""

from models.book import Book, ActivityEntry
from models.chapter import Chapter, Page, Comment
from models.user import User
from models.ids import NodeRef, new_id, utc_now_iso
from models.activity import calculate_version, log_activity, format_time_spent
from models.document import (
    UNSET,
    clean_document,
    book_to_document,
    book_from_document,
    user_to_document,
    user_from_document,
)
from models.enums import (
    BookStatus,
    CommentStatus,
    UserRole,
    SaveStatus,
    NodeKind,
    ActivityAction,
)

__all__ = [
    "Book",
    "ActivityEntry",
    "Chapter",
    "Page",
    "Comment",
    "User",
    "NodeRef",
    "new_id",
    "utc_now_iso",
    "calculate_version",
    "log_activity",
    "format_time_spent",
    "UNSET",
    "clean_document",
    "book_to_document",
    "book_from_document",
    "user_to_document",
    "user_from_document",
    "BookStatus",
    "CommentStatus",
    "UserRole",
    "SaveStatus",
    "NodeKind",
    "ActivityAction",
]
