"""Enumerations for book, comment, account and editor status tracking."""

from enum import Enum


class BookStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    PUBLISHED = "published"
    REJECTED = "rejected"


class CommentStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class UserRole(str, Enum):
    CUSTOMER = "customer"
    EMPLOYEE = "employee"


class SaveStatus(str, Enum):
    SAVED = "saved"
    SAVING = "saving"
    UNSAVED = "unsaved"


class NodeKind(str, Enum):
    CHAPTER = "chapter"
    PAGE = "page"


class ActivityAction(str, Enum):
    BOOK_CREATED = "Buch erstellt"
    CHAPTER_CREATED = "Kapitel erstellt"
    PAGE_CREATED = "Seite erstellt"
    RENAMED = "Umbenannt"
    REORDERED = "Sortierung geändert"
    COMMENT_CREATED = "Kommentar erstellt"
