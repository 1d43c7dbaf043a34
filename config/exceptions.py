"""Custom exception hierarchy for the book editor and its collaborators."""

from typing import Optional


class HerzensbuchError(Exception):
    """Base exception for all herzensbuch errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- Store Errors ----

class StoreError(HerzensbuchError):
    """Document store operation failed."""


class PermissionDeniedError(StoreError):
    """The store rejected the operation for the current identity."""

    def __init__(self, path: str, message: str = ""):
        msg = message or f"Permission denied: {path}"
        super().__init__(msg, {"path": path})
        self.path = path


class DocumentNotFoundError(StoreError):
    """Requested document does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}", {"path": path})
        self.path = path


class BlobStoreError(HerzensbuchError):
    """Blob upload or lookup failed."""


class BlobPermissionError(BlobStoreError):
    """Blob store rejected the upload (storage/unauthorized)."""

    def __init__(self, path: str):
        super().__init__(f"Upload not authorized: {path}", {"path": path})
        self.path = path


# ---- Account Errors ----

class AuthError(HerzensbuchError):
    """Account service rejected a sign-in, sign-up or profile operation."""

    def __init__(self, kind: str, message: str = ""):
        super().__init__(message or f"Authentication failed: {kind}", {"kind": kind})
        self.kind = kind


class AccountNotApprovedError(HerzensbuchError):
    """Account has not been approved by an administrator yet."""

    def __init__(self, user_id: str):
        super().__init__(
            "Dein Account wurde noch nicht von einem Administrator freigeschaltet.",
            {"user_id": user_id},
        )
        self.user_id = user_id


# ---- Editor Errors ----

class AnchorNotFoundError(HerzensbuchError):
    """A comment's selected-text anchor no longer occurs in the page content."""

    def __init__(self, anchor: str):
        preview = anchor[:40]
        super().__init__(
            "Textstelle konnte nicht gefunden werden (möglicherweise wurde der Text bearbeitet).",
            {"anchor": preview},
        )
        self.anchor = anchor


# ---- Validation Errors ----

class ValidationError(HerzensbuchError):
    """Input validation failed."""


class EmptyCommentError(ValidationError):
    """Comment has neither text nor an audio reference."""

    def __init__(self, page_id: str):
        super().__init__("Comment requires text or audio", {"page_id": page_id})
        self.page_id = page_id


class InvalidConfigError(ValidationError):
    """Configuration value is invalid."""
