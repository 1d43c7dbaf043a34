"""Boundary between the editor core and the external document/blob stores.

All collaborator failures are caught here: a permission error is a
recoverable, log-only condition and nothing raised by the store reaches an
autosave timer.
"""

import logging
from dataclasses import replace
from typing import Callable, Optional

from config.exceptions import (
    AccountNotApprovedError,
    BlobPermissionError,
    BlobStoreError,
    PermissionDeniedError,
    StoreError,
)
from models.activity import log_activity
from models.book import Book
from models.document import book_from_document, book_to_document
from models.enums import ActivityAction, BookStatus
from models.ids import BOOK_PREFIX, new_id, utc_now_iso
from models.user import User
from store.protocols import BlobStore, DocumentSnapshot, DocumentStore, Unsubscribe
from tools.text_utils import safe_user_name

logger = logging.getLogger(__name__)

BOOKS_ROOT = "Buecher"
USERS_COLLECTION = "users"
UPLOADS_ROOT = "user_uploads"

DEFAULT_BOOK_TITLE = "Neues Buch"
DEFAULT_BOOK_DESCRIPTION = "Eine kurze Beschreibung deines Buches..."


def projects_path(owner_id: str) -> str:
    return f"{BOOKS_ROOT}/{owner_id}/projects"


def book_path(owner_id: str, book_id: str) -> str:
    return f"{projects_path(owner_id)}/{book_id}"


def sort_recent_first(books: list[Book]) -> list[Book]:
    return sorted(books, key=lambda b: b.updated_at or "", reverse=True)


class SyncAdapter:
    """Pushes books to the document store and streams them back."""

    def __init__(self, store: DocumentStore, blobs: Optional[BlobStore] = None):
        self.store = store
        self.blobs = blobs

    # ---- Persist ----

    def persist(self, book: Book) -> bool:
        """Upsert-merge ``book`` under (owner id, book id).

        Returns:
            True on success, False if the store refused or failed.
        """
        path = book_path(book.user_id, book.id)
        try:
            self.store.set_document(path, book_to_document(book), merge=True)
        except PermissionDeniedError:
            logger.warning("Save failed: Permissions denied (%s)", path)
            return False
        except StoreError as e:
            logger.error("Error saving book %s: %s", book.id, e)
            return False
        logger.debug("Persisted %s (%d chapters)", path, len(book.chapters))
        return True

    def create_book(
        self,
        user: User,
        title: str = DEFAULT_BOOK_TITLE,
        description: str = DEFAULT_BOOK_DESCRIPTION,
    ) -> Book:
        """Start a new project for an approved author.

        The book is returned even when the store refuses the write so the
        author can keep working locally.

        Raises:
            AccountNotApprovedError: if the account is blocked.
        """
        if user.is_blocked:
            raise AccountNotApprovedError(user.id)

        now = utc_now_iso()
        book = Book(
            id=new_id(BOOK_PREFIX),
            user_id=user.id,
            author_name=user.name,
            title=title,
            description=description,
            status=BookStatus.DRAFT,
            updated_at=now,
        )
        book = log_activity(
            book, ActivityAction.BOOK_CREATED, "Neues Projekt gestartet", user.id, timestamp=now,
        )
        path = book_path(user.id, book.id)
        try:
            self.store.set_document(path, book_to_document(book))
        except PermissionDeniedError:
            logger.warning("Store permissions denied while creating %s", path)
        except StoreError as e:
            logger.error("Error creating book in DB: %s", e)
        else:
            logger.info("Created book %s for %s", book.id, user.id)
        return book

    # ---- Read ----

    def load_book(self, owner_id: str, book_id: str) -> Optional[Book]:
        path = book_path(owner_id, book_id)
        try:
            data = self.store.get_document(path)
        except StoreError as e:
            logger.warning("Could not load %s: %s", path, e)
            return None
        return book_from_document(data) if data else None

    def list_books(self, owner_id: str) -> list[Book]:
        try:
            docs = self.store.list_documents(projects_path(owner_id))
        except PermissionDeniedError:
            logger.warning("Book list permission denied for %s", owner_id)
            return []
        except StoreError as e:
            logger.error("Book list error for %s: %s", owner_id, e)
            return []
        return sort_recent_first([book_from_document(d.data) for d in docs])

    def list_all_books(self) -> list[Book]:
        """Every book of every user (reviewer view). Unreadable owners are skipped."""
        try:
            users = self.store.list_documents(USERS_COLLECTION)
        except PermissionDeniedError:
            logger.warning("Employee fetch permission denied.")
            return []
        except StoreError as e:
            logger.error("Employee fetch error: %s", e)
            return []

        books: list[Book] = []
        for user_doc in users:
            try:
                docs = self.store.list_documents(projects_path(user_doc.id))
            except StoreError as e:
                logger.debug("Skipping books of %s: %s", user_doc.id, e)
                continue
            books.extend(book_from_document(d.data) for d in docs)
        return books

    # ---- Subscribe ----

    def subscribe(self, owner_id: str, on_change: Callable[[list[Book]], None]) -> Unsubscribe:
        """Stream the owner's books (newest first) until unsubscribed."""

        def handle_snapshot(snapshot: list[DocumentSnapshot]) -> None:
            books = sort_recent_first([book_from_document(d.data) for d in snapshot])
            logger.debug("Snapshot for %s: %d books", owner_id, len(books))
            on_change(books)

        def handle_error(error: Exception) -> None:
            if isinstance(error, PermissionDeniedError):
                logger.warning("Store read permission denied, working offline")
            else:
                logger.error("Book listener error: %s", error)

        return self.store.subscribe_collection(
            projects_path(owner_id), handle_snapshot, handle_error,
        )

    # ---- Blobs ----

    def upload_blob(self, path: str, data: bytes) -> Optional[str]:
        """Upload bytes and return a retrievable URL, or None on failure."""
        if self.blobs is None:
            logger.warning("No blob store configured, dropping upload %s", path)
            return None
        try:
            reference = self.blobs.upload(path, data)
            return self.blobs.get_url(reference)
        except BlobStoreError as e:
            logger.warning("Upload of %s failed: %s", path, e)
            return None

    def upload_cover(self, user: User, book: Book, data: bytes, local_preview: str) -> Book:
        """Replace the cover image.

        The local preview reference is applied first. When the blob store
        refuses the upload the preview reference is persisted instead.
        """
        optimistic = replace(book, cover_url=local_preview, updated_at=utc_now_iso())
        if self.blobs is None:
            self.persist(optimistic)
            return optimistic

        path = f"{UPLOADS_ROOT}/{user.id}/{safe_user_name(user.name)}_cover_{book.id}"
        try:
            reference = self.blobs.upload(path, data)
            url = self.blobs.get_url(reference)
        except BlobPermissionError:
            logger.warning("Cover upload permission denied.")
            self.persist(optimistic)
            return optimistic
        except BlobStoreError as e:
            logger.error("Cover upload failed: %s", e)
            return optimistic

        final = replace(book, cover_url=url, updated_at=utc_now_iso())
        self.persist(final)
        return final
