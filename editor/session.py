"""Application state container: signed-in user, book list and open editor.

``AppSession`` replaces the ambient global state of a UI host. It owns the
book subscription of the signed-in customer and at most one ``BookEditor``.
Remote snapshots for the open book are forwarded to the editor.
"""

import logging
from typing import Optional

from config.exceptions import AccountNotApprovedError
from config.settings import Settings
from editor.callbacks import EditorCallback, LoggingCallback
from editor.scheduler import Scheduler
from editor.tree_editor import BookEditor
from models import operations as ops
from models.book import Book
from models.enums import BookStatus
from models.user import User
from store.protocols import AccountService, Unsubscribe
from store.sync import DEFAULT_BOOK_DESCRIPTION, DEFAULT_BOOK_TITLE, SyncAdapter

logger = logging.getLogger(__name__)


class AppSession:
    """Lifecycle of one signed-in user.

    Customers see their own books through a live subscription; employees
    see every book and refresh on demand.
    """

    def __init__(
        self,
        accounts: AccountService,
        sync: SyncAdapter,
        scheduler: Scheduler,
        settings: Optional[Settings] = None,
        callback: Optional[EditorCallback] = None,
    ):
        self.accounts = accounts
        self.sync = sync
        self.scheduler = scheduler
        self.settings = settings
        self.callback = callback or LoggingCallback()
        self.user: Optional[User] = None
        self.books: list[Book] = []
        self.editor: Optional[BookEditor] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def signed_in(self) -> bool:
        return self.user is not None

    # ---- Sign-in lifecycle ----

    def sign_in(self, email: str, password: str) -> User:
        """Authenticate and start the book feed. ``AuthError`` propagates."""
        user = self.accounts.authenticate(email, password)
        self.attach(user)
        return user

    def register(self, email: str, password: str, display_name: str) -> User:
        user = self.accounts.register(email, password, display_name)
        self.attach(user)
        return user

    def attach(self, user: User) -> None:
        """Bind an already authenticated user to this session."""
        if self.user is not None:
            self._detach()
        self.user = user
        if user.is_employee:
            self.refresh()
        else:
            self._unsubscribe = self.sync.subscribe(user.id, self._on_books)
        logger.info("Session started for %s (%s)", user.id, user.role.value)

    def _detach(self) -> None:
        self.close_book()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.user = None
        self.books = []

    def sign_out(self) -> None:
        """Close the editor, cancel the subscription and sign out."""
        self._detach()
        self.accounts.sign_out()

    def refresh(self) -> list[Book]:
        """Reload books; only needed for employees (customers are live)."""
        if self.user is None:
            return []
        if self.user.is_employee:
            self.books = self.sync.list_all_books()
        else:
            self.books = self.sync.list_books(self.user.id)
        return self.books

    def _on_books(self, books: list[Book]) -> None:
        self.books = books
        if self.editor is None:
            return
        for book in books:
            if book.id == self.editor.book.id:
                self.editor.apply_remote(book)
                break

    # ---- Books ----

    def find_book(self, book_id: str) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None

    def create_book(
        self,
        title: str = DEFAULT_BOOK_TITLE,
        description: str = DEFAULT_BOOK_DESCRIPTION,
    ) -> Optional[Book]:
        """Create a project and open it; blocked accounts get a notice instead."""
        if self.user is None:
            return None
        try:
            book = self.sync.create_book(self.user, title, description)
        except AccountNotApprovedError as e:
            self.callback.on_notice(e.message)
            return None
        if self.find_book(book.id) is None:
            self.books = [book] + self.books
        self.open_book(book.id)
        return book

    def open_book(self, book_id: str, page_id: Optional[str] = None) -> Optional[BookEditor]:
        """Open a book in a fresh editor, closing the previous one."""
        book = self.find_book(book_id)
        if book is None or self.user is None:
            return None
        self.close_book()
        self.editor = BookEditor(
            book,
            self.sync,
            self.user,
            self.scheduler,
            settings=self.settings,
            callback=self.callback,
            initial_page_id=page_id,
        ).start()
        return self.editor

    def close_book(self) -> None:
        if self.editor is None:
            return
        editor, self.editor = self.editor, None
        editor.close()
        # Keep the list in step with what the editor last held
        self.books = [editor.book if b.id == editor.book.id else b for b in self.books]

    def upload_cover(self, book_id: str, data: bytes, local_preview: str) -> Optional[Book]:
        book = self.find_book(book_id)
        if book is None or self.user is None:
            return None
        updated = self.sync.upload_cover(self.user, book, data, local_preview)
        self.books = [updated if b.id == book_id else b for b in self.books]
        return updated

    # ---- Reviewer views ----

    def pending_tasks(self) -> list[dict]:
        return ops.pending_tasks(self.books)

    def books_awaiting_approval(self) -> list[Book]:
        return [b for b in self.books if b.status == BookStatus.PENDING_APPROVAL]
