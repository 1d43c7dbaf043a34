"""Shared pytest fixtures for the herzensbuch test suite."""

import pytest

from models.book import Book
from models.chapter import Chapter, Comment, Page
from models.enums import UserRole
from models.user import User


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        sqlite_db_path=tmp_path / "herzensbuch.db",
        blob_dir=tmp_path / "blobs",
        session_path=tmp_path / "session.json",
        log_dir=tmp_path / "logs",
        employee_emails=["lektorat@example.com"],
    )


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def doc_store(tmp_path):
    """Return an empty SQLite document store backed by a temp file."""
    from store.sqlite_store import SQLiteDocumentStore
    return SQLiteDocumentStore(tmp_path / "docs.db")


@pytest.fixture
def blob_store(tmp_path):
    from store.blob_store import LocalBlobStore
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def locked_doc_store(tmp_path):
    """Document store whose database is write-locked by another connection.

    Yields ``(store, release)``; ``release()`` ends the foreign transaction.
    """
    import sqlite3

    from store.sqlite_store import SQLiteDocumentStore
    store = SQLiteDocumentStore(tmp_path / "locked.db", timeout=0.05)
    other = sqlite3.connect(str(tmp_path / "locked.db"), isolation_level=None)
    other.execute("BEGIN EXCLUSIVE")

    def release():
        if other.in_transaction:
            other.execute("ROLLBACK")

    yield store, release
    release()
    other.close()


@pytest.fixture
def sync(doc_store, blob_store):
    from store.sync import SyncAdapter
    return SyncAdapter(doc_store, blob_store)


@pytest.fixture
def clock():
    """Return a VirtualClock starting at t=0."""
    from editor.scheduler import VirtualClock
    return VirtualClock()


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def customer():
    return User(
        id="u-anna",
        email="anna@example.com",
        name="Anna",
        role=UserRole.CUSTOMER,
        is_approved=True,
    )


@pytest.fixture
def employee():
    return User(
        id="u-lektor",
        email="lektorat@example.com",
        name="Lektorat",
        role=UserRole.EMPLOYEE,
        is_approved=True,
    )


@pytest.fixture
def sample_book(customer):
    """Two chapters: ch-a with pages p-a1, p-a2; ch-b with page p-b1."""
    return Book(
        id="book-1",
        user_id=customer.id,
        author_name=customer.name,
        title="Unser Sommer",
        description="Ferien am See",
        chapters=(
            Chapter(
                id="ch-a",
                book_id="book-1",
                number=1,
                title="Anfang",
                pages=(
                    Page(id="p-a1", chapter_id="ch-a", number="1.1", title="Ankunft",
                         content="Wir kamen am Abend an."),
                    Page(id="p-a2", chapter_id="ch-a", number="1.2", title="Der See",
                         content="Das Wasser war kalt.",
                         comments=(
                             Comment(id="c-1", page_id="p-a2", user_id="u-lektor",
                                     user_name="Lektorat", text="Schöner Satz",
                                     selected_text="Wasser", created_at="2024-05-01T10:00:00.000Z"),
                         )),
                ),
            ),
            Chapter(
                id="ch-b",
                book_id="book-1",
                number=2,
                title="Ende",
                pages=(
                    Page(id="p-b1", chapter_id="ch-b", number="2.1", title="Abschied",
                         content="Dann fuhren wir heim."),
                ),
            ),
        ),
        updated_at="2024-05-01T10:00:00.000Z",
    )


@pytest.fixture
def empty_book(customer):
    return Book(id="book-empty", user_id=customer.id, author_name=customer.name, title="Leer")
