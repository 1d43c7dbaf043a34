"""Tests for the SyncAdapter boundary."""

from dataclasses import replace

import pytest

from config.exceptions import AccountNotApprovedError, StoreError
from models.enums import BookStatus
from store.sync import DEFAULT_BOOK_TITLE, SyncAdapter, book_path, projects_path


class TestPaths:
    def test_book_path(self):
        assert projects_path("u1") == "Buecher/u1/projects"
        assert book_path("u1", "b1") == "Buecher/u1/projects/b1"


class TestPersist:
    def test_persist_and_load(self, sync, sample_book):
        assert sync.persist(sample_book) is True
        assert sync.load_book(sample_book.user_id, sample_book.id) == sample_book

    def test_persist_merges_into_existing(self, sync, doc_store, sample_book):
        path = book_path(sample_book.user_id, sample_book.id)
        doc_store.set_document(path, {"legacyField": 1})
        sync.persist(sample_book)
        stored = doc_store.get_document(path)
        assert stored["legacyField"] == 1
        assert stored["title"] == sample_book.title

    def test_permission_denied_returns_false(self, sync, doc_store, sample_book, caplog):
        doc_store.deny("Buecher")
        with caplog.at_level("WARNING"):
            assert sync.persist(sample_book) is False
        assert "Permissions denied" in caplog.text

    def test_no_unset_values_in_document(self, sync, doc_store, sample_book):
        sync.persist(replace(sample_book, cover_url=None))
        stored = doc_store.get_document(book_path(sample_book.user_id, sample_book.id))
        assert stored["coverUrl"] is None


class TestCreateBook:
    def test_creates_draft_with_activity(self, sync, customer):
        book = sync.create_book(customer)
        assert book.title == DEFAULT_BOOK_TITLE
        assert book.status == BookStatus.DRAFT
        assert book.chapters == ()
        assert book.activity_log[0].action == "Buch erstellt"
        assert book.activity_log[0].details == "Neues Projekt gestartet"
        assert sync.load_book(customer.id, book.id) == book

    def test_blocked_account(self, sync, customer):
        with pytest.raises(AccountNotApprovedError):
            sync.create_book(replace(customer, is_approved=False))

    def test_legacy_profile_may_create(self, sync, customer):
        book = sync.create_book(replace(customer, is_approved=None))
        assert book.user_id == customer.id

    def test_write_refused_still_returns_book(self, sync, doc_store, customer):
        doc_store.deny("Buecher", ops=["write"])
        book = sync.create_book(customer, "Offline")
        assert book.title == "Offline"
        assert sync.list_books(customer.id) == []


class TestRead:
    def test_list_books_newest_first(self, sync, sample_book):
        older = replace(sample_book, id="book-0", updated_at="2023-01-01T00:00:00.000Z")
        sync.persist(older)
        sync.persist(sample_book)
        assert [b.id for b in sync.list_books(sample_book.user_id)] == ["book-1", "book-0"]

    def test_list_all_books_via_user_profiles(self, sync, doc_store, sample_book):
        doc_store.set_document(f"users/{sample_book.user_id}", {"name": "Anna"})
        doc_store.set_document("users/u-empty", {"name": "Leer"})
        sync.persist(sample_book)
        assert [b.id for b in sync.list_all_books()] == ["book-1"]

    def test_list_books_store_failure(self, sync, doc_store, monkeypatch, caplog):
        def fail(path):
            raise StoreError("database is locked", {"path": path})
        monkeypatch.setattr(doc_store, "list_documents", fail)
        with caplog.at_level("ERROR"):
            assert sync.list_books("u1") == []
        assert "database is locked" in caplog.text

    def test_list_all_books_denied(self, sync, doc_store):
        doc_store.deny("users", ops=["read"])
        assert sync.list_all_books() == []

    def test_load_missing(self, sync):
        assert sync.load_book("u1", "nope") is None


class TestSubscribe:
    def test_streams_changes(self, sync, sample_book):
        received = []
        unsubscribe = sync.subscribe(sample_book.user_id, received.append)
        assert received == [[]]
        sync.persist(sample_book)
        assert received[-1][0].id == "book-1"
        unsubscribe()
        sync.persist(replace(sample_book, title="Neu"))
        assert len(received) == 2

    def test_read_denied_is_logged(self, sync, doc_store, caplog):
        doc_store.deny("Buecher", ops=["read"])
        received = []
        with caplog.at_level("WARNING"):
            sync.subscribe("u1", received.append)
        assert received == []
        assert "working offline" in caplog.text


class TestBlobs:
    def test_upload_blob(self, sync):
        assert sync.upload_blob("comment_audio/b1/p1/a.webm", b"x").startswith("file://")

    def test_upload_blob_denied(self, sync, blob_store):
        blob_store.deny("comment_audio")
        assert sync.upload_blob("comment_audio/b1/p1/a.webm", b"x") is None

    def test_upload_without_blob_store(self, doc_store):
        assert SyncAdapter(doc_store).upload_blob("a/b", b"x") is None

    def test_upload_cover(self, sync, customer, sample_book):
        book = sync.upload_cover(customer, sample_book, b"png", "blob:preview")
        assert book.cover_url.startswith("file://")
        assert sync.load_book(customer.id, book.id).cover_url == book.cover_url

    def test_upload_cover_denied_keeps_preview(self, sync, blob_store, customer, sample_book):
        blob_store.deny("user_uploads")
        book = sync.upload_cover(customer, sample_book, b"png", "blob:preview")
        assert book.cover_url == "blob:preview"
        assert sync.load_book(customer.id, book.id).cover_url == "blob:preview"
