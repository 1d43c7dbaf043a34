"""Tests for entities, activity log, version label and document codec."""

import json
from datetime import date

from models.activity import calculate_version, format_time_spent, log_activity
from models.book import Book
from models.document import (
    UNSET,
    book_from_document,
    book_to_document,
    clean_document,
    user_from_document,
    user_to_document,
)
from models.enums import ActivityAction, BookStatus, UserRole
from models.ids import new_id, utc_now_iso
from models.user import User


class TestIds:
    def test_prefix_and_uniqueness(self):
        a, b = new_id("chap"), new_id("chap")
        assert a.startswith("chap-")
        assert a != b

    def test_utc_now_iso_format(self):
        stamp = utc_now_iso()
        assert stamp.endswith("Z")
        assert "T" in stamp


class TestUser:
    def test_blocked_only_when_explicitly_unapproved(self):
        assert User(id="u", is_approved=False).is_blocked
        assert not User(id="u", is_approved=None).is_blocked
        assert not User(id="u", is_approved=True).is_blocked

    def test_is_employee(self):
        assert User(id="u", role=UserRole.EMPLOYEE).is_employee


class TestActivityLog:
    def test_newest_first(self, empty_book):
        book = log_activity(empty_book, ActivityAction.CHAPTER_CREATED, "Kapitel 1", "u1")
        book = log_activity(book, ActivityAction.PAGE_CREATED, "Seite 1.1 in X", "u1")
        assert book.activity_log[0].action == "Seite erstellt"
        assert book.activity_log[1].action == "Kapitel erstellt"

    def test_capped(self, empty_book):
        book = empty_book
        for i in range(55):
            book = log_activity(book, ActivityAction.RENAMED, str(i), "u1")
        assert len(book.activity_log) == 50
        assert book.activity_log[0].details == "54"

    def test_custom_limit(self, empty_book):
        book = empty_book
        for i in range(5):
            book = log_activity(book, "x", str(i), "u1", limit=3)
        assert [e.details for e in book.activity_log] == ["4", "3", "2"]


class TestVersion:
    def test_empty_book(self, empty_book):
        assert calculate_version(empty_book) == "v1.0.0"

    def test_sample_book(self, sample_book):
        assert calculate_version(sample_book) == "v1.3.0"

    def test_major_steps_every_five_chapters(self, empty_book):
        from models import operations as ops
        book = empty_book
        for i in range(5):
            book = ops.add_chapter(book, f"ch{i}")
        assert calculate_version(book).startswith("v2.")


class TestTimeSpent:
    def test_zero(self):
        assert format_time_spent(0) == "0 Std 0 Min"
        assert format_time_spent(None) == "0 Std 0 Min"

    def test_hours_and_minutes(self):
        assert format_time_spent(3 * 3600 + 25 * 60 + 10) == "3 Std 25 Min"


class TestCleanDocument:
    def test_unset_and_none_become_null(self):
        assert clean_document({"a": UNSET, "b": None}) == {"a": None, "b": None}

    def test_enums_dates_and_tuples(self):
        cleaned = clean_document({
            "status": BookStatus.PUBLISHED,
            "day": date(2024, 5, 1),
            "items": (1, (2, 3)),
        })
        assert cleaned == {"status": "published", "day": "2024-05-01", "items": [1, [2, 3]]}


class TestBookDocument:
    def test_round_trip(self, sample_book):
        doc = book_to_document(sample_book)
        assert book_from_document(doc) == sample_book

    def test_document_is_plain_json(self, sample_book):
        doc = book_to_document(sample_book)
        json.dumps(doc)
        assert doc["chapters"][0]["pages"][1]["comments"][0]["status"] == "pending"
        assert doc["coverUrl"] is None
        assert "userId" in doc and "activityLog" in doc

    def test_missing_keys_get_defaults(self):
        book = book_from_document({"id": "b1", "userId": "u1"})
        assert book == Book(id="b1", user_id="u1")

    def test_unknown_status_falls_back_to_draft(self):
        book = book_from_document({"id": "b1", "userId": "u1", "status": "archived"})
        assert book.status == BookStatus.DRAFT


class TestUserDocument:
    def test_round_trip(self, customer):
        doc = user_to_document(customer)
        assert doc["role"] == "customer"
        assert doc["photoURL"] is None
        assert user_from_document(customer.id, doc) == customer
