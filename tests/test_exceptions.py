"""Tests for the custom exception hierarchy."""

import pytest
from config.exceptions import (
    HerzensbuchError,
    StoreError,
    PermissionDeniedError,
    DocumentNotFoundError,
    BlobStoreError,
    BlobPermissionError,
    AuthError,
    AccountNotApprovedError,
    AnchorNotFoundError,
    ValidationError,
    EmptyCommentError,
    InvalidConfigError,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_herzensbuch_error(self):
        leaf_classes = [
            StoreError, PermissionDeniedError, DocumentNotFoundError,
            BlobStoreError, BlobPermissionError,
            AuthError, AccountNotApprovedError, AnchorNotFoundError,
            ValidationError, EmptyCommentError, InvalidConfigError,
        ]
        for cls in leaf_classes:
            assert issubclass(cls, HerzensbuchError), f"{cls.__name__} must inherit HerzensbuchError"

    def test_store_subclasses(self):
        assert issubclass(PermissionDeniedError, StoreError)
        assert issubclass(DocumentNotFoundError, StoreError)

    def test_blob_subclasses(self):
        assert issubclass(BlobPermissionError, BlobStoreError)

    def test_validation_subclasses(self):
        assert issubclass(EmptyCommentError, ValidationError)
        assert issubclass(InvalidConfigError, ValidationError)


class TestExceptionDetails:
    def test_str_without_details(self):
        assert str(HerzensbuchError("boom")) == "boom"

    def test_str_with_details(self):
        err = HerzensbuchError("boom", {"a": 1})
        assert str(err) == "boom (a=1)"

    def test_permission_denied_keeps_path(self):
        err = PermissionDeniedError("Buecher/u1/projects/b1")
        assert err.path == "Buecher/u1/projects/b1"
        assert err.details["path"] == "Buecher/u1/projects/b1"

    def test_auth_error_kind(self):
        err = AuthError("weak-password", "zu kurz")
        assert err.kind == "weak-password"
        assert err.message == "zu kurz"

    def test_anchor_error_truncates_preview(self):
        err = AnchorNotFoundError("x" * 100)
        assert err.anchor == "x" * 100
        assert len(err.details["anchor"]) == 40

    def test_can_be_raised_and_caught(self):
        with pytest.raises(StoreError):
            raise DocumentNotFoundError("users/u1")
