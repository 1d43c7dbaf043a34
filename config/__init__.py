"""Configuration package: settings, logging, and exceptions."""

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
from config.logging_config import setup_logging
from config.settings import Settings, load_settings

__all__ = [
    "Settings",
    "load_settings",
    "setup_logging",
    "HerzensbuchError",
    "StoreError",
    "PermissionDeniedError",
    "DocumentNotFoundError",
    "BlobStoreError",
    "BlobPermissionError",
    "AuthError",
    "AccountNotApprovedError",
    "AnchorNotFoundError",
    "ValidationError",
    "EmptyCommentError",
    "InvalidConfigError",
]
