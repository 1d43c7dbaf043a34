"""Store package: sync adapter and local document, blob and account stores."""

from store.protocols import AccountService, BlobStore, DocumentSnapshot, DocumentStore
from store.sqlite_store import SQLiteDocumentStore
from store.blob_store import LocalBlobStore
from store.sync import SyncAdapter, book_path, projects_path
from store.accounts import LocalAccountService
from store.commands import OptimisticCommand, CommandResult, UserDirectory

__all__ = [
    "AccountService",
    "BlobStore",
    "DocumentSnapshot",
    "DocumentStore",
    "SQLiteDocumentStore",
    "LocalBlobStore",
    "SyncAdapter",
    "book_path",
    "projects_path",
    "LocalAccountService",
    "OptimisticCommand",
    "CommandResult",
    "UserDirectory",
]
