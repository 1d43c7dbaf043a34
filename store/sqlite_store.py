"""SQLite-backed JSON document store with in-process collection listeners."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Callable, Iterable, Optional

from config.exceptions import DocumentNotFoundError, PermissionDeniedError, StoreError
from store.protocols import DocumentSnapshot, Unsubscribe

logger = logging.getLogger(__name__)

READ = "read"
WRITE = "write"

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    path TEXT PRIMARY KEY,
    collection TEXT NOT NULL,
    doc_id TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);
"""


def split_path(path: str) -> tuple[str, str]:
    """Return ``(collection_path, doc_id)`` for a document path.

    Raises:
        ValueError: if the path does not address a document.
    """
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) < 2 or len(parts) % 2:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]


def deep_merge(base: dict, updates: dict) -> dict:
    """Merge ``updates`` into a copy of ``base``; nested maps merge, lists replace."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SQLiteDocumentStore:
    """Document store persisted in a single SQLite table.

    Listeners registered with ``subscribe_collection`` are called
    synchronously after every write to their collection with the full
    collection snapshot. Access rules can be narrowed with ``deny`` to model
    the hosted store's security rules.
    """

    def __init__(self, db_path: str | Path, timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._listeners: dict[str, list[tuple[Callable, Optional[Callable]]]] = {}
        self._denied: list[tuple[str, frozenset[str]]] = []
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _init_db(self):
        with self._get_conn() as conn:
            conn.executescript(_CREATE_TABLES_SQL)

    # ---- Access rules ----

    def deny(self, prefix: str, ops: Iterable[str] = (READ, WRITE)) -> None:
        """Reject ``ops`` on every path starting with ``prefix``."""
        self._denied.append((prefix.strip("/"), frozenset(ops)))

    def allow_all(self) -> None:
        self._denied.clear()

    def _check(self, op: str, path: str) -> None:
        norm = path.strip("/")
        for prefix, ops in self._denied:
            if op in ops and (norm == prefix or norm.startswith(prefix + "/")):
                raise PermissionDeniedError(path)

    # ---- Documents ----

    def get_document(self, path: str) -> Optional[dict]:
        self._check(READ, path)
        collection, doc_id = split_path(path)
        try:
            with self._get_conn() as conn:
                row = conn.execute(
                    "SELECT data FROM documents WHERE path = ?", (f"{collection}/{doc_id}",),
                ).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read document: {e}", {"path": path}) from e
        if not row:
            return None
        return json.loads(row["data"])

    def set_document(self, path: str, value: dict, merge: bool = False) -> None:
        self._check(WRITE, path)
        collection, doc_id = split_path(path)
        key = f"{collection}/{doc_id}"
        try:
            with self._get_conn() as conn:
                if merge:
                    row = conn.execute(
                        "SELECT data FROM documents WHERE path = ?", (key,),
                    ).fetchone()
                    if row:
                        value = deep_merge(json.loads(row["data"]), value)
                conn.execute(
                    "INSERT INTO documents (path, collection, doc_id, data) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(path) DO UPDATE SET data = excluded.data, "
                    "updated_at = CURRENT_TIMESTAMP",
                    (key, collection, doc_id, json.dumps(value, ensure_ascii=False)),
                )
        except (TypeError, ValueError) as e:
            raise StoreError(f"Document is not JSON-serializable: {e}", {"path": path}) from e
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write document: {e}", {"path": path}) from e
        self._notify(collection)

    def update_document(self, path: str, fields: dict) -> None:
        self._check(WRITE, path)
        if self.get_document(path) is None:
            raise DocumentNotFoundError(path)
        self.set_document(path, fields, merge=True)

    def delete_document(self, path: str) -> None:
        self._check(WRITE, path)
        collection, doc_id = split_path(path)
        try:
            with self._get_conn() as conn:
                conn.execute("DELETE FROM documents WHERE path = ?", (f"{collection}/{doc_id}",))
        except sqlite3.Error as e:
            raise StoreError(f"Failed to delete document: {e}", {"path": path}) from e
        self._notify(collection)

    def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        self._check(READ, collection_path)
        collection = collection_path.strip("/")
        try:
            with self._get_conn() as conn:
                rows = conn.execute(
                    "SELECT path, doc_id, data FROM documents WHERE collection = ? "
                    "ORDER BY created_at, path",
                    (collection,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list documents: {e}", {"path": collection_path}) from e
        return [
            DocumentSnapshot(path=r["path"], id=r["doc_id"], data=json.loads(r["data"]))
            for r in rows
        ]

    # ---- Subscriptions ----

    def subscribe_collection(
        self,
        collection_path: str,
        on_snapshot: Callable[[list[DocumentSnapshot]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        """Deliver the current snapshot now and again after every write."""
        collection = collection_path.strip("/")
        entry = (on_snapshot, on_error)
        self._listeners.setdefault(collection, []).append(entry)
        self._deliver(collection, entry)

        def unsubscribe() -> None:
            listeners = self._listeners.get(collection, [])
            if entry in listeners:
                listeners.remove(entry)
                logger.debug("Listener removed from %s", collection)

        return unsubscribe

    def listener_count(self, collection_path: str) -> int:
        return len(self._listeners.get(collection_path.strip("/"), []))

    def _notify(self, collection: str) -> None:
        for entry in list(self._listeners.get(collection, [])):
            self._deliver(collection, entry)

    def _deliver(self, collection: str, entry) -> None:
        on_snapshot, on_error = entry
        try:
            snapshot = self.list_documents(collection)
        except StoreError as e:
            if on_error is not None:
                on_error(e)
            else:
                logger.error("Listener on %s failed: %s", collection, e)
            return
        try:
            on_snapshot(snapshot)
        except Exception:
            logger.exception("Snapshot listener on %s raised", collection)
