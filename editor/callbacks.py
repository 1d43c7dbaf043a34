"""Editor event callbacks for UI hosts and logging."""

import logging
from typing import Protocol, runtime_checkable

from models.enums import SaveStatus

logger = logging.getLogger(__name__)


@runtime_checkable
class EditorCallback(Protocol):
    """Protocol for observing a ``BookEditor`` session.

    Implement this protocol to mirror editor state into a user interface.
    """

    def on_status_change(self, status: SaveStatus) -> None:
        """Called when the autosave status changes."""
        ...

    def on_book_change(self, book) -> None:
        """Called after every change of the in-memory book."""
        ...

    def on_notice(self, message: str) -> None:
        """Called with a user-facing message (e.g. an anchor was not found)."""
        ...


class LoggingCallback:
    """Lightweight callback that logs editor events to the standard logger."""

    def on_status_change(self, status: SaveStatus) -> None:
        logger.debug("Save status: %s", status.value)

    def on_book_change(self, book) -> None:
        logger.debug("Book %s changed (%d chapters)", book.id, len(book.chapters))

    def on_notice(self, message: str) -> None:
        logger.info("Notice: %s", message)


class RecordingCallback(LoggingCallback):
    """Keeps every event in memory; used by the CLI and tests."""

    def __init__(self):
        self.statuses: list[SaveStatus] = []
        self.notices: list[str] = []
        self.book_changes = 0

    def on_status_change(self, status: SaveStatus) -> None:
        super().on_status_change(status)
        self.statuses.append(status)

    def on_book_change(self, book) -> None:
        super().on_book_change(book)
        self.book_changes += 1

    def on_notice(self, message: str) -> None:
        super().on_notice(message)
        self.notices.append(message)
