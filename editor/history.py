"""Per-page undo/redo history with debounced snapshots."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from editor.scheduler import Debouncer, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10
DEFAULT_SNAPSHOT_DELAY = 0.5


@dataclass
class PageHistory:
    """Undo stack (``past``, newest last) and redo stack (``future``, next first)."""
    past: list[str] = field(default_factory=list)
    future: list[str] = field(default_factory=list)


class HistoryEngine:
    """Undo/redo stacks keyed by page id.

    Edits are snapshotted after ``delay`` seconds of inactivity. All edits in
    one window coalesce into a single snapshot holding the content as it was
    when the window opened. Histories live for the session only.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        delay: float = DEFAULT_SNAPSHOT_DELAY,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ):
        self.limit = limit
        self._debouncer = Debouncer(scheduler, delay)
        self._histories: dict[str, PageHistory] = {}
        self._window_start: dict[str, str] = {}

    def history(self, page_id: str) -> PageHistory:
        """Return (creating if needed) the history for a page."""
        return self._histories.setdefault(page_id, PageHistory())

    def reset(self, page_id: str) -> None:
        """Start a page with empty stacks, dropping any pending snapshot."""
        self._debouncer.cancel(page_id)
        self._window_start.pop(page_id, None)
        self._histories[page_id] = PageHistory()

    def record_edit(self, page_id: str, previous_content: str) -> None:
        """Note an edit; ``previous_content`` is the text before this keystroke."""
        # First value in the window wins
        self._window_start.setdefault(page_id, previous_content)
        self._debouncer.schedule(page_id, lambda: self._snapshot(page_id))

    def has_pending(self, page_id: str) -> bool:
        return self._debouncer.is_pending(page_id)

    def flush(self, page_id: str) -> None:
        """Commit a pending snapshot for ``page_id`` immediately."""
        self._debouncer.flush(page_id)

    def _snapshot(self, page_id: str) -> None:
        previous = self._window_start.pop(page_id, None)
        if previous is None:
            return
        hist = self.history(page_id)
        self._push_past(hist, previous)
        hist.future.clear()
        logger.debug("History snapshot for %s (past=%d)", page_id, len(hist.past))

    def _push_past(self, hist: PageHistory, content: str) -> None:
        hist.past.append(content)
        if len(hist.past) > self.limit:
            del hist.past[: len(hist.past) - self.limit]

    def can_undo(self, page_id: str) -> bool:
        return bool(self.history(page_id).past) or self.has_pending(page_id)

    def can_redo(self, page_id: str) -> bool:
        return bool(self.history(page_id).future) and not self.has_pending(page_id)

    def undo(self, page_id: str, current_content: str) -> Optional[str]:
        """Return the previous content, or None when there is nothing to undo."""
        self.flush(page_id)
        hist = self.history(page_id)
        if not hist.past:
            return None
        previous = hist.past.pop()
        hist.future.insert(0, current_content)
        return previous

    def redo(self, page_id: str, current_content: str) -> Optional[str]:
        """Return the next content, or None when there is nothing to redo."""
        self.flush(page_id)
        hist = self.history(page_id)
        if not hist.future:
            return None
        following = hist.future.pop(0)
        self._push_past(hist, current_content)
        return following

    def cancel(self) -> None:
        """Drop all pending snapshots (editor teardown)."""
        self._debouncer.cancel_all()
        self._window_start.clear()
