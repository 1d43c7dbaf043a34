"""Debounced local-to-remote persistence trigger."""

import logging
from typing import Callable, Optional

from editor.scheduler import ScheduledTask, Scheduler
from models.enums import SaveStatus

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 1.0
DEFAULT_FEEDBACK_DELAY = 0.5


class AutosaveScheduler:
    """Buffers the latest content of one page and commits it after inactivity.

    Lifecycle of ``status``: ``unsaved`` on every change, ``saving`` when the
    debounce fires, ``saved`` after a short feedback delay. The status is
    advisory; the outcome of ``persist`` is not reflected in it.

    Args:
        scheduler: Timer source.
        commit: Writes ``(page_id, content)`` into the document model.
        persist: Pushes the current document model to the store.
        on_status: Optional listener for status transitions.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        commit: Callable[[str, str], None],
        persist: Callable[[], None],
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        feedback_delay: float = DEFAULT_FEEDBACK_DELAY,
        on_status: Optional[Callable[[SaveStatus], None]] = None,
    ):
        self.scheduler = scheduler
        self.delay = delay
        self.feedback_delay = feedback_delay
        self._commit = commit
        self._persist = persist
        self._on_status = on_status
        self._status = SaveStatus.SAVED
        self._pending: Optional[tuple[str, str]] = None
        self._timer: Optional[ScheduledTask] = None
        self._feedback: Optional[ScheduledTask] = None

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def pending_page_id(self) -> Optional[str]:
        return self._pending[0] if self._pending else None

    def has_pending(self) -> bool:
        return self._pending is not None

    def _set_status(self, status: SaveStatus) -> None:
        if status == self._status:
            return
        self._status = status
        if self._on_status is not None:
            self._on_status(status)

    def _cancel_timers(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._feedback is not None:
            self._feedback.cancel()
            self._feedback = None

    def on_content_changed(self, page_id: str, content: str) -> None:
        """Buffer ``content`` for ``page_id`` and restart the debounce timer."""
        if self._pending is not None and self._pending[0] != page_id:
            logger.debug("Edit on %s while %s is buffered, flushing", page_id, self._pending[0])
            self.flush()

        self._cancel_timers()
        self._pending = (page_id, content)
        self._set_status(SaveStatus.UNSAVED)
        self._timer = self.scheduler.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._pending is None:
            return
        page_id, content = self._pending
        self._pending = None
        self._set_status(SaveStatus.SAVING)
        self._commit(page_id, content)
        self._persist()
        self._feedback = self.scheduler.call_later(self.feedback_delay, self._mark_saved)

    def _mark_saved(self) -> None:
        self._feedback = None
        self._set_status(SaveStatus.SAVED)

    def flush(self) -> bool:
        """Commit and persist buffered content synchronously.

        Returns:
            True if there was buffered content.
        """
        if self._pending is None:
            return False
        self._cancel_timers()
        page_id, content = self._pending
        self._pending = None
        self._commit(page_id, content)
        self._persist()
        self._set_status(SaveStatus.SAVED)
        return True

    def discard(self) -> None:
        """Forget buffered content; the caller has committed a replacement."""
        self._cancel_timers()
        self._pending = None
        self._set_status(SaveStatus.SAVED)

    def cancel(self) -> None:
        """Stop all timers without committing (editor teardown)."""
        self._cancel_timers()
        self._pending = None
        self._set_status(SaveStatus.SAVED)
