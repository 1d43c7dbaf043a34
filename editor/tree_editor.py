"""Book editor session: tree editing, content buffer, undo/redo and autosave.

A ``BookEditor`` exclusively owns one ``Book`` value for the duration of an
editing session. Every structural change goes through the pure functions in
``models.operations``, is recorded in the activity log and pushed through the
``SyncAdapter``. Page content is buffered and committed by the autosave
scheduler.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from config.exceptions import AnchorNotFoundError, EmptyCommentError
from config.settings import Settings
from editor.autosave import DEFAULT_AUTOSAVE_DELAY, DEFAULT_FEEDBACK_DELAY, AutosaveScheduler
from editor.callbacks import EditorCallback, LoggingCallback
from editor.history import DEFAULT_HISTORY_LIMIT, DEFAULT_SNAPSHOT_DELAY, HistoryEngine
from editor.scheduler import RecurringTask, Scheduler
from editor.stats import BookStats, compute_stats
from models import operations as ops
from models.activity import ACTIVITY_LOG_LIMIT, calculate_version, log_activity
from models.book import Book
from models.chapter import Chapter, Comment, Page
from models.enums import ActivityAction, CommentStatus, NodeKind, SaveStatus, UserRole
from models.ids import CHAPTER_PREFIX, COMMENT_PREFIX, PAGE_PREFIX, NodeRef, new_id, utc_now_iso
from models.user import User
from store.sync import SyncAdapter
from tools.text_utils import excerpt

logger = logging.getLogger(__name__)

DEFAULT_TIME_TRACKING_INTERVAL = 30


@dataclass
class _ChapterDrag:
    chapter_id: str
    start_index: int
    index: int


class BookEditor:
    """Editing session for one book.

    Args:
        book: The book to edit.
        sync: Adapter used to persist every change.
        user: The acting user; only customers may change the tree structure.
        scheduler: Timer source for debounce and time tracking.
        settings: Optional timer and limit overrides.
        callback: Receives status, book-change and notice events.
        initial_page_id: Page to open first (e.g. from a reviewer task).
    """

    def __init__(
        self,
        book: Book,
        sync: SyncAdapter,
        user: User,
        scheduler: Scheduler,
        settings: Optional[Settings] = None,
        callback: Optional[EditorCallback] = None,
        initial_page_id: Optional[str] = None,
    ):
        self._book = book
        self._sync = sync
        self.user = user
        self.scheduler = scheduler
        self.callback = callback or LoggingCallback()

        if settings is not None:
            autosave_delay = settings.autosave_delay_seconds
            feedback_delay = settings.saved_feedback_delay_seconds
            history_delay = settings.history_delay_seconds
            history_limit = settings.history_limit
            self.activity_limit = settings.activity_log_limit
            tracking_interval = settings.time_tracking_interval_seconds
        else:
            autosave_delay = DEFAULT_AUTOSAVE_DELAY
            feedback_delay = DEFAULT_FEEDBACK_DELAY
            history_delay = DEFAULT_SNAPSHOT_DELAY
            history_limit = DEFAULT_HISTORY_LIMIT
            self.activity_limit = ACTIVITY_LOG_LIMIT
            tracking_interval = DEFAULT_TIME_TRACKING_INTERVAL

        self.history = HistoryEngine(scheduler, delay=history_delay, limit=history_limit)
        self.autosave = AutosaveScheduler(
            scheduler,
            commit=self._commit_content,
            persist=self._persist,
            delay=autosave_delay,
            feedback_delay=feedback_delay,
            on_status=self.callback.on_status_change,
        )
        self.tracking_interval = tracking_interval
        self._time_tracker = RecurringTask(scheduler, tracking_interval, self._track_time)

        self.expanded_chapters: set[str] = set()
        self._active_page_id: Optional[str] = None
        self._content = ""
        self._selected_text = ""
        self._drag: Optional[_ChapterDrag] = None
        self._closed = False

        self._select_initial(initial_page_id)

    # ---- Read access ----

    @property
    def book(self) -> Book:
        return self._book

    @property
    def active_page_id(self) -> Optional[str]:
        return self._active_page_id

    @property
    def active_page(self) -> Optional[Page]:
        if self._active_page_id is None:
            return None
        return ops.find_page(self._book, self._active_page_id)

    @property
    def current_content(self) -> str:
        """Editor buffer for the active page (may be ahead of the model)."""
        return self._content

    @property
    def selected_text(self) -> str:
        return self._selected_text

    @property
    def save_status(self) -> SaveStatus:
        return self.autosave.status

    @property
    def version(self) -> str:
        return calculate_version(self._book)

    @property
    def stats(self) -> BookStats:
        return compute_stats(self._book, self._active_page_id, self._content)

    @property
    def global_page_number(self) -> int:
        if self._active_page_id is None:
            return 0
        return ops.global_page_number(self._book, self._active_page_id)

    @property
    def can_edit_structure(self) -> bool:
        return self.user.role == UserRole.CUSTOMER

    @property
    def can_undo(self) -> bool:
        return self._active_page_id is not None and self.history.can_undo(self._active_page_id)

    @property
    def can_redo(self) -> bool:
        return self._active_page_id is not None and self.history.can_redo(self._active_page_id)

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- Lifecycle ----

    def start(self) -> "BookEditor":
        """Begin time tracking."""
        self._time_tracker.start()
        return self

    def close(self) -> None:
        """Flush buffered content, then cancel every timer of the session."""
        if self._closed:
            return
        self._flush_active()
        self.autosave.cancel()
        self.history.cancel()
        self._time_tracker.stop()
        self._drag = None
        self._closed = True
        logger.info("Closed editor for %s", self._book.id)

    def __enter__(self) -> "BookEditor":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- Internal state helpers ----

    def _set_book(self, book: Book) -> None:
        self._book = book
        self.callback.on_book_change(book)

    def _persist(self) -> bool:
        return self._sync.persist(self._book)

    def _apply(self, book: Book, action: ActivityAction, details: str) -> None:
        """Log an activity for a structural change, keep it and persist it."""
        now = utc_now_iso()
        book = log_activity(book, action, details, self.user.id, timestamp=now, limit=self.activity_limit)
        self._set_book(replace(book, updated_at=now))
        self._persist()

    def _commit_content(self, page_id: str, content: str) -> None:
        updated = ops.set_page_content(self._book, page_id, content, utc_now_iso())
        if updated is not self._book:
            self._set_book(updated)

    def _commit_buffer(self) -> None:
        """Write the active buffer into the model without persisting."""
        self.autosave.discard()
        page = self.active_page
        if page is not None and page.content != self._content:
            self._commit_content(page.id, self._content)

    def _flush_active(self) -> None:
        if self.autosave.has_pending():
            self.autosave.flush()

    def _guard_structure(self, operation: str) -> bool:
        if self._closed:
            logger.debug("%s ignored: editor closed", operation)
            return False
        if not self.can_edit_structure:
            logger.debug("%s ignored: %s may not edit structure", operation, self.user.role.value)
            return False
        return True

    def _activate(self, page_id: Optional[str]) -> None:
        self._active_page_id = page_id
        self._selected_text = ""
        page = self.active_page
        self._content = page.content if page is not None else ""
        if page is not None:
            self.history.history(page.id)
            self.expanded_chapters.add(page.chapter_id)

    def _select_initial(self, initial_page_id: Optional[str]) -> None:
        if initial_page_id and ops.find_page(self._book, initial_page_id) is not None:
            self._activate(initial_page_id)
            return
        self._activate(ops.first_page_id(self._book))

    # ---- Navigation and content ----

    def toggle_chapter(self, chapter_id: str) -> None:
        if chapter_id in self.expanded_chapters:
            self.expanded_chapters.discard(chapter_id)
        else:
            self.expanded_chapters.add(chapter_id)

    def select_page(self, page_id: str) -> bool:
        """Switch the active page, flushing buffered content first."""
        if page_id == self._active_page_id:
            return True
        if ops.find_page(self._book, page_id) is None:
            return False
        self._flush_active()
        self._activate(page_id)
        return True

    def edit_content(self, text: str) -> None:
        """Handle a keystroke in the active page's text area."""
        page_id = self._active_page_id
        if page_id is None or self._closed or text == self._content:
            return
        previous = self._content
        self._content = text
        self.history.record_edit(page_id, previous)
        self.autosave.on_content_changed(page_id, text)

    def undo(self) -> bool:
        page_id = self._active_page_id
        if page_id is None:
            return False
        previous = self.history.undo(page_id, self._content)
        if previous is None:
            return False
        self._replace_content(page_id, previous)
        return True

    def redo(self) -> bool:
        page_id = self._active_page_id
        if page_id is None:
            return False
        following = self.history.redo(page_id, self._content)
        if following is None:
            return False
        self._replace_content(page_id, following)
        return True

    def _replace_content(self, page_id: str, content: str) -> None:
        self.autosave.discard()
        self._content = content
        self._commit_content(page_id, content)
        self._persist()

    # ---- Tree operations ----

    def add_chapter(self, title: str = ops.DEFAULT_CHAPTER_TITLE) -> Optional[Chapter]:
        if not self._guard_structure("add_chapter"):
            return None
        chapter_id = new_id(CHAPTER_PREFIX)
        book = ops.add_chapter(self._book, chapter_id, title)
        chapter = ops.find_chapter(book, chapter_id)
        self._apply(book, ActivityAction.CHAPTER_CREATED, f"Kapitel {chapter.number}")
        self.expanded_chapters.add(chapter_id)
        logger.info("Added chapter %d to %s", chapter.number, self._book.id)
        return chapter

    def add_page(self, chapter_id: str, title: str = ops.DEFAULT_PAGE_TITLE) -> Optional[Page]:
        """Append a page to a chapter and make it the active page."""
        if not self._guard_structure("add_page"):
            return None
        if ops.find_chapter(self._book, chapter_id) is None:
            return None

        # Keystrokes still in the buffer belong to the previous page
        self._commit_buffer()

        page_id = new_id(PAGE_PREFIX)
        book = ops.add_page(self._book, chapter_id, page_id, title)
        chapter = ops.find_chapter(book, chapter_id)
        page = ops.find_page(book, page_id)
        self._apply(book, ActivityAction.PAGE_CREATED, f"Seite {page.number} in {chapter.title}")

        self.history.reset(page_id)
        self._activate(page_id)
        logger.info("Added page %s to %s", page.number, chapter_id)
        return page

    def rename(self, item_id: str, title: str, kind: Optional[NodeKind] = None) -> bool:
        """Rename a chapter or page.

        Without ``kind`` the id is looked up among chapters first, then pages.
        """
        if not self._guard_structure("rename"):
            return False
        ref = NodeRef(kind, item_id) if kind is not None else ops.resolve_node(self._book, item_id)
        if ref is None:
            return False

        if ref.kind == NodeKind.CHAPTER:
            chapter = ops.find_chapter(self._book, ref.id)
            if chapter is None:
                return False
            item_name = f"Kapitel {chapter.number}"
        else:
            page = ops.find_page(self._book, ref.id)
            if page is None:
                return False
            item_name = f"Seite {page.number}"

        book = ops.rename_node(self._book, ref, title)
        self._apply(book, ActivityAction.RENAMED, f'{item_name} zu "{title}"')
        return True

    def move_page(self, chapter_id: str, page_index: int, direction: int) -> bool:
        """Swap a page with its neighbour inside its chapter."""
        if not self._guard_structure("move_page"):
            return False
        book = ops.move_page(self._book, chapter_id, page_index, direction)
        if book is self._book:
            return False
        chapter = ops.find_chapter(book, chapter_id)
        self._apply(book, ActivityAction.REORDERED, f"Seite in {chapter.title} verschoben")
        return True

    def reorder_chapters(self, from_index: int, to_index: int) -> bool:
        if not self._guard_structure("reorder_chapters"):
            return False
        book = ops.reorder_chapters(self._book, from_index, to_index)
        if book is self._book:
            return False
        self._apply(book, ActivityAction.REORDERED, "Kapitel neu angeordnet")
        return True

    # ---- Chapter drag and drop ----

    def start_chapter_drag(self, chapter_id: str) -> bool:
        if not self._guard_structure("start_chapter_drag"):
            return False
        index = ops.chapter_index(self._book, chapter_id)
        if index == -1:
            return False
        self._drag = _ChapterDrag(chapter_id, index, index)
        return True

    def drag_chapter_over(self, index: int) -> bool:
        """Reorder live while dragging; nothing is logged or persisted yet."""
        drag = self._drag
        if drag is None:
            return False
        book = ops.reorder_chapters(self._book, drag.index, index)
        if book is self._book:
            return False
        self._set_book(book)
        drag.index = index
        return True

    def drop_chapter(self) -> bool:
        """Finish a drag: log and persist the final order once."""
        drag, self._drag = self._drag, None
        if drag is None or drag.index == drag.start_index:
            return False
        self._apply(self._book, ActivityAction.REORDERED, "Kapitel neu angeordnet")
        return True

    def cancel_chapter_drag(self) -> None:
        drag, self._drag = self._drag, None
        if drag is not None and drag.index != drag.start_index:
            self._set_book(ops.reorder_chapters(self._book, drag.index, drag.start_index))

    # ---- Comments ----

    def select_text(self, start: int, end: int) -> str:
        """Capture a slice of the buffer as the anchor for the next comment."""
        if start != end:
            lo, hi = sorted((start, end))
            self._selected_text = self._content[lo:hi]
        return self._selected_text

    def clear_selection(self) -> None:
        self._selected_text = ""

    def attach_comment_audio(self, data: bytes) -> Optional[str]:
        """Upload a recorded voice note and return its URL."""
        if self._active_page_id is None:
            return None
        path = f"comment_audio/{self._book.id}/{self._active_page_id}/{new_id('audio')}.webm"
        url = self._sync.upload_blob(path, data)
        if url is None:
            self.callback.on_notice("Sprachnachricht konnte nicht gespeichert werden.")
        return url

    def add_comment(
        self,
        text: str = "",
        audio_url: Optional[str] = None,
        selected_text: Optional[str] = None,
    ) -> Optional[Comment]:
        """Attach a comment to the active page.

        Returns None without touching the book when there is no active page
        or the comment has neither text nor audio.
        """
        page_id = self._active_page_id
        if page_id is None or self._closed:
            return None
        try:
            ops.validate_comment(page_id, text, audio_url)
        except EmptyCommentError as e:
            logger.debug("%s", e)
            return None

        anchor = selected_text if selected_text is not None else self._selected_text
        if anchor and anchor not in self._content:
            logger.warning("Comment anchor not in page %s, dropping it", page_id)
            anchor = ""

        now = utc_now_iso()
        comment = Comment(
            id=new_id(COMMENT_PREFIX),
            page_id=page_id,
            user_id=self.user.id,
            user_name=self.user.name,
            text=text,
            audio_url=audio_url,
            selected_text=anchor or None,
            status=CommentStatus.PENDING,
            created_at=now,
        )
        book = ops.add_comment(self._book, page_id, comment, now)
        page = ops.find_page(book, page_id)
        self._apply(book, ActivityAction.COMMENT_CREATED, f'Seite {page.number}: "{excerpt(text)}"')
        self._selected_text = ""
        return comment

    def jump_to_anchor(self, anchor: str) -> Optional[tuple[int, int]]:
        """Locate a comment anchor in the buffer; notify when it is gone."""
        try:
            return ops.locate_anchor(self._content, anchor)
        except AnchorNotFoundError as e:
            self.callback.on_notice(e.message)
            return None

    # ---- Time tracking and remote updates ----

    def _track_time(self) -> None:
        self._set_book(replace(
            self._book,
            time_spent_seconds=self._book.time_spent_seconds + self.tracking_interval,
        ))
        self._persist()

    def apply_remote(self, book: Book) -> bool:
        """Adopt a snapshot from the store (last write wins).

        Ignored while local keystrokes are buffered or a drag is in progress;
        the next autosave will overwrite the remote version.
        """
        if self._closed or book.id != self._book.id:
            return False
        if self.autosave.has_pending() or self._drag is not None:
            logger.info("Remote update for %s deferred to local edits", book.id)
            return False
        self._set_book(book)
        page = self.active_page
        if page is None:
            self._activate(ops.first_page_id(book))
        else:
            self._content = page.content
        return True
