"""Tests for the BookEditor session: tree edits, buffer, undo/redo, autosave."""

import pytest

from editor.callbacks import RecordingCallback
from editor.tree_editor import BookEditor
from models import operations as ops
from models.activity import calculate_version
from models.enums import NodeKind, SaveStatus
from store.sync import book_path


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture
def editor(sample_book, sync, customer, clock, callback):
    return BookEditor(sample_book, sync, customer, clock, callback=callback)


def _stored(doc_store, book):
    return doc_store.get_document(book_path(book.user_id, book.id))


class TestInitialSelection:
    def test_first_page_of_first_chapter(self, editor):
        assert editor.active_page_id == "p-a1"
        assert editor.current_content == "Wir kamen am Abend an."
        assert "ch-a" in editor.expanded_chapters

    def test_initial_page_id(self, sample_book, sync, customer, clock):
        editor = BookEditor(sample_book, sync, customer, clock, initial_page_id="p-b1")
        assert editor.active_page_id == "p-b1"
        assert editor.global_page_number == 3

    def test_empty_book_has_no_active_page(self, empty_book, sync, customer, clock):
        editor = BookEditor(empty_book, sync, customer, clock)
        assert editor.active_page_id is None
        assert editor.current_content == ""


class TestAddChapter:
    def test_first_chapter_in_empty_book(self, empty_book, sync, customer, clock, doc_store):
        editor = BookEditor(empty_book, sync, customer, clock)
        chapter = editor.add_chapter()

        assert len(editor.book.chapters) == 1
        assert chapter.number == 1
        assert chapter.title == "Neues Kapitel"
        assert chapter.pages == ()
        assert editor.book.activity_log[0].action == "Kapitel erstellt"
        assert editor.book.activity_log[0].details == "Kapitel 1"
        assert editor.version == "v1.0.1"
        assert _stored(doc_store, empty_book)["chapters"][0]["id"] == chapter.id

    def test_appended_after_existing(self, editor):
        chapter = editor.add_chapter("Epilog")
        assert chapter.number == 3
        assert editor.book.chapters[-1].title == "Epilog"


class TestAddPage:
    def test_new_page_becomes_active(self, editor):
        page = editor.add_page("ch-b", "Heimweg")
        assert page.number == "2.2"
        assert editor.active_page_id == page.id
        assert editor.current_content == ""
        assert not editor.can_undo
        entry = editor.book.activity_log[0]
        assert entry.action == "Seite erstellt"
        assert entry.details == "Seite 2.2 in Ende"

    def test_buffer_of_previous_page_is_kept(self, editor, doc_store, sample_book):
        editor.edit_content("Neuer Anfang")
        editor.add_page("ch-b")
        assert ops.find_page(editor.book, "p-a1").content == "Neuer Anfang"
        stored = _stored(doc_store, sample_book)
        assert stored["chapters"][0]["pages"][0]["content"] == "Neuer Anfang"

    def test_unknown_chapter(self, editor):
        assert editor.add_page("nope") is None
        assert editor.book.activity_log == ()


class TestRename:
    def test_rename_chapter(self, editor):
        assert editor.rename("ch-a", "Beginn") is True
        assert ops.find_chapter(editor.book, "ch-a").title == "Beginn"
        assert editor.book.activity_log[0].details == 'Kapitel 1 zu "Beginn"'

    def test_rename_page_with_kind(self, editor):
        assert editor.rename("p-a2", "Am See", kind=NodeKind.PAGE) is True
        assert editor.book.activity_log[0].details == 'Seite 1.2 zu "Am See"'

    def test_rename_unknown(self, editor):
        assert editor.rename("missing", "x") is False
        assert editor.book.activity_log == ()


class TestMovePage:
    def test_move_up(self, editor):
        assert editor.move_page("ch-a", 1, -1) is True
        pages = ops.find_chapter(editor.book, "ch-a").pages
        assert [p.id for p in pages] == ["p-a2", "p-a1"]
        assert editor.book.activity_log[0].details == "Seite in Anfang verschoben"

    def test_last_page_down_is_noop(self, editor, doc_store, sample_book):
        assert editor.move_page("ch-a", 1, 1) is False
        assert editor.book is sample_book
        assert editor.book.activity_log == ()
        assert _stored(doc_store, sample_book) is None


class TestReorderChapters:
    def test_move_last_to_first(self, empty_book, sync, customer, clock):
        editor = BookEditor(empty_book, sync, customer, clock)
        a = editor.add_chapter("A")
        b = editor.add_chapter("B")
        c = editor.add_chapter("C")
        editor.add_page(c.id)

        assert editor.reorder_chapters(2, 0) is True
        chapters = editor.book.chapters
        assert [ch.id for ch in chapters] == [c.id, a.id, b.id]
        assert [ch.number for ch in chapters] == [1, 2, 3]
        assert chapters[0].pages[0].number == "1.1"
        assert editor.book.activity_log[0].details == "Kapitel neu angeordnet"

    def test_same_index_is_noop(self, editor):
        assert editor.reorder_chapters(0, 0) is False
        assert editor.book.activity_log == ()


class TestChapterDrag:
    def test_drag_reorders_live_and_logs_once_on_drop(self, editor):
        assert editor.start_chapter_drag("ch-a")
        assert editor.drag_chapter_over(1)
        assert [c.id for c in editor.book.chapters] == ["ch-b", "ch-a"]
        assert editor.book.activity_log == ()
        assert editor.drop_chapter() is True
        assert len(editor.book.activity_log) == 1

    def test_drop_in_place_logs_nothing(self, editor):
        editor.start_chapter_drag("ch-a")
        editor.drag_chapter_over(1)
        editor.drag_chapter_over(0)
        assert editor.drop_chapter() is False
        assert editor.book.activity_log == ()

    def test_cancel_restores_order(self, editor):
        editor.start_chapter_drag("ch-b")
        editor.drag_chapter_over(0)
        editor.cancel_chapter_drag()
        assert [c.id for c in editor.book.chapters] == ["ch-a", "ch-b"]
        assert [c.number for c in editor.book.chapters] == [1, 2]


class TestContentBuffer:
    def test_autosave_after_inactivity(self, editor, clock, doc_store, sample_book):
        editor.edit_content("Hallo")
        assert editor.save_status == SaveStatus.UNSAVED
        assert ops.find_page(editor.book, "p-a1").content == "Wir kamen am Abend an."

        clock.advance(1.0)
        assert editor.save_status == SaveStatus.SAVING
        assert ops.find_page(editor.book, "p-a1").content == "Hallo"
        assert _stored(doc_store, sample_book)["chapters"][0]["pages"][0]["content"] == "Hallo"

        clock.advance(0.5)
        assert editor.save_status == SaveStatus.SAVED

    def test_page_switch_flushes_before_timer(self, editor, doc_store, sample_book, clock):
        editor.edit_content("abc")
        assert editor.select_page("p-b1") is True
        assert ops.find_page(editor.book, "p-a1").content == "abc"
        assert _stored(doc_store, sample_book)["chapters"][0]["pages"][0]["content"] == "abc"
        assert editor.current_content == "Dann fuhren wir heim."
        assert editor.save_status == SaveStatus.SAVED

    def test_select_unknown_page(self, editor):
        assert editor.select_page("missing") is False
        assert editor.active_page_id == "p-a1"

    def test_edits_do_not_log_activity(self, editor, clock):
        editor.edit_content("x")
        clock.advance(2)
        assert editor.book.activity_log == ()

    def test_stats_count_buffer(self, editor):
        before = editor.stats.total_words
        editor.edit_content("eins zwei")
        assert editor.stats.total_words == before - 5 + 2
        assert editor.stats.total_pages == 3


class TestUndoRedo:
    def test_undo_and_redo(self, editor, clock):
        original = editor.current_content
        editor.edit_content("A")
        clock.advance(0.6)
        editor.edit_content("AB")
        clock.advance(0.6)

        assert editor.undo() is True
        assert editor.current_content == "A"
        assert ops.find_page(editor.book, "p-a1").content == "A"
        assert editor.undo() is True
        assert editor.current_content == original
        assert editor.redo() is True
        assert editor.current_content == "A"

    def test_undo_redo_round_trip(self, editor, clock, doc_store, sample_book):
        original = editor.current_content
        typed = ["A", "AB", "ABC", "ABCD"]
        for text in typed:
            editor.edit_content(text)
            clock.advance(0.6)

        seen = []
        for _ in range(len(typed)):
            assert editor.undo() is True
            seen.append(editor.current_content)
        assert seen == ["ABC", "AB", "A", original]
        assert not editor.can_undo

        for _ in range(len(typed)):
            assert editor.redo() is True
        assert editor.current_content == "ABCD"
        assert not editor.can_redo
        stored = _stored(doc_store, sample_book)["chapters"][0]["pages"][0]["content"]
        assert stored == "ABCD"

    def test_undo_discards_pending_autosave(self, editor, clock):
        editor.edit_content("A")
        clock.advance(0.6)
        editor.edit_content("AB")
        editor.undo()
        clock.advance(2)
        assert ops.find_page(editor.book, "p-a1").content == "A"
        assert editor.save_status == SaveStatus.SAVED

    def test_nothing_to_undo(self, editor):
        assert editor.undo() is False
        assert editor.redo() is False

    def test_history_is_per_page(self, editor, clock):
        editor.edit_content("A")
        clock.advance(0.6)
        editor.select_page("p-b1")
        assert not editor.can_undo
        editor.select_page("p-a1")
        assert editor.can_undo


class TestComments:
    def test_comment_with_selection(self, editor):
        editor.select_page("p-a2")
        assert editor.select_text(4, 10) == "Wasser"
        comment = editor.add_comment("Gut")

        assert comment.selected_text == "Wasser"
        assert comment.user_name == "Anna"
        assert ops.find_page(editor.book, "p-a2").comments[-1] == comment
        entry = editor.book.activity_log[0]
        assert entry.action == "Kommentar erstellt"
        assert entry.details == 'Seite 1.2: "Gut..."'
        assert editor.selected_text == ""

    def test_empty_comment_is_rejected(self, editor):
        assert editor.add_comment("   ") is None
        assert editor.book.activity_log == ()

    def test_audio_only_comment(self, editor):
        comment = editor.add_comment("", audio_url="file:///tmp/a.webm")
        assert comment is not None
        assert comment.audio_url == "file:///tmp/a.webm"

    def test_anchor_not_in_content_is_dropped(self, editor):
        comment = editor.add_comment("Hm", selected_text="gibt es nicht")
        assert comment.selected_text is None

    def test_attach_audio_uploads_blob(self, editor):
        url = editor.attach_comment_audio(b"RIFF")
        assert url.startswith("file://")

    def test_employee_may_comment(self, sample_book, sync, employee, clock):
        editor = BookEditor(sample_book, sync, employee, clock)
        assert editor.add_comment("Bitte prüfen") is not None


class TestJumpToAnchor:
    def test_found(self, editor):
        editor.select_page("p-a2")
        assert editor.jump_to_anchor("Wasser") == (4, 10)

    def test_missing_anchor_notifies(self, editor, callback):
        editor.select_page("p-a2")
        editor.edit_content("Das Meer war kalt.")
        assert editor.jump_to_anchor("Wasser") is None
        assert "nicht gefunden" in callback.notices[-1]


class TestEmployeeReadOnly:
    def test_structure_edits_are_ignored(self, sample_book, sync, employee, clock):
        editor = BookEditor(sample_book, sync, employee, clock)
        assert not editor.can_edit_structure
        assert editor.add_chapter() is None
        assert editor.add_page("ch-a") is None
        assert editor.rename("ch-a", "x") is False
        assert editor.move_page("ch-a", 0, 1) is False
        assert editor.reorder_chapters(0, 1) is False
        assert editor.start_chapter_drag("ch-a") is False
        assert editor.book is sample_book


class TestLifecycle:
    def test_time_tracking(self, editor, clock, doc_store, sample_book):
        editor.start()
        clock.advance(61)
        assert editor.book.time_spent_seconds == 60
        assert _stored(doc_store, sample_book)["timeSpentSeconds"] == 60

    def test_close_flushes_and_cancels(self, editor, clock, doc_store, sample_book):
        editor.start()
        editor.edit_content("Letzter Stand")
        editor.close()
        assert editor.closed
        assert _stored(doc_store, sample_book)["chapters"][0]["pages"][0]["content"] == "Letzter Stand"
        assert clock.pending == 0
        clock.advance(100)
        assert editor.book.time_spent_seconds == 0

    def test_context_manager(self, sample_book, sync, customer, clock):
        with BookEditor(sample_book, sync, customer, clock) as editor:
            editor.edit_content("x")
        assert editor.closed
        assert clock.pending == 0

    def test_persist_denied_keeps_local_state(self, editor, doc_store):
        doc_store.deny("Buecher")
        chapter = editor.add_chapter()
        assert chapter is not None
        assert len(editor.book.chapters) == 3

    def test_locked_store_keeps_local_state(self, sample_book, blob_store, customer, clock,
                                            locked_doc_store):
        from store.sync import SyncAdapter
        store, release = locked_doc_store
        sync = SyncAdapter(store, blob_store)
        editor = BookEditor(sample_book, sync, customer, clock)

        chapter = editor.add_chapter()

        assert chapter is not None
        assert ops.find_chapter(editor.book, chapter.id) is not None
        assert sync.persist(editor.book) is False
        release()
        assert sync.persist(editor.book) is True
        assert len(_stored(store, sample_book)["chapters"]) == 3

    def test_activity_limit_from_settings(self, sample_book, sync, customer, clock, tmp_path):
        from config.settings import Settings
        settings = Settings(_env_file=None, sqlite_db_path=tmp_path / "x.db", activity_log_limit=2)
        editor = BookEditor(sample_book, sync, customer, clock, settings=settings)
        for _ in range(3):
            editor.add_chapter()
        assert len(editor.book.activity_log) == 2
        assert calculate_version(editor.book) == "v2.3.2"


class TestApplyRemote:
    def test_remote_snapshot_adopted(self, editor, sample_book):
        remote = ops.rename_chapter(sample_book, "ch-a", "Remote")
        assert editor.apply_remote(remote) is True
        assert ops.find_chapter(editor.book, "ch-a").title == "Remote"

    def test_deferred_while_buffer_pending(self, editor, sample_book):
        editor.edit_content("lokal")
        remote = ops.rename_chapter(sample_book, "ch-a", "Remote")
        assert editor.apply_remote(remote) is False
        assert ops.find_chapter(editor.book, "ch-a").title == "Anfang"

    def test_other_book_ignored(self, editor, empty_book):
        assert editor.apply_remote(empty_book) is False

    def test_active_page_removed_remotely(self, editor, sample_book):
        from dataclasses import replace
        remote = replace(sample_book, chapters=sample_book.chapters[1:])
        editor.apply_remote(remote)
        assert editor.active_page_id == "p-b1"
