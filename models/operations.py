"""Pure transformations over the Book/Chapter/Page tree.

Every function returns a new ``Book`` with the numbering invariants
re-established and never mutates its input. Unknown ids and out-of-bounds
moves return the input book unchanged, so callers can detect a no-op with
``result is book``.
"""

from dataclasses import replace
from typing import Iterator, Optional

from config.exceptions import AnchorNotFoundError, EmptyCommentError
from models.book import Book
from models.chapter import Chapter, Comment, Page
from models.enums import CommentStatus, NodeKind
from models.ids import NodeRef

DEFAULT_CHAPTER_TITLE = "Neues Kapitel"
DEFAULT_PAGE_TITLE = "Neue Seite"


# ---- Lookups ----

def find_chapter(book: Book, chapter_id: str) -> Optional[Chapter]:
    for chapter in book.chapters:
        if chapter.id == chapter_id:
            return chapter
    return None


def chapter_index(book: Book, chapter_id: str) -> int:
    """Index of the chapter, or -1 when absent."""
    for idx, chapter in enumerate(book.chapters):
        if chapter.id == chapter_id:
            return idx
    return -1


def iter_pages(book: Book) -> Iterator[tuple[Chapter, Page]]:
    """Yield (chapter, page) pairs in reading order."""
    for chapter in book.chapters:
        for page in chapter.pages:
            yield chapter, page


def find_page(book: Book, page_id: str) -> Optional[Page]:
    for _, page in iter_pages(book):
        if page.id == page_id:
            return page
    return None


def first_page_id(book: Book) -> Optional[str]:
    """Id of the first page of the first chapter, if that chapter has pages."""
    if book.chapters and book.chapters[0].pages:
        return book.chapters[0].pages[0].id
    return None


def global_page_number(book: Book, page_id: str) -> int:
    """1-based position of the page across the whole book, 0 when absent."""
    for count, (_, page) in enumerate(iter_pages(book), start=1):
        if page.id == page_id:
            return count
    return 0


# ---- Renumbering ----

def renumber_pages(chapter: Chapter) -> Chapter:
    """Reset page numbers to ``{chapter.number}.{index + 1}``."""
    pages = tuple(
        replace(p, number=f"{chapter.number}.{idx + 1}")
        for idx, p in enumerate(chapter.pages)
    )
    return replace(chapter, pages=pages)


def renumber_chapters(chapters: tuple[Chapter, ...]) -> tuple[Chapter, ...]:
    """Reset chapter numbers to ``index + 1``.

    Only the chapter component of each page number is rewritten; the page's
    own ordinal is kept.
    """
    result = []
    for idx, chapter in enumerate(chapters):
        number = idx + 1
        pages = tuple(
            replace(p, number=f"{number}.{p.number.partition('.')[2]}")
            for p in chapter.pages
        )
        result.append(replace(chapter, number=number, pages=pages))
    return tuple(result)


def _replace_chapter(book: Book, index: int, chapter: Chapter) -> Book:
    chapters = book.chapters[:index] + (chapter,) + book.chapters[index + 1:]
    return replace(book, chapters=chapters)


def _map_page(book: Book, page_id: str, fn) -> Book:
    """Apply ``fn`` to the page with ``page_id``; unchanged book if absent."""
    for c_idx, chapter in enumerate(book.chapters):
        for p_idx, page in enumerate(chapter.pages):
            if page.id == page_id:
                pages = chapter.pages[:p_idx] + (fn(page),) + chapter.pages[p_idx + 1:]
                return _replace_chapter(book, c_idx, replace(chapter, pages=pages))
    return book


# ---- Tree edits ----

def add_chapter(book: Book, chapter_id: str, title: str = DEFAULT_CHAPTER_TITLE) -> Book:
    chapter = Chapter(
        id=chapter_id,
        book_id=book.id,
        number=len(book.chapters) + 1,
        title=title,
    )
    return replace(book, chapters=book.chapters + (chapter,))


def add_page(
    book: Book, chapter_id: str, page_id: str, title: str = DEFAULT_PAGE_TITLE,
) -> Book:
    idx = chapter_index(book, chapter_id)
    if idx == -1:
        return book
    chapter = book.chapters[idx]
    page = Page(
        id=page_id,
        chapter_id=chapter.id,
        number=f"{chapter.number}.{len(chapter.pages) + 1}",
        title=title,
    )
    return _replace_chapter(book, idx, replace(chapter, pages=chapter.pages + (page,)))


def rename_chapter(book: Book, chapter_id: str, title: str) -> Book:
    idx = chapter_index(book, chapter_id)
    if idx == -1:
        return book
    return _replace_chapter(book, idx, replace(book.chapters[idx], title=title))


def rename_page(book: Book, page_id: str, title: str) -> Book:
    return _map_page(book, page_id, lambda p: replace(p, title=title))


def rename_node(book: Book, ref: NodeRef, title: str) -> Book:
    if ref.kind == NodeKind.CHAPTER:
        return rename_chapter(book, ref.id, title)
    return rename_page(book, ref.id, title)


def resolve_node(book: Book, item_id: str) -> Optional[NodeRef]:
    """Look up an untagged id: chapters first, then pages."""
    if find_chapter(book, item_id) is not None:
        return NodeRef.chapter(item_id)
    if find_page(book, item_id) is not None:
        return NodeRef.page(item_id)
    return None


def rename_item(book: Book, item_id: str, title: str) -> Book:
    ref = resolve_node(book, item_id)
    if ref is None:
        return book
    return rename_node(book, ref, title)


def move_page(book: Book, chapter_id: str, page_index: int, direction: int) -> Book:
    """Swap a page with its neighbour (direction -1 = up, +1 = down)."""
    if direction not in (-1, 1):
        return book
    idx = chapter_index(book, chapter_id)
    if idx == -1:
        return book
    chapter = book.chapters[idx]
    target = page_index + direction
    if not (0 <= page_index < len(chapter.pages)) or not (0 <= target < len(chapter.pages)):
        return book

    pages = list(chapter.pages)
    pages[page_index], pages[target] = pages[target], pages[page_index]
    return _replace_chapter(book, idx, renumber_pages(replace(chapter, pages=tuple(pages))))


def reorder_chapters(book: Book, from_index: int, to_index: int) -> Book:
    """Remove the chapter at ``from_index`` and reinsert it at ``to_index``."""
    count = len(book.chapters)
    if from_index == to_index:
        return book
    if not (0 <= from_index < count) or not (0 <= to_index < count):
        return book

    chapters = list(book.chapters)
    moved = chapters.pop(from_index)
    chapters.insert(to_index, moved)
    return replace(book, chapters=renumber_chapters(tuple(chapters)))


def set_page_content(book: Book, page_id: str, content: str, updated_at: str) -> Book:
    updated = _map_page(book, page_id, lambda p: replace(p, content=content))
    if updated is book:
        return book
    return replace(updated, updated_at=updated_at)


def add_comment(book: Book, page_id: str, comment: Comment, updated_at: str) -> Book:
    updated = _map_page(book, page_id, lambda p: replace(p, comments=p.comments + (comment,)))
    if updated is book:
        return book
    return replace(updated, updated_at=updated_at)


def is_valid_comment(text: str, audio_url: Optional[str]) -> bool:
    """A comment needs non-blank text or a recorded audio reference."""
    return bool(text and text.strip()) or bool(audio_url)


def validate_comment(page_id: str, text: str, audio_url: Optional[str]) -> None:
    """Raise EmptyCommentError unless the comment has text or audio."""
    if not is_valid_comment(text, audio_url):
        raise EmptyCommentError(page_id)


# ---- Comment anchors ----

def locate_anchor(content: str, anchor: str) -> tuple[int, int]:
    """Find the span of a comment's selected-text anchor by exact search.

    Raises:
        AnchorNotFoundError: if the anchor is empty or no longer present.
    """
    start = content.find(anchor) if anchor else -1
    if start == -1:
        raise AnchorNotFoundError(anchor)
    return start, start + len(anchor)


# ---- Read models ----

def preview_sequence(book: Book) -> list[dict]:
    """Flatten the book for linear preview: cover first, then every page."""
    sequence: list[dict] = [{"type": "cover", "page": None, "chapter_title": None}]
    for chapter, page in iter_pages(book):
        sequence.append({"type": "page", "page": page, "chapter_title": chapter.title})
    return sequence


def pending_tasks(books: list[Book]) -> list[dict]:
    """Collect every pending comment across books for the reviewer task list."""
    tasks = []
    for book in books:
        for chapter, page in iter_pages(book):
            for comment in page.comments:
                if comment.status != CommentStatus.PENDING:
                    continue
                tasks.append({
                    "book_id": book.id,
                    "book_title": book.title,
                    "chapter_title": chapter.title,
                    "page_id": page.id,
                    "page_title": page.title,
                    "comment_user": comment.user_name,
                    "comment_date": comment.created_at,
                    "comment_text": comment.text,
                })
    return tasks
