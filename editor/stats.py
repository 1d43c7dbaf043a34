"""Live statistics for the editor sidebar."""

from dataclasses import dataclass
from typing import Optional

from models.book import Book
from models.operations import iter_pages
from tools.text_utils import count_words, estimate_a4_pages, format_number_de


@dataclass(frozen=True)
class BookStats:
    total_chapters: int
    total_pages: int
    total_words: int
    estimated_a4_pages: int

    @property
    def formatted_words(self) -> str:
        return format_number_de(self.total_words)


def compute_stats(
    book: Book,
    active_page_id: Optional[str] = None,
    active_content: Optional[str] = None,
) -> BookStats:
    """Compute word and page totals.

    The active page is counted from ``active_content`` (the unsaved editor
    buffer) so totals update before autosave commits.
    """
    total_words = 0
    total_pages = 0
    for _, page in iter_pages(book):
        total_pages += 1
        if page.id == active_page_id and active_content is not None:
            content = active_content
        else:
            content = page.content
        total_words += count_words(content)

    return BookStats(
        total_chapters=len(book.chapters),
        total_pages=total_pages,
        total_words=total_words,
        estimated_a4_pages=estimate_a4_pages(total_words),
    )
