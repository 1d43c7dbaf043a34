"""Tools package: text statistics helpers."""

from tools.text_utils import (
    WORDS_PER_A4_PAGE,
    count_words,
    estimate_a4_pages,
    format_number_de,
    safe_user_name,
    excerpt,
)

__all__ = [
    "WORDS_PER_A4_PAGE",
    "count_words",
    "estimate_a4_pages",
    "format_number_de",
    "safe_user_name",
    "excerpt",
]
