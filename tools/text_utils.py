"""Text utilities: word counting, page estimates, safe file names."""

import math
import re

# Standard manuscript formatting fits roughly this many words on an A4 page
WORDS_PER_A4_PAGE = 300


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    if not text or not text.strip():
        return 0
    return len(text.split())


def estimate_a4_pages(word_count: int) -> int:
    """Estimated printed A4 pages for a word count (rounded up)."""
    if word_count <= 0:
        return 0
    return math.ceil(word_count / WORDS_PER_A4_PAGE)


def format_number_de(value: int) -> str:
    """Format an integer with German thousands separators (12.345)."""
    return f"{value:,}".replace(",", ".")


def safe_user_name(name: str) -> str:
    """Replace everything except ASCII letters and digits with underscores.

    Used to build storage paths from display names.
    """
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def excerpt(text: str, length: int = 20) -> str:
    """First ``length`` characters followed by an ellipsis."""
    return f"{text[:length]}..."
