"""Identifier and timestamp helpers.

Chapter and page ids carry distinct prefixes so a single lookup across both
tables can never confuse one for the other.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from models.enums import NodeKind

CHAPTER_PREFIX = "chap"
PAGE_PREFIX = "page"
ACTIVITY_PREFIX = "log"
COMMENT_PREFIX = "c"
BOOK_PREFIX = "book"


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class NodeRef:
    """Tagged reference to a node of the chapter/page tree."""
    kind: NodeKind
    id: str

    @classmethod
    def chapter(cls, chapter_id: str) -> "NodeRef":
        return cls(NodeKind.CHAPTER, chapter_id)

    @classmethod
    def page(cls, page_id: str) -> "NodeRef":
        return cls(NodeKind.PAGE, page_id)
