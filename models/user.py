"""Account profile data model."""

from dataclasses import dataclass
from typing import Optional

from models.enums import UserRole


@dataclass(frozen=True)
class User:
    """Represents a signed-in author or reviewer."""
    id: str
    email: str = ""
    name: str = ""
    role: UserRole = UserRole.CUSTOMER
    avatar_url: Optional[str] = None
    joined_at: Optional[str] = None  # YYYY-MM-DD
    book_count: int = 0
    is_approved: Optional[bool] = None  # None = legacy profile, not blocked

    @property
    def is_employee(self) -> bool:
        return self.role == UserRole.EMPLOYEE

    @property
    def is_blocked(self) -> bool:
        return self.is_approved is False
