"""Collaborator interfaces consumed by the editor core."""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from models.user import User

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class DocumentSnapshot:
    """A stored document: its full path, last path segment and data."""
    path: str
    id: str
    data: dict


@runtime_checkable
class DocumentStore(Protocol):
    """JSON documents addressed by slash-separated paths.

    A document path has an even number of segments
    (``collection/doc[/collection/doc...]``); its collection path is the path
    without the last segment.
    """

    def get_document(self, path: str) -> Optional[dict]:
        ...

    def set_document(self, path: str, value: dict, merge: bool = False) -> None:
        ...

    def update_document(self, path: str, fields: dict) -> None:
        """Merge ``fields`` into an existing document; fails if it is missing."""
        ...

    def delete_document(self, path: str) -> None:
        ...

    def list_documents(self, collection_path: str) -> list[DocumentSnapshot]:
        ...

    def subscribe_collection(
        self,
        collection_path: str,
        on_snapshot: Callable[[list[DocumentSnapshot]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Binary uploads with retrievable URLs."""

    def upload(self, path: str, data: bytes) -> str:
        """Store ``data`` and return a reference."""
        ...

    def get_url(self, reference: str) -> str:
        ...


@runtime_checkable
class AccountService(Protocol):
    """Sign-up, sign-in and profile management."""

    @property
    def current_user(self) -> Optional[User]:
        ...

    def authenticate(self, email: str, password: str) -> User:
        ...

    def register(self, email: str, password: str, display_name: str,
                 avatar: Optional[bytes] = None) -> User:
        ...

    def update_profile(self, display_name: Optional[str] = None,
                       avatar_url: Optional[str] = None) -> User:
        ...

    def delete_account(self) -> None:
        ...

    def sign_out(self) -> None:
        ...

    def subscribe_auth_state(self, callback: Callable[[Optional[User]], Any]) -> Unsubscribe:
        ...
