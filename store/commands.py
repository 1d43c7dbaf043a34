"""Optimistic commands with explicit compensation.

The UI applies a change before the store confirms it. If the store call
fails, ``compensate`` restores the previous local state and the failure is
reported as a message instead of an exception.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from config.exceptions import PermissionDeniedError, StoreError
from models.document import user_from_document
from models.enums import UserRole
from models.user import User
from store.protocols import DocumentStore
from store.sync import USERS_COLLECTION

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    ok: bool
    message: str = ""


class OptimisticCommand:
    """An ``apply``/``commit``/``compensate`` triple run as one unit.

    Args:
        apply: Local optimistic change.
        commit: Remote call; may raise ``StoreError``.
        compensate: Undo of ``apply``, run when ``commit`` fails.
        denied_message: Message reported on permission errors.
    """

    def __init__(
        self,
        apply: Callable[[], None],
        commit: Callable[[], None],
        compensate: Callable[[], None],
        denied_message: str = "Keine Berechtigung.",
    ):
        self._apply = apply
        self._commit = commit
        self._compensate = compensate
        self.denied_message = denied_message

    def execute(self) -> CommandResult:
        self._apply()
        try:
            self._commit()
        except PermissionDeniedError as e:
            logger.warning("Optimistic update rejected: %s", e)
            self._compensate()
            return CommandResult(False, self.denied_message)
        except StoreError as e:
            logger.error("Optimistic update failed: %s", e)
            self._compensate()
            return CommandResult(False, f"Fehler beim Speichern: {e.message}")
        return CommandResult(True)


class UserDirectory:
    """Reviewer-side user list with role and approval toggles."""

    def __init__(self, store: DocumentStore, acting_user: User):
        self.store = store
        self.acting_user = acting_user
        self.users: list[User] = []
        self.error: Optional[str] = None

    def load(self) -> list[User]:
        try:
            docs = self.store.list_documents(USERS_COLLECTION)
        except PermissionDeniedError:
            self.error = "Zugriff verweigert. Du hast keine Berechtigung, die Benutzerliste zu sehen."
            logger.warning("User list permission denied for %s", self.acting_user.id)
            return []
        except StoreError as e:
            self.error = "Ein Fehler ist aufgetreten."
            logger.error("Error fetching users: %s", e)
            return []
        self.error = None
        self.users = [user_from_document(d.id, d.data) for d in docs]
        return self.users

    def get(self, user_id: str) -> Optional[User]:
        for user in self.users:
            if user.id == user_id:
                return user
        return None

    def _set_local(self, user: User) -> None:
        self.users = [user if u.id == user.id else u for u in self.users]

    def toggle_role(self, user: User) -> CommandResult:
        if user.id == self.acting_user.id:
            return CommandResult(False, "Du kannst deine eigene Rolle nicht ändern.")
        new_role = UserRole.CUSTOMER if user.is_employee else UserRole.EMPLOYEE
        command = OptimisticCommand(
            apply=lambda: self._set_local(replace(user, role=new_role)),
            commit=lambda: self.store.update_document(
                f"{USERS_COLLECTION}/{user.id}", {"role": new_role.value},
            ),
            compensate=lambda: self._set_local(user),
            denied_message="Keine Berechtigung: Nur Administratoren dürfen Rollen ändern.",
        )
        return command.execute()

    def toggle_approval(self, user: User) -> CommandResult:
        new_status = not user.is_approved
        command = OptimisticCommand(
            apply=lambda: self._set_local(replace(user, is_approved=new_status)),
            commit=lambda: self.store.update_document(
                f"{USERS_COLLECTION}/{user.id}", {"isApproved": new_status},
            ),
            compensate=lambda: self._set_local(user),
            denied_message="Keine Berechtigung: Nur Administratoren dürfen diesen Status ändern.",
        )
        return command.execute()
