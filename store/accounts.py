"""Local account service: credentials and profiles kept in the document store."""

import logging
import re
import uuid
from datetime import date
from typing import Any, Callable, Optional

from passlib.context import CryptContext

from config.exceptions import AuthError, BlobStoreError, StoreError
from models.document import user_from_document, user_to_document
from models.enums import UserRole
from models.user import User
from store.protocols import BlobStore, DocumentStore, Unsubscribe
from store.sync import UPLOADS_ROOT, USERS_COLLECTION
from tools.text_utils import safe_user_name

logger = logging.getLogger(__name__)

CREDENTIALS_COLLECTION = "auth"
MIN_PASSWORD_LENGTH = 6

# Error kinds shared with the hosted account service
INVALID_CREDENTIAL = "invalid-credential"
EMAIL_IN_USE = "email-already-in-use"
WEAK_PASSWORD = "weak-password"
INVALID_EMAIL = "invalid-email"
NOT_SIGNED_IN = "requires-recent-login"

AUTH_MESSAGES = {
    INVALID_CREDENTIAL: "Zugangsdaten ungültig.",
    EMAIL_IN_USE: "Diese E-Mail wird bereits verwendet. Bitte logge dich ein.",
    WEAK_PASSWORD: "Das Passwort ist zu schwach (min. 6 Zeichen).",
    INVALID_EMAIL: "Bitte gib eine gültige E-Mail-Adresse ein.",
    NOT_SIGNED_IN: "Bitte melde dich erneut an.",
}

_EMAIL_RE = re.compile(r"^[^@\s/]+@[^@\s/]+\.[^@\s/]+$")

# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _auth_error(kind: str) -> AuthError:
    return AuthError(kind, AUTH_MESSAGES.get(kind, ""))


class LocalAccountService:
    """Email/password accounts with one signed-in user per instance.

    Credentials live at ``auth/{email}``, profiles at ``users/{uid}``.
    Emails listed in ``employee_emails`` are registered as approved
    employees; everyone else starts as an unapproved customer.
    """

    def __init__(
        self,
        store: DocumentStore,
        employee_emails: Optional[list[str]] = None,
        blobs: Optional[BlobStore] = None,
    ):
        self.store = store
        self.blobs = blobs
        self.employee_emails = {e.lower() for e in (employee_emails or [])}
        self._current: Optional[User] = None
        self._listeners: list[Callable[[Optional[User]], Any]] = []

    @property
    def current_user(self) -> Optional[User]:
        return self._current

    # ---- Auth state ----

    def subscribe_auth_state(self, callback: Callable[[Optional[User]], Any]) -> Unsubscribe:
        self._listeners.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, user: Optional[User]) -> None:
        self._current = user
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception:
                logger.exception("Auth state listener failed")

    # ---- Sign-in / sign-up ----

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def _credentials_path(self, email: str) -> str:
        return f"{CREDENTIALS_COLLECTION}/{email}"

    def register(
        self,
        email: str,
        password: str,
        display_name: str,
        avatar: Optional[bytes] = None,
    ) -> User:
        email = self._normalize_email(email)
        if not _EMAIL_RE.match(email):
            raise _auth_error(INVALID_EMAIL)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise _auth_error(WEAK_PASSWORD)
        if self.store.get_document(self._credentials_path(email)) is not None:
            raise _auth_error(EMAIL_IN_USE)

        uid = uuid.uuid4().hex
        self.store.set_document(self._credentials_path(email), {
            "uid": uid,
            "passwordHash": pwd_context.hash(password),
        })

        avatar_url = None
        if avatar and self.blobs is not None:
            path = f"{UPLOADS_ROOT}/{uid}/{safe_user_name(display_name)}_profile_image"
            try:
                avatar_url = self.blobs.get_url(self.blobs.upload(path, avatar))
            except BlobStoreError as e:
                logger.warning("Avatar upload for %s failed: %s", uid, e)

        is_employee = email in self.employee_emails
        user = User(
            id=uid,
            email=email,
            name=display_name,
            role=UserRole.EMPLOYEE if is_employee else UserRole.CUSTOMER,
            avatar_url=avatar_url,
            joined_at=date.today().isoformat(),
            book_count=0,
            is_approved=is_employee,
        )
        try:
            self.store.set_document(f"{USERS_COLLECTION}/{uid}", user_to_document(user))
        except StoreError as e:
            logger.warning("Profile for %s not stored: %s", uid, e)

        logger.info("Registered %s as %s", email, user.role.value)
        self._set_current(user)
        return user

    def authenticate(self, email: str, password: str) -> User:
        email = self._normalize_email(email)
        if not email or not password:
            raise _auth_error(INVALID_CREDENTIAL)
        creds = self.store.get_document(self._credentials_path(email))
        if not creds or not pwd_context.verify(password, creds.get("passwordHash", "")):
            raise _auth_error(INVALID_CREDENTIAL)

        user = self._load_profile(creds["uid"], email)
        logger.info("Signed in %s", email)
        self._set_current(user)
        return user

    def _load_profile(self, uid: str, email: str) -> User:
        """Read the profile, repairing missing or outdated employee entries."""
        path = f"{USERS_COLLECTION}/{uid}"
        try:
            data = self.store.get_document(path)
        except StoreError as e:
            logger.warning("Profile read failed for %s, using fallback: %s", uid, e)
            return User(id=uid, email=email, name=email.split("@")[0], is_approved=False)

        is_employee = email in self.employee_emails
        if data is None:
            user = User(
                id=uid,
                email=email,
                name=email.split("@")[0],
                role=UserRole.EMPLOYEE if is_employee else UserRole.CUSTOMER,
                joined_at=date.today().isoformat(),
                is_approved=is_employee,
            )
            try:
                self.store.set_document(path, user_to_document(user), merge=True)
            except StoreError as e:
                logger.warning("Could not create missing profile %s: %s", uid, e)
            return user

        if is_employee and data.get("role") != UserRole.EMPLOYEE.value:
            data = {**data, "role": UserRole.EMPLOYEE.value, "isApproved": True}
            try:
                self.store.set_document(
                    path, {"role": UserRole.EMPLOYEE.value, "isApproved": True}, merge=True,
                )
            except StoreError as e:
                logger.warning("Could not promote %s: %s", uid, e)
        return user_from_document(uid, data)

    def sign_out(self) -> None:
        if self._current is not None:
            logger.info("Signed out %s", self._current.email)
        self._set_current(None)

    # ---- Profile ----

    def _require_user(self) -> User:
        if self._current is None:
            raise _auth_error(NOT_SIGNED_IN)
        return self._current

    def update_profile(
        self,
        display_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> User:
        user = self._require_user()
        fields: dict = {}
        if display_name is not None:
            fields["name"] = display_name
        if avatar_url is not None:
            fields["photoURL"] = avatar_url
        if not fields:
            return user

        self.store.update_document(f"{USERS_COLLECTION}/{user.id}", fields)
        updated = user_from_document(user.id, {**user_to_document(user), **fields})
        self._set_current(updated)
        return updated

    def delete_account(self) -> None:
        user = self._require_user()
        try:
            self.store.delete_document(f"{USERS_COLLECTION}/{user.id}")
        except StoreError as e:
            logger.warning("DB delete fail for %s: %s", user.id, e)
        self.store.delete_document(self._credentials_path(user.email))
        logger.info("Deleted account %s", user.id)
        self._set_current(None)
