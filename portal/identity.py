"""Account registration, login and logout."""
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional, Tuple

from .errors import AuthError, ConflictError, ValidationError
from .models import User
from .security import hash_password, verify_password
from .sessions import SessionManager
from .storage import Storage

logger = logging.getLogger("studentportal.identity")


def _clean(value: Optional[str]) -> str:
    return value.strip() if value else ""


class IdentityService:
    """Creates users and establishes their sessions."""

    def __init__(
        self,
        storage: Storage,
        sessions: SessionManager,
        *,
        remember_ttl: timedelta = timedelta(days=30),
    ) -> None:
        self._storage = storage
        self._sessions = sessions
        self._remember_ttl = remember_ttl

    def register(
        self,
        full_name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        phone: Optional[str] = None,
    ) -> User:
        """Create a new account with an empty enrollment list.

        Raises :class:`ValidationError` when a required field is blank and
        :class:`ConflictError` when the email (compared case-insensitively) is
        already taken.
        """

        name = _clean(full_name)
        normalized_email = _clean(email).lower()
        if not name or not normalized_email or not password:
            raise ValidationError("Missing fields")

        password_hash = hash_password(password)

        with self._storage.lock:
            users = self._storage.load_users()
            if any(user.email == normalized_email for user in users):
                raise ConflictError("Email already registered")

            user = User(
                id=str(uuid.uuid4()),
                full_name=name,
                email=normalized_email,
                password_hash=password_hash,
                phone=_clean(phone),
            )
            users.append(user)
            self._storage.save_users(users)

        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, email: Optional[str], password: Optional[str]) -> User:
        normalized_email = _clean(email).lower()
        if not normalized_email or not password:
            raise ValidationError("Missing email or password")

        for user in self._storage.load_users():
            if user.email == normalized_email and verify_password(password, user.password_hash):
                return user

        logger.warning("Failed login attempt for %s", normalized_email)
        raise AuthError("Invalid credentials")

    def login(
        self,
        email: Optional[str],
        password: Optional[str],
        *,
        remember: bool = False,
        existing_token: Optional[str] = None,
    ) -> Tuple[User, str]:
        user = self.authenticate(email, password)
        if existing_token:
            self._sessions.destroy(existing_token)
        token = self.start_session(user, remember=remember)
        logger.info("User %s logged in (remember=%s)", user.id, remember)
        return user, token

    def start_session(self, user: User, *, remember: bool = False) -> str:
        ttl = self._remember_ttl if remember else None
        return self._sessions.create(user.id, ttl=ttl)

    def logout(self, token: Optional[str]) -> None:
        if not token:
            return
        self._sessions.destroy(token)
        logger.info("Session closed")


__all__ = ["IdentityService"]
