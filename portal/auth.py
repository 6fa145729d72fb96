"""Resolve session tokens to portal users."""
from __future__ import annotations

from typing import Optional

from .errors import AuthError
from .models import User, find_user
from .sessions import SessionManager
from .storage import Storage


class SessionGate:
    """Maps a request's session token to the authenticated :class:`User`."""

    def __init__(self, storage: Storage, sessions: SessionManager) -> None:
        self._storage = storage
        self._sessions = sessions

    def current_user(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        user_id = self._sessions.resolve(token)
        if user_id is None:
            return None
        user = find_user(self._storage.load_users(), user_id)
        if user is None:
            self._sessions.destroy(token)
        return user

    def require_auth(self, token: Optional[str]) -> User:
        user = self.current_user(token)
        if user is None:
            raise AuthError("Not authenticated")
        return user


__all__ = ["SessionGate"]
