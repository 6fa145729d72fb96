"""In-memory session handling for portal logins."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional


@dataclass(frozen=True)
class _SessionRecord:
    user_id: str
    ttl: timedelta
    expires_at: datetime


class SessionManager:
    """Generate, validate, and revoke cookie-backed sessions.

    Expiry is fixed when the session is created; resolving a token does not
    extend it.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = timedelta(hours=4),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._ttl = ttl
        self._sessions: Dict[str, _SessionRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def create(self, user_id: str, *, ttl: Optional[timedelta] = None) -> str:
        """Issue a new token, evicting sessions that have already expired."""

        lifetime = ttl or self._ttl
        token = secrets.token_urlsafe(32)
        now = self._now()
        record = _SessionRecord(user_id=user_id, ttl=lifetime, expires_at=now + lifetime)
        with self._lock:
            self._evict_expired(now)
            self._sessions[token] = record
        return token

    def resolve(self, token: str) -> Optional[str]:
        """Return the user id bound to ``token`` or ``None`` if it is unknown or expired."""

        now = self._now()
        with self._lock:
            record = self._sessions.get(token)
            if record is None:
                return None
            if record.expires_at <= now:
                self._sessions.pop(token, None)
                return None
            return record.user_id

    def cookie_max_age(self, token: str) -> int:
        with self._lock:
            record = self._sessions.get(token)
        lifetime = record.ttl if record is not None else self._ttl
        return int(lifetime.total_seconds())

    def destroy(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def purge_expired(self) -> int:
        now = self._now()
        with self._lock:
            return self._evict_expired(now)

    def _evict_expired(self, now: datetime) -> int:
        expired = [token for token, record in self._sessions.items() if record.expires_at <= now]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _now(self) -> datetime:
        return self._clock()


__all__ = ["SessionManager"]
