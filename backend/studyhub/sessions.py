"""In-memory server-side session store.

Tokens handed to the browser are opaque random strings; the record they
point at lives only in this process. Every operation takes the store
lock because FastAPI runs sync handlers on a thread pool.
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

logger = logging.getLogger("studyhub.sessions")


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_id: int
    user_display_name: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


class SessionStore:
    def __init__(self, ttl_seconds: int = 24 * 3600):
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()
        self._ttl = timedelta(seconds=ttl_seconds)

    def create(self, user_id: int, display_name: str) -> SessionRecord:
        """Start a session with a fixed lifetime and return its record."""
        self._cleanup()
        now = datetime.now(timezone.utc)
        record = SessionRecord(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            user_display_name=display_name,
            created_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._sessions[record.session_id] = record
        logger.info("session_created user_id=%s", user_id)
        return record

    def resolve(self, token: Optional[str]) -> Optional[SessionRecord]:
        """Return the live record for `token`, or None.

        Unknown and expired tokens are indistinguishable to the caller.
        """
        if not token:
            return None
        with self._lock:
            record = self._sessions.get(token)
            if record is None:
                return None
            if record.is_expired():
                self._sessions.pop(token, None)
                return None
            return record

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            record = self._sessions.pop(token, None)
        if record is not None:
            logger.info("session_destroyed user_id=%s", record.user_id)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _cleanup(self) -> None:
        now = datetime.now(timezone.utc)
        with self._lock:
            expired = [sid for sid, record in self._sessions.items() if record.is_expired(now)]
            for sid in expired:
                self._sessions.pop(sid, None)
