"""Registry of live terminal sessions.

Each WebSocket terminal gets one session record for as long as its
bridge runs. The record's only mutable state is whether the one-time
shell bootstrap has been sent, and every read or write of it happens
under the registry's single lock.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A live terminal session.

    ``bootstrap_sent`` only ever flips from False to True, and only
    inside :meth:`SessionRegistry.try_consume_bootstrap`.
    """

    session_key: str
    target_id: str
    created_at: datetime = field(default_factory=datetime.now)
    bootstrap_sent: bool = False


def make_session_key(target_id: str, now: datetime | None = None) -> str:
    """Build a unique key from the target ID and creation time."""
    now = now or datetime.now()
    return f"{target_id}-{now:%Y%m%d-%H%M%S.%f}-{uuid.uuid4().hex[:8]}"


class SessionRegistry:
    """Tracks live sessions by key.

    The mapping is private; callers only get the atomic operations
    below. Lock hold time is a dict lookup, never I/O.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, target_id: str) -> Session:
        """Register a new session for ``target_id`` with bootstrap unsent."""
        session = Session(session_key=make_session_key(target_id), target_id=target_id)
        with self._lock:
            self._sessions[session.session_key] = session
        logger.debug("Session %s created", session.session_key)
        return replace(session)

    def try_consume_bootstrap(self, session_key: str) -> bool:
        """Claim the right to send the bootstrap for ``session_key``.

        Returns True exactly once per live session: for the first caller.
        Unknown (or already removed) keys return False.
        """
        with self._lock:
            session = self._sessions.get(session_key)
            if session is None or session.bootstrap_sent:
                return False
            session.bootstrap_sent = True
            return True

    def remove(self, session_key: str) -> None:
        with self._lock:
            self._sessions.pop(session_key, None)
        logger.debug("Session %s removed", session_key)

    def get(self, session_key: str) -> Session | None:
        with self._lock:
            session = self._sessions.get(session_key)
            # Callers get copies so the flag cannot be toggled outside the lock
            return replace(session) if session is not None else None

    @contextmanager
    def track(self, target_id: str) -> Iterator[Session]:
        """Create a session and remove it when the block exits, however it exits."""
        session = self.create(target_id)
        try:
            yield session
        finally:
            self.remove(session.session_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_key: object) -> bool:
        with self._lock:
            return session_key in self._sessions
