"""
Process-local store of order sessions.

Each browser session owns exactly one OrderSession, looked up by the random
id kept in the signed Flask session cookie. The store only hands sessions
out; all pipeline changes happen in modules.order_pipeline.

Thread Safety:
    - Flask may serve a user's requests on several threads
    - All map operations hold threading.Lock
    - Per-session in-flight marking uses the session's own lock
      (OrderSession.try_begin)

Lifecycle:
    - get_or_create() on every storefront request
    - discard() on start-over (reset)
    - Sessions idle longer than ttl_seconds are purged on access

Usage:
    store = SessionStore(ttl_seconds=3600)
    order_session = store.get_or_create(flask_session.get("order_session_id"))
    flask_session["order_session_id"] = order_session.session_id
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from models.pipeline import OrderSession
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class SessionStore:
    """
    Thread-safe map of session id -> OrderSession.

    Nothing is persisted; restarting the process (or reloading after a
    reset) starts every user over at the form.
    """

    def __init__(self, ttl_seconds: float = 3600.0):
        """
        Initialize empty store.

        Args:
            ttl_seconds: Idle time after which a session is dropped
        """
        self._sessions: Dict[str, OrderSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self) -> OrderSession:
        """Start a new session in FORM."""
        order_session = OrderSession()
        with self._lock:
            self._sessions[order_session.session_id] = order_session
        logger.info(f"Session {order_session.short_id} started")
        return order_session

    def get(self, session_id: Optional[str]) -> Optional[OrderSession]:
        """
        Look up a live session.

        Returns None if the id is unknown or the session has expired.
        """
        if not session_id:
            return None

        self.purge_expired()

        with self._lock:
            order_session = self._sessions.get(session_id)
            if order_session:
                order_session.touch()
            return order_session

    def get_or_create(self, session_id: Optional[str]) -> OrderSession:
        """Return the live session for an id, or a fresh one."""
        return self.get(session_id) or self.create()

    def discard(self, session_id: Optional[str]) -> bool:
        """
        Drop a session and everything it owns.

        Returns:
            True if a session was removed
        """
        if not session_id:
            return False
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed:
            logger.info(f"Session {removed.short_id} discarded")
        return removed is not None

    def purge_expired(self) -> int:
        """
        Remove sessions idle longer than the TTL.

        Sessions with a transition in flight are kept.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            expired = [
                sid for sid, s in self._sessions.items()
                if s.in_flight is None and s.idle_seconds() > self._ttl_seconds
            ]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            logger.info(f"Purged {len(expired)} idle session(s)")
        return len(expired)

    def clear(self) -> int:
        """
        Remove all sessions.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
        logger.info(f"Cleared {count} session(s) from store")
        return count
