"""Session Store for MCP Server.

Owns every authenticated session and its sliding expiry. Validation
renews or evicts in one step, and a background sweep evicts sessions
nobody touches again.
"""

import asyncio
import secrets
import threading
import time
from datetime import timedelta
from typing import Any, Callable, Optional

from shared.logging import get_logger, mask_session_id
from shared.models import Session

logger = get_logger(__name__)


class SessionStore:
    """
    In-memory session store with sliding expiry.

    A session is valid while present and ``now - last_activity <= ttl``.
    All access to the mapping happens under one lock, so foreground calls
    (which may run in executor threads) and the sweep never interleave.
    """

    def __init__(
        self,
        ttl_minutes: float = 30,
        sweep_interval_minutes: float = 10,
        clock: Optional[Callable[[], float]] = None
    ) -> None:
        """
        Initialize the session store.

        Args:
            ttl_minutes: Permitted inactivity before a session expires
            sweep_interval_minutes: Period of the background sweep
            clock: Monotonic clock returning seconds (injectable for tests)
        """
        self.ttl = timedelta(minutes=ttl_minutes)
        self.sweep_interval = timedelta(minutes=sweep_interval_minutes)
        self._clock = clock or time.monotonic

        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    @property
    def ttl_seconds(self) -> float:
        return self.ttl.total_seconds()

    def _new_id(self) -> str:
        return f"session_{time.time_ns()}_{secrets.token_hex(8)}"

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity > self.ttl_seconds

    def create(self) -> str:
        """
        Create a new session.

        Returns:
            The new session id
        """
        now = self._clock()

        with self._lock:
            session_id = self._new_id()
            while session_id in self._sessions:
                session_id = self._new_id()
            self._sessions[session_id] = Session(
                id=session_id,
                created_at=now,
                last_activity=now
            )

        logger.info("Session created", session=mask_session_id(session_id))
        return session_id

    def validate(self, session_id: Optional[str]) -> bool:
        """
        Validate a session, renewing it or evicting it.

        Args:
            session_id: Session identifier

        Returns:
            True if the session is live (its activity is renewed),
            False if unknown or expired (an expired session is removed)
        """
        if not session_id:
            return False

        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False

            now = self._clock()
            if self._is_expired(session, now):
                del self._sessions[session_id]
                expired = True
            else:
                session.last_activity = now
                expired = False

        if expired:
            logger.info("Session expired", session=mask_session_id(session_id))
            return False
        return True

    def revoke(self, session_id: Optional[str]) -> bool:
        """
        Revoke a session.

        Returns:
            True if the session was present, False otherwise
        """
        if not session_id:
            return False

        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None

        if removed:
            logger.info("Session revoked", session=mask_session_id(session_id))
        return removed

    def sweep_expired(self) -> int:
        """
        Remove expired sessions.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for session_id in expired:
                del self._sessions[session_id]

        if expired:
            logger.info("Expired sessions swept", count=len(expired))

        return len(expired)

    async def _sweep_loop(self) -> None:
        interval = self.sweep_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep_expired()
            except Exception as e:
                logger.error("Session sweep failed", error=str(e))

    def start_sweeper(self) -> asyncio.Task:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.debug(
                "Session sweeper started",
                interval_minutes=self.sweep_interval.total_seconds() / 60
            )
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Session sweeper stopped")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        # Membership check only, does not renew
        with self._lock:
            return session_id in self._sessions

    def get_stats(self) -> dict[str, Any]:
        """Get session store statistics."""
        return {
            "active_sessions": len(self),
            "ttl_minutes": self.ttl.total_seconds() / 60,
            "sweep_interval_minutes": self.sweep_interval.total_seconds() / 60,
        }
