"""
Durable session snapshots keyed by session id.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from .models import Session, now_iso
from ..infrastructure.data import JsonDirectoryStore, JsonDocumentStore

logger = logging.getLogger("session_store")


class SessionStore:
    """
    One JSON file per session plus a per-session asyncio lock.

    The lock is the mutual exclusion point between the engine driving a
    session and the inactivity reaper. Sessions never share a lock.
    """

    def __init__(self, directory: str, results_path: Optional[str] = None):
        self.records = JsonDirectoryStore(directory)
        self.results = JsonDocumentStore(results_path, default=list) if results_path else None
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def release(self, session_id: str) -> None:
        """Forget the lock of a session that reached a terminal state."""
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def save(self, session: Session) -> None:
        session.updated_at = now_iso()
        self.records.save(session.id, session.to_dict())

    def load(self, session_id: str) -> Optional[Session]:
        data = self.records.load(session_id)
        return Session.from_dict(data) if data else None

    def list_sessions(self) -> List[Session]:
        sessions = []
        for key in self.records.keys():
            session = self.load(key)
            if session is not None:
                sessions.append(session)
        return sessions

    def append_result(self, result: dict) -> None:
        """Append a completed interview result to the results log."""
        if self.results is None:
            return
        self.results.update(lambda results: results.append(result))
        logger.info(f"Stored result for session {result.get('session_id')}")
