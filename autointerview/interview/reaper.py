"""
Inactivity reaper: abandons sessions that never reached a terminal state.
"""
import time
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, TYPE_CHECKING

from .events import InterviewEventBus, SessionAbandonedEvent
from .models import age_hours
from .registry import AttemptRegistry
from .schemas import TurnState
from .store import SessionStore
from ..config import ABANDON_MAX_AGE_HOURS, REAPER_INTERVAL_SECONDS

if TYPE_CHECKING:
    from .engine import TurnEngine

logger = logging.getLogger("reaper")


class InactivityReaper:
    """
    Periodic sweep over stored sessions and attempt records.

    Each session is examined under its store lock. A session still driven
    by a live engine is not written here; the engine is told to abandon
    and performs the transition itself.
    """

    def __init__(self,
                 store: SessionStore,
                 registry: AttemptRegistry,
                 engines: Dict[str, 'TurnEngine'],
                 max_age_hours: float = ABANDON_MAX_AGE_HOURS,
                 interval: float = REAPER_INTERVAL_SECONDS,
                 event_bus: Optional[InterviewEventBus] = None):
        self.store = store
        self.registry = registry
        self.engines = engines
        self.max_age_hours = max_age_hours
        self.interval = interval
        self.event_bus = event_bus
        self._task: Optional[asyncio.Task] = None

    async def sweep(self) -> List[str]:
        """Abandon stale sessions, then stale attempt records. Returns the session ids handled."""
        now = datetime.now(timezone.utc)
        handled = []

        for session in self.store.list_sessions():
            if session.is_terminal or age_hours(session.started_at, now) < self.max_age_hours:
                continue

            async with self.store.lock(session.id):
                engine = self.engines.get(session.id)
                if engine is not None and not engine.is_finished:
                    engine.request_abandon(f"no progress for {self.max_age_hours}h")
                    handled.append(session.id)
                    continue

                last_state = None
                current = self.store.load(session.id)
                if current is not None and not current.is_terminal:
                    last_state = current.state.value
                    current.mark_terminal(TurnState.ABANDONED, error="inactive")
                    self.store.save(current)
            # live engines release their own lock when they finish
            self.store.release(session.id)
            if last_state is None:
                continue

            self.registry.mark_abandoned(session.id)
            if self.event_bus:
                self.event_bus.emit(SessionAbandonedEvent(session.id, time.time(), last_state))
            logger.info(f"Abandoned stale session {session.id} (was {last_state})")
            handled.append(session.id)

        self.registry.reap_abandoned(self.max_age_hours)
        return handled

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Reaper sweep failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info(f"Reaper running every {self.interval}s (max age {self.max_age_hours}h)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
