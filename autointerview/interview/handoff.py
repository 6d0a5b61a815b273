"""
Completion handoff: evaluate a completed session and store the result.
"""
import time
import asyncio
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional, Set

from .events import InterviewEventBus, EvaluationCompletedEvent, ErrorOccurredEvent
from .models import EvaluationResult, Session
from .registry import AttemptRegistry
from .store import SessionStore
from ..config import EVALUATION_TIMEOUT

logger = logging.getLogger("completion_handoff")


class CompletionHandoff:
    """
    Runs once per completed session.

    Evaluator failure never reopens the session: the result is stored as
    a degraded evaluation and the attempt is still marked completed.
    """

    def __init__(self,
                 evaluator,
                 registry: AttemptRegistry,
                 store: SessionStore,
                 event_bus: Optional[InterviewEventBus] = None,
                 timeout: float = EVALUATION_TIMEOUT):
        self.evaluator = evaluator
        self.registry = registry
        self.store = store
        self.event_bus = event_bus
        self.timeout = timeout
        self._in_flight: Set[str] = set()

    @staticmethod
    def build_payload(session: Session, traits=()) -> Dict[str, Any]:
        return {
            "session_id": session.id,
            "candidate": asdict(session.candidate),
            "role": session.role,
            "traits": list(traits),
            "responses": [asdict(r) for r in session.responses],
            "transport_mode": session.transport_mode.value,
        }

    async def _evaluate(self, payload: Dict[str, Any]) -> EvaluationResult:
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.evaluator.evaluate, payload), self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Evaluation of {payload['session_id']} timed out after {self.timeout}s")
            return EvaluationResult.degraded_result("evaluation timed out")
        except Exception as e:
            logger.error(f"Evaluation of {payload['session_id']} failed: {e}")
            if self.event_bus:
                self.event_bus.emit(ErrorOccurredEvent(
                    payload["session_id"], time.time(), type(e).__name__, str(e), "evaluator"))
            return EvaluationResult.degraded_result(str(e))

    async def run(self, session: Session, traits=()) -> Optional[EvaluationResult]:
        """Evaluate, persist, append to results and mark the attempt completed."""
        if session.evaluation is not None or session.id in self._in_flight:
            logger.warning(f"Handoff for {session.id} already ran")
            return session.evaluation
        self._in_flight.add(session.id)
        try:
            result = await self._evaluate(self.build_payload(session, traits))
            async with self.store.lock(session.id):
                session.evaluation = result
                self.store.save(session)
        finally:
            # once stored, the evaluation itself marks the session as handled
            self._in_flight.discard(session.id)

        self.store.append_result({
            "session_id": session.id,
            "candidate": asdict(session.candidate),
            "role": session.role,
            "transport_mode": session.transport_mode.value,
            "completed_at": session.completed_at,
            "response_count": len(session.responses),
            "evaluation": result.to_dict(),
        })
        self.registry.mark_completed(session.id, result.score)

        if self.event_bus:
            self.event_bus.emit(EvaluationCompletedEvent(session.id, time.time(), result.score, result.degraded))
        logger.info(f"Handoff done for {session.id} (degraded={result.degraded})")
        return result
