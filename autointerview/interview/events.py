"""
Event-driven notifications for the interview system.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    SESSION_CREATED = "session_created"
    CANDIDATE_JOINED = "candidate_joined"
    PROMPT_ASKED = "prompt_asked"
    RESPONSE_CAPTURED = "response_captured"
    FOLLOWUP_ASKED = "followup_asked"
    SESSION_COMPLETED = "session_completed"
    SESSION_ABANDONED = "session_abandoned"
    EVALUATION_COMPLETED = "evaluation_completed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionCreatedEvent(InterviewEvent):
    """Event fired when a session is registered and its room provisioned."""
    def __init__(self, session_id: str, timestamp: float, role: str, transport_mode: str, prompt_count: int):
        super().__init__(
            event_type=EventType.SESSION_CREATED,
            session_id=session_id,
            timestamp=timestamp,
            data={"role": role, "transport_mode": transport_mode, "prompt_count": prompt_count}
        )


@dataclass
class CandidateJoinedEvent(InterviewEvent):
    """Event fired when the transport reports the candidate is present."""
    def __init__(self, session_id: str, timestamp: float, participant: Optional[str]):
        super().__init__(
            event_type=EventType.CANDIDATE_JOINED,
            session_id=session_id,
            timestamp=timestamp,
            data={"participant": participant}
        )


@dataclass
class PromptAskedEvent(InterviewEvent):
    """Event fired when a prompt has been sent to the candidate."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 prompt_type: str, text: str, has_audio: bool):
        super().__init__(
            event_type=EventType.PROMPT_ASKED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "prompt_type": prompt_type,
                "text": text,
                "has_audio": has_audio
            }
        )


@dataclass
class ResponseCapturedEvent(InterviewEvent):
    """Event fired when a response or follow-up answer is finalized."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 text: str, timed_out: bool, is_followup: bool = False):
        super().__init__(
            event_type=EventType.RESPONSE_CAPTURED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "text": text,
                "timed_out": timed_out,
                "is_followup": is_followup
            }
        )


@dataclass
class FollowUpAskedEvent(InterviewEvent):
    """Event fired when a clarifying follow-up is asked."""
    def __init__(self, session_id: str, timestamp: float, question_index: int, text: str):
        super().__init__(
            event_type=EventType.FOLLOWUP_ASKED,
            session_id=session_id,
            timestamp=timestamp,
            data={"question_index": question_index, "text": text}
        )


@dataclass
class SessionCompletedEvent(InterviewEvent):
    """Event fired when a session reaches COMPLETED."""
    def __init__(self, session_id: str, timestamp: float, response_count: int, ended_early: bool):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={"response_count": response_count, "ended_early": ended_early}
        )


@dataclass
class SessionAbandonedEvent(InterviewEvent):
    """Event fired when the inactivity reaper abandons a session."""
    def __init__(self, session_id: str, timestamp: float, last_state: str):
        super().__init__(
            event_type=EventType.SESSION_ABANDONED,
            session_id=session_id,
            timestamp=timestamp,
            data={"last_state": last_state}
        )


@dataclass
class EvaluationCompletedEvent(InterviewEvent):
    """Event fired after the completion handoff stored a result."""
    def __init__(self, session_id: str, timestamp: float, score: Optional[float], degraded: bool):
        super().__init__(
            event_type=EventType.EVALUATION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={"score": score, "degraded": degraded}
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and does not stop the others.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.info(f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects counters from interview events."""

    _COUNTERS = {
        EventType.SESSION_CREATED: "sessions_created",
        EventType.CANDIDATE_JOINED: "candidates_joined",
        EventType.PROMPT_ASKED: "prompts_asked",
        EventType.RESPONSE_CAPTURED: "responses_captured",
        EventType.FOLLOWUP_ASKED: "followups_asked",
        EventType.SESSION_COMPLETED: "sessions_completed",
        EventType.SESSION_ABANDONED: "sessions_abandoned",
        EventType.EVALUATION_COMPLETED: "evaluations_completed",
        EventType.ERROR_OCCURRED: "errors_occurred",
    }

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        name = self._COUNTERS.get(event.event_type)
        if name:
            self.counts[name] += 1
        if event.event_type == EventType.RESPONSE_CAPTURED and event.data.get("timed_out"):
            self.counts["empty_responses"] += 1
        if event.event_type == EventType.EVALUATION_COMPLETED and event.data.get("degraded"):
            self.counts["degraded_evaluations"] += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return dict(self.counts)

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.counts: Dict[str, int] = {name: 0 for name in self._COUNTERS.values()}
        self.counts["empty_responses"] = 0
        self.counts["degraded_evaluations"] = 0
