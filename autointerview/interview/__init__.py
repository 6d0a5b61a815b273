"""Interview system components.

This package contains the business logic for running scripted interviews:
attempt gating, question scripts, the turn engine, completion handoff and
session persistence. The orchestrator is imported from
autointerview.interview.orchestrator (or the package root).
"""

# Error taxonomy
from .errors import (
    InterviewError, ConfigurationError, AlreadyAttempted, TransportError,
    TransportJoinFailure, SynthesisFailure, CaptureTimeout, EvaluationFailure
)

# Data models
from .models import (
    Prompt, PromptType, CandidateIdentity, ResponseEntry, Session,
    AttemptRecord, EvaluationResult, DEGRADED_SUMMARY
)

# Enumerations and schemas
from .schemas import TurnState, TransportMode, AttemptStatus, EvaluationPayload, parse_evaluation

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics, EventType, InterviewEvent
)

__all__ = [
    # Errors
    "InterviewError", "ConfigurationError", "AlreadyAttempted", "TransportError",
    "TransportJoinFailure", "SynthesisFailure", "CaptureTimeout", "EvaluationFailure",

    # Data models
    "Prompt", "PromptType", "CandidateIdentity", "ResponseEntry", "Session",
    "AttemptRecord", "EvaluationResult", "DEGRADED_SUMMARY",

    # Schemas
    "TurnState", "TransportMode", "AttemptStatus", "EvaluationPayload", "parse_evaluation",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics", "EventType", "InterviewEvent",
]
