"""
AutoInterview: unattended, scripted voice interviews.

Runs a fixed question script per role over an embedded browser room, a
headless meeting bot or a cloud recording bot, detects when the candidate
has finished answering, and hands the transcript to an LLM evaluator.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.orchestrator import InterviewOrchestrator
from .interview.models import Session, EvaluationResult
from .interview.errors import ConfigurationError, AlreadyAttempted

__all__ = [
    "InterviewOrchestrator", "Session", "EvaluationResult",
    "ConfigurationError", "AlreadyAttempted"
]
