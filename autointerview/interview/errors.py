"""
Exception types for the interview orchestrator.

Only ConfigurationError and AlreadyAttempted reach the caller of
start_interview. Everything raised after a session exists is either
recovered inside the engine or lands the session in a terminal state.
"""


class InterviewError(Exception):
    """Base class for orchestrator errors."""


class ConfigurationError(InterviewError):
    """Required credentials or transport setup are missing or invalid."""

    def __init__(self, message: str, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])


class AlreadyAttempted(InterviewError):
    """The candidate already has an attempt on record for this role."""

    def __init__(self, email: str, role: str, status: str, message: str = ""):
        super().__init__(message or f"{email} has already attempted {role} (status: {status})")
        self.email = email
        self.role = role
        self.status = status
        self.message = message


class TransportError(InterviewError):
    """A transport call failed, timed out, or the candidate channel dropped."""


class TransportJoinFailure(TransportError):
    """The transport could not join or open the interview room."""


class SynthesisFailure(InterviewError):
    """Speech synthesis failed for a prompt."""


class CaptureTimeout(InterviewError):
    """No speech arrived before the response-wait budget elapsed."""


class EvaluationFailure(InterviewError):
    """The evaluator could not score the interview."""
