"""
Data models for the interview system.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, List, Any

from .schemas import TurnState, TransportMode, AttemptStatus

DEGRADED_SUMMARY = "automated analysis unavailable, manual review recommended"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: str) -> datetime:
    """Parse a stored timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def age_hours(value: Optional[str], now: Optional[datetime] = None) -> float:
    if not value:
        return 0.0
    now = now or datetime.now(timezone.utc)
    return (now - parse_iso(value)).total_seconds() / 3600.0


class PromptType(str, Enum):
    """Kinds of scripted prompts."""
    OPENING = "opening"
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    CLOSING = "closing"


@dataclass(frozen=True)
class Prompt:
    """One scripted interview question or statement."""
    type: PromptType
    text: str
    expects_response: bool = True
    response_wait_budget: float = 30.0


@dataclass(frozen=True)
class CandidateIdentity:
    name: str
    email: str


@dataclass
class ResponseEntry:
    """The candidate's answer to one prompt, plus at most one follow-up."""
    prompt_text: str
    prompt_type: str
    started_at: str
    answer_text: str = ""
    follow_up_prompt: Optional[str] = None
    follow_up_text: Optional[str] = None
    ended_at: Optional[str] = None


@dataclass
class EvaluationResult:
    """Score and summary produced by the evaluator."""
    score: Optional[float]
    summary: str
    strengths: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)
    degraded: bool = False
    evaluated_at: str = field(default_factory=now_iso)

    @classmethod
    def degraded_result(cls, reason: str = "") -> 'EvaluationResult':
        concerns = [reason] if reason else []
        return cls(score=None, summary=DEGRADED_SUMMARY, concerns=concerns, degraded=True)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvaluationResult':
        return cls(**data)


@dataclass
class Session:
    """One interview attempt."""
    id: str
    candidate: CandidateIdentity
    role: str
    transport_mode: TransportMode
    state: TurnState = TurnState.CREATED
    question_index: int = -1
    responses: List[ResponseEntry] = field(default_factory=list)
    started_at: str = field(default_factory=now_iso)
    completed_at: Optional[str] = None
    updated_at: str = field(default_factory=now_iso)
    join_url: Optional[str] = None
    error: Optional[str] = None
    evaluation: Optional[EvaluationResult] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def mark_terminal(self, state: TurnState, error: Optional[str] = None) -> None:
        """Enter a terminal state; completed_at is only ever set once."""
        self.state = state
        if error:
            self.error = error
        if self.completed_at is None:
            self.completed_at = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "candidate": asdict(self.candidate),
            "role": self.role,
            "transport_mode": self.transport_mode.value,
            "state": self.state.value,
            "question_index": self.question_index,
            "responses": [asdict(r) for r in self.responses],
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "updated_at": self.updated_at,
            "join_url": self.join_url,
            "error": self.error,
            "evaluation": self.evaluation.to_dict() if self.evaluation else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Session':
        evaluation = data.get("evaluation")
        return cls(
            id=data["id"],
            candidate=CandidateIdentity(**data["candidate"]),
            role=data["role"],
            transport_mode=TransportMode(data["transport_mode"]),
            state=TurnState(data["state"]),
            question_index=data.get("question_index", -1),
            responses=[ResponseEntry(**r) for r in data.get("responses", [])],
            started_at=data["started_at"],
            completed_at=data.get("completed_at"),
            updated_at=data.get("updated_at", data["started_at"]),
            join_url=data.get("join_url"),
            error=data.get("error"),
            evaluation=EvaluationResult.from_dict(evaluation) if evaluation else None,
        )


@dataclass
class AttemptRecord:
    """Durable record of one (email, role) attempt."""
    email: str
    role: str
    status: AttemptStatus
    session_id: Optional[str] = None
    candidate_name: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttemptRecord':
        data = dict(data)
        data["status"] = AttemptStatus(data["status"])
        return cls(**data)
