"""
Enumerations and validated schemas for the interview system.
"""
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger("schemas")


class TurnState(str, Enum):
    """States of the turn engine."""
    CREATED = "created"
    WAITING_FOR_CANDIDATE = "waiting_for_candidate"
    ASKING = "asking"
    AWAITING_RESPONSE = "awaiting_response"
    FOLLOWUP = "followup"
    COMPLETING = "completing"
    COMPLETED = "completed"
    ERROR = "error"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (TurnState.COMPLETED, TurnState.ERROR, TurnState.ABANDONED)


class TransportMode(str, Enum):
    """How the interviewer reaches the candidate."""
    EMBEDDED_ROOM = "embedded-room"
    HEADLESS_BOT = "headless-bot"
    CLOUD_BOT = "cloud-bot"


class AttemptStatus(str, Enum):
    """Lifecycle of an attempt record. Order is the allowed forward order."""
    NOT_STARTED = "not_started"
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def rank(self) -> int:
        return _ATTEMPT_RANK[self]


_ATTEMPT_RANK = {
    AttemptStatus.NOT_STARTED: 0,
    AttemptStatus.STARTED: 1,
    AttemptStatus.IN_PROGRESS: 2,
    AttemptStatus.COMPLETED: 4,
    AttemptStatus.ABANDONED: 3,
}


class EvaluationPayload(BaseModel):
    """Shape the evaluator LLM is asked to return."""
    fit_score: Optional[float] = None
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)

    @field_validator("fit_score")
    @classmethod
    def clamp_score(cls, v):
        if v is None:
            return v
        return max(1.0, min(10.0, float(v)))

    @field_validator("strengths", "concerns", mode="before")
    @classmethod
    def coerce_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return [str(item) for item in v]


def parse_evaluation(raw: Any) -> EvaluationPayload:
    """
    Parse an evaluator response into a validated payload.

    Accepts a dict or a JSON string. Some models answer with
    red_flags instead of concerns; both are accepted.

    Raises:
        ValueError: If the response cannot be parsed or validated
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Evaluator returned invalid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"Evaluator returned {type(raw).__name__}, expected object")

    data: Dict[str, Any] = dict(raw)
    if "concerns" not in data and "red_flags" in data:
        data["concerns"] = data.pop("red_flags")
    if "fit_score" not in data and "score" in data:
        data["fit_score"] = data.pop("score")

    try:
        payload = EvaluationPayload.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Evaluator response failed validation: {e}") from e

    if not payload.summary:
        raise ValueError("Evaluator response has no summary")
    return payload
