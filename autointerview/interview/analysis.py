"""
LLM evaluation of a finished interview.
"""
import logging
from typing import Any, Dict

from .errors import EvaluationFailure
from .models import EvaluationResult
from .prompts import InterviewPrompts
from .schemas import parse_evaluation
from ..config import NO_RESPONSE_SENTINEL

logger = logging.getLogger("interview_analysis")


class LLMEvaluator:
    """Scores an interview with Vertex AI Gemini."""

    def __init__(self, llm_client):
        self.llm_client = llm_client

    def evaluate(self, payload: Dict[str, Any]) -> EvaluationResult:
        """
        Evaluate {session_id, candidate, role, traits, responses, transport_mode}.

        Raises:
            EvaluationFailure: If nothing was answered or the LLM result is unusable
        """
        responses = payload.get("responses", [])
        answered = [r for r in responses
                    if r.get("answer_text") and r["answer_text"] != NO_RESPONSE_SENTINEL]
        if not answered:
            raise EvaluationFailure("No answers were captured")

        role = payload.get("role", "")
        transcript = [
            {
                "question": r["prompt_text"],
                "type": r["prompt_type"],
                "answer": r["answer_text"],
                "follow_up_question": r.get("follow_up_prompt"),
                "follow_up_answer": r.get("follow_up_text"),
            }
            for r in responses
        ]
        prompt = InterviewPrompts.evaluation_prompt(role, payload.get("traits", []), transcript)

        try:
            raw = self.llm_client.generate_json(prompt)
            parsed = parse_evaluation(raw)
        except Exception as e:
            raise EvaluationFailure(f"Evaluation failed: {e}") from e

        logger.info(f"Evaluated session {payload.get('session_id')}: score={parsed.fit_score}")
        return EvaluationResult(
            score=parsed.fit_score,
            summary=parsed.summary,
            strengths=parsed.strengths,
            concerns=parsed.concerns,
        )
