"""
Interview prompt templates and generation.

This module contains the spoken texts and the LLM prompts used by the
interview system, kept apart from the engine logic for easier editing.
"""
import json
from typing import Dict, Any, List


class InterviewPrompts:
    """Collection of all interview-related texts and prompts."""

    TRANSITIONS = [
        "Thank you for that response.",
        "I appreciate your answer.",
        "That's helpful to know.",
        "Thanks for sharing that.",
        "Interesting perspective.",
    ]

    FALLBACK_FOLLOWUP = "Could you elaborate on that a bit more? I'd love to hear more details."

    @staticmethod
    def opening(candidate_name: str, role: str) -> str:
        """Greeting that opens the interview and asks for an introduction."""
        first_name = candidate_name.split()[0] if candidate_name.strip() else "there"
        return (
            f"Hello {first_name}, and welcome! Thank you for joining us today for the {role} position. "
            "I'm your AI interviewer, and I'll be asking you a few questions about your experience and skills. "
            "To start, could you please introduce yourself and tell me a bit about your background?"
        )

    @staticmethod
    def closing() -> str:
        return (
            "Thank you again for interviewing with us. We'll review your responses and get back to you "
            "within the next few days. Have a great day!"
        )

    @classmethod
    def transition(cls, index: int) -> str:
        """Acknowledgment spoken between prompts, rotating through the fixed list."""
        return cls.TRANSITIONS[index % len(cls.TRANSITIONS)]

    @staticmethod
    def followup_prompt(role: str, question: str, answer: str) -> str:
        """Prompt asking the LLM for one clarifying follow-up question."""
        return f"""
You are interviewing a candidate for the role of {role}.

You asked: {json.dumps(question, ensure_ascii=False)}
The candidate answered briefly: {json.dumps(answer, ensure_ascii=False)}

Write ONE short, friendly follow-up question that invites the candidate to expand
on their answer with a concrete example. Do not repeat the original question.

Respond ONLY with the follow-up question - no explanations, no quotes.
        """.strip()

    @staticmethod
    def evaluation_prompt(role: str, traits: List[str], responses: List[Dict[str, Any]]) -> str:
        """Prompt asking the LLM to score a finished interview."""
        trait_text = ", ".join(traits) if traits else "not specified"
        return f"""
Analyze this interview transcript for the role of {role}.

Key traits we're looking for: {trait_text}

Interview responses:
{json.dumps(responses, ensure_ascii=False, indent=2)}

Return a JSON object with exactly these fields:
{{
    "fit_score": <number 1-10>,
    "summary": "<2-3 sentence summary of the candidate>",
    "strengths": ["<strength demonstrated>", ...],
    "concerns": ["<red flag or concern>", ...]
}}
        """.strip()
