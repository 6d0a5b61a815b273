"""
Follow-up decisions for short answers.
"""
import asyncio
import logging
from typing import Optional, TYPE_CHECKING

from .models import Prompt, PromptType
from .prompts import InterviewPrompts
from ..config import FOLLOWUP_MIN_CHARS, LLM_TIMEOUT

if TYPE_CHECKING:
    from ..infrastructure.llm import VertexRestClient

logger = logging.getLogger("decision_engine")

FOLLOWUP_PROMPT_TYPES = (PromptType.TECHNICAL, PromptType.BEHAVIORAL)


class FollowUpPolicy:
    """
    Decides whether an answer is too thin and words the follow-up.

    The engine asks at most one follow-up per prompt; this class only
    judges a single answer.
    """

    def __init__(self,
                 llm_client: Optional['VertexRestClient'] = None,
                 min_chars: int = FOLLOWUP_MIN_CHARS,
                 enabled: bool = True,
                 timeout: float = LLM_TIMEOUT):
        self.llm_client = llm_client
        self.min_chars = min_chars
        self.enabled = enabled
        self.timeout = timeout

    def is_thin(self, prompt: Prompt, answer: str) -> bool:
        """Non-empty but shorter than min_chars, on a technical or behavioral prompt."""
        if not self.enabled or prompt.type not in FOLLOWUP_PROMPT_TYPES:
            return False
        answer = answer.strip()
        return 0 < len(answer) < self.min_chars

    async def followup_text(self, role: str, prompt: Prompt, answer: str) -> str:
        """LLM-worded follow-up, or the fixed fallback when the LLM is unavailable."""
        if self.llm_client is None:
            return InterviewPrompts.FALLBACK_FOLLOWUP

        request = InterviewPrompts.followup_prompt(role, prompt.text, answer)
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self.llm_client.generate_content, request, 0.7, 128),
                self.timeout,
            )
        except Exception as e:
            logger.warning(f"Failed to generate follow-up: {e}, using fallback")
            return InterviewPrompts.FALLBACK_FOLLOWUP

        text = text.strip().strip('"').strip("'")
        if not text:
            return InterviewPrompts.FALLBACK_FOLLOWUP
        logger.info(f"Generated follow-up: {text}")
        return text
