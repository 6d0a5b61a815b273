"""
Service classes for the interview system.
"""
import asyncio
import logging
from typing import Dict, Optional

from .errors import SynthesisFailure
from .script import QuestionScript
from .prompts import InterviewPrompts
from ..config import SYNTHESIS_TIMEOUT
from ..infrastructure.audio.speech.tts import AudioHandle, SpeechSynthesizer

logger = logging.getLogger("voice_cache")


class VoicePromptCache:
    """
    Maps prompt text to synthesized audio, shared by all sessions.

    A failed or timed-out synthesis resolves to None and is not cached, so
    a later session may try again. Two sessions resolving the same new text
    at once may both synthesize it; the result is the same either way.
    """

    def __init__(self, synthesizer: SpeechSynthesizer, timeout: float = SYNTHESIS_TIMEOUT):
        self.synthesizer = synthesizer
        self.timeout = timeout
        self._handles: Dict[str, AudioHandle] = {}
        self.hits = 0
        self.misses = 0
        self.failures = 0

    def get(self, text: str) -> Optional[AudioHandle]:
        return self._handles.get(text)

    async def resolve(self, text: str) -> Optional[AudioHandle]:
        """Audio for text, synthesizing on first use. Never raises for synthesis problems."""
        handle = self._handles.get(text)
        if handle is not None:
            self.hits += 1
            return handle

        self.misses += 1
        try:
            handle = await self._synthesize(text)
        except SynthesisFailure as e:
            logger.warning(f"{e}: {text[:60]!r}")
            self.failures += 1
            return None

        self._handles[text] = handle
        return handle

    async def _synthesize(self, text: str) -> AudioHandle:
        try:
            handle = await asyncio.wait_for(asyncio.to_thread(self.synthesizer.synthesize, text), self.timeout)
        except asyncio.TimeoutError:
            raise SynthesisFailure(f"Synthesis timed out after {self.timeout}s")
        except Exception as e:
            raise SynthesisFailure(f"Synthesis failed: {e}") from e
        if handle is None:
            raise SynthesisFailure(f"{self.synthesizer.name} returned no audio")
        return handle

    async def prewarm(self, script: QuestionScript) -> int:
        """Synthesize every prompt and transition phrase. Returns how many are ready."""
        texts = [p.text for p in script] + list(InterviewPrompts.TRANSITIONS)
        results = await asyncio.gather(*(self.resolve(t) for t in texts))
        ready = sum(1 for r in results if r is not None)
        logger.info(f"Prewarmed {ready}/{len(texts)} prompts for {script.role}")
        return ready
