"""
Testing infrastructure with mock services for the interview system.
"""
import os
import json
import asyncio
import time
import hashlib
from typing import Any, Callable, Dict, List, Optional, Tuple
from unittest.mock import Mock

from .analysis import LLMEvaluator
from .models import EvaluationResult
from .schemas import TransportMode
from ..config import Config
from ..infrastructure.audio.speech.tts import AudioHandle, SpeechSynthesizer
from ..infrastructure.llm import VertexRestClient
from ..infrastructure.transport.base import (
    Transport, CandidateJoined, SpeechFragment, TransportDisconnected
)

Responder = Callable[[str], Optional[List[str]]]


class FakeTransport(Transport):
    """
    Scripted transport for tests.

    When a text matching a reply is sent, the reply fragments are
    published one by one, fragment_gap seconds apart.
    """

    mode = TransportMode.EMBEDDED_ROOM

    def __init__(self,
                 replies: Optional[Dict[str, List[str]]] = None,
                 responder: Optional[Responder] = None,
                 auto_join: bool = True,
                 fragment_gap: float = 0.01,
                 join_error: Optional[Exception] = None,
                 leave_error: Optional[Exception] = None,
                 send_delay: float = 0.0,
                 playback_seconds: Optional[float] = None):
        super().__init__()
        self.replies = replies or {}
        self.responder = responder
        self.auto_join = auto_join
        self.fragment_gap = fragment_gap
        self.join_error = join_error
        self.leave_error = leave_error
        self.send_delay = send_delay
        self.playback_seconds = playback_seconds
        self.joined_url: Optional[str] = None
        self.left = False
        self.sent_texts: List[str] = []
        self.sent_audio: List[AudioHandle] = []
        # (what, monotonic time) for every text sent and the final leave
        self.timeline: List[Tuple[str, float]] = []

    async def join(self, join_url: str) -> None:
        if self.join_error is not None:
            raise self.join_error
        self.joined_url = join_url
        if self.auto_join:
            asyncio.get_running_loop().call_soon(self._publish, CandidateJoined(participant="candidate"))

    async def leave(self) -> None:
        if self.leave_error is not None:
            raise self.leave_error
        self.left = True
        self.timeline.append(("leave", time.monotonic()))

    async def send_audio(self, handle: AudioHandle) -> Optional[float]:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        self.sent_audio.append(handle)
        return self.playback_seconds

    async def send_text(self, text: str) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        self.sent_texts.append(text)
        self.timeline.append((text, time.monotonic()))
        fragments = self.responder(text) if self.responder else self.replies.get(text)
        if fragments:
            self.speak(fragments)

    def speak(self, fragments: List[str], speaker: Optional[str] = "candidate", start_delay: float = 0.0) -> None:
        """Publish final fragments on the running loop, spaced by fragment_gap."""
        loop = asyncio.get_running_loop()
        for i, text in enumerate(fragments):
            loop.call_later(start_delay + self.fragment_gap * (i + 1), self._publish,
                            SpeechFragment(text=text, is_final_segment=True, speaker_label=speaker))

    def candidate_joins(self) -> None:
        self._publish(CandidateJoined(participant="candidate"))

    def disconnect(self, reason: str = "test disconnect") -> None:
        self._publish(TransportDisconnected(reason=reason))


class MockSynthesizer(SpeechSynthesizer):
    """Mock speech synthesis; never touches the network or the disk."""

    name = "mock"

    def __init__(self, fail_texts: Optional[List[str]] = None, fail_all: bool = False, delay: float = 0.0):
        # Don't call super().__init__ to avoid creating an output directory
        self.fail_texts = set(fail_texts or [])
        self.fail_all = fail_all
        self.delay = delay
        self.calls: List[str] = []

    def synthesize(self, text: str) -> Optional[AudioHandle]:
        self.calls.append(text)
        if self.delay:
            time.sleep(self.delay)
        if self.fail_all or text in self.fail_texts:
            return None
        digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:12]
        return AudioHandle(path=f"/tmp/mock_audio_{digest}.mp3", text=text)


class MockEvaluator(LLMEvaluator):
    """Mock evaluator returning a fixed result or raising."""

    def __init__(self, result: Optional[EvaluationResult] = None, error: Optional[Exception] = None):
        # Don't call super().__init__ to avoid requiring an LLM client
        self.result = result or EvaluationResult(score=7.0, summary="Solid candidate.", strengths=["clear"])
        self.error = error
        self.payloads: List[Dict[str, Any]] = []

    def evaluate(self, payload: Dict[str, Any]) -> EvaluationResult:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.result


class MockLLMClient(VertexRestClient):
    """Mock LLM client for testing."""

    def __init__(self, text: str = "Can you give a concrete example?",
                 json_response: Optional[Dict[str, Any]] = None,
                 error: Optional[Exception] = None):
        # Don't call super().__init__ to avoid credentials
        self.text = text
        self.json_response = json_response or {
            "fit_score": 8, "summary": "Strong answers.", "strengths": ["depth"], "concerns": []
        }
        self.error = error
        self.prompts: List[str] = []

    def generate_content(self, prompt_text: str, temperature: float = 0.0,
                         max_output_tokens: int = 512, stop_sequences=None) -> str:
        self.prompts.append(prompt_text)
        if self.error is not None:
            raise self.error
        return self.text

    def generate_json(self, prompt: str, max_output_tokens: int = 512) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.json_response


def create_test_config(data_dir: str, **overrides) -> Config:
    """Config with a fake project and timings short enough for tests."""
    values = dict(
        google_cloud_project="test-project",
        data_dir=data_dir,
        roles_dir=os.path.join(data_dir, "roles"),
        audio_cache_dir=os.path.join(data_dir, "audio"),
        quiet_period_seconds=0.05,
        opening_wait_seconds=0.5,
        technical_wait_seconds=0.5,
        behavioral_wait_seconds=0.5,
        transition_delay_seconds=0.0,
        closing_grace_seconds=0.0,
        transport_call_timeout=1.0,
        synthesis_timeout=1.0,
        evaluation_timeout=1.0,
        join_timeout=1.0,
    )
    values.update(overrides)
    return Config(**values)


def create_test_role(roles_dir: str, role: str, questions: List[str], behavioral: List[str]) -> str:
    """Write roles/<slug>.json and return its path."""
    os.makedirs(roles_dir, exist_ok=True)
    path = os.path.join(roles_dir, role.lower().replace(" ", "_") + ".json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"role": role, "traits": ["curious"], "questions": questions,
                   "behavioral_questions": behavioral}, f, indent=2)
    return path


def long_answer(topic: str = "the project") -> str:
    """An answer long enough not to trigger a follow-up."""
    return f"I worked on {topic} for two years and led the redesign of its core pipeline end to end."


def create_mock_provisioner(join_url: str = "https://meet.google.com/abc-defg-hij") -> Mock:
    provisioner = Mock()
    provisioner.create_room.return_value = Mock(join_url=join_url, simulated=True)
    return provisioner


def create_test_orchestrator(config: Config, transport: Optional[Transport] = None, **overrides):
    """
    Orchestrator wired to mocks. Every session gets the same transport.

    Override any collaborator by keyword (synthesizer, evaluator,
    llm_client, provisioner, transport_factory).
    """
    from .orchestrator import InterviewOrchestrator

    transport = transport or FakeTransport()
    collaborators = dict(
        synthesizer=MockSynthesizer(),
        evaluator=MockEvaluator(),
        llm_client=MockLLMClient(),
        provisioner=create_mock_provisioner(),
        transport_factory=lambda mode, cfg: transport,
    )
    collaborators.update(overrides)
    return InterviewOrchestrator(config, **collaborators)
