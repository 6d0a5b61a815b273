import time
import asyncio
from unittest.mock import Mock

import pytest

from autointerview.config import NO_RESPONSE_SENTINEL
from autointerview.interview.analysis import LLMEvaluator
from autointerview.interview.errors import EvaluationFailure
from autointerview.interview.events import EventType, InterviewEventBus
from autointerview.interview.handoff import CompletionHandoff
from autointerview.interview.models import CandidateIdentity, ResponseEntry, Session, now_iso
from autointerview.interview.schemas import AttemptStatus, TransportMode, TurnState, parse_evaluation
from autointerview.interview.testing import MockEvaluator, MockLLMClient


def answered_payload(answer="I designed the billing service."):
    return {
        "session_id": "s1",
        "candidate": {"name": "Ada", "email": "ada@example.com"},
        "role": "Software Engineer",
        "traits": ["analytical"],
        "responses": [{"prompt_text": "Tell me about a system.", "prompt_type": "technical",
                       "answer_text": answer, "follow_up_prompt": None, "follow_up_text": None}],
        "transport_mode": "embedded-room",
    }


class TestParseEvaluation:

    def test_valid_payload(self):
        parsed = parse_evaluation({"fit_score": 7, "summary": "Good", "strengths": ["clear"], "concerns": []})
        assert parsed.fit_score == 7.0
        assert parsed.strengths == ["clear"]

    def test_score_is_clamped(self):
        assert parse_evaluation({"fit_score": 14, "summary": "x"}).fit_score == 10.0
        assert parse_evaluation({"fit_score": -2, "summary": "x"}).fit_score == 1.0

    def test_alternate_field_names(self):
        parsed = parse_evaluation('{"score": 5, "summary": "Mixed", "red_flags": "vague answers"}')
        assert parsed.fit_score == 5.0
        assert parsed.concerns == ["vague answers"]

    @pytest.mark.parametrize("raw", ["not json", ["a list"], {"fit_score": 5}, {"fit_score": "high", "summary": "x"}])
    def test_invalid_payloads(self, raw):
        with pytest.raises(ValueError):
            parse_evaluation(raw)


class TestLLMEvaluator:

    def test_scores_answers(self):
        llm = MockLLMClient()
        result = LLMEvaluator(llm).evaluate(answered_payload())

        assert result.score == 8.0
        assert result.summary == "Strong answers."
        assert not result.degraded
        assert "I designed the billing service." in llm.prompts[0]
        assert "analytical" in llm.prompts[0]

    def test_no_answers_is_a_failure(self):
        llm = MockLLMClient()
        with pytest.raises(EvaluationFailure):
            LLMEvaluator(llm).evaluate(answered_payload(NO_RESPONSE_SENTINEL))
        assert llm.prompts == []

    def test_llm_error_is_a_failure(self):
        with pytest.raises(EvaluationFailure):
            LLMEvaluator(MockLLMClient(error=RuntimeError("quota"))).evaluate(answered_payload())

    def test_unusable_response_is_a_failure(self):
        with pytest.raises(EvaluationFailure):
            LLMEvaluator(MockLLMClient(json_response={"fit_score": 3})).evaluate(answered_payload())


def completed_session():
    session = Session(
        id="s1",
        candidate=CandidateIdentity(name="Ada", email="ada@example.com"),
        role="Software Engineer",
        transport_mode=TransportMode.EMBEDDED_ROOM,
    )
    session.responses.append(ResponseEntry("Tell me about a system.", "technical", now_iso(),
                                           answer_text="I designed the billing service.", ended_at=now_iso()))
    session.mark_terminal(TurnState.COMPLETED)
    return session


class TestCompletionHandoff:

    def test_build_payload(self):
        payload = CompletionHandoff.build_payload(completed_session(), ("analytical",))
        assert payload["session_id"] == "s1"
        assert payload["traits"] == ["analytical"]
        assert payload["candidate"]["email"] == "ada@example.com"
        assert payload["responses"][0]["answer_text"] == "I designed the billing service."
        assert payload["transport_mode"] == "embedded-room"

    def test_runs_once(self, registry, store):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        evaluator = MockEvaluator()
        bus = InterviewEventBus()
        events = []
        bus.subscribe(EventType.EVALUATION_COMPLETED, events.append)
        handoff = CompletionHandoff(evaluator, registry, store, bus)
        session = completed_session()

        async def scenario():
            first = await handoff.run(session)
            second = await handoff.run(session)
            return first, second

        first, second = asyncio.run(scenario())

        assert first is second
        assert len(evaluator.payloads) == 1
        assert len(events) == 1
        assert len(store.results.read()) == 1
        assert registry.get("ada@example.com", "Software Engineer").status == AttemptStatus.COMPLETED

    def test_concurrent_runs_evaluate_once(self, registry, store):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        evaluator = MockEvaluator()

        def slow_evaluate(payload):
            time.sleep(0.1)
            return evaluator.evaluate(payload)

        handoff = CompletionHandoff(Mock(evaluate=slow_evaluate), registry, store)
        session = completed_session()

        async def scenario():
            return await asyncio.gather(handoff.run(session), handoff.run(session))

        first, second = asyncio.run(scenario())

        assert first is not None
        assert second is None
        assert len(evaluator.payloads) == 1
        assert len(store.results.read()) == 1
        # nothing is kept per session once the evaluation is stored
        assert handoff._in_flight == set()

    def test_evaluation_timeout_degrades(self, registry, store):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        evaluator = Mock()
        evaluator.evaluate.side_effect = lambda payload: time.sleep(0.3)
        handoff = CompletionHandoff(evaluator, registry, store, timeout=0.05)

        result = asyncio.run(handoff.run(completed_session()))

        assert result.degraded
        assert result.concerns == ["evaluation timed out"]
        assert registry.get("ada@example.com", "Software Engineer").status == AttemptStatus.COMPLETED

    def test_evaluator_error_emits_error_event(self, registry, store):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        bus = InterviewEventBus()
        errors = []
        bus.subscribe(EventType.ERROR_OCCURRED, errors.append)
        handoff = CompletionHandoff(MockEvaluator(error=EvaluationFailure("No answers were captured")),
                                    registry, store, bus)

        result = asyncio.run(handoff.run(completed_session()))

        assert result.degraded
        assert errors[0].data["error_type"] == "EvaluationFailure"
        assert store.load("s1").evaluation.degraded
