import pytest

from autointerview.interview.decision_engine import FollowUpPolicy
from autointerview.interview.engine import TurnEngine
from autointerview.interview.handoff import CompletionHandoff
from autointerview.interview.models import CandidateIdentity, Session
from autointerview.interview.registry import AttemptRegistry
from autointerview.interview.schemas import TransportMode
from autointerview.interview.script import RoleTemplate, build_question_script
from autointerview.interview.services import VoicePromptCache
from autointerview.interview.store import SessionStore
from autointerview.interview.testing import MockEvaluator, MockSynthesizer, create_test_config

SESSION_ID = "session-1"
EMAIL = "ada@example.com"
ROLE = "Software Engineer"


@pytest.fixture
def config(tmp_path):
    return create_test_config(str(tmp_path))


@pytest.fixture
def registry(config):
    return AttemptRegistry(config.tracking_path)


@pytest.fixture
def store(config):
    return SessionStore(config.sessions_dir, config.results_path)


@pytest.fixture
def make_script(config):
    def make(technical=2, behavioral=1, name="Ada Lovelace", cfg=None):
        cfg = cfg or config
        template = RoleTemplate(
            role=ROLE,
            traits=["curious"],
            questions=[f"Technical question {i + 1}?" for i in range(technical)],
            behavioral_questions=[f"Behavioral question {i + 1}?" for i in range(behavioral)],
        )
        return build_question_script(
            template, name,
            opening_wait=cfg.opening_wait_seconds,
            technical_wait=cfg.technical_wait_seconds,
            behavioral_wait=cfg.behavioral_wait_seconds,
        )

    return make


@pytest.fixture
def build_engine(config, registry, store):
    """
    Factory for a registered, stored session and its engine.

    Call it inside the event loop; the engine's inbox belongs to that loop.
    """
    def build(script, transport, evaluator=None, synthesizer=None, llm_client=None, cfg=None):
        cfg = cfg or config
        session = Session(
            id=SESSION_ID,
            candidate=CandidateIdentity(name="Ada Lovelace", email=EMAIL),
            role=script.role,
            transport_mode=TransportMode.EMBEDDED_ROOM,
            join_url=f"http://localhost:3000/interview/{SESSION_ID}",
        )
        registry.register_start(EMAIL, script.role, SESSION_ID, "Ada Lovelace")
        store.save(session)
        cache = VoicePromptCache(synthesizer or MockSynthesizer(), cfg.synthesis_timeout)
        handoff = CompletionHandoff(evaluator or MockEvaluator(), registry, store, None, cfg.evaluation_timeout)
        policy = FollowUpPolicy(llm_client, cfg.followup_min_chars, cfg.enable_followups)
        return TurnEngine(session, script, transport, store, cache, handoff, cfg,
                          policy=policy, registry=registry)

    return build
