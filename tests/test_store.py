import asyncio

import pytest

from autointerview.interview.models import (
    CandidateIdentity, EvaluationResult, ResponseEntry, Session, age_hours, now_iso
)
from autointerview.interview.schemas import TransportMode, TurnState
from autointerview.infrastructure.data import JsonDirectoryStore


def make_session(session_id="s1"):
    return Session(
        id=session_id,
        candidate=CandidateIdentity(name="Ada Lovelace", email="ada@example.com"),
        role="Software Engineer",
        transport_mode=TransportMode.CLOUD_BOT,
        join_url="https://meet.google.com/abc-defg-hij",
    )


def test_session_survives_save_and_load(store):
    session = make_session()
    session.state = TurnState.AWAITING_RESPONSE
    session.question_index = 1
    session.responses.append(ResponseEntry("Tell me about yourself.", "opening", now_iso(),
                                           answer_text="I write software.", ended_at=now_iso()))
    session.evaluation = EvaluationResult(score=7.5, summary="Good", strengths=["clear"])
    store.save(session)

    loaded = store.load("s1")

    assert loaded.state == TurnState.AWAITING_RESPONSE
    assert loaded.transport_mode == TransportMode.CLOUD_BOT
    assert loaded.candidate == session.candidate
    assert loaded.responses == session.responses
    assert loaded.evaluation.score == 7.5


def test_load_missing_session(store):
    assert store.load("nope") is None


def test_list_sessions(store):
    store.save(make_session("a"))
    store.save(make_session("b"))
    assert sorted(s.id for s in store.list_sessions()) == ["a", "b"]


def test_append_result(store):
    store.append_result({"session_id": "a"})
    store.append_result({"session_id": "b"})
    assert [r["session_id"] for r in store.results.read()] == ["a", "b"]


def test_locks_are_per_session(store):
    async def scenario():
        first = store.lock("a")
        assert store.lock("a") is first
        assert store.lock("b") is not first
        async with first:
            store.release("a")
            assert store.lock("a") is first
        store.release("a")
        return store.lock("a") is first

    assert asyncio.run(scenario()) is False


def test_mark_terminal_sets_completed_at_once():
    session = make_session()
    session.mark_terminal(TurnState.COMPLETED)
    first = session.completed_at
    session.mark_terminal(TurnState.ERROR, error="late failure")
    assert session.completed_at == first
    assert session.error == "late failure"


def test_age_hours_treats_naive_timestamps_as_utc():
    assert age_hours(None) == 0.0
    assert 0 <= age_hours(now_iso()) < 0.01
    assert age_hours("2020-01-01T00:00:00") > 24


def test_directory_store_rejects_path_keys(tmp_path):
    records = JsonDirectoryStore(str(tmp_path))
    with pytest.raises(ValueError):
        records.save("../escape", {})
