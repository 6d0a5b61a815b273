from datetime import datetime, timedelta, timezone

import pytest

from autointerview.interview.errors import AlreadyAttempted
from autointerview.interview.registry import AttemptRegistry, STATUS_MESSAGES, candidate_key
from autointerview.interview.schemas import AttemptStatus


def age_record(registry, email, role, hours):
    started = (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()

    def mutate(data):
        data["candidates"][candidate_key(email, role)]["started_at"] = started

    registry.store.update(mutate)


class TestGate:

    def test_new_candidate_can_start(self, registry):
        check = registry.can_start("ada@example.com", "Software Engineer")
        assert check.allowed
        assert check.status == AttemptStatus.NOT_STARTED

    def test_register_start_blocks_second_attempt(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1", "Ada")

        check = registry.can_start("ada@example.com", "Software Engineer")
        assert not check.allowed
        assert check.status == AttemptStatus.STARTED

        with pytest.raises(AlreadyAttempted) as exc:
            registry.register_start("ada@example.com", "Software Engineer", "s2", "Ada")
        assert exc.value.status == "started"
        assert registry.get_by_session("s2") is None

    def test_key_ignores_case_and_whitespace(self, registry):
        registry.register_start(" Ada@Example.com ", "Software Engineer", "s1")
        assert not registry.can_start("ada@example.com", "software engineer").allowed

    def test_other_role_is_a_separate_attempt(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        assert registry.can_start("ada@example.com", "Data Analyst").allowed

    def test_completed_attempt_message(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        registry.mark_completed("s1", 8.0)

        check = registry.can_start("ada@example.com", "Software Engineer")
        assert check.reason == STATUS_MESSAGES[AttemptStatus.COMPLETED]

    def test_records_survive_restart(self, registry, config):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        reopened = AttemptRegistry(config.tracking_path)
        assert not reopened.can_start("ada@example.com", "Software Engineer").allowed


class TestTransitions:

    def test_forward_progression(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        assert registry.mark_in_progress("s1").status == AttemptStatus.IN_PROGRESS

        record = registry.mark_completed("s1", 6.5)
        assert record.status == AttemptStatus.COMPLETED
        assert record.score == 6.5
        assert record.completed_at is not None

    def test_completed_never_regresses(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        registry.mark_completed("s1", 9.0)

        registry.mark_in_progress("s1")
        registry.mark_abandoned("s1")

        record = registry.get("ada@example.com", "Software Engineer")
        assert record.status == AttemptStatus.COMPLETED
        assert record.score == 9.0

    def test_late_completion_overrides_abandoned(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        registry.mark_abandoned("s1")
        assert registry.mark_completed("s1", None).status == AttemptStatus.COMPLETED

    def test_unknown_session_is_ignored(self, registry):
        assert registry.mark_completed("missing", 5.0) is None


class TestReap:

    def test_stale_records_become_abandoned(self, registry):
        registry.register_start("old@example.com", "Software Engineer", "s1")
        registry.register_start("live@example.com", "Software Engineer", "s2")
        registry.register_start("done@example.com", "Software Engineer", "s3")
        registry.mark_completed("s3", 7.0)
        age_record(registry, "old@example.com", "Software Engineer", 5)
        age_record(registry, "done@example.com", "Software Engineer", 5)

        swept = registry.reap_abandoned(3.0)

        assert [r.session_id for r in swept] == ["s1"]
        assert registry.get("old@example.com", "Software Engineer").status == AttemptStatus.ABANDONED
        assert registry.get("live@example.com", "Software Engineer").status == AttemptStatus.STARTED
        assert registry.get("done@example.com", "Software Engineer").status == AttemptStatus.COMPLETED

    def test_abandoned_attempt_still_blocks(self, registry):
        registry.register_start("ada@example.com", "Software Engineer", "s1")
        registry.mark_in_progress("s1")
        age_record(registry, "ada@example.com", "Software Engineer", 4)
        registry.reap_abandoned(3.0)

        check = registry.can_start("ada@example.com", "Software Engineer")
        assert not check.allowed
        assert check.status == AttemptStatus.ABANDONED
        with pytest.raises(AlreadyAttempted):
            registry.register_start("ada@example.com", "Software Engineer", "s2")


def test_status_report(registry):
    assert registry.status_report("ada@example.com", "Software Engineer")["status"] == "not_started"

    registry.register_start("ada@example.com", "Software Engineer", "s1", "Ada")
    report = registry.status_report("ada@example.com", "Software Engineer")
    assert report["status"] == "started"
    assert report["session_id"] == "s1"
    assert report["message"] == STATUS_MESSAGES[AttemptStatus.STARTED]
