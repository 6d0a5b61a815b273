import logging
import os

from autointerview.__main__ import parse_flags
from autointerview.config import Config, get_config
from autointerview.interview.events import EventType, InterviewEventBus, InterviewMetrics, ResponseCapturedEvent
from autointerview.utils import setup_logging


def test_defaults_need_a_project():
    assert Config().missing_required() == ["GOOGLE_CLOUD_PROJECT"]
    assert Config(google_cloud_project="your-project-id").missing_required() == ["GOOGLE_CLOUD_PROJECT"]
    assert Config(google_cloud_project="acme-hiring").missing_required() == []


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "acme-hiring")
    monkeypatch.setenv("INTERVIEW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("MEETING_BOT_ENABLED", "yes")
    monkeypatch.setenv("INTERVIEW_QUIET_PERIOD", "2.5")

    config = get_config()

    assert config.google_cloud_project == "acme-hiring"
    assert config.tracking_path == os.path.join(str(tmp_path), "interview_tracking.json")
    assert config.has_meeting_bot_credentials
    assert not config.cloud_transcription_configured
    assert config.quiet_period_seconds == 2.5


def test_setup_logging_writes_to_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    log_file = tmp_path / "logs" / "interview.log"
    try:
        path = setup_logging(str(log_file), "DEBUG")
        logging.getLogger("turn_engine").debug("state change")
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    assert path == str(log_file)
    assert "state change" in log_file.read_text()


def test_metrics_count_events():
    bus = InterviewEventBus()
    metrics = InterviewMetrics()
    bus.subscribe_all(metrics.handle_event)

    bus.emit(ResponseCapturedEvent("s1", 0.0, 1, "[no response captured]", True))
    bus.emit(ResponseCapturedEvent("s1", 0.0, 2, "An answer", False))

    counts = metrics.get_metrics()
    assert counts["responses_captured"] == 2
    assert counts["empty_responses"] == 1


def test_failing_handler_does_not_stop_others():
    bus = InterviewEventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(EventType.RESPONSE_CAPTURED, broken)
    bus.subscribe(EventType.RESPONSE_CAPTURED, seen.append)
    bus.emit(ResponseCapturedEvent("s1", 0.0, 1, "An answer", False))

    assert len(seen) == 1


def test_parse_flags():
    flags = parse_flags(["--name=Ada Lovelace", "--email=ada@example.com", "--verbose", "stray"])
    assert flags == {"name": "Ada Lovelace", "email": "ada@example.com", "verbose": "true"}
