import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from autointerview.interview.errors import ConfigurationError, TransportError, TransportJoinFailure
from autointerview.interview.schemas import TransportMode
from autointerview.interview.testing import create_test_config
from autointerview.infrastructure.audio.speech.tts import AudioHandle
from autointerview.infrastructure.transport import base
from autointerview.infrastructure.transport.base import (
    CandidateJoined, SpeechFragment, TransportDisconnected,
    create_transport, select_transport_mode, validate_transport_setup
)
from autointerview.infrastructure.transport.cloud import RecallBotTransport
from autointerview.infrastructure.transport.embedded import EmbeddedRoomTransport
from autointerview.infrastructure.transport.headless import HeadlessMeetingBot


class TestModeSelection:

    def test_embedded_without_bot_credentials(self, config):
        assert select_transport_mode(config) == TransportMode.EMBEDDED_ROOM

    def test_cloud_bot_with_webhook(self, tmp_path):
        config = create_test_config(str(tmp_path), recall_api_key="key", recall_webhook_url="https://hooks")
        assert select_transport_mode(config) == TransportMode.CLOUD_BOT

    def test_headless_bot_without_webhook(self, tmp_path):
        config = create_test_config(str(tmp_path), meeting_bot_enabled=True)
        assert select_transport_mode(config) == TransportMode.HEADLESS_BOT

    def test_explicit_mode_wins(self, tmp_path):
        config = create_test_config(str(tmp_path), transport_mode="headless-bot")
        assert select_transport_mode(config) == TransportMode.HEADLESS_BOT

    def test_unknown_mode(self, tmp_path):
        with pytest.raises(ConfigurationError):
            select_transport_mode(create_test_config(str(tmp_path), transport_mode="carrier-pigeon"))

    def test_cloud_bot_requires_keys(self, tmp_path):
        config = create_test_config(str(tmp_path), recall_api_key="key")
        with pytest.raises(ConfigurationError) as exc:
            validate_transport_setup(TransportMode.CLOUD_BOT, config)
        assert exc.value.missing == ["RECALL_WEBHOOK_URL"]

    def test_headless_bot_requires_playwright(self, config, monkeypatch):
        monkeypatch.setattr(base.importlib.util, "find_spec", lambda name: None)
        with pytest.raises(ConfigurationError) as exc:
            validate_transport_setup(TransportMode.HEADLESS_BOT, config)
        assert exc.value.missing == ["playwright"]

    def test_embedded_needs_nothing(self, config):
        validate_transport_setup(TransportMode.EMBEDDED_ROOM, config)

    def test_factory(self, tmp_path):
        config = create_test_config(str(tmp_path), recall_api_key="key", recall_region="eu-central-1")
        cloud = create_transport(TransportMode.CLOUD_BOT, config)
        assert isinstance(cloud, RecallBotTransport)
        assert cloud.base_url == "https://eu-central-1.recall.ai/api/v1"
        assert isinstance(create_transport(TransportMode.HEADLESS_BOT, config), HeadlessMeetingBot)


def recall_response(status=200, body=None):
    resp = Mock(status_code=status, content=b"{}", text="error body")
    resp.json.return_value = body or {}
    return resp


class TestRecallBot:

    def make(self, http=None):
        transport = RecallBotTransport(api_key="key", webhook_url="https://hooks.example.com/recall",
                                       session=http or Mock())
        events = []
        transport.on_speech_fragment(events.append)
        return transport, events

    def test_join_creates_bot(self):
        http = Mock()
        http.request.return_value = recall_response(201, {"id": "bot-1"})
        transport, _ = self.make(http)

        asyncio.run(transport.join("https://meet.google.com/abc-defg-hij"))

        assert transport.bot_id == "bot-1"
        method, url = http.request.call_args.args
        payload = http.request.call_args.kwargs["json"]
        assert (method, url) == ("POST", "https://us-west-2.recall.ai/api/v1/bot/")
        assert payload["meeting_url"] == "https://meet.google.com/abc-defg-hij"
        assert payload["recording_config"]["realtime_endpoints"][0]["url"] == "https://hooks.example.com/recall"
        assert http.request.call_args.kwargs["headers"]["Authorization"] == "Token key"

    def test_join_failure(self):
        http = Mock()
        http.request.return_value = recall_response(500)
        transport, _ = self.make(http)

        with pytest.raises(TransportJoinFailure):
            asyncio.run(transport.join("https://meet.google.com/abc-defg-hij"))

    def test_send_before_join(self):
        transport, _ = self.make()
        with pytest.raises(TransportError):
            asyncio.run(transport.send_text("Hello"))

    def test_send_audio_and_text(self, tmp_path):
        audio = tmp_path / "prompt.mp3"
        audio.write_bytes(b"ID3")
        http = Mock()
        http.request.return_value = recall_response()
        transport, _ = self.make(http)
        transport.bot_id = "bot-1"

        async def scenario():
            await transport.send_audio(AudioHandle(str(audio), text="Hello"))
            await transport.send_text("Hello")

        asyncio.run(scenario())

        audio_call, text_call = http.request.call_args_list
        assert audio_call.args[1].endswith("/bot/bot-1/output_audio/")
        assert audio_call.kwargs["json"] == {"kind": "mp3", "b64_data": "SUQz"}
        assert text_call.kwargs["json"] == {"message": "Hello"}

    def test_realtime_transcript_webhook(self):
        transport, events = self.make()
        transport.bot_id = "bot-1"

        handled = transport.handle_webhook({
            "event": "transcript.data",
            "data": {
                "bot": {"id": "bot-1"},
                "data": {"words": [{"text": "I"}, {"text": "enjoy"}, {"text": "debugging."}],
                         "participant": {"name": "Ada Lovelace"}},
            },
        })

        assert handled
        fragment = events[0]
        assert isinstance(fragment, SpeechFragment)
        assert fragment.text == "I enjoy debugging."
        assert fragment.is_final_segment
        assert fragment.speaker_label == "Ada Lovelace"

    def test_partial_and_legacy_transcripts(self):
        transport, events = self.make()

        transport.handle_webhook({"event": "transcript.partial_data",
                                  "data": {"data": {"words": [{"text": "I"}, {"text": "enj"}]}}})
        transport.handle_webhook({"event": "bot.transcription",
                                  "data": {"transcript": {"text": "I enjoy debugging.", "speaker": "Ada",
                                                          "is_final": True}}})

        assert not events[0].is_final_segment
        assert events[1].text == "I enjoy debugging."
        assert events[1].speaker_label == "Ada"

    def test_participant_and_lifecycle_events(self):
        transport, events = self.make()
        transport.bot_id = "bot-1"

        assert not transport.handle_webhook({"event": "participant_events.join",
                                             "data": {"data": {"participant": {"name": "AI Interviewer"}}}})
        assert transport.handle_webhook({"event": "participant_events.join",
                                         "data": {"data": {"participant": {"name": "Ada"}}}})
        assert not transport.handle_webhook({"event": "bot.call_ended", "data": {"bot_id": "other-bot"}})
        assert transport.handle_webhook({"event": "bot.call_ended", "data": {"bot_id": "bot-1"}})
        assert not transport.handle_webhook({"event": "bot.status_change", "data": {}})

        assert isinstance(events[0], CandidateJoined)
        assert events[0].participant == "Ada"
        assert isinstance(events[1], TransportDisconnected)
        assert len(events) == 2

    def test_bot_join_waits_for_the_candidate(self):
        transport, events = self.make()
        transport.bot_id = "bot-1"

        assert not transport.handle_webhook({"event": "bot.in_call_recording", "data": {"bot_id": "bot-1"}})
        assert transport.handle_webhook({"event": "participant_events.join",
                                         "data": {"data": {"participant": {"name": "Ada"}}}})
        assert not transport.handle_webhook({"event": "participant_events.join",
                                             "data": {"data": {"participant": {"name": "Ada"}}}})

        assert len(events) == 1
        assert events[0].participant == "Ada"

    def test_bot_join_counts_without_participant_events(self):
        transport = RecallBotTransport(api_key="key", session=Mock())
        events = []
        transport.on_speech_fragment(events.append)

        assert transport.handle_webhook({"event": "bot.join_call", "data": {}})

        assert isinstance(events[0], CandidateJoined)
        assert events[0].participant is None

    def test_empty_transcript_is_ignored(self):
        transport, events = self.make()
        assert not transport.handle_webhook({"event": "transcript.data", "data": {"data": {"words": []}}})
        assert events == []


class TestEmbeddedRoom:

    def test_room_lifecycle(self, tmp_path):
        audio = tmp_path / "prompt.mp3"
        audio.write_bytes(b"ID3")

        async def scenario():
            room = EmbeddedRoomTransport()
            events = []
            room.on_speech_fragment(events.append)
            await room.join("http://localhost:3000/interview/s1")
            room.candidate_connected("Ada")
            await room.send_audio(AudioHandle(str(audio), text="Hello"))
            await room.send_text("Hello")
            room.candidate_transcript("Hi there", is_final=False)
            room.candidate_disconnected()
            await room.leave()
            messages = [await room.next_message(0.1) for _ in range(4)]
            return room, events, messages

        room, events, messages = asyncio.run(scenario())

        assert [type(e) for e in events] == [CandidateJoined, SpeechFragment, TransportDisconnected]
        assert not events[1].is_final_segment
        assert [m["type"] for m in messages[:3]] == ["audio", "text", "end"]
        assert messages[0]["data_url"] == "data:audio/mpeg;base64,SUQz"
        assert messages[3] is None
        assert not room.is_open

    def test_join_twice_fails(self):
        async def scenario():
            room = EmbeddedRoomTransport()
            await room.join("http://localhost:3000/interview/s1")
            await room.join("http://localhost:3000/interview/s1")

        with pytest.raises(TransportJoinFailure):
            asyncio.run(scenario())

    def test_send_after_leave(self):
        async def scenario():
            room = EmbeddedRoomTransport()
            await room.join("http://localhost:3000/interview/s1")
            await room.leave()
            await room.send_text("Hello")

        with pytest.raises(TransportError):
            asyncio.run(scenario())


class TestHeadlessBot:

    def test_launch_failure_is_a_join_failure(self):
        factory = AsyncMock(side_effect=RuntimeError("chromium not installed"))
        bot = HeadlessMeetingBot(playwright_factory=factory)

        with pytest.raises(TransportJoinFailure) as exc:
            asyncio.run(bot.join("https://meet.google.com/abc-defg-hij"))
        assert "chromium not installed" in str(exc.value)

    def test_participant_count_events(self):
        bot = HeadlessMeetingBot(playwright_factory=AsyncMock())
        events = []
        bot.on_speech_fragment(events.append)

        bot._on_participants(1)
        bot._on_participants(2)
        bot._on_participants(3)
        bot._on_caption("Ada", "Hello", True)
        bot._on_participants(1)

        assert [type(e) for e in events] == [CandidateJoined, SpeechFragment, TransportDisconnected]

    def test_send_audio_reports_playback_length(self, tmp_path):
        audio = tmp_path / "prompt.mp3"
        audio.write_bytes(b"ID3")
        bot = HeadlessMeetingBot(playwright_factory=AsyncMock())
        bot.page = AsyncMock()
        bot.page.evaluate.return_value = 2.5

        remaining = asyncio.run(bot.send_audio(AudioHandle(str(audio), text="Hello")))

        assert remaining == 2.5
        script, data_url = bot.page.evaluate.call_args.args
        assert "__interviewPlay" in script
        assert data_url == "data:audio/mpeg;base64,SUQz"
