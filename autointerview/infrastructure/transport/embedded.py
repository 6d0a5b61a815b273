"""
In-process interview room for the browser-based audio/video page.

The web layer drains outgoing messages with next_message() and feeds
candidate activity back through the candidate_* methods.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from .base import Transport, CandidateJoined, SpeechFragment, TransportDisconnected
from ..audio.speech.stt import recognize_google_sync
from ..audio.speech.tts import AudioHandle
from ...config import LANGUAGE_CODE, SAMPLE_RATE_TARGET
from ...interview.errors import TransportError, TransportJoinFailure
from ...interview.schemas import TransportMode

logger = logging.getLogger("transport.embedded")


class EmbeddedRoomTransport(Transport):
    """Room hosted by this process; the candidate's page connects to it."""

    mode = TransportMode.EMBEDDED_ROOM

    def __init__(self, language_code: str = LANGUAGE_CODE):
        super().__init__()
        self.language_code = language_code
        self.join_url: Optional[str] = None
        self.outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self.is_open = False
        self.candidate_present = False

    async def join(self, join_url: str) -> None:
        if self.is_open:
            raise TransportJoinFailure("Room is already open")
        if not join_url:
            raise TransportJoinFailure("Embedded room needs a join URL")
        self.join_url = join_url
        self.is_open = True
        logger.info(f"Room open at {join_url}")

    async def leave(self) -> None:
        if not self.is_open:
            return
        self.is_open = False
        self.outbox.put_nowait({"type": "end"})
        logger.info(f"Room closed at {self.join_url}")

    def _require_open(self) -> None:
        if not self.is_open:
            raise TransportError("Room is closed")

    async def send_audio(self, handle: AudioHandle) -> None:
        self._require_open()
        self.outbox.put_nowait({
            "type": "audio",
            "text": handle.text,
            "mime_type": handle.mime_type,
            "data_url": handle.as_data_url(),
        })

    async def send_text(self, text: str) -> None:
        self._require_open()
        self.outbox.put_nowait({"type": "text", "text": text})

    async def next_message(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Next message for the candidate's page, or None on timeout."""
        try:
            return await asyncio.wait_for(self.outbox.get(), timeout)
        except asyncio.TimeoutError:
            return None

    # Candidate side, called by the web layer

    def candidate_connected(self, name: Optional[str] = None) -> None:
        if not self.is_open:
            logger.warning("Candidate connected to a closed room")
            return
        self.candidate_present = True
        self._publish(CandidateJoined(participant=name))

    def candidate_transcript(self, text: str, is_final: bool = True, speaker: Optional[str] = None) -> None:
        """Browser-side speech recognition result."""
        if self.is_open and text:
            self._publish(SpeechFragment(text=text, is_final_segment=is_final, speaker_label=speaker))

    async def candidate_audio(self, pcm16_bytes: bytes, sr_hz: int = SAMPLE_RATE_TARGET) -> str:
        """Transcribe a chunk of candidate audio and publish it as a final fragment."""
        if not self.is_open:
            return ""
        text = await asyncio.to_thread(recognize_google_sync, pcm16_bytes, sr_hz, self.language_code)
        if text:
            self._publish(SpeechFragment(text=text, is_final_segment=True))
        return text

    def candidate_disconnected(self, reason: str = "candidate left the room") -> None:
        if not self.candidate_present:
            return
        self.candidate_present = False
        self._publish(TransportDisconnected(reason=reason))
