"""
Recall.ai cloud bot transport.

Outbound calls go to the Recall REST API; inbound activity arrives as
webhooks that the web layer hands to handle_webhook().
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from .base import Transport, CandidateJoined, SpeechFragment, TransportDisconnected
from ..audio.speech.tts import AudioHandle
from ...config import BOT_NAME, HTTP_TIMEOUT, RECALL_REGION
from ...interview.errors import TransportError, TransportJoinFailure
from ...interview.schemas import TransportMode

logger = logging.getLogger("transport.cloud")

PARTICIPANT_JOIN_EVENT = "participant_events.join"
# Only about the bot itself; used when no realtime endpoint reports participants
BOT_JOIN_EVENTS = {"bot.join_call", "bot.in_call_recording"}
LEAVE_EVENTS = {"bot.leave_call", "bot.call_ended", "bot.done"}
FINAL_TRANSCRIPT_EVENTS = {"bot.transcription", "transcript.data"}
PARTIAL_TRANSCRIPT_EVENTS = {"transcript.partial_data"}


class RecallBotTransport(Transport):
    """Interviewer bot hosted by Recall.ai."""

    mode = TransportMode.CLOUD_BOT

    def __init__(self,
                 api_key: str,
                 region: str = RECALL_REGION,
                 webhook_url: Optional[str] = None,
                 bot_name: str = BOT_NAME,
                 timeout: int = HTTP_TIMEOUT,
                 session: Optional[requests.Session] = None):
        super().__init__()
        self.api_key = api_key
        self.base_url = f"https://{region}.recall.ai/api/v1"
        self.webhook_url = webhook_url
        self.bot_name = bot_name
        self.timeout = timeout
        self.http = session or requests.Session()
        self.bot_id: Optional[str] = None
        self._candidate_announced = False

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self.http.request(
            method,
            f"{self.base_url}{path}",
            headers={"Authorization": f"Token {self.api_key}", "Content-Type": "application/json"},
            json=payload,
            timeout=self.timeout,
        )
        if resp.status_code >= 400:
            raise RuntimeError(f"Recall API error {resp.status_code}: {resp.text[:300]}")
        return resp.json() if resp.content else {}

    async def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, payload)

    def _bot_payload(self, join_url: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "meeting_url": join_url,
            "bot_name": self.bot_name,
            "recording_config": {
                "transcript": {"provider": {"meeting_captions": {}}},
            },
        }
        if self.webhook_url:
            payload["recording_config"]["realtime_endpoints"] = [{
                "type": "webhook",
                "url": self.webhook_url,
                "events": ["transcript.data", "transcript.partial_data", "participant_events.join"],
            }]
        return payload

    async def join(self, join_url: str) -> None:
        try:
            bot = await self._call("POST", "/bot/", self._bot_payload(join_url))
        except (RuntimeError, requests.RequestException) as e:
            raise TransportJoinFailure(f"Could not create Recall bot: {e}") from e
        self.bot_id = bot.get("id")
        if not self.bot_id:
            raise TransportJoinFailure(f"Recall did not return a bot id: {bot}")
        logger.info(f"Created Recall bot {self.bot_id} for {join_url}")

    def _require_bot(self) -> str:
        if not self.bot_id:
            raise TransportError("No Recall bot for this session")
        return self.bot_id

    async def send_audio(self, handle: AudioHandle) -> None:
        bot_id = self._require_bot()
        try:
            await self._call("POST", f"/bot/{bot_id}/output_audio/", {"kind": "mp3", "b64_data": handle.as_base64()})
        except (RuntimeError, requests.RequestException) as e:
            raise TransportError(f"Output audio failed: {e}") from e

    async def send_text(self, text: str) -> None:
        bot_id = self._require_bot()
        try:
            await self._call("POST", f"/bot/{bot_id}/send_chat_message/", {"message": text})
        except (RuntimeError, requests.RequestException) as e:
            raise TransportError(f"Chat message failed: {e}") from e

    async def leave(self) -> None:
        if not self.bot_id:
            return
        bot_id, self.bot_id = self.bot_id, None
        await self._call("POST", f"/bot/{bot_id}/leave_call/")
        logger.info(f"Recall bot {bot_id} left the call")

    def _candidate_joined(self, participant: Optional[str]) -> bool:
        if self._candidate_announced:
            return False
        self._candidate_announced = True
        self._publish(CandidateJoined(participant=participant))
        return True

    def handle_webhook(self, payload: Dict[str, Any]) -> bool:
        """
        Translate one Recall webhook into a transport event.

        Safe to call from a web server thread. Returns False for events
        that belong to another bot or carry nothing the engine uses.
        """
        event = payload.get("event", "")
        data = payload.get("data") or {}

        bot_id = data.get("bot_id") or (data.get("bot") or {}).get("id")
        if bot_id and self.bot_id and bot_id != self.bot_id:
            return False

        if event == PARTICIPANT_JOIN_EVENT:
            participant = ((data.get("data") or {}).get("participant") or {}).get("name")
            if participant == self.bot_name:
                return False
            return self._candidate_joined(participant)

        if event in BOT_JOIN_EVENTS:
            if self.webhook_url:
                logger.debug(f"Bot is in the call ({event}), waiting for the candidate")
                return False
            return self._candidate_joined(None)

        if event in LEAVE_EVENTS:
            self._publish(TransportDisconnected(reason=event))
            return True

        if event == "bot.error":
            logger.error(f"Recall bot error: {data}")
            self._publish(TransportDisconnected(reason=f"bot error: {data.get('message') or data}"))
            return True

        if event in FINAL_TRANSCRIPT_EVENTS or event in PARTIAL_TRANSCRIPT_EVENTS:
            fragment = self._parse_transcript(data, is_final=event in FINAL_TRANSCRIPT_EVENTS)
            if fragment is None:
                return False
            self._publish(fragment)
            return True

        logger.debug(f"Ignoring Recall event {event}")
        return False

    @staticmethod
    def _parse_transcript(data: Dict[str, Any], is_final: bool) -> Optional[SpeechFragment]:
        """Accepts both the realtime-endpoint and the legacy transcription payloads."""
        inner = data.get("data") or data.get("transcript") or {}
        words = inner.get("words") or []
        text = " ".join(w.get("text", "") for w in words if isinstance(w, dict)).strip()
        if not text:
            text = (inner.get("text") or "").strip()
        if not text:
            return None

        speaker = (inner.get("participant") or {}).get("name") or inner.get("speaker")
        if "is_final" in inner:
            is_final = bool(inner["is_final"])
        return SpeechFragment(text=text, is_final_segment=is_final, speaker_label=speaker)
