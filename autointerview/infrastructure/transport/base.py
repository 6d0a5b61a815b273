"""
Transport interface shared by the embedded room, headless bot and cloud bot.

A transport pushes typed events (candidate joined, speech fragment,
disconnected) to its listeners. The turn engine registers its inbox
queue as the only listener, so events from webhook threads or browser
callbacks are serialized through the event loop.
"""
import time
import asyncio
import logging
import importlib.util
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..audio.speech.tts import AudioHandle
from ...interview.errors import ConfigurationError
from ...interview.schemas import TransportMode

logger = logging.getLogger("transport")


@dataclass
class TransportEvent:
    received_at: float = field(default_factory=time.monotonic, kw_only=True)


@dataclass
class CandidateJoined(TransportEvent):
    participant: Optional[str] = None


@dataclass
class SpeechFragment(TransportEvent):
    """
    Recognized speech.

    A non-final fragment carries the whole current text of an utterance
    that is still being recognized and replaces the previous non-final
    fragment. A final fragment closes the utterance.
    """
    text: str = ""
    is_final_segment: bool = True
    speaker_label: Optional[str] = None


@dataclass
class TransportDisconnected(TransportEvent):
    reason: str = ""


TransportListener = Callable[[TransportEvent], None]


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Transport(ABC):
    """Capability set every backend provides."""

    mode: TransportMode

    def __init__(self):
        self._listeners: List[TransportListener] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def on_speech_fragment(self, listener: TransportListener) -> None:
        """Register a listener for every transport event, fragments included."""
        if self._loop is None:
            self._loop = _running_loop()
        self._listeners.append(listener)

    def _publish(self, event: TransportEvent) -> None:
        loop = self._loop
        if loop is not None and _running_loop() is not loop:
            loop.call_soon_threadsafe(self._dispatch, event)
        else:
            self._dispatch(event)

    def _dispatch(self, event: TransportEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    @abstractmethod
    async def join(self, join_url: str) -> None:
        """Open or join the room. Raises TransportJoinFailure."""

    @abstractmethod
    async def leave(self) -> None:
        """Leave the room and release resources."""

    @abstractmethod
    async def send_audio(self, handle: AudioHandle) -> Optional[float]:
        """
        Start playing an audio prompt to the candidate.

        Returns the seconds still to play when the backend knows them, so
        the caller can hold the next step until the prompt has been heard.
        """

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Show a prompt or acknowledgment as text."""


def select_transport_mode(config) -> TransportMode:
    """
    Pick the transport for a new session.

    Embedded room without meeting-bot credentials, the cloud bot when its
    transcription webhook is configured, the headless bot otherwise. An
    explicit mode in the configuration wins.
    """
    if config.transport_mode:
        try:
            return TransportMode(config.transport_mode)
        except ValueError:
            raise ConfigurationError(f"Unknown transport mode: {config.transport_mode}")

    if not config.has_meeting_bot_credentials:
        return TransportMode.EMBEDDED_ROOM
    if config.cloud_transcription_configured:
        return TransportMode.CLOUD_BOT
    return TransportMode.HEADLESS_BOT


def validate_transport_setup(mode: TransportMode, config) -> None:
    """
    Check the chosen backend can be set up.

    Raises:
        ConfigurationError: If the backend's requirements are missing
    """
    if mode == TransportMode.CLOUD_BOT:
        missing = [name for name, value in (("RECALL_API_KEY", config.recall_api_key),
                                            ("RECALL_WEBHOOK_URL", config.recall_webhook_url)) if not value]
        if missing:
            raise ConfigurationError(f"Cloud bot requires {', '.join(missing)}", missing)
    elif mode == TransportMode.HEADLESS_BOT:
        if importlib.util.find_spec("playwright") is None:
            raise ConfigurationError(
                "Headless bot requires playwright (pip install 'autointerview[headless]')",
                ["playwright"],
            )


def create_transport(mode: TransportMode, config) -> Transport:
    """Instantiate the backend for a mode."""
    if mode == TransportMode.EMBEDDED_ROOM:
        from .embedded import EmbeddedRoomTransport
        return EmbeddedRoomTransport(language_code=config.language_code)
    if mode == TransportMode.HEADLESS_BOT:
        from .headless import HeadlessMeetingBot
        return HeadlessMeetingBot(bot_name=config.bot_name, join_timeout=config.join_timeout)
    from .cloud import RecallBotTransport
    return RecallBotTransport(
        api_key=config.recall_api_key,
        region=config.recall_region,
        webhook_url=config.recall_webhook_url,
        bot_name=config.bot_name,
    )
