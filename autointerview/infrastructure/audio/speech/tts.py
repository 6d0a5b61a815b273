"""
Text-to-speech backends: Google Cloud TTS and ElevenLabs.

Both write an audio file into the cache directory and return an
AudioHandle. Synthesis failures are logged and come back as None.
"""
import os
import base64
import hashlib
import logging
import tempfile
from dataclasses import dataclass
from typing import Optional

import requests

from ....config import (
    TTS_VOICE, LANGUAGE_CODE, TTS_SAMPLE_RATE, HTTP_TIMEOUT,
    ELEVENLABS_BASE_URL, ELEVENLABS_MODEL, ELEVENLABS_VOICE_ID
)

logger = logging.getLogger("speech_tts")


def _write_atomic(path: str, audio: bytes) -> None:
    """Write to a temp file beside path, then rename it into place."""
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=os.path.dirname(path) or ".")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(audio)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


@dataclass(frozen=True)
class AudioHandle:
    """A playable, already synthesized audio file."""
    path: str
    mime_type: str = "audio/mpeg"
    text: str = ""

    def read_bytes(self) -> bytes:
        with open(self.path, "rb") as f:
            return f.read()

    def as_base64(self) -> str:
        return base64.b64encode(self.read_bytes()).decode("ascii")

    def as_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.as_base64()}"


class SpeechSynthesizer:
    """Base class: subclasses implement _render(text) -> audio bytes."""

    extension = "mp3"
    mime_type = "audio/mpeg"
    name = "base"

    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        os.makedirs(self.output_dir, exist_ok=True)

    def _voice_key(self) -> str:
        return self.name

    def _path_for(self, text: str) -> str:
        digest = hashlib.sha1(f"{self._voice_key()}|{text}".encode("utf-8")).hexdigest()[:20]
        return os.path.join(self.output_dir, f"{self.name}_{digest}.{self.extension}")

    def _render(self, text: str) -> bytes:
        raise NotImplementedError

    def synthesize(self, text: str) -> Optional[AudioHandle]:
        """Synthesize text to a file. Returns None on any failure."""
        if not text.strip():
            return None

        path = self._path_for(text)
        if os.path.exists(path) and os.path.getsize(path) > 0:
            return AudioHandle(path, self.mime_type, text)

        try:
            audio = self._render(text)
        except Exception as e:
            logger.error(f"{self.name} TTS failed: {e}")
            return None

        _write_atomic(path, audio)
        logger.debug(f"Synthesized {len(audio)} bytes to {path}")
        return AudioHandle(path, self.mime_type, text)


class GoogleSpeechSynthesizer(SpeechSynthesizer):
    """High-quality Google Cloud Text-to-Speech."""

    name = "google"

    def __init__(self, output_dir: str, voice: str = TTS_VOICE,
                 language_code: str = LANGUAGE_CODE, sample_rate: int = TTS_SAMPLE_RATE):
        super().__init__(output_dir)
        self.voice = voice
        self.language_code = language_code
        self.sample_rate = sample_rate
        self._client = None

    def _voice_key(self) -> str:
        return f"{self.voice}:{self.sample_rate}"

    def _render(self, text: str) -> bytes:
        from google.cloud import texttospeech

        if self._client is None:
            self._client = texttospeech.TextToSpeechClient()

        response = self._client.synthesize_speech(
            input=texttospeech.SynthesisInput(text=text),
            voice=texttospeech.VoiceSelectionParams(language_code=self.language_code, name=self.voice),
            audio_config=texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding.MP3,
                sample_rate_hertz=self.sample_rate,
            ),
        )
        return response.audio_content


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """ElevenLabs REST text-to-speech."""

    name = "elevenlabs"

    def __init__(self, output_dir: str, api_key: str,
                 voice_id: str = ELEVENLABS_VOICE_ID, model: str = ELEVENLABS_MODEL):
        super().__init__(output_dir)
        self.api_key = api_key
        self.voice_id = voice_id
        self.model = model

    def _voice_key(self) -> str:
        return f"{self.voice_id}:{self.model}"

    def _render(self, text: str) -> bytes:
        resp = requests.post(
            f"{ELEVENLABS_BASE_URL}/text-to-speech/{self.voice_id}",
            headers={
                "Accept": "audio/mpeg",
                "xi-api-key": self.api_key,
                "Content-Type": "application/json",
            },
            json={
                "text": text,
                "model_id": self.model,
                "voice_settings": {
                    "stability": 0.5,
                    "similarity_boost": 0.75,
                    "style": 0,
                    "use_speaker_boost": True,
                },
            },
            timeout=HTTP_TIMEOUT,
        )
        if resp.status_code >= 400:
            raise RuntimeError(f"ElevenLabs error {resp.status_code}: {resp.text[:200]}")
        return resp.content


def create_synthesizer(config) -> SpeechSynthesizer:
    """ElevenLabs when its key is configured, Google Cloud TTS otherwise."""
    if config.elevenlabs_api_key:
        return ElevenLabsSynthesizer(config.audio_cache_dir, config.elevenlabs_api_key, config.elevenlabs_voice_id)
    return GoogleSpeechSynthesizer(config.audio_cache_dir, voice=config.tts_voice, language_code=config.language_code)
