"""
Speech-to-text for audio the embedded room receives from the browser.
"""
import logging

from google.cloud import speech

from ....config import LANGUAGE_CODE, SAMPLE_RATE_TARGET

logger = logging.getLogger("speech_stt")

_client = None


def _get_client() -> speech.SpeechClient:
    global _client
    if _client is None:
        _client = speech.SpeechClient()
    return _client


def recognize_google_sync(pcm16_bytes: bytes,
                          sr_hz: int = SAMPLE_RATE_TARGET,
                          language: str = LANGUAGE_CODE) -> str:
    """
    Synchronous Google Cloud Speech-to-Text recognition of one audio chunk.
    Returns transcribed text or empty string if no speech was recognized.
    """
    if not pcm16_bytes:
        return ""

    audio = speech.RecognitionAudio(content=pcm16_bytes)
    config = speech.RecognitionConfig(
        encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
        sample_rate_hertz=sr_hz,
        language_code=language,
        enable_automatic_punctuation=True,
    )

    try:
        resp = _get_client().recognize(config=config, audio=audio)
    except Exception as e:
        logger.error("Speech recognition failed: %s", e)
        return ""

    texts = [r.alternatives[0].transcript for r in resp.results if r.alternatives]
    return " ".join(texts).strip()
