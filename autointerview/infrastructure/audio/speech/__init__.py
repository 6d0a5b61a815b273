"""Speech-to-text and text-to-speech modules."""

from .tts import (
    AudioHandle, SpeechSynthesizer, GoogleSpeechSynthesizer,
    ElevenLabsSynthesizer, create_synthesizer
)
from .stt import recognize_google_sync

__all__ = [
    "AudioHandle", "SpeechSynthesizer", "GoogleSpeechSynthesizer",
    "ElevenLabsSynthesizer", "create_synthesizer", "recognize_google_sync"
]
