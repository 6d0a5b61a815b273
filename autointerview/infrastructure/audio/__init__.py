"""
Audio services for the interviewer: speech synthesis for prompts and
speech recognition for audio captured by the embedded room.
"""

from .speech import AudioHandle, create_synthesizer, recognize_google_sync

__all__ = ["AudioHandle", "create_synthesizer", "recognize_google_sync"]
