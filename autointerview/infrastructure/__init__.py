"""Infrastructure components for the interview orchestrator.

Low-level adapters to external services: speech, LLM, persistence,
meeting provisioning and candidate transports.
"""

from .audio import AudioHandle, create_synthesizer, recognize_google_sync
from .llm import VertexRestClient

__all__ = [
    "AudioHandle", "create_synthesizer", "recognize_google_sync",
    "VertexRestClient"
]
