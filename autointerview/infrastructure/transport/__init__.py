"""
Candidate transports: embedded room, headless meeting bot, cloud bot.

Backends are imported by create_transport so optional dependencies are
only needed for the mode in use.
"""

from .base import (
    Transport, TransportEvent, CandidateJoined, SpeechFragment,
    TransportDisconnected, select_transport_mode, validate_transport_setup,
    create_transport
)

__all__ = [
    "Transport", "TransportEvent", "CandidateJoined", "SpeechFragment",
    "TransportDisconnected", "select_transport_mode", "validate_transport_setup",
    "create_transport"
]
