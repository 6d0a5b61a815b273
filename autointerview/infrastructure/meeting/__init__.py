"""Meeting room provisioning."""

from .provisioning import MeetingProvisioner, RoomInfo

__all__ = ["MeetingProvisioner", "RoomInfo"]
