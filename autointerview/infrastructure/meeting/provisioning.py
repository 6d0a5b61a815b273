"""
Meeting room provisioning through the Google Calendar API.

When no calendar is configured, or the API call fails, a simulated Meet
URL is returned. Nothing downstream depends on the URL being real.
"""
import uuid
import random
import string
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests
import google.auth.transport.requests

from ..llm.client import load_google_credentials
from ...config import HTTP_TIMEOUT

logger = logging.getLogger("meeting_provisioning")

CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"
MEET_BASE_URL = "https://meet.google.com/"
MEETING_DURATION_MINUTES = 60


@dataclass
class RoomInfo:
    join_url: str
    simulated: bool = False
    event_id: Optional[str] = None


def simulated_meet_url() -> str:
    """A Meet-shaped URL (xxx-xxxx-xxx) that points to no real meeting."""
    def chunk(n):
        return "".join(random.choice(string.ascii_lowercase) for _ in range(n))
    return f"{MEET_BASE_URL}{chunk(3)}-{chunk(4)}-{chunk(3)}"


class MeetingProvisioner:
    """Creates the meeting a bot transport will join."""

    def __init__(self, calendar_id: Optional[str] = None, credentials_json: Optional[str] = None):
        self.calendar_id = calendar_id
        self.credentials_json = credentials_json
        self._credentials = None

    def _token(self) -> str:
        if self._credentials is None:
            self._credentials = load_google_credentials(self.credentials_json, [CALENDAR_SCOPE])
        if not self._credentials.valid:
            self._credentials.refresh(google.auth.transport.requests.Request())
        return self._credentials.token

    def create_room(self, candidate_name: str, role: str) -> RoomInfo:
        if not self.calendar_id:
            url = simulated_meet_url()
            logger.info(f"No calendar configured, using simulated room {url}")
            return RoomInfo(url, simulated=True)

        try:
            return self._create_calendar_meeting(candidate_name, role)
        except Exception as e:
            url = simulated_meet_url()
            logger.error(f"Calendar meeting creation failed ({e}), using simulated room {url}")
            return RoomInfo(url, simulated=True)

    def _create_calendar_meeting(self, candidate_name: str, role: str) -> RoomInfo:
        start = datetime.now(timezone.utc)
        end = start + timedelta(minutes=MEETING_DURATION_MINUTES)
        body = {
            "summary": f"Interview - {candidate_name} for {role}",
            "description": "Automated interview session",
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
            "conferenceData": {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        resp = requests.post(
            CALENDAR_EVENTS_URL.format(calendar_id=self.calendar_id),
            params={"conferenceDataVersion": 1},
            headers={"Authorization": f"Bearer {self._token()}"},
            json=body,
            timeout=HTTP_TIMEOUT,
        )
        if resp.status_code >= 400:
            raise RuntimeError(f"Calendar API error {resp.status_code}: {resp.text[:200]}")

        event = resp.json()
        link = event.get("hangoutLink")
        if not link:
            raise RuntimeError("Calendar event was created without a Meet link")
        logger.info(f"Created meeting {link} for {candidate_name}")
        return RoomInfo(link, simulated=False, event_id=event.get("id"))
