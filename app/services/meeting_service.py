"""
Meeting link generation for confirmed video consultations.

Jitsi rooms need no account or API call: the room exists as soon as someone
opens the URL, so the link can be built before the booking is confirmed.
"""

import logging
import re
import time

from ..config import MEETING_BASE_URL, MEETING_ROOM_PREFIX

logger = logging.getLogger(__name__)


class MeetingProvider:
    """Interface for anything that can hand out a meeting link for a booking"""

    def create_meeting_link(self, booking_id: str, patient_name: str, date: str | None, time_: str | None) -> str:
        raise NotImplementedError


class JitsiMeetingProvider(MeetingProvider):
    def __init__(self, base_url: str = MEETING_BASE_URL, prefix: str = MEETING_ROOM_PREFIX):
        self.base_url = base_url.rstrip("/")
        self.prefix = prefix

    def room_name(self, booking_id: str, patient_name: str) -> str:
        clean_name = re.sub(r"[^a-zA-Z0-9]", "", patient_name or "")
        return f"{self.prefix}-{booking_id}-{clean_name}-{int(time.time() * 1000)}"

    def create_meeting_link(self, booking_id: str, patient_name: str, date: str | None, time_: str | None) -> str:
        link = f"{self.base_url}/{self.room_name(booking_id, patient_name)}"
        logger.info(f"🎥 Generated meeting link for booking {booking_id} ({date} {time_})")
        return link


meeting_provider = JitsiMeetingProvider()


def get_meeting_provider() -> MeetingProvider:
    """FastAPI dependency; override to plug in another provider"""
    return meeting_provider
