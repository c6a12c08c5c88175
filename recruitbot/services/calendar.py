# recruitbot/services/calendar.py
import uuid
import logging
import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from recruitbot.core.config import settings

logger = logging.getLogger(__name__)


class MockCalendar:
    """
    In-process stand-in for the recruiters' calendar.

    Events are kept in memory; `busy_events` seeds it with blocks that
    collide with interview slots. Events are dicts shaped like the Google
    Calendar API: {"summary", "start": {"dateTime"}, "end": {"dateTime"}}.
    """

    def __init__(self, busy_events: Optional[List[Dict[str, Any]]] = None):
        self.events: List[Dict[str, Any]] = list(busy_events or [])

    @classmethod
    def with_default_busy_block(cls, timezone: str = None) -> "MockCalendar":
        """Seeds one busy hour tomorrow 10:00-11:00 local time."""
        tz = ZoneInfo(timezone or settings.interviews.timezone)
        tomorrow = datetime.datetime.now(tz).date() + datetime.timedelta(days=1)
        start = datetime.datetime.combine(tomorrow, datetime.time(10), tzinfo=tz)
        return cls([{
            "id": "mock_busy_1",
            "summary": "Reunión de equipo",
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": (start + datetime.timedelta(hours=1)).isoformat()},
        }])

    async def list_events(self, calendar_id: str, time_min: datetime.datetime,
                          time_max: datetime.datetime) -> List[Dict[str, Any]]:
        logger.info(f"📅 [MOCK CALENDAR] Listing events for {calendar_id} between {time_min} and {time_max}")
        result = []
        for event in self.events:
            start = event_time(event, "start")
            end = event_time(event, "end")
            if start < time_max and end > time_min:
                result.append(event)
        return result

    async def create_event(self, calendar_id: str, details: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"📅 [MOCK CALENDAR] Creating event in {calendar_id}: {details.get('summary')}")
        event_id = f"mock_event_{uuid.uuid4().hex[:12]}"
        event = {
            "id": event_id,
            "status": "confirmed",
            "htmlLink": f"https://calendar.google.com/calendar/event?eid={event_id}",
            **details,
        }
        self.events.append(event)
        return event


def event_time(event: Dict[str, Any], key: str) -> datetime.datetime:
    value = event[key]["dateTime"]
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value
