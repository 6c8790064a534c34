import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from integration.classroom_client import build_google_service
from llm.schemas import ExamEvent

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "America/New_York")
DEFAULT_CALENDAR_ID = os.getenv("CALENDAR_ID", "primary")

REMINDER_MINUTES = (1440, 60)  # 1 day and 1 hour before

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


@dataclass(frozen=True)
class CalendarEventResult:
    success: bool
    event_id: Optional[str] = None
    calendar_link: Optional[str] = None
    error: Optional[str] = None


def build_datetime(date: str, time: str) -> str:
    if not _DATE_RE.match(date or ""):
        raise ValueError(f"Invalid date format: {date}")
    if not _TIME_RE.match(time or ""):
        raise ValueError(f"Invalid time format: {time}")
    return f"{date}T{time}:00"


class CalendarIntegration:

    def __init__(
        self,
        access_token: Optional[str] = None,
        timezone: Optional[str] = None,
        calendar_id: str = DEFAULT_CALENDAR_ID,
        service=None,
    ):
        self.access_token = access_token
        self.timezone = timezone or DEFAULT_TIMEZONE
        self.calendar_id = calendar_id
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = build_google_service("calendar", "v3", self.access_token)
        return self._service

    def build_event_body(self, event: ExamEvent) -> Dict[str, Any]:
        description = f"Auto-detected {event.event_type} using AI\n"
        if event.additional_notes:
            description += f"Additional notes: {event.additional_notes}"

        return {
            "summary": event.event_title,
            "description": description,
            "start": {
                "dateTime": build_datetime(event.date, event.start_time),
                "timeZone": self.timezone,
            },
            "end": {
                "dateTime": build_datetime(event.date, event.end_time),
                "timeZone": self.timezone,
            },
            "reminders": {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": m} for m in REMINDER_MINUTES],
            },
        }

    def create_event(self, event: ExamEvent) -> CalendarEventResult:
        """
        Write one confirmed event to the user's calendar.
        """
        try:
            body = self.build_event_body(event)
            created = (
                self.service.events()
                .insert(calendarId=self.calendar_id, body=body)
                .execute()
            )
        except Exception as e:
            logger.error(f"Calendar creation error: {e}")
            return CalendarEventResult(success=False, error=str(e))

        logger.info(f"Created calendar event {created.get('id')} for {event.event_title!r}")
        return CalendarEventResult(
            success=True,
            event_id=created.get("id"),
            calendar_link=created.get("htmlLink"),
        )

    def get_event(self, event_id: str) -> Dict[str, Any]:
        return self.service.events().get(calendarId=self.calendar_id, eventId=event_id).execute()
