# src/focus_companion/services/calendar.py

"""
Google Calendar collaborator.

Uses a service account (google-auth) and the discovery client
(google-api-python-client). The SDK is blocking, so every call runs in a
worker thread. Failures are logged and reported as "no data".
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..core.clock import Clock
from ..core.ports import CalendarEvent

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]

# Google Calendar colorId values.
_COLOR_WORKING = "9"
_COLOR_DONE = "10"
_COLOR_SKIPPED = "8"


def minutes_until(event: CalendarEvent, now: datetime) -> int:
    return max(0, math.floor((event.start - now).total_seconds() / 60))


def format_event(event: CalendarEvent, clock: Clock) -> str:
    start = clock.localize(event.start).strftime("%H:%M")
    end = clock.localize(event.end).strftime("%H:%M")
    text = f"{start}-{end} {event.title}"
    if event.location:
        text += f" ({event.location})"
    return text


class GoogleCalendar:
    def __init__(
        self,
        *,
        calendar_id: str,
        service_account_file: Path | None,
        clock: Clock,
        bedtime_hour: int = 22,
    ) -> None:
        self._calendar_id = calendar_id
        self._sa_file = service_account_file
        self._clock = clock
        self._bedtime_hour = bedtime_hour
        self._service: Any = None

    def configured(self) -> bool:
        return bool(self._calendar_id and self._sa_file and Path(self._sa_file).exists())

    def _get_service(self) -> Any:
        if self._service is not None:
            return self._service
        creds = service_account.Credentials.from_service_account_file(str(self._sa_file), scopes=SCOPES)
        self._service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return self._service

    def _parse_event(self, raw: dict[str, Any]) -> CalendarEvent | None:
        if not raw.get("id") or not raw.get("summary"):
            return None
        start_raw = (raw.get("start") or {}).get("dateTime") or (raw.get("start") or {}).get("date")
        end_raw = (raw.get("end") or {}).get("dateTime") or (raw.get("end") or {}).get("date")
        if not start_raw or not end_raw:
            return None
        try:
            start = self._clock.localize(datetime.fromisoformat(start_raw))
            end = self._clock.localize(datetime.fromisoformat(end_raw))
        except ValueError:
            logger.debug("Unparseable event times: %r / %r", start_raw, end_raw)
            return None
        return CalendarEvent(
            id=str(raw["id"]),
            title=str(raw["summary"]),
            start=start,
            end=end,
            location=raw.get("location"),
        )

    def _list_events_sync(self, time_min: datetime, time_max: datetime, max_results: int) -> list[CalendarEvent]:
        resp = (
            self._get_service()
            .events()
            .list(
                calendarId=self._calendar_id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                timeZone=str(self._clock.tz),
                maxResults=max_results,
            )
            .execute()
        )
        events = [self._parse_event(item) for item in resp.get("items", [])]
        return [e for e in events if e is not None]

    async def upcoming_events_today(self) -> list[CalendarEvent]:
        """Events starting between now and the end of the civil day."""
        if not self.configured():
            return []
        now = self._clock.now()
        end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=0)
        try:
            events = await asyncio.to_thread(self._list_events_sync, now, end_of_day, 10)
        except (HttpError, GoogleAuthError, OSError, ValueError):
            logger.exception("Failed to fetch calendar events")
            return []
        return [e for e in events if now <= e.start <= end_of_day]

    async def next_event_today(self) -> CalendarEvent | None:
        events = await self.upcoming_events_today()
        return events[0] if events else None

    async def has_remaining_events_today(self) -> bool:
        return await self.next_event_today() is not None

    async def free_minutes_remaining(self) -> int:
        """Minutes until the next event today, else until bedtime (0 once bedtime has passed)."""
        now = self._clock.now()
        nxt = await self.next_event_today()
        if nxt is not None:
            return minutes_until(nxt, now)

        bedtime = now.replace(hour=self._bedtime_hour, minute=0, second=0, microsecond=0)
        if now >= bedtime:
            return 0
        return math.floor((bedtime - now).total_seconds() / 60)

    async def create_task_event(self, *, task_name: str, minutes: int, task_id: int) -> str | None:
        if not self.configured():
            return None
        start = self._clock.now()
        end = start + timedelta(minutes=minutes)
        body = {
            "summary": f"[task] {task_name}",
            "description": f"focus-companion task id: {task_id}",
            "start": {"dateTime": start.isoformat(), "timeZone": str(self._clock.tz)},
            "end": {"dateTime": end.isoformat(), "timeZone": str(self._clock.tz)},
            "colorId": _COLOR_WORKING,
        }

        def _insert() -> dict[str, Any]:
            return self._get_service().events().insert(calendarId=self._calendar_id, body=body).execute()

        try:
            created = await asyncio.to_thread(_insert)
        except (HttpError, GoogleAuthError, OSError, ValueError):
            logger.exception("Failed to create calendar event for task %s", task_id)
            return None
        event_id = created.get("id")
        logger.info("Calendar event created: %s", event_id)
        return str(event_id) if event_id else None

    async def update_task_event(self, *, event_id: str, task_name: str, actual_minutes: int, status: str) -> bool:
        if not self.configured():
            return False

        def _update() -> bool:
            service = self._get_service()
            event = service.events().get(calendarId=self._calendar_id, eventId=event_id).execute()
            start_raw = (event.get("start") or {}).get("dateTime")
            if not start_raw:
                return False
            start = datetime.fromisoformat(start_raw)
            done = status == "done"
            event["summary"] = f"{'✓' if done else '→'} {task_name}"
            event["description"] = f"{event.get('description') or ''}\n{status}: {actual_minutes} min".strip()
            event["end"] = {
                "dateTime": (start + timedelta(minutes=max(1, actual_minutes))).isoformat(),
                "timeZone": str(self._clock.tz),
            }
            event["colorId"] = _COLOR_DONE if done else _COLOR_SKIPPED
            service.events().update(calendarId=self._calendar_id, eventId=event_id, body=event).execute()
            return True

        try:
            ok = await asyncio.to_thread(_update)
        except (HttpError, GoogleAuthError, OSError, ValueError):
            logger.exception("Failed to update calendar event %s", event_id)
            return False
        if ok:
            logger.info("Calendar event updated: %s (%s)", event_id, status)
        return ok


class NullCalendar:
    """Used when no calendar is configured; behaves as an empty calendar."""

    def configured(self) -> bool:
        return False

    async def next_event_today(self) -> CalendarEvent | None:
        return None

    async def has_remaining_events_today(self) -> bool:
        return False

    async def free_minutes_remaining(self) -> int:
        return 0

    async def create_task_event(self, *, task_name: str, minutes: int, task_id: int) -> str | None:
        return None

    async def update_task_event(self, *, event_id: str, task_name: str, actual_minutes: int, status: str) -> bool:
        return False
