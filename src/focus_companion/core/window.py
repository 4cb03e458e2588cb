# src/focus_companion/core/window.py

"""
Notification window policy.

classify(now) is a pure function of the civil time and the holiday lookup.
It is re-evaluated on every tick and never cached: the slot changes with the clock.

Slots (hour of day, civil timezone):
- sleep    [22:00, 07:00)
- morning  [07:00, 10:00)
- work     [10:00, 19:00)
- evening  [19:00, 22:00)

Delivery is disallowed during sleep, and during work on workdays.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum

from .clock import is_weekend
from .ports import HolidayLookup


class TimeSlot(StrEnum):
    SLEEP = "sleep"
    MORNING = "morning"
    WORK = "work"
    EVENING = "evening"


@dataclass(slots=True, frozen=True)
class NotificationWindow:
    slot: TimeSlot
    allowed: bool


def time_slot(now: datetime) -> TimeSlot:
    hour = now.hour
    if hour >= 22 or hour < 7:
        return TimeSlot.SLEEP
    if hour < 10:
        return TimeSlot.MORNING
    if hour < 19:
        return TimeSlot.WORK
    return TimeSlot.EVENING


class NotificationWindowPolicy:
    def __init__(self, holidays: HolidayLookup) -> None:
        self._holidays = holidays

    def is_holiday(self, d: date) -> bool:
        return bool(self._holidays.is_holiday(d))

    def is_workday(self, d: date | datetime) -> bool:
        day = d.date() if isinstance(d, datetime) else d
        return not is_weekend(day) and not self.is_holiday(day)

    def classify(self, now: datetime) -> NotificationWindow:
        slot = time_slot(now)

        if slot == TimeSlot.SLEEP:
            return NotificationWindow(slot=slot, allowed=False)

        if slot == TimeSlot.WORK and self.is_workday(now):
            return NotificationWindow(slot=slot, allowed=False)

        return NotificationWindow(slot=slot, allowed=True)
