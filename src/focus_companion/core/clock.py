# src/focus_companion/core/clock.py

"""
Civil-time helpers.

Everything the scheduler reasons about ("what slot is it", "is it 09:00",
"how long has this task run") is evaluated in one fixed timezone, never in the
host's local zone.
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

WEEKDAY_CODES: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class Clock:
    """Resolves "now" in a fixed civil timezone."""

    def __init__(self, tz_name: str = "Asia/Tokyo") -> None:
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, dt: datetime) -> datetime:
        """Convert an aware datetime into the civil zone (naive values are taken as civil time)."""
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self.tz)
        return dt.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def display(self, dt: datetime | None = None) -> str:
        """Human-readable timestamp used inside generated-content prompts."""
        return self.localize(dt or self.now()).strftime("%Y-%m-%d %H:%M (%a)")


def weekday_code(d: date | datetime) -> str:
    return WEEKDAY_CODES[d.weekday()]


def hhmm(dt: datetime) -> str:
    return f"{dt.hour:02d}:{dt.minute:02d}"


def is_weekend(d: date | datetime) -> bool:
    return d.weekday() >= 5
