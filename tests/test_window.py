# tests/test_window.py

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from focus_companion.core.window import NotificationWindowPolicy, TimeSlot, time_slot

from .fakes import FakeHolidays

TOKYO = ZoneInfo("Asia/Tokyo")


def _at(y: int, m: int, d: int, hh: int, mm: int = 0) -> datetime:
    return datetime(y, m, d, hh, mm, tzinfo=TOKYO)


@pytest.mark.parametrize(
    ("hour", "minute", "slot"),
    [
        (6, 59, TimeSlot.SLEEP),
        (7, 0, TimeSlot.MORNING),
        (9, 59, TimeSlot.MORNING),
        (10, 0, TimeSlot.WORK),
        (18, 59, TimeSlot.WORK),
        (19, 0, TimeSlot.EVENING),
        (21, 59, TimeSlot.EVENING),
        (22, 0, TimeSlot.SLEEP),
        (23, 30, TimeSlot.SLEEP),
    ],
)
def test_slot_boundaries(hour: int, minute: int, slot: TimeSlot) -> None:
    assert time_slot(_at(2025, 6, 10, hour, minute)) is slot


def test_sleep_is_never_allowed() -> None:
    policy = NotificationWindowPolicy(FakeHolidays())
    w = policy.classify(_at(2025, 6, 7, 23, 30))  # Saturday
    assert w.slot is TimeSlot.SLEEP
    assert w.allowed is False


def test_work_hours_blocked_on_workdays_only() -> None:
    policy = NotificationWindowPolicy(FakeHolidays())

    tuesday = policy.classify(_at(2025, 6, 10, 14))
    assert tuesday.slot is TimeSlot.WORK
    assert tuesday.allowed is False

    saturday = policy.classify(_at(2025, 6, 7, 14))
    assert saturday.slot is TimeSlot.WORK
    assert saturday.allowed is True


def test_holiday_opens_work_hours() -> None:
    policy = NotificationWindowPolicy(FakeHolidays([date(2025, 6, 10)]))

    assert policy.is_holiday(date(2025, 6, 10))
    assert not policy.is_workday(date(2025, 6, 10))
    assert policy.classify(_at(2025, 6, 10, 14)).allowed is True


def test_morning_and_evening_allowed_on_workdays() -> None:
    policy = NotificationWindowPolicy(FakeHolidays())
    assert policy.classify(_at(2025, 6, 10, 8)).allowed is True
    assert policy.classify(_at(2025, 6, 10, 20)).allowed is True
