# tests/test_remind_registry.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from focus_companion.tasks.remind_registry import CustomRemindRegistry, normalize_days, normalize_time

TOKYO = ZoneInfo("Asia/Tokyo")

MONDAY_9AM = datetime(2025, 6, 9, 9, 0, tzinfo=TOKYO)
TUESDAY_9AM = datetime(2025, 6, 10, 9, 0, tzinfo=TOKYO)


def test_normalize_time() -> None:
    assert normalize_time("9:05") == "09:05"
    assert normalize_time("23:59") == "23:59"
    for bad in ("24:00", "9", "09:60", ""):
        with pytest.raises(ValueError):
            normalize_time(bad)


def test_normalize_days_expands_groups_and_keeps_order() -> None:
    assert normalize_days("wed,mon") == ["wed", "mon"]
    assert normalize_days(["Monday", "mon", "fri"]) == ["mon", "fri"]
    assert normalize_days("weekends") == ["sat", "sun"]
    assert len(normalize_days("daily")) == 7
    with pytest.raises(ValueError):
        normalize_days("someday")
    with pytest.raises(ValueError):
        normalize_days([])


def test_remind_fires_on_listed_weekday_only(tmp_path: Path) -> None:
    reg = CustomRemindRegistry(tmp_path / "focus.sqlite3")
    r = reg.create("09:00", ["mon", "wed", "fri"], False, "Take your meds")

    assert [x.id for x in reg.due(MONDAY_9AM, holiday=False)] == [r.id]
    assert reg.due(TUESDAY_9AM, holiday=False) == []
    assert reg.due(MONDAY_9AM.replace(minute=1), holiday=False) == []


def test_holidays_silence_reminds_unless_included(tmp_path: Path) -> None:
    reg = CustomRemindRegistry(tmp_path / "focus.sqlite3")
    plain = reg.create("09:00", "mon", False, "Plain")
    always = reg.create("09:00", "mon", True, "Always")

    due = reg.due(MONDAY_9AM, holiday=True)
    assert [r.id for r in due] == [always.id]
    assert plain.id not in [r.id for r in due]


def test_days_round_trip_in_given_order(tmp_path: Path) -> None:
    db = tmp_path / "focus.sqlite3"
    created = CustomRemindRegistry(db).create("7:30", ["wed", "mon"], True, "Stretch")

    loaded = CustomRemindRegistry(db).get(created.id)
    assert loaded is not None
    assert loaded.time == "07:30"
    assert loaded.days == ["wed", "mon"]
    assert loaded.include_holidays is True


def test_delete_and_validation(tmp_path: Path) -> None:
    reg = CustomRemindRegistry(tmp_path / "focus.sqlite3")
    r = reg.create("21:00", "daily", False, "Journal")

    assert reg.delete(r.id) is True
    assert reg.delete(r.id) is False
    assert reg.list_enabled() == []

    with pytest.raises(ValueError):
        reg.create("21:00", "daily", False, "  ")
