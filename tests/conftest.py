# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from focus_companion.core.state import AppState
from focus_companion.core.window import NotificationWindowPolicy
from focus_companion.tasks.coin_ledger import CoinLedger
from focus_companion.tasks.reminder_scheduler import ReminderScheduler, SchedulerTimings
from focus_companion.tasks.remind_registry import CustomRemindRegistry
from focus_companion.tasks.task_store import TaskStore

from .fakes import FakeCalendar, FakeClock, FakeGenerator, FakeHolidays, FakeMemory, FakeMessenger

# Saturday afternoon: inside the notification window.
SATURDAY_2PM = datetime(2025, 6, 7, 14, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        db_path=tmp_path / "focus.sqlite3",
        persona_name="Miu",
        timezone="Asia/Tokyo",
        recent_message_limit=10,
        coin_initial_balance=100,
        reminder_interval_minutes=10,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(SATURDAY_2PM)


@pytest.fixture()
def timings() -> SchedulerTimings:
    # One "minute" lasts 10 ms so timer tests finish quickly.
    return SchedulerTimings(
        minute_s=0.01,
        reminder_interval_minutes=1,
        idle_first_delay_s=0.01,
        idle_penalty_threshold=3,
        idle_penalty_coins=10,
        free_time_threshold_minutes=30,
    )


@pytest.fixture()
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture()
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture()
def memory() -> FakeMemory:
    return FakeMemory()


@pytest.fixture()
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture()
def holidays() -> FakeHolidays:
    return FakeHolidays()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    clock: FakeClock,
    timings: SchedulerTimings,
    generator: FakeGenerator,
    messenger: FakeMessenger,
    memory: FakeMemory,
    calendar: FakeCalendar,
    holidays: FakeHolidays,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep real SQLite stores here (TaskStore/CoinLedger/registry) because
    their correctness is part of what we want to test.
    """
    task_store = TaskStore(settings.db_path, clock=clock, recent_limit=settings.recent_message_limit)
    ledger = CoinLedger(settings.db_path, initial_balance=settings.coin_initial_balance)
    window = NotificationWindowPolicy(holidays)
    scheduler = ReminderScheduler(
        task_store=task_store,
        ledger=ledger,
        window=window,
        clock=clock,
        generator=generator,
        messenger=messenger,
        calendar=calendar,
        memory=memory,
        timings=timings,
    )
    return AppState(
        settings=settings,
        clock=clock,
        task_store=task_store,
        ledger=ledger,
        reminds=CustomRemindRegistry(settings.db_path),
        holidays=holidays,
        window=window,
        generator=generator,
        memory=memory,
        calendar=calendar,
        scheduler=scheduler,
    )
