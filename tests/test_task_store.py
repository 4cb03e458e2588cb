# tests/test_task_store.py

from __future__ import annotations

from datetime import timedelta

import pytest

from focus_companion.tasks.task_models import ActiveTaskError, TaskStatus
from focus_companion.tasks.task_store import TaskStore

from .fakes import FakeClock


def test_only_one_task_can_be_working(state) -> None:
    store: TaskStore = state.task_store
    first = store.create_task("Write report", 30)

    with pytest.raises(ActiveTaskError) as exc:
        store.create_task("Read mail", 10)

    assert exc.value.current is not None
    assert exc.value.current.id == first.id
    assert store.get_current_task().id == first.id
    assert store.count_tasks() == 1


def test_create_task_rejects_bad_input(state) -> None:
    with pytest.raises(ValueError):
        state.task_store.create_task("   ", 30)
    with pytest.raises(ValueError):
        state.task_store.create_task("Nap", 0)


def test_terminal_transitions_are_idempotent(state) -> None:
    store: TaskStore = state.task_store
    task = store.create_task("Write report", 30)

    assert store.complete_task(task.id, "went fine") is True
    assert store.complete_task(task.id, "again") is False
    assert store.skip_task(task.id) is False

    done = store.get_task(task.id)
    assert done.status is TaskStatus.DONE
    assert done.comment == "went fine"
    assert done.completed_at is not None
    assert store.get_current_task() is None

    # A new task may start once the previous one is terminal.
    assert store.create_task("Next thing", 15).working


def test_elapsed_minutes_floors_and_never_goes_negative(state, clock: FakeClock) -> None:
    store: TaskStore = state.task_store
    task = store.create_task("Write report", 30)

    clock.advance(seconds=59)
    assert store.elapsed_minutes(task) == 0
    clock.advance(seconds=62)
    assert store.elapsed_minutes(task) == 2
    assert store.elapsed_minutes(task, task.started_at - timedelta(minutes=5)) == 0


def test_extend_only_applies_to_working_task(state) -> None:
    store: TaskStore = state.task_store
    task = store.create_task("Write report", 30)

    assert store.extend_task(task.id, 15) is True
    assert store.get_task(task.id).planned_minutes == 45

    store.skip_task(task.id)
    assert store.extend_task(task.id, 15) is False
    assert store.get_task(task.id).planned_minutes == 45


def test_reminder_ordinals_are_per_task(state) -> None:
    store: TaskStore = state.task_store
    a = store.create_task("A", 5)
    assert [store.add_reminder(a.id) for _ in range(3)] == [1, 2, 3]
    assert store.reminder_count(a.id) == 3
    store.complete_task(a.id)

    b = store.create_task("B", 5)
    assert store.reminder_count(b.id) == 0
    assert store.add_reminder(b.id) == 1

    records = store.reminders_for(a.id)
    assert [r.ordinal for r in records] == [1, 2, 3]
    assert all(r.task_id == a.id for r in records)
    assert records[0].sent_at == state.clock.now()


def test_recent_messages_ring_is_bounded(state) -> None:
    store: TaskStore = state.task_store
    for i in range(15):
        store.add_message("user" if i % 2 == 0 else "assistant", f"msg {i}")

    recent = store.get_recent_messages()
    assert len(recent) == 10
    assert [m.content for m in recent] == [f"msg {i}" for i in range(5, 15)]

    store.clear_messages()
    assert store.get_recent_messages() == []


def test_today_filter_uses_civil_date(state, clock: FakeClock) -> None:
    store: TaskStore = state.task_store
    yesterday = store.create_task("Yesterday", 10)
    store.complete_task(yesterday.id)

    clock.advance(minutes=24 * 60)
    today = store.create_task("Today", 10)

    assert [t.id for t in store.today_tasks()] == [today.id]
    assert [t.id for t in store.tasks_on((clock.now() - timedelta(days=1)).date())] == [yesterday.id]
    assert {t.id for t in store.tasks_in_days(2)} == {yesterday.id, today.id}
    assert store.recent_completed_count_today() == 0


def test_external_event_ref_survives_reload(settings, clock: FakeClock) -> None:
    store = TaskStore(settings.db_path, clock=clock)
    task = store.create_task("Write report", 30)
    store.set_external_event_ref(task.id, "evt-1")

    reopened = TaskStore(settings.db_path, clock=clock)
    assert reopened.get_current_task().external_event_ref == "evt-1"
