# tests/test_task_api.py

from __future__ import annotations

import pytest

from focus_companion.tasks import task_api
from focus_companion.tasks.task_models import TaskStatus

from .fakes import FakeCalendar, FakeClock, FakeGenerator, FakeMemory


@pytest.mark.asyncio
async def test_start_task_arms_reminder_and_calendar(
    state, generator: FakeGenerator, calendar: FakeCalendar, memory: FakeMemory
) -> None:
    calendar.is_configured = True
    generator.next_text = "Let's go!"

    result = await task_api.start_task(state, "Write report", 30)
    try:
        assert result.success
        assert result.response == "Let's go!"

        task = state.task_store.get_current_task()
        assert task.name == "Write report"
        assert task.external_event_ref == f"evt-{task.id}"
        assert state.scheduler.task_reminder_task_id == task.id
        assert calendar.created == [("Write report", 30, task.id)]
        assert "Planned: 30 min" in generator.calls[-1]
        assert any(s.startswith("[task started]") for s in memory.saved)
    finally:
        await state.scheduler.shutdown()


@pytest.mark.asyncio
async def test_start_task_rejected_while_another_is_working(state) -> None:
    await task_api.start_task(state, "Write report", 30)
    try:
        result = await task_api.start_task(state, "Read mail", 10)
        assert not result.success
        assert "Write report" in result.response
        assert "/done" in result.response
        assert state.task_store.count_tasks() == 1
    finally:
        await state.scheduler.shutdown()


@pytest.mark.asyncio
@pytest.mark.parametrize("minutes", [0, -5, 121])
async def test_start_task_validates_minutes(state, minutes: int) -> None:
    result = await task_api.start_task(state, "Write report", minutes)
    assert not result.success
    assert state.task_store.get_current_task() is None


@pytest.mark.asyncio
async def test_complete_task_closes_everything(
    state, clock: FakeClock, calendar: FakeCalendar, generator: FakeGenerator
) -> None:
    calendar.is_configured = True
    calendar.free_minutes = 120
    await task_api.start_task(state, "Write report", 30)
    task = state.task_store.get_current_task()
    clock.advance(minutes=25)

    result = await task_api.complete_task(state, "went fine")
    try:
        assert result.success
        done = state.task_store.get_task(task.id)
        assert done.status is TaskStatus.DONE
        assert done.comment == "went fine"
        assert not state.scheduler.task_reminder_active
        assert calendar.updated == [(f"evt-{task.id}", "Write report", 25, "done")]
        assert "120 min of free time left" in generator.calls[-1]
        assert state.scheduler.no_schedule_active
    finally:
        await state.scheduler.shutdown()


@pytest.mark.asyncio
async def test_complete_task_without_calendar_does_not_nag(state) -> None:
    await task_api.start_task(state, "Write report", 30)
    result = await task_api.complete_task(state)
    assert result.success
    assert not state.scheduler.no_schedule_active


@pytest.mark.asyncio
async def test_failed_generation_still_commits_state(state, generator: FakeGenerator) -> None:
    await task_api.start_task(state, "Write report", 30)
    generator.fail = True

    result = await task_api.complete_task(state)

    assert result.success
    assert result.response.startswith(task_api.APOLOGY)
    assert "Done: Write report" in result.response
    assert state.task_store.get_current_task() is None


@pytest.mark.asyncio
async def test_commands_without_task(state) -> None:
    assert (await task_api.complete_task(state)).response == task_api.NO_TASK
    assert (await task_api.skip_task(state)).response == task_api.NO_TASK
    assert not (await task_api.extend_task(state, 10)).success
    assert (await task_api.reset_task(state)).response == "Nothing to reset."
    assert "No task in progress" in (await task_api.task_status(state)).response


@pytest.mark.asyncio
async def test_skip_and_reset(state, calendar: FakeCalendar) -> None:
    calendar.is_configured = True
    await task_api.start_task(state, "A", 10)
    a = state.task_store.get_current_task()
    assert (await task_api.skip_task(state)).success
    assert state.task_store.get_task(a.id).status is TaskStatus.SKIPPED

    await task_api.start_task(state, "B", 10)
    b = state.task_store.get_current_task()
    result = await task_api.reset_task(state)
    assert result.response == "Reset: 'B' was closed as skipped."
    assert state.task_store.get_task(b.id).status is TaskStatus.SKIPPED
    assert not state.scheduler.task_reminder_active
    assert [u[3] for u in calendar.updated] == ["skipped", "skipped"]


@pytest.mark.asyncio
async def test_extend_rearms_reminder(state) -> None:
    await task_api.start_task(state, "Write report", 30)
    before = state.scheduler._task_reminder
    try:
        result = await task_api.extend_task(state, 15)
        assert result.success
        assert state.task_store.get_current_task().planned_minutes == 45
        assert state.scheduler._task_reminder is not before
        assert state.scheduler.task_reminder_active
    finally:
        await state.scheduler.shutdown()


@pytest.mark.asyncio
async def test_break_stops_no_schedule_and_starts_timer(state, calendar: FakeCalendar) -> None:
    calendar.is_configured = True
    calendar.free_minutes = 120
    state.scheduler.start_no_schedule_reminder()
    try:
        assert not (await task_api.start_break(state, 61)).success
        result = await task_api.start_break(state, 15)
        assert result.success
        assert state.scheduler.break_active
        assert not state.scheduler.no_schedule_active
    finally:
        await state.scheduler.shutdown()


@pytest.mark.asyncio
async def test_done_for_today_closes_task_and_day(state) -> None:
    await task_api.start_task(state, "Write report", 30)
    task = state.task_store.get_current_task()

    result = await task_api.done_for_today(state)

    assert result.success
    assert state.task_store.get_task(task.id).status is TaskStatus.SKIPPED
    assert state.scheduler.day_closed()
    assert not state.scheduler.task_reminder_active


@pytest.mark.asyncio
async def test_history_lists_today(state, clock: FakeClock, generator: FakeGenerator) -> None:
    assert (await task_api.task_history(state)).response == "No tasks today yet."

    await task_api.start_task(state, "A", 10)
    clock.advance(minutes=12)
    await task_api.complete_task(state)
    await task_api.start_task(state, "B", 20)
    clock.advance(minutes=5)
    await task_api.skip_task(state)

    generator.next_text = "Nice day."
    result = await task_api.task_history(state)

    assert result.response == "Nice day.\n\nHistory:\n✓ A (12/10 min)\n→ B (5/20 min)"


@pytest.mark.asyncio
async def test_add_structured_remind(state) -> None:
    result = await task_api.add_custom_remind(state, "9:00 wed,mon holidays Take your meds")

    assert result.success
    assert result.response.endswith("(ID: 1)")
    remind = state.reminds.get(1)
    assert remind.time == "09:00"
    assert remind.days == ["wed", "mon"]
    assert remind.include_holidays is True
    assert remind.message == "Take your meds"


@pytest.mark.asyncio
async def test_add_free_text_remind_uses_parser(state, generator: FakeGenerator) -> None:
    generator.remind_data = {"time": "21:30", "days": ["weekdays"], "message": "Stretch"}

    result = await task_api.add_custom_remind(state, "every weekday evening at half past nine remind me to stretch")

    assert result.success
    remind = state.reminds.list_enabled()[0]
    assert remind.days == ["mon", "tue", "wed", "thu", "fri"]
    assert remind.include_holidays is False


@pytest.mark.asyncio
async def test_add_remind_rejects_unparseable_text(state, generator: FakeGenerator) -> None:
    generator.remind_data = None
    result = await task_api.add_custom_remind(state, "sometime maybe")
    assert not result.success
    assert state.reminds.list_enabled() == []


@pytest.mark.asyncio
async def test_list_and_delete_reminds(state) -> None:
    assert (await task_api.list_custom_reminds(state)).response == "No reminders registered."

    r = state.reminds.create("07:30", "daily", False, "Water the plants")
    listing = (await task_api.list_custom_reminds(state)).response
    assert listing.startswith("Reminders:\n")
    assert "Water the plants" in listing

    assert (await task_api.delete_custom_remind(state, r.id)).response == 'Deleted reminder "Water the plants".'
    assert not (await task_api.delete_custom_remind(state, r.id)).success


def test_coin_balance(state) -> None:
    state.ledger.subtract(30, "idle")
    assert task_api.coin_balance(state).response == "Coins: 70"


@pytest.mark.asyncio
async def test_chat_records_both_turns(state, generator: FakeGenerator, memory: FakeMemory) -> None:
    generator.next_text = "Hi there!"

    result = await task_api.chat(state, "hello")

    assert result.response == "Hi there!"
    assert generator.calls[-1] == "hello"
    assert memory.queries == ["hello"]
    recent = state.task_store.get_recent_messages()
    assert [(m.role, m.content) for m in recent] == [("user", "hello"), ("assistant", "Hi there!")]
    assert memory.saved == ["user: hello\nassistant: Hi there!"]


@pytest.mark.asyncio
async def test_chat_without_reply_saves_no_memory(state, generator: FakeGenerator, memory: FakeMemory) -> None:
    generator.fail = True

    result = await task_api.chat(state, "hello")

    assert result.response.startswith(task_api.APOLOGY)
    assert memory.saved == []


@pytest.mark.asyncio
async def test_message_with_done_then_next_runs_both(state, generator: FakeGenerator) -> None:
    first = state.task_store.create_task("Workout", 30)
    generator.intents = [
        {"intent": "done", "params": {"comment": "felt great"}},
        {"intent": "next", "params": {"task_name": "Shopping"}},
    ]

    result = await task_api.handle_message(state, "Finished the workout, shopping next")
    try:
        assert result.success
        assert result.response.startswith("[Task done: felt great]\n")
        assert "\n\n[Task started: Shopping (30 min)]\n" in result.response

        assert state.task_store.get_task(first.id).status is TaskStatus.DONE
        current = state.task_store.get_current_task()
        assert current.name == "Shopping"
        assert current.planned_minutes == 30
        assert state.scheduler.task_reminder_task_id == current.id
        assert "Finished the workout, shopping next" not in generator.calls
    finally:
        await state.scheduler.shutdown()


@pytest.mark.asyncio
async def test_message_without_usable_intent_is_chat(state, generator: FakeGenerator) -> None:
    generator.next_text = "Sounds fun!"
    generator.intents = [{"intent": "next", "params": {}}]

    result = await task_api.handle_message(state, "maybe I'll do something later")

    assert result.response == "Sounds fun!"
    assert generator.intent_queries == ["maybe I'll do something later"]
    assert state.task_store.get_current_task() is None
    assert generator.calls[-1] == "maybe I'll do something later"


@pytest.mark.asyncio
async def test_message_intent_parser_failure_falls_back_to_chat(state, generator: FakeGenerator, monkeypatch) -> None:
    async def broken(text):
        raise RuntimeError("parser down")

    monkeypatch.setattr(generator, "parse_intents", broken)
    generator.next_text = "Hello!"

    result = await task_api.handle_message(state, "hi")
    assert result.response == "Hello!"


@pytest.mark.parametrize(
    ("intent", "params", "label"),
    [
        ("next", {"task_name": "Read", "minutes": 45}, "Task started: Read (45 min)"),
        ("break", {}, "Break: 10 min"),
        ("history", {"days": 3}, "History: last 3 days"),
        ("history", {}, "History: today"),
        ("remind_delete", {"remind_id": 2}, "Reminder deleted: ID 2"),
        ("skip", {}, "Task skipped"),
    ],
)
def test_intent_labels(intent: str, params: dict, label: str) -> None:
    assert task_api.intent_label(intent, params) == label


@pytest.mark.asyncio
async def test_run_intent_dispatches_break_and_remind(state, generator: FakeGenerator) -> None:
    generator.remind_data = None
    result = await task_api.run_intent(state, "break", {"minutes": "15"})
    try:
        assert result.success
        assert state.scheduler.break_active
    finally:
        await state.scheduler.shutdown()

    added = await task_api.run_intent(state, "remind_add", {"remind_text": "08:00 daily Water the plants"})
    assert added.success
    assert (await task_api.run_intent(state, "remind_list", {})).response.startswith("Reminders:")
    assert await task_api.run_intent(state, "remind_delete", {}) is None
    assert await task_api.run_intent(state, "chat", {}) is None
