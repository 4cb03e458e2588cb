# src/focus_companion/core/prompts.py

"""
Situation texts handed to the content generator.

Each builder returns a plain description ("Situation: ..." + "- key: value"
facts + one instruction line). The persona prompt explains how to read them.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum

from ..tasks.task_models import CustomRemind, Task, TaskStatus

STATUS_MARKS: dict[TaskStatus, str] = {
    TaskStatus.DONE: "✓",
    TaskStatus.SKIPPED: "→",
    TaskStatus.WORKING: "⏳",
}


class Greeting(StrEnum):
    WAKE = "wake"
    WORK_START = "work_start"
    WORK_END = "work_end"
    BEDTIME = "bedtime"


def _block(headline: str, facts: Sequence[str], instruction: str) -> str:
    lines = [f"Situation: {headline}", *(f"- {f}" for f in facts), "", instruction]
    return "\n".join(lines)


def task_start(name: str, minutes: int, now_display: str, today_count: int) -> str:
    return _block(
        "The user declared a new task.",
        [
            f"Task: {name}",
            f"Planned: {minutes} min",
            f"Current time: {now_display}",
            f"Tasks completed today: {today_count}",
        ],
        "Reply with an energetic message cheering them on.",
    )


def task_remind(name: str, elapsed: int, planned: int, ordinal: int) -> str:
    return _block(
        "The planned time for the current task has passed.",
        [
            f"Task: {name}",
            f"Elapsed: {elapsed} min (planned: {planned} min)",
            f"Reminder number: {ordinal}",
        ],
        "Ask how it is going. The higher the reminder number, the more sulky and worried you may sound.",
    )


def task_complete(
    name: str,
    elapsed: int,
    planned: int,
    comment: str | None,
    *,
    next_event: str | None = None,
    free_minutes: int | None = None,
) -> str:
    facts = [
        f"Task: {name}",
        f"Actual time: {elapsed} min (planned: {planned} min)",
        f"Comment: {comment or 'none'}",
    ]
    if next_event:
        facts.append(f"Next calendar event: {next_event}")
    elif free_minutes is not None:
        facts.append(f"No more events today, {free_minutes} min of free time left")
    return _block(
        "The user completed a task.",
        facts,
        "Celebrate with them. If there is a next event or free time, mention it.",
    )


def task_skip(name: str, elapsed: int, *, next_event: str | None = None) -> str:
    facts = [f"Task: {name}", f"Elapsed: {elapsed} min"]
    if next_event:
        facts.append(f"Next calendar event: {next_event}")
    return _block(
        "The user skipped a task.",
        facts,
        "Sound a little disappointed, then encourage them to switch gears.",
    )


def task_extend(name: str, extra: int, planned: int, elapsed: int) -> str:
    return _block(
        "The user extended the current task.",
        [f"Task: {name}", f"Added: {extra} min", f"New plan: {planned} min", f"Elapsed: {elapsed} min"],
        "Acknowledge briefly and keep them going.",
    )


def task_status(name: str, planned: int, elapsed: int) -> str:
    return _block(
        "The user is checking the current task.",
        [f"Task: {name}", f"Planned: {planned} min", f"Elapsed: {elapsed} min"],
        "Tell them where they stand and cheer them on.",
    )


def break_start(minutes: int, now_display: str) -> str:
    return _block(
        "The user is taking a break.",
        [f"Break: {minutes} min", f"Current time: {now_display}"],
        "Be happy for them and tell them to rest well.",
    )


def break_end() -> str:
    return _block(
        "The user's break is over.",
        [],
        "Let them know the break is over and invite them to get back to it together.",
    )


def task_history(tasks: Sequence[Task], elapsed: Sequence[int], *, days: int = 0) -> str:
    span = "today" if days <= 0 else f"the last {days} days"
    facts = [
        f"{i}. {t.name} (planned {t.planned_minutes} min, actual {e} min, {t.status.value})"
        for i, (t, e) in enumerate(zip(tasks, elapsed, strict=True), start=1)
    ]
    return _block(
        f"The user is reviewing their task history for {span}.",
        facts,
        "Look back on it and praise the effort.",
    )


def history_lines(tasks: Sequence[Task], elapsed: Sequence[int]) -> str:
    return "\n".join(
        f"{STATUS_MARKS.get(t.status, '?')} {t.name} ({e}/{t.planned_minutes} min)"
        for t, e in zip(tasks, elapsed, strict=True)
    )


_GREETINGS: dict[Greeting, tuple[str, str]] = {
    Greeting.WAKE: ("It is 7 in the morning.", "Say good morning and that you will do your best together today."),
    Greeting.WORK_START: (
        "It is 10:00 on a workday and their job starts now.",
        "Wish them a good workday and say you look forward to the evening.",
    ),
    Greeting.WORK_END: (
        "It is 19:00 on a workday and their job is over.",
        "Thank them for their hard work and say you are glad they are back.",
    ),
    Greeting.BEDTIME: (
        "It is 22:00, time to wind down.",
        "Tell them it is time to rest, show you care about their health and say good night.",
    ),
}


def daily_greeting(kind: Greeting, now_display: str) -> str:
    headline, instruction = _GREETINGS[kind]
    return _block(headline, [f"Current time: {now_display}"], instruction)


def _nag_instruction(count: int, coins_lost: int) -> str:
    if count <= 1:
        return "Gently suggest starting the next task."
    if count == 2:
        return "Sound a little worried and nudge them softly to start the next task."
    if coins_lost:
        return (
            "They have been slacking, so you confiscated some coins. Say you might spend them on snacks, "
            "but that they can earn them back by starting a task."
        )
    return "Say you are worried they are slacking and that you feel lonely."


def no_schedule_nag(count: int, interval_minutes: int, coins_lost: int = 0, balance: int | None = None) -> str:
    facts = [f"Minutes without a task: {count * interval_minutes}", f"Reminder number: {count}"]
    if coins_lost:
        facts.append(f"Coins confiscated: {coins_lost} (balance: {balance})")
    return _block(
        "The user finished a task and has not started another one, with free time left today.",
        facts,
        _nag_instruction(count, coins_lost),
    )


def idle_nag(count: int, coins_lost: int = 0, balance: int | None = None) -> str:
    facts = [f"Consecutive idle checks: {count}"]
    if coins_lost:
        facts.append(f"Coins confiscated: {coins_lost} (balance: {balance})")
    return _block("The user has no task running.", facts, _nag_instruction(count, coins_lost))


def done_for_today(today_count: int, skipped: str | None = None) -> str:
    facts = [f"Tasks completed today: {today_count}"]
    if skipped:
        facts.append(f"Unfinished task closed: {skipped}")
    return _block(
        "The user is done for today.",
        facts,
        "Thank them for the day, praise what they did and tell them to rest.",
    )


def remind_added(remind: CustomRemind) -> str:
    return _block(
        "The user registered a recurring reminder.",
        [
            f"Time: {remind.time}",
            f"Days: {','.join(remind.days)} ({'including' if remind.include_holidays else 'excluding'} holidays)",
            f"Message: {remind.message}",
        ],
        "Confirm the registration in one short sentence.",
    )
