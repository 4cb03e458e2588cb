# tests/test_prompts.py

from __future__ import annotations

from focus_companion.core import prompts


def test_situation_block_shape() -> None:
    text = prompts.task_remind("Write report", 40, 30, 2)
    lines = text.splitlines()

    assert lines[0] == "Situation: The planned time for the current task has passed."
    assert "- Task: Write report" in lines
    assert "- Elapsed: 40 min (planned: 30 min)" in lines
    assert "- Reminder number: 2" in lines


def test_nag_mentions_coins_only_when_charged() -> None:
    calm = prompts.idle_nag(1)
    charged = prompts.idle_nag(3, coins_lost=10, balance=90)

    assert "Coins" not in calm
    assert "- Coins confiscated: 10 (balance: 90)" in charged
    assert "Minutes without a task: 20" in prompts.no_schedule_nag(2, 10)


def test_complete_prefers_next_event_over_free_time() -> None:
    text = prompts.task_complete("A", 10, 10, None, next_event="18:00-19:00 Dinner", free_minutes=90)
    assert "Next calendar event: 18:00-19:00 Dinner" in text
    assert "min of free time left" not in text
    assert "Comment: none" in text
