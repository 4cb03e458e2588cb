# src/focus_companion/tasks/task_api.py

"""
Task lifecycle commands.

Each command mutates the stores first, then tells the scheduler which timer
to start or stop, then asks for a generated reply. The reply is the only part
allowed to fail softly: when generation fails the state change still stands
and the user gets a short apology with the plain facts.

Every command returns a CommandResult; connectors only render `response`.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..core import prompts
from ..core.state import AppState
from ..services.calendar import format_event, minutes_until
from .remind_registry import normalize_days, normalize_time
from .task_models import ActiveTaskError, CommandResult, CustomRemind, Task, TaskStatus

logger = logging.getLogger(__name__)

MAX_TASK_MINUTES = 120
MAX_BREAK_MINUTES = 60
MAX_HISTORY_DAYS = 30

APOLOGY = "Sorry, I couldn't come up with a reply just now."

NO_TASK = "No task in progress."

# "07:30 mon,wed,fri holidays Take your meds"
_STRUCTURED_REMIND_RE = re.compile(
    r"^\s*(?P<time>\d{1,2}:\d{2})\s+(?P<days>\S+)\s+(?:(?P<holidays>holidays)\s+)?(?P<message>.+?)\s*$",
    re.IGNORECASE,
)


async def _reply(
    state: AppState,
    situation: str,
    *,
    fallback: str,
    memory_query: str | None = None,
    record: bool = True,
    user_text: str | None = None,
) -> str:
    """Generated reply for a command, or APOLOGY + fallback facts when generation fails."""
    memory = ""
    if memory_query:
        try:
            memory = await state.memory.search(memory_query)
        except Exception:
            logger.exception("Memory search failed")

    recent = [{"role": m.role, "content": m.content} for m in state.task_store.get_recent_messages()]
    try:
        text = (await state.generator.generate(situation, recent, memory)).strip()
    except Exception:
        logger.exception("Content generation failed for a command reply")
        text = ""

    if user_text:
        state.task_store.add_message("user", user_text)
    if not text:
        return f"{APOLOGY}\n{fallback}".strip()

    if record:
        state.task_store.add_message("assistant", text)
    return text


async def _remember(state: AppState, content: str) -> None:
    try:
        await state.memory.save(content)
    except Exception:
        logger.exception("Memory save failed")


async def _close_calendar_event(state: AppState, task: Task, elapsed: int, status: TaskStatus) -> None:
    if not task.external_event_ref or not state.calendar.configured():
        return
    try:
        await state.calendar.update_task_event(
            event_id=task.external_event_ref,
            task_name=task.name,
            actual_minutes=elapsed,
            status=status.value,
        )
    except Exception:
        logger.exception("Calendar update failed for task %s", task.id)


async def _next_event_line(state: AppState) -> str | None:
    if not state.calendar.configured():
        return None
    try:
        event = await state.calendar.next_event_today()
    except Exception:
        logger.exception("Calendar lookup failed")
        return None
    if event is None:
        return None
    return f"{format_event(event, state.clock)} (in {minutes_until(event, state.clock.now())} min)"


def _clamp_minutes(raw: int, upper: int) -> int | None:
    try:
        minutes = int(raw)
    except (TypeError, ValueError):
        return None
    if minutes < 1 or minutes > upper:
        return None
    return minutes


# ---- task lifecycle ----


async def start_task(state: AppState, name: str, minutes: int) -> CommandResult:
    name = (name or "").strip()
    if not name:
        return CommandResult(False, "Tell me what you are going to work on.")
    planned = _clamp_minutes(minutes, MAX_TASK_MINUTES)
    if planned is None:
        return CommandResult(False, f"Planned time must be between 1 and {MAX_TASK_MINUTES} minutes.")

    try:
        task = state.task_store.create_task(name, planned)
    except ActiveTaskError as e:
        current = e.current.name if e.current is not None else "the current task"
        return CommandResult(
            False,
            f"'{current}' is still in progress. Use /done when it's finished or /skip to drop it.",
        )

    state.scheduler.stop_no_schedule_reminder()
    state.scheduler.start_task_reminder(task.id)

    if state.calendar.configured():
        try:
            ref = await state.calendar.create_task_event(task_name=name, minutes=planned, task_id=task.id)
        except Exception:
            logger.exception("Calendar event creation failed for task %s", task.id)
            ref = None
        if ref:
            state.task_store.set_external_event_ref(task.id, ref)

    today_count = state.task_store.recent_completed_count_today()
    response = await _reply(
        state,
        prompts.task_start(name, planned, state.clock.display(), today_count),
        fallback=f"Started: {name} ({planned} min).",
        memory_query=name,
    )
    await _remember(state, f"[task started] {name} ({planned} min)")
    return CommandResult(True, response)


async def complete_task(state: AppState, comment: str | None = None) -> CommandResult:
    task = state.task_store.get_current_task()
    if task is None:
        return CommandResult(False, NO_TASK)

    elapsed = state.task_store.elapsed_minutes(task)
    state.task_store.complete_task(task.id, comment)
    state.scheduler.stop_task_reminder()
    await _close_calendar_event(state, task, elapsed, TaskStatus.DONE)

    next_event = await _next_event_line(state)
    free = None if next_event else await state.scheduler.free_time_for_nag()

    response = await _reply(
        state,
        prompts.task_complete(
            task.name,
            elapsed,
            task.planned_minutes,
            comment,
            next_event=next_event,
            free_minutes=free,
        ),
        fallback=f"Done: {task.name} ({elapsed}/{task.planned_minutes} min).",
        memory_query=task.name,
    )
    note = f" comment: {comment}" if comment else ""
    await _remember(state, f"[task done] {task.name} (planned {task.planned_minutes} min, actual {elapsed} min){note}")

    if free is not None:
        state.scheduler.start_no_schedule_reminder()
    return CommandResult(True, response)


async def skip_task(state: AppState) -> CommandResult:
    task = state.task_store.get_current_task()
    if task is None:
        return CommandResult(False, NO_TASK)

    elapsed = state.task_store.elapsed_minutes(task)
    state.task_store.skip_task(task.id)
    state.scheduler.stop_task_reminder()
    await _close_calendar_event(state, task, elapsed, TaskStatus.SKIPPED)

    next_event = await _next_event_line(state)
    response = await _reply(
        state,
        prompts.task_skip(task.name, elapsed, next_event=next_event),
        fallback=f"Skipped: {task.name}.",
        memory_query=task.name,
    )
    await _remember(state, f"[task skipped] {task.name}")
    return CommandResult(True, response)


async def extend_task(state: AppState, minutes: int) -> CommandResult:
    task = state.task_store.get_current_task()
    if task is None:
        return CommandResult(False, NO_TASK)
    extra = _clamp_minutes(minutes, MAX_TASK_MINUTES)
    if extra is None:
        return CommandResult(False, f"Extension must be between 1 and {MAX_TASK_MINUTES} minutes.")

    if not state.task_store.extend_task(task.id, extra):
        return CommandResult(False, NO_TASK)
    state.scheduler.start_task_reminder(task.id)

    planned = task.planned_minutes + extra
    elapsed = state.task_store.elapsed_minutes(task)
    response = await _reply(
        state,
        prompts.task_extend(task.name, extra, planned, elapsed),
        fallback=f"Extended: {task.name} is now planned for {planned} min.",
    )
    return CommandResult(True, response)


async def reset_task(state: AppState) -> CommandResult:
    """Force-close the working task without commentary (for a stuck state)."""
    task = state.task_store.get_current_task()
    if task is None:
        return CommandResult(True, "Nothing to reset.")

    elapsed = state.task_store.elapsed_minutes(task)
    state.task_store.skip_task(task.id)
    state.scheduler.stop_task_reminder()
    await _close_calendar_event(state, task, elapsed, TaskStatus.SKIPPED)
    logger.info("Task %s reset", task.id)
    return CommandResult(True, f"Reset: '{task.name}' was closed as skipped.")


async def task_status(state: AppState) -> CommandResult:
    task = state.task_store.get_current_task()
    if task is None:
        return CommandResult(True, "No task in progress. Want to start something?")

    elapsed = state.task_store.elapsed_minutes(task)
    response = await _reply(
        state,
        prompts.task_status(task.name, task.planned_minutes, elapsed),
        fallback=f"{task.name}: {elapsed}/{task.planned_minutes} min.",
        record=False,
    )
    return CommandResult(True, response)


async def start_break(state: AppState, minutes: int) -> CommandResult:
    length = _clamp_minutes(minutes, MAX_BREAK_MINUTES)
    if length is None:
        return CommandResult(False, f"Break must be between 1 and {MAX_BREAK_MINUTES} minutes.")

    state.scheduler.stop_no_schedule_reminder()
    state.scheduler.start_break_timer(length)

    response = await _reply(
        state,
        prompts.break_start(length, state.clock.display()),
        fallback=f"Break: {length} min. I'll call you when it's over.",
    )
    return CommandResult(True, response)


async def done_for_today(state: AppState) -> CommandResult:
    task = state.task_store.get_current_task()
    if task is not None:
        elapsed = state.task_store.elapsed_minutes(task)
        state.task_store.skip_task(task.id)
        state.scheduler.stop_task_reminder()
        await _close_calendar_event(state, task, elapsed, TaskStatus.SKIPPED)

    state.scheduler.stop_no_schedule_reminder()
    state.scheduler.close_day()

    completed = state.task_store.recent_completed_count_today()
    response = await _reply(
        state,
        prompts.done_for_today(completed, task.name if task is not None else None),
        fallback=f"Done for today. Tasks completed: {completed}.",
    )
    await _remember(state, f"[day closed] tasks completed: {completed}")
    return CommandResult(True, response)


async def task_history(state: AppState, days: int = 0) -> CommandResult:
    try:
        span = max(0, min(int(days), MAX_HISTORY_DAYS))
    except (TypeError, ValueError):
        span = 0

    tasks = state.task_store.tasks_in_days(span) if span else state.task_store.today_tasks()
    if not tasks:
        return CommandResult(True, f"No tasks in the last {span} days." if span else "No tasks today yet.")

    elapsed = [_actual_minutes(state, t) for t in tasks]
    listing = prompts.history_lines(tasks, elapsed)
    review = await _reply(
        state,
        prompts.task_history(tasks, elapsed, days=span),
        fallback="",
        record=False,
    )
    return CommandResult(True, f"{review}\n\nHistory:\n{listing}")


def _actual_minutes(state: AppState, task: Task) -> int:
    if task.completed_at is not None:
        return state.task_store.elapsed_minutes(task, task.completed_at)
    if task.working:
        return state.task_store.elapsed_minutes(task)
    return 0


# ---- custom reminds ----


def _parse_structured_remind(text: str) -> tuple[str, list[str], bool, str] | None:
    m = _STRUCTURED_REMIND_RE.match(text or "")
    if not m:
        return None
    try:
        return (
            normalize_time(m.group("time")),
            normalize_days(m.group("days")),
            bool(m.group("holidays")),
            m.group("message"),
        )
    except ValueError:
        return None


def _format_remind(r: CustomRemind) -> str:
    holidays = " (incl. holidays)" if r.include_holidays else ""
    return f"{r.id}. {r.time} [{','.join(r.days)}]{holidays} \"{r.message}\""


async def add_custom_remind(state: AppState, text: str) -> CommandResult:
    """
    Register a recurring remind.

    Accepts "HH:MM days [holidays] message" (days: mon,wed,fri | daily | weekdays |
    weekends); anything else is handed to the model to extract the same fields.
    """
    parsed = _parse_structured_remind(text)
    if parsed is None:
        try:
            data = await state.generator.parse_remind(text)
        except Exception:
            logger.exception("Remind parsing via LLM failed")
            data = None
        if data is None:
            return CommandResult(
                False,
                "I couldn't understand that reminder. Try: /remind add 09:00 weekdays Take your meds",
            )
        try:
            parsed = (
                normalize_time(str(data.get("time", ""))),
                normalize_days(data.get("days") or []),
                bool(data.get("include_holidays", False)),
                str(data.get("message", "")),
            )
        except ValueError as e:
            return CommandResult(False, f"I couldn't understand that reminder: {e}")

    time_hhmm, days, include_holidays, message = parsed
    try:
        remind = state.reminds.create(time_hhmm, days, include_holidays, message)
    except ValueError as e:
        return CommandResult(False, f"Invalid reminder: {e}")

    confirmation = await _reply(
        state,
        prompts.remind_added(remind),
        fallback=f"Reminder saved: {_format_remind(remind)}",
        record=False,
    )
    return CommandResult(True, f"{confirmation}\n\n(ID: {remind.id})")


async def list_custom_reminds(state: AppState) -> CommandResult:
    reminds = state.reminds.list_enabled()
    if not reminds:
        return CommandResult(True, "No reminders registered.")
    return CommandResult(True, "Reminders:\n" + "\n".join(_format_remind(r) for r in reminds))


async def delete_custom_remind(state: AppState, remind_id: int) -> CommandResult:
    remind = state.reminds.get(remind_id)
    if remind is None:
        return CommandResult(False, f"No reminder with ID {remind_id}.")
    state.reminds.delete(remind_id)
    return CommandResult(True, f"Deleted reminder \"{remind.message}\".")


# ---- misc ----


def coin_balance(state: AppState) -> CommandResult:
    return CommandResult(True, f"Coins: {state.ledger.balance()}")


async def chat(state: AppState, text: str) -> CommandResult:
    """Free-form conversation with recent messages and memory as context."""
    text = (text or "").strip()
    if not text:
        return CommandResult(False, "")

    response = await _reply(state, text, fallback="", memory_query=text, user_text=text)
    if not response.startswith(APOLOGY):
        await _remember(state, f"user: {text}\nassistant: {response}")
    return CommandResult(True, response)


# ---- natural-language routing ----

DEFAULT_TASK_MINUTES = 30
DEFAULT_BREAK_MINUTES = 10


def _int_param(params: dict[str, Any], key: str, default: int | None = None) -> int | None:
    raw = params.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def intent_label(intent: str, params: dict[str, Any]) -> str:
    """Short tag shown above each command reply when one message runs several."""
    if intent == "next":
        minutes = _int_param(params, "minutes", DEFAULT_TASK_MINUTES)
        return f"Task started: {params.get('task_name')} ({minutes} min)"
    if intent == "done":
        comment = params.get("comment")
        return f"Task done: {comment}" if comment else "Task done"
    if intent == "extend":
        return f"Extended: +{_int_param(params, 'minutes', DEFAULT_TASK_MINUTES)} min"
    if intent == "break":
        return f"Break: {_int_param(params, 'minutes', DEFAULT_BREAK_MINUTES)} min"
    if intent == "history":
        days = _int_param(params, "days", 0)
        return f"History: last {days} days" if days else "History: today"
    if intent == "remind_delete":
        return f"Reminder deleted: ID {params.get('remind_id')}"
    labels = {
        "skip": "Task skipped",
        "status": "Status",
        "done_today": "Done for today",
        "remind_add": "Reminder added",
        "remind_list": "Reminders",
        "reset": "Task reset",
    }
    return labels.get(intent, intent)


async def run_intent(state: AppState, intent: str, params: dict[str, Any]) -> CommandResult | None:
    """
    Dispatch one parsed intent to its command.

    Returns None for chat and for intents missing a required parameter.
    """
    if intent == "next":
        name = str(params.get("task_name") or "").strip()
        if not name:
            return None
        return await start_task(state, name, _int_param(params, "minutes", DEFAULT_TASK_MINUTES))
    if intent == "done":
        comment = str(params.get("comment") or "").strip() or None
        return await complete_task(state, comment)
    if intent == "skip":
        return await skip_task(state)
    if intent == "extend":
        return await extend_task(state, _int_param(params, "minutes", DEFAULT_TASK_MINUTES))
    if intent == "status":
        return await task_status(state)
    if intent == "break":
        return await start_break(state, _int_param(params, "minutes", DEFAULT_BREAK_MINUTES))
    if intent == "done_today":
        return await done_for_today(state)
    if intent == "history":
        return await task_history(state, _int_param(params, "days", 0))
    if intent == "remind_add":
        text = str(params.get("remind_text") or "").strip()
        if not text:
            return None
        return await add_custom_remind(state, text)
    if intent == "remind_list":
        return await list_custom_reminds(state)
    if intent == "remind_delete":
        remind_id = _int_param(params, "remind_id")
        if not remind_id:
            return None
        return await delete_custom_remind(state, remind_id)
    if intent == "reset":
        return await reset_task(state)
    return None


async def handle_message(state: AppState, text: str) -> CommandResult:
    """
    Free text entry point: run the commands the message asks for, in order,
    each reply tagged with its label. Falls back to chat when none apply.
    """
    try:
        intents = await state.generator.parse_intents(text)
    except Exception:
        logger.exception("Intent parsing failed; treating message as chat")
        intents = []

    parts: list[str] = []
    for item in intents:
        intent = item.get("intent", "chat")
        params = item.get("params") or {}
        result = await run_intent(state, intent, params)
        if result is None or not result.response:
            continue
        logger.info("Message routed to %s", intent)
        parts.append(f"[{intent_label(intent, params)}]\n{result.response}")

    if parts:
        return CommandResult(True, "\n\n".join(parts))
    return await chat(state, text)
