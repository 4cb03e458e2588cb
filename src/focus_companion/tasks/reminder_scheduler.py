# src/focus_companion/tasks/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

Owns every live timer of the process:
- task-overdue reminder (one-shot after the planned time, then every interval),
- break timer (one-shot),
- no-schedule reminder (idle nag after a task, with coin penalty escalation),
plus the counter of the coarse idle scan that the cron dispatcher drives.

Each timer kind has exactly one handle slot on the instance. Starting a timer
always cancels the previous handle of the same kind first, so two loops of the
same kind never overlap.

Every tick re-reads task state before acting and treats "task no longer
working" as a signal to stop. Collaborator calls (generation, memory,
calendar, delivery) sit behind error boundaries: a failing tick is logged
and the loop keeps running. When generation fails, nothing is delivered and
counters/ordinals/coins stay untouched.

Ticks run under asyncio.shield: a stop request cancels the loop, but a send
that is already in flight is allowed to finish.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any

from ..core import prompts
from ..core.clock import Clock
from ..core.ports import CalendarService, ChatMessage, ContentGenerator, MemoryService, OutboundMessenger
from ..core.window import NotificationWindowPolicy
from .coin_ledger import CoinLedger
from .task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SchedulerTimings:
    """Timer constants. minute_s only exists so tests can shrink a minute."""

    minute_s: float = 60.0
    reminder_interval_minutes: int = 10
    idle_first_delay_s: float = 10.0
    idle_penalty_threshold: int = 3
    idle_penalty_coins: int = 10
    free_time_threshold_minutes: int = 30

    @property
    def reminder_interval_s(self) -> float:
        return self.reminder_interval_minutes * self.minute_s

    @classmethod
    def from_settings(cls, settings: Any) -> SchedulerTimings:
        return cls(
            reminder_interval_minutes=int(getattr(settings, "reminder_interval_minutes", 10)),
            idle_first_delay_s=float(getattr(settings, "idle_first_delay_seconds", 10.0)),
            idle_penalty_threshold=int(getattr(settings, "idle_penalty_threshold", 3)),
            idle_penalty_coins=int(getattr(settings, "idle_penalty_coins", 10)),
            free_time_threshold_minutes=int(getattr(settings, "free_time_threshold_minutes", 30)),
        )


class ResetCause(StrEnum):
    STARTED = "started"
    STOPPED = "stopped"
    TASK_ACTIVE = "task_active"
    WINDOW_CLOSED = "window_closed"
    NO_SCHEDULE_ACTIVE = "no_schedule_active"
    ON_BREAK = "on_break"
    DAY_CLOSED = "day_closed"


@dataclass(slots=True)
class IdleEscalation:
    """
    Escalating idle counter tied to the coin penalty.

    A tick first asks for the prospective step (next count + penalty due),
    and only commits it once the nag has been generated. A failed tick
    therefore leaves the counter where it was.
    """

    threshold: int
    penalty: int
    count: int = 0
    last_reset_cause: ResetCause | None = None

    def reset(self, cause: ResetCause) -> None:
        if self.count:
            logger.debug("Idle counter reset from %s (%s)", self.count, cause)
        self.count = 0
        self.last_reset_cause = cause

    def next_step(self) -> tuple[int, int]:
        nxt = self.count + 1
        return nxt, (self.penalty if nxt >= self.threshold else 0)

    def commit(self, count: int) -> None:
        self.count = count


class ReminderScheduler:
    def __init__(
        self,
        *,
        task_store: TaskStore,
        ledger: CoinLedger,
        window: NotificationWindowPolicy,
        clock: Clock,
        generator: ContentGenerator,
        messenger: OutboundMessenger,
        calendar: CalendarService,
        memory: MemoryService,
        timings: SchedulerTimings | None = None,
    ) -> None:
        self._store = task_store
        self._ledger = ledger
        self._window = window
        self._clock = clock
        self._generator = generator
        self._messenger = messenger
        self._calendar = calendar
        self._memory = memory
        self.timings = timings or SchedulerTimings()

        self._task_reminder: asyncio.Task[None] | None = None
        self._task_reminder_id: int | None = None
        self._break_timer: asyncio.Task[None] | None = None
        self._idle_timer: asyncio.Task[None] | None = None

        t = self.timings
        self.no_schedule = IdleEscalation(threshold=t.idle_penalty_threshold, penalty=t.idle_penalty_coins)
        self.coarse_idle = IdleEscalation(threshold=t.idle_penalty_threshold, penalty=t.idle_penalty_coins)
        self._day_closed: date | None = None

    # ---- introspection ----

    @property
    def task_reminder_active(self) -> bool:
        return self._task_reminder is not None and not self._task_reminder.done()

    @property
    def task_reminder_task_id(self) -> int | None:
        return self._task_reminder_id if self.task_reminder_active else None

    @property
    def break_active(self) -> bool:
        return self._break_timer is not None and not self._break_timer.done()

    @property
    def no_schedule_active(self) -> bool:
        return self._idle_timer is not None and not self._idle_timer.done()

    def day_closed(self, today: date | None = None) -> bool:
        return self._day_closed is not None and self._day_closed == (today or self._clock.today())

    def close_day(self) -> None:
        """Silence the coarse idle scan for the rest of the civil day."""
        self._day_closed = self._clock.today()
        self.coarse_idle.reset(ResetCause.DAY_CLOSED)

    # ---- shared helpers ----

    @staticmethod
    def _cancel(handle: asyncio.Task[None] | None) -> None:
        if handle is not None and not handle.done() and handle is not asyncio.current_task():
            handle.cancel()

    def _recent(self) -> list[ChatMessage]:
        try:
            return [{"role": m.role, "content": m.content} for m in self._store.get_recent_messages()]
        except Exception:
            logger.exception("Failed to load recent messages")
            return []

    async def _search_memory(self, query: str) -> str:
        try:
            return await self._memory.search(query)
        except Exception:
            logger.exception("Memory search failed")
            return ""

    async def _save_memory(self, content: str) -> None:
        try:
            await self._memory.save(content)
        except Exception:
            logger.exception("Memory save failed")

    async def _generate(self, situation: str, *, memory_query: str | None = None) -> str | None:
        """Generated text, or None (logged) when generation fails."""
        memory = await self._search_memory(memory_query) if memory_query else ""
        try:
            text = await self._generator.generate(situation, self._recent(), memory)
        except Exception:
            logger.exception("Content generation failed; skipping this notification")
            return None
        text = (text or "").strip()
        return text or None

    async def deliver(self, text: str, *, remember: bool = True) -> bool:
        """Send text to the user. Failures are logged and never retried."""
        try:
            await self._messenger.send_text(text=text)
        except Exception:
            logger.exception("Delivery failed")
            return False
        if remember:
            try:
                self._store.add_message("assistant", text)
            except Exception:
                logger.exception("Failed to record delivered message")
        return True

    async def notify(self, situation: str, *, memory_query: str | None = None) -> bool:
        """Generate and deliver one background notification."""
        text = await self._generate(situation, memory_query=memory_query)
        if text is None:
            return False
        return await self.deliver(text)

    # ---- task-overdue reminder ----

    def start_task_reminder(self, task_id: int) -> None:
        self.stop_task_reminder()

        task = self._store.get_task(task_id)
        if task is None or not task.working:
            logger.info("Not arming reminder: task %s is not working", task_id)
            return

        elapsed = self._store.elapsed_minutes(task)
        remaining = max(1, task.planned_minutes - elapsed)
        logger.info("Task reminder for task %s: first check in %s min", task_id, remaining)

        self._task_reminder_id = task_id
        self._task_reminder = asyncio.create_task(
            self._task_reminder_loop(task_id, remaining * self.timings.minute_s),
            name=f"task-reminder-{task_id}",
        )

    def stop_task_reminder(self) -> None:
        self._cancel(self._task_reminder)
        self._task_reminder = None
        self._task_reminder_id = None

    async def _task_reminder_loop(self, task_id: int, first_delay_s: float) -> None:
        me = asyncio.current_task()
        delay = first_delay_s
        try:
            while True:
                await asyncio.sleep(delay)
                delay = self.timings.reminder_interval_s
                try:
                    keep_going = await asyncio.shield(self._task_reminder_tick(task_id))
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Task reminder tick failed (task %s)", task_id)
                    keep_going = True
                if not keep_going:
                    logger.info("Task %s is no longer working; reminder stops", task_id)
                    return
        finally:
            if self._task_reminder is me:
                self._task_reminder = None
                self._task_reminder_id = None

    async def _task_reminder_tick(self, task_id: int) -> bool:
        task = self._store.get_task(task_id)
        if task is None or not task.working:
            return False

        elapsed = self._store.elapsed_minutes(task)
        if elapsed < task.planned_minutes:
            return True

        ordinal = self._store.reminder_count(task_id) + 1
        text = await self._generate(
            prompts.task_remind(task.name, elapsed, task.planned_minutes, ordinal),
            memory_query=task.name,
        )
        if text is None:
            return True

        # The user may have closed the task while we were generating.
        task = self._store.get_task(task_id)
        if task is None or not task.working:
            return False

        ordinal = self._store.add_reminder(task_id)
        await self.deliver(text)
        await self._save_memory(f"[reminder #{ordinal}] task '{task.name}' at {elapsed} min")
        return True

    # ---- break timer ----

    def start_break_timer(self, minutes: int) -> None:
        self.stop_break_timer()
        minutes = max(1, int(minutes))
        logger.info("Break timer: %s min", minutes)
        self._break_timer = asyncio.create_task(self._break_loop(minutes * self.timings.minute_s), name="break-timer")

    def stop_break_timer(self) -> None:
        self._cancel(self._break_timer)
        self._break_timer = None

    async def _break_loop(self, delay_s: float) -> None:
        me = asyncio.current_task()
        try:
            await asyncio.sleep(delay_s)
            try:
                await asyncio.shield(self.notify(prompts.break_end()))
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Break-over notification failed")
        finally:
            if self._break_timer is me:
                self._break_timer = None

    # ---- no-schedule reminder ----

    async def free_time_for_nag(self) -> int | None:
        """
        Free minutes left today when the no-schedule reminder should be armed, else None.

        Requires a configured calendar, no further event today and more than
        the free-time threshold left before bedtime.
        """
        if not self._calendar.configured():
            return None
        try:
            if await self._calendar.has_remaining_events_today():
                return None
            free = await self._calendar.free_minutes_remaining()
        except Exception:
            logger.exception("Calendar lookup failed")
            return None
        return free if free > self.timings.free_time_threshold_minutes else None

    def start_no_schedule_reminder(self) -> None:
        self.stop_no_schedule_reminder()
        self.no_schedule.reset(ResetCause.STARTED)
        logger.info("No-schedule reminder armed")
        self._idle_timer = asyncio.create_task(self._no_schedule_loop(), name="no-schedule-reminder")

    def stop_no_schedule_reminder(self) -> None:
        self._cancel(self._idle_timer)
        self._idle_timer = None
        self.no_schedule.reset(ResetCause.STOPPED)

    async def _no_schedule_loop(self) -> None:
        me = asyncio.current_task()
        delay = self.timings.idle_first_delay_s
        try:
            while True:
                await asyncio.sleep(delay)
                delay = self.timings.reminder_interval_s
                try:
                    keep_going = await asyncio.shield(self._no_schedule_tick(me))
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("No-schedule tick failed")
                    keep_going = True
                if not keep_going:
                    return
        finally:
            if self._idle_timer is me:
                self._idle_timer = None
                self.no_schedule.reset(ResetCause.STOPPED)

    async def _no_schedule_tick(self, owner: asyncio.Task[None] | None) -> bool:
        if self._store.get_current_task() is not None:
            logger.info("No-schedule reminder stops: a task is active")
            return False

        if self._calendar.configured():
            try:
                if await self._calendar.has_remaining_events_today():
                    logger.info("No-schedule reminder stops: an event is coming up today")
                    return False
                free = await self._calendar.free_minutes_remaining()
            except Exception:
                logger.exception("Calendar lookup failed during no-schedule tick")
                return True
            if free <= self.timings.free_time_threshold_minutes:
                logger.info("No-schedule reminder stops: only %s free min left", free)
                return False

        now = self._clock.now()
        if not self._window.classify(now).allowed:
            return True

        count, penalty = self.no_schedule.next_step()
        balance = self._ledger.balance() - penalty if penalty else None
        text = await self._generate(
            prompts.no_schedule_nag(
                count,
                self.timings.reminder_interval_minutes,
                coins_lost=penalty,
                balance=max(0, balance) if balance is not None else None,
            )
        )
        if text is None:
            return True

        if self._idle_timer is not owner or self._store.get_current_task() is not None:
            return False

        self.no_schedule.commit(count)
        if penalty:
            self._ledger.subtract(penalty, f"no-schedule reminder #{count}")
        await self.deliver(text)
        return True

    # ---- coarse idle scan ----

    async def idle_scan_tick(self) -> None:
        """One pass of the periodic idle scan (driven by the cron dispatcher)."""
        esc = self.coarse_idle

        if self._store.get_current_task() is not None:
            esc.reset(ResetCause.TASK_ACTIVE)
            return

        now = self._clock.now()
        if not self._window.classify(now).allowed:
            esc.reset(ResetCause.WINDOW_CLOSED)
            return

        if self.no_schedule_active:
            esc.reset(ResetCause.NO_SCHEDULE_ACTIVE)
            return
        if self.break_active:
            esc.reset(ResetCause.ON_BREAK)
            return
        if self.day_closed(now.date()):
            esc.reset(ResetCause.DAY_CLOSED)
            return

        count, penalty = esc.next_step()
        balance = self._ledger.balance() - penalty if penalty else None
        text = await self._generate(
            prompts.idle_nag(count, coins_lost=penalty, balance=max(0, balance) if balance is not None else None)
        )
        if text is None:
            return

        # State may have moved while the nag was generated.
        if self._store.get_current_task() is not None:
            esc.reset(ResetCause.TASK_ACTIVE)
            return
        if self.no_schedule_active:
            esc.reset(ResetCause.NO_SCHEDULE_ACTIVE)
            return
        if self.break_active:
            esc.reset(ResetCause.ON_BREAK)
            return
        if self.day_closed(now.date()):
            esc.reset(ResetCause.DAY_CLOSED)
            return

        esc.commit(count)
        if penalty:
            self._ledger.subtract(penalty, f"idle check #{count}")
        logger.info("Idle scan #%s (penalty=%s)", count, penalty)
        await self.deliver(text)

    # ---- lifecycle ----

    def recover(self) -> None:
        """Re-arm timers from persisted facts after a restart."""
        task = self._store.get_current_task()
        if task is None:
            logger.info("Recovery: no working task")
            return
        logger.info("Recovery: re-arming reminder for task %s (%s)", task.id, task.name)
        self.start_task_reminder(task.id)

    async def shutdown(self) -> None:
        handles = [h for h in (self._task_reminder, self._break_timer, self._idle_timer) if h is not None]
        self.stop_task_reminder()
        self.stop_break_timer()
        self.stop_no_schedule_reminder()
        if handles:
            await asyncio.gather(*handles, return_exceptions=True)
        logger.info("Reminder scheduler stopped")
