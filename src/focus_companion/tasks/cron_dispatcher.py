# src/focus_companion/tasks/cron_dispatcher.py

from __future__ import annotations

"""
Wall-clock triggers.

Once per civil minute:
- custom reminds due at this HH:MM are delivered verbatim (window permitting),
- every 10th minute the coarse idle scan runs,
- at fixed times: wake (07:00), work start (10:00), work end (19:00),
  bedtime (22:00) greetings and the holiday refresh (00:00).

Jobs of one tick run concurrently and are isolated from each other: a failing
job is logged and never blocks the others. A minute is never dispatched twice.
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date, datetime, timedelta
from typing import Protocol

from ..core import prompts
from ..core.clock import Clock, hhmm
from ..core.prompts import Greeting
from ..core.window import NotificationWindowPolicy
from .reminder_scheduler import ReminderScheduler
from .remind_registry import CustomRemindRegistry

logger = logging.getLogger(__name__)


class RefreshableHolidays(Protocol):
    def is_holiday(self, d: date) -> bool: ...
    def refresh(self) -> Awaitable[bool]: ...


class CronDispatcher:
    def __init__(
        self,
        *,
        scheduler: ReminderScheduler,
        registry: CustomRemindRegistry,
        window: NotificationWindowPolicy,
        holidays: RefreshableHolidays,
        clock: Clock,
        idle_scan_every_minutes: int = 10,
    ) -> None:
        self._scheduler = scheduler
        self._registry = registry
        self._window = window
        self._holidays = holidays
        self._clock = clock
        self._idle_every = max(1, int(idle_scan_every_minutes))
        self._last_minute: str | None = None

    async def run_forever(self) -> None:
        """Tick at the top of every civil minute. Cancel the coroutine to stop."""
        logger.info("Cron dispatcher started")
        while True:
            now = self._clock.now()
            nxt = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
            await asyncio.sleep(max(0.05, (nxt - now).total_seconds()))
            try:
                await self.tick()
            except Exception:
                logger.exception("Cron tick failed")

    async def tick(self, now: datetime | None = None) -> list[str]:
        """Dispatch every job due at `now`. Returns the names of the jobs that ran."""
        now = self._clock.localize(now) if now is not None else self._clock.now()
        minute_key = now.strftime("%Y-%m-%d %H:%M")
        if minute_key == self._last_minute:
            return []
        self._last_minute = minute_key

        jobs: dict[str, Awaitable[object]] = {"custom_reminds": self.scan_custom_reminds(now)}

        if now.minute % self._idle_every == 0:
            jobs["idle_scan"] = self._scheduler.idle_scan_tick()

        at = hhmm(now)
        if at == "07:00":
            jobs["wake"] = self._greet(Greeting.WAKE, now)
        elif at == "10:00":
            jobs["work_start"] = self._greet(Greeting.WORK_START, now)
        elif at == "19:00":
            jobs["work_end"] = self._greet(Greeting.WORK_END, now)
        elif at == "22:00":
            jobs["bedtime"] = self._greet(Greeting.BEDTIME, now)
        elif at == "00:00":
            jobs["holiday_refresh"] = self._holidays.refresh()

        names = list(jobs)
        results = await asyncio.gather(*jobs.values(), return_exceptions=True)
        for name, res in zip(names, results, strict=True):
            if isinstance(res, BaseException):
                logger.error("Cron job %s failed", name, exc_info=res)
        return names

    async def scan_custom_reminds(self, now: datetime) -> int:
        """Deliver every remind matching this minute. Returns how many were sent."""
        holiday = self._window.is_holiday(now.date())
        due = self._registry.due(now, holiday=holiday)
        if not due:
            return 0
        if not self._window.classify(now).allowed:
            logger.info("Custom reminds %s held back: notification window closed", [r.id for r in due])
            return 0

        sent = 0
        for remind in due:
            if await self._scheduler.deliver(remind.message):
                sent += 1
                logger.info("Custom remind %s delivered", remind.id)
        return sent

    async def _greet(self, kind: Greeting, now: datetime) -> bool:
        if kind is Greeting.WAKE and not self._window.classify(now).allowed:
            return False
        if kind in (Greeting.WORK_START, Greeting.WORK_END) and not self._window.is_workday(now):
            return False
        logger.info("Daily greeting: %s", kind)
        return await self._scheduler.notify(prompts.daily_greeting(kind, self._clock.display(now)))
