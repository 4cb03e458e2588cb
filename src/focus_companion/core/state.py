# src/focus_companion/core/state.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from ..llm.generator import LLMContentGenerator
from ..services.holidays import HolidayCalendar
from ..tasks.coin_ledger import CoinLedger
from ..tasks.reminder_scheduler import ReminderScheduler
from ..tasks.remind_registry import CustomRemindRegistry
from ..tasks.task_store import TaskStore
from .clock import Clock
from .ports import CalendarService, MemoryService
from .window import NotificationWindowPolicy


@dataclass
class AppState:
    """
    Global application state shared by connectors and commands.

    Built once by the composition root (cli.bootstrap). Commands run one at a
    time under `lock`; timers live on `scheduler`.
    """

    settings: Any

    clock: Clock
    task_store: TaskStore
    ledger: CoinLedger
    reminds: CustomRemindRegistry
    holidays: HolidayCalendar
    window: NotificationWindowPolicy

    generator: LLMContentGenerator
    memory: MemoryService
    calendar: CalendarService

    scheduler: ReminderScheduler

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
