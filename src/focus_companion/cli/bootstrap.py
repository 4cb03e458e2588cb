# src/focus_companion/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks concrete collaborators (real or null/offline) from what is configured,
- wires stores, policy, scheduler and cron dispatcher into AppState.
"""

from __future__ import annotations

import logging
from typing import Any

from ..config import get_settings
from ..connectors.broadcast import BroadcastMessenger
from ..core.clock import Clock
from ..core.ports import CalendarService, LLMClient, MemoryService
from ..core.state import AppState
from ..core.window import NotificationWindowPolicy
from ..llm.client import OpenAICompatibleLLMClient, friendly_llm_error_message
from ..llm.generator import LLMContentGenerator
from ..llm.offline import OfflineLLMClient
from ..services.calendar import GoogleCalendar, NullCalendar
from ..services.holidays import HolidayCalendar
from ..services.memory import Mem0Memory, NullMemory
from ..tasks.coin_ledger import CoinLedger
from ..tasks.cron_dispatcher import CronDispatcher
from ..tasks.reminder_scheduler import ReminderScheduler, SchedulerTimings
from ..tasks.remind_registry import CustomRemindRegistry
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Any) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.matrix_store_path.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_llm(settings: Any) -> LLMClient:
    try:
        return OpenAICompatibleLLMClient(settings)
    except RuntimeError as e:
        # Demos / local runs without external services.
        logger.warning("%s Using the offline generator.", friendly_llm_error_message(e))
        return OfflineLLMClient()


def _build_memory(settings: Any) -> MemoryService:
    if not settings.mem0_api_key:
        logger.info("Mem0 is not configured; long-term memory disabled.")
        return NullMemory()
    return Mem0Memory(
        api_key=settings.mem0_api_key,
        user_id=settings.mem0_user_id,
        base_url=settings.mem0_base_url,
    )


def _build_calendar(settings: Any, clock: Clock) -> CalendarService:
    cal = GoogleCalendar(
        calendar_id=settings.calendar_id,
        service_account_file=settings.calendar_service_account_file,
        clock=clock,
        bedtime_hour=settings.bedtime_hour,
    )
    if not cal.configured():
        logger.info("Google Calendar is not configured; calendar features disabled.")
        return NullCalendar()
    return cal


def create_initial_state(*, settings: Any = None, outbound: BroadcastMessenger | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = Clock(settings.timezone)
    task_store = TaskStore(settings.db_path, clock=clock, recent_limit=settings.recent_message_limit)
    ledger = CoinLedger(settings.db_path, initial_balance=settings.coin_initial_balance)
    reminds = CustomRemindRegistry(settings.db_path)

    holidays = HolidayCalendar(settings.db_path, api_url=settings.holidays_api_url)
    holidays.load_cached()
    window = NotificationWindowPolicy(holidays)

    generator = LLMContentGenerator(_build_llm(settings), clock=clock, persona_name=settings.persona_name)
    memory = _build_memory(settings)
    calendar = _build_calendar(settings, clock)

    scheduler = ReminderScheduler(
        task_store=task_store,
        ledger=ledger,
        window=window,
        clock=clock,
        generator=generator,
        messenger=outbound if outbound is not None else BroadcastMessenger(),
        calendar=calendar,
        memory=memory,
        timings=SchedulerTimings.from_settings(settings),
    )

    return AppState(
        settings=settings,
        clock=clock,
        task_store=task_store,
        ledger=ledger,
        reminds=reminds,
        holidays=holidays,
        window=window,
        generator=generator,
        memory=memory,
        calendar=calendar,
        scheduler=scheduler,
    )


def create_cron(state: AppState) -> CronDispatcher:
    return CronDispatcher(
        scheduler=state.scheduler,
        registry=state.reminds,
        window=state.window,
        holidays=state.holidays,
        clock=state.clock,
        idle_scan_every_minutes=int(getattr(state.settings, "reminder_interval_minutes", 10)),
    )
