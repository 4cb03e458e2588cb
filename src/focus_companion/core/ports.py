# src/focus_companion/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scheduler and lifecycle layer depend on Protocols instead of concrete
implementations. This keeps delivery/LLM/calendar/memory providers swappable
and makes testing easier.
"""

from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class ContentGenerator(Protocol):
    """
    Produces a reply for a situational description.

    May raise on network/HTTP failure; callers decide whether to skip or apologize.
    """

    def generate(
            self,
            situation: str,
            recent: list[ChatMessage] | None = None,
            memory: str = "",
    ) -> Awaitable[str]: ...

    def parse_remind(self, user_text: str) -> Awaitable[dict[str, Any] | None]: ...

    def parse_intents(self, user_text: str) -> Awaitable[list[dict[str, Any]]]: ...


class OutboundMessenger(Protocol):
    """
    Connector-side port: how the scheduler sends text to the user.

    The connector decides how to interpret room_id / to_user_id
    (e.g. Matrix falls back to the configured delivery room).
    """

    def send_text(
            self,
            *,
            text: str,
            room_id: str | None = None,
            to_user_id: str | None = None,
    ) -> Awaitable[None]: ...


class MemoryService(Protocol):
    """Long-term memory search/storage. Search returns "" on failure or no results."""
    def search(self, query: str) -> Awaitable[str]: ...
    def save(self, content: str) -> Awaitable[None]: ...


@dataclass(slots=True, frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    location: str | None = None


class CalendarService(Protocol):
    """
    Calendar collaborator.

    When configured() is False every other call behaves as if no calendar data exists.
    """

    def configured(self) -> bool: ...
    def next_event_today(self) -> Awaitable[CalendarEvent | None]: ...
    def has_remaining_events_today(self) -> Awaitable[bool]: ...
    def free_minutes_remaining(self) -> Awaitable[int]: ...
    def create_task_event(self, *, task_name: str, minutes: int, task_id: int) -> Awaitable[str | None]: ...
    def update_task_event(
            self,
            *,
            event_id: str,
            task_name: str,
            actual_minutes: int,
            status: str,
    ) -> Awaitable[bool]: ...


class HolidayLookup(Protocol):
    def is_holiday(self, d: date) -> bool: ...
