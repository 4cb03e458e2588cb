# src/focus_companion/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    working -> done | skipped, exactly once. Terminal rows are never reopened or deleted.
    """

    WORKING = "working"
    DONE = "done"
    SKIPPED = "skipped"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.SKIPPED
        try:
            return cls(raw)
        except ValueError:
            return cls.SKIPPED

    @property
    def terminal(self) -> bool:
        return self is not TaskStatus.WORKING


class ActiveTaskError(RuntimeError):
    """Raised when a task is started while another one is still working."""

    def __init__(self, current: Task | None = None) -> None:
        self.current = current
        name = current.name if current is not None else "?"
        super().__init__(f"A task is already in progress: {name}")


@dataclass(slots=True)
class Task:
    id: int
    name: str
    planned_minutes: int
    started_at: datetime
    status: TaskStatus
    completed_at: datetime | None = None
    comment: str | None = None
    external_event_ref: str | None = None

    @property
    def working(self) -> bool:
        return self.status is TaskStatus.WORKING


@dataclass(slots=True, frozen=True)
class ReminderRecord:
    id: int
    task_id: int
    ordinal: int
    sent_at: datetime


@dataclass(slots=True)
class CustomRemind:
    id: int
    time: str  # HH:MM, civil timezone
    days: list[str]  # weekday codes, order preserved as entered
    include_holidays: bool
    message: str
    enabled: bool = True
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class RecentMessage:
    id: int
    role: str
    content: str


@dataclass(slots=True, frozen=True)
class CommandResult:
    """What a lifecycle command hands back to the front-end."""

    success: bool
    response: str
