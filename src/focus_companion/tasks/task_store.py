# src/focus_companion/tasks/task_store.py

from __future__ import annotations

import logging
import math
import sqlite3
import time
from datetime import date, datetime, timedelta
from pathlib import Path

from ..core.clock import Clock
from .sqlite_base import SQLiteStore
from .task_models import ActiveTaskError, RecentMessage, ReminderRecord, Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(SQLiteStore):
    """
    SQLite store for tasks, overdue-reminder audit rows and the recent-message ring.

    Single source of truth for "is a task active". At most one row may be
    'working': create_task checks inside an IMMEDIATE transaction, and a partial
    unique index backs that check.

    Timestamps are stored as ISO-8601 strings in the civil timezone, so
    "today" filters can match on the date prefix.
    """

    def __init__(
        self,
        db_path: str | Path = "focus.sqlite3",
        *,
        clock: Clock | None = None,
        recent_limit: int = 10,
    ) -> None:
        self._clock = clock or Clock()
        self._recent_limit = max(1, int(recent_limit))
        super().__init__(db_path)
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    # ---- low-level helpers ----

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                planned_minutes INTEGER NOT NULL,
                started_at TEXT NOT NULL,
                completed_at TEXT,
                status TEXT NOT NULL DEFAULT 'working',
                comment TEXT,
                created_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(conn, "tasks", {"external_event_ref": "TEXT"})
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_single_working "
            "ON tasks(status) WHERE status = 'working'"
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_started ON tasks(started_at)")

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS reminders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL REFERENCES tasks(id),
                ordinal INTEGER NOT NULL,
                sent_at TEXT NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_reminders_task ON reminders(task_id, ordinal)")

        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS recent_messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at REAL NOT NULL
            )
            """
        )

    def _now_iso(self) -> str:
        return self._clock.now().isoformat(timespec="seconds")

    def _parse_ts(self, raw: str | None) -> datetime | None:
        if not raw:
            return None
        return self._clock.localize(datetime.fromisoformat(raw))

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        started = self._parse_ts(row["started_at"])
        return Task(
            id=int(row["id"]),
            name=str(row["name"] or ""),
            planned_minutes=int(row["planned_minutes"] or 0),
            started_at=started if started is not None else self._clock.now(),
            status=TaskStatus.from_db(row["status"]),
            completed_at=self._parse_ts(row["completed_at"]),
            comment=row["comment"],
            external_event_ref=row["external_event_ref"],
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def create_task(self, name: str, minutes: int) -> Task:
        """
        Insert a new working task.

        Raises ActiveTaskError if another task is still working.
        """
        if not name or not name.strip():
            raise ValueError("task name is required")
        if int(minutes) < 1:
            raise ValueError("minutes must be >= 1")

        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT * FROM tasks WHERE status = 'working' ORDER BY started_at DESC LIMIT 1"
            ).fetchone()
            if row is not None:
                conn.rollback()
                raise ActiveTaskError(self._row_to_task(row))

            try:
                cur = conn.execute(
                    """
                    INSERT INTO tasks(name, planned_minutes, started_at, status, created_at)
                    VALUES (?, ?, ?, 'working', ?)
                    """,
                    (name.strip(), int(minutes), self._now_iso(), time.time()),
                )
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise ActiveTaskError() from e
            conn.commit()

            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            task_id = int(rowid)
        finally:
            conn.close()

        logger.info("Task created id=%s name=%r minutes=%s", task_id, name, minutes)
        task = self.get_task(task_id)
        if task is None:
            raise RuntimeError(f"Task {task_id} vanished right after insert")
        return task

    def get_task(self, task_id: int) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def get_current_task(self) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM tasks WHERE status = 'working' ORDER BY started_at DESC LIMIT 1"
            ).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def _finish(self, task_id: int, status: TaskStatus, comment: str | None) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE tasks
                SET status = ?, completed_at = ?, comment = COALESCE(?, comment)
                WHERE id = ? AND status = 'working'
                """,
                (status.value, self._now_iso(), comment, int(task_id)),
            )
            conn.commit()
            changed = cur.rowcount == 1
        finally:
            conn.close()

        if changed:
            logger.info("Task %s -> %s", task_id, status.value)
        else:
            logger.debug("Task %s already terminal; %s ignored", task_id, status.value)
        return changed

    def complete_task(self, task_id: int, comment: str | None = None) -> bool:
        """Mark done. Returns False (no-op) if the task is not working."""
        return self._finish(task_id, TaskStatus.DONE, comment)

    def skip_task(self, task_id: int) -> bool:
        """Mark skipped. Returns False (no-op) if the task is not working."""
        return self._finish(task_id, TaskStatus.SKIPPED, None)

    def extend_task(self, task_id: int, extra_minutes: int) -> bool:
        if int(extra_minutes) < 1:
            raise ValueError("extra_minutes must be >= 1")
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE tasks SET planned_minutes = planned_minutes + ?
                WHERE id = ? AND status = 'working'
                """,
                (int(extra_minutes), int(task_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def set_external_event_ref(self, task_id: int, ref: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("UPDATE tasks SET external_event_ref = ? WHERE id = ?", (ref, int(task_id)))
            conn.commit()
        finally:
            conn.close()

    def elapsed_minutes(self, task: Task, now: datetime | None = None) -> int:
        """Whole minutes since the task started, in civil time, never negative."""
        current = self._clock.localize(now) if now is not None else self._clock.now()
        seconds = (current - task.started_at).total_seconds()
        return max(0, math.floor(seconds / 60))

    def tasks_on(self, day: date) -> list[Task]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE substr(started_at, 1, 10) = ? ORDER BY started_at ASC",
                (day.isoformat(),),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def today_tasks(self) -> list[Task]:
        return self.tasks_on(self._clock.today())

    def tasks_in_days(self, days: int) -> list[Task]:
        since = (self._clock.now() - timedelta(days=max(1, int(days)))).isoformat(timespec="seconds")
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE started_at >= ? ORDER BY started_at DESC",
                (since,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def recent_completed_count_today(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE substr(started_at, 1, 10) = ? AND status = 'done'",
                (self._clock.today().isoformat(),),
            ).fetchone()
            return int(n)
        finally:
            conn.close()

    # ---- overdue reminders ----

    def add_reminder(self, task_id: int) -> int:
        """Append an audit row and return its ordinal (1, 2, 3, ... per task)."""
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            (last,) = conn.execute(
                "SELECT COALESCE(MAX(ordinal), 0) FROM reminders WHERE task_id = ?",
                (int(task_id),),
            ).fetchone()
            ordinal = int(last) + 1
            conn.execute(
                "INSERT INTO reminders(task_id, ordinal, sent_at) VALUES (?, ?, ?)",
                (int(task_id), ordinal, self._now_iso()),
            )
            conn.commit()
            return ordinal
        finally:
            conn.close()

    def reminder_count(self, task_id: int) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COALESCE(MAX(ordinal), 0) FROM reminders WHERE task_id = ?",
                (int(task_id),),
            ).fetchone()
            return int(n)
        finally:
            conn.close()

    def reminders_for(self, task_id: int) -> list[ReminderRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM reminders WHERE task_id = ? ORDER BY ordinal ASC",
                (int(task_id),),
            ).fetchall()
            return [
                ReminderRecord(
                    id=int(r["id"]),
                    task_id=int(r["task_id"]),
                    ordinal=int(r["ordinal"]),
                    sent_at=self._clock.localize(datetime.fromisoformat(r["sent_at"])),
                )
                for r in rows
            ]
        finally:
            conn.close()

    # ---- recent messages (conversation context ring) ----

    def add_message(self, role: str, content: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO recent_messages(role, content, created_at) VALUES (?, ?, ?)",
                (role, content, time.time()),
            )
            conn.execute(
                """
                DELETE FROM recent_messages
                WHERE id NOT IN (SELECT id FROM recent_messages ORDER BY id DESC LIMIT ?)
                """,
                (self._recent_limit,),
            )
            conn.commit()
        finally:
            conn.close()

    def get_recent_messages(self) -> list[RecentMessage]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM recent_messages ORDER BY id ASC").fetchall()
            return [
                RecentMessage(id=int(r["id"]), role=str(r["role"]), content=str(r["content"]))
                for r in rows
            ]
        finally:
            conn.close()

    def clear_messages(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM recent_messages")
            conn.commit()
        finally:
            conn.close()
