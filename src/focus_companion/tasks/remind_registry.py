# src/focus_companion/tasks/remind_registry.py

"""
Custom recurring reminders.

A remind is matched by exact civil HH:MM plus weekday membership; reminds
without include_holidays stay silent on registered holidays. Days are stored
as a JSON list so the order the user gave them survives a reload.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import time
from datetime import datetime
from pathlib import Path

from ..core.clock import WEEKDAY_CODES, hhmm, weekday_code
from .sqlite_base import SQLiteStore
from .task_models import CustomRemind

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

DAY_GROUPS: dict[str, list[str]] = {
    "daily": list(WEEKDAY_CODES),
    "everyday": list(WEEKDAY_CODES),
    "weekdays": ["mon", "tue", "wed", "thu", "fri"],
    "weekends": ["sat", "sun"],
}


def normalize_time(raw: str) -> str:
    """'9:05' -> '09:05'. Raises ValueError on anything else."""
    m = _TIME_RE.match((raw or "").strip())
    if not m:
        raise ValueError(f"invalid time: {raw!r} (expected HH:MM)")
    return f"{int(m.group(1)):02d}:{m.group(2)}"


def normalize_days(raw: list[str] | str) -> list[str]:
    """Accept weekday codes or group names; keep first-seen order, drop duplicates."""
    items = raw.replace(",", " ").split() if isinstance(raw, str) else list(raw)
    out: list[str] = []
    for item in items:
        key = str(item).strip().lower()
        if not key:
            continue
        expanded = DAY_GROUPS.get(key, [key[:3]])
        for d in expanded:
            if d not in WEEKDAY_CODES:
                raise ValueError(f"invalid weekday: {item!r}")
            if d not in out:
                out.append(d)
    if not out:
        raise ValueError("at least one weekday is required")
    return out


def remind_matches(remind: CustomRemind, now: datetime, *, holiday: bool) -> bool:
    """Time/weekday/holiday part of the match (the notification window is checked by the caller)."""
    if not remind.enabled:
        return False
    if remind.time != hhmm(now):
        return False
    if weekday_code(now) not in remind.days:
        return False
    if holiday and not remind.include_holidays:
        return False
    return True


class CustomRemindRegistry(SQLiteStore):
    """SQLite store for user-defined recurring reminders."""

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS custom_reminds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                time TEXT NOT NULL,
                days TEXT NOT NULL,
                include_holidays INTEGER NOT NULL DEFAULT 0,
                message TEXT NOT NULL,
                enabled INTEGER NOT NULL DEFAULT 1,
                created_at REAL NOT NULL
            )
            """
        )

    @staticmethod
    def _row_to_remind(row: sqlite3.Row) -> CustomRemind:
        try:
            days = json.loads(row["days"] or "[]")
        except json.JSONDecodeError:
            logger.warning("custom_reminds id=%s has unreadable days=%r", row["id"], row["days"])
            days = []
        return CustomRemind(
            id=int(row["id"]),
            time=str(row["time"]),
            days=[str(d) for d in days] if isinstance(days, list) else [],
            include_holidays=bool(row["include_holidays"]),
            message=str(row["message"]),
            enabled=bool(row["enabled"]),
            created_at=datetime.fromtimestamp(float(row["created_at"])) if row["created_at"] else None,
        )

    def create(self, time_hhmm: str, days: list[str] | str, include_holidays: bool, message: str) -> CustomRemind:
        t = normalize_time(time_hhmm)
        d = normalize_days(days)
        if not message or not message.strip():
            raise ValueError("message is required")

        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO custom_reminds(time, days, include_holidays, message, enabled, created_at)
                VALUES (?, ?, ?, ?, 1, ?)
                """,
                (t, json.dumps(d), 1 if include_holidays else 0, message.strip(), time.time()),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for custom_reminds insert")
        finally:
            conn.close()

        logger.info("Custom remind added id=%s time=%s days=%s holidays=%s", rowid, t, d, include_holidays)
        remind = self.get(int(rowid))
        if remind is None:
            raise RuntimeError(f"Custom remind {rowid} vanished right after insert")
        return remind

    def get(self, remind_id: int) -> CustomRemind | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM custom_reminds WHERE id = ?", (int(remind_id),)).fetchone()
            return self._row_to_remind(row) if row else None
        finally:
            conn.close()

    def list_enabled(self) -> list[CustomRemind]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM custom_reminds WHERE enabled = 1 ORDER BY time ASC, id ASC"
            ).fetchall()
            return [self._row_to_remind(r) for r in rows]
        finally:
            conn.close()

    def delete(self, remind_id: int) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM custom_reminds WHERE id = ?", (int(remind_id),))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    def due(self, now: datetime, *, holiday: bool) -> list[CustomRemind]:
        return [r for r in self.list_enabled() if remind_matches(r, now, holiday=holiday)]
