# src/focus_companion/services/holidays.py

"""
Holiday lookup.

A date -> name map fetched from a JSON endpoint ({"2025-01-01": "New Year's Day", ...}),
kept in memory for is_holiday() and mirrored into the holidays_cache table.
If a refresh fails, the last persisted copy is used.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import date
from pathlib import Path

import httpx

from ..tasks.sqlite_base import SQLiteStore

logger = logging.getLogger(__name__)


class HolidayCacheStore(SQLiteStore):
    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS holidays_cache (
                date TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                fetched_at REAL NOT NULL
            )
            """
        )

    def replace_all(self, holidays: dict[str, str]) -> None:
        now = time.time()
        conn = self._get_conn()
        try:
            conn.executemany(
                "INSERT OR REPLACE INTO holidays_cache(date, name, fetched_at) VALUES (?, ?, ?)",
                [(d, n, now) for d, n in holidays.items()],
            )
            conn.commit()
        finally:
            conn.close()

    def load_all(self) -> dict[str, str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT date, name FROM holidays_cache").fetchall()
            return {str(r["date"]): str(r["name"]) for r in rows}
        finally:
            conn.close()


class HolidayCalendar:
    """In-memory holiday map with a daily HTTP refresh and a persisted fallback."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        api_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 10.0,
    ) -> None:
        self._store = HolidayCacheStore(db_path)
        self._api_url = api_url
        self._http = http_client
        self._timeout_s = timeout_s
        self._holidays: dict[str, str] = {}
        self.last_fetched: float | None = None

    def load_cached(self) -> int:
        """Populate the in-memory map from the table (used at startup and on fetch failure)."""
        try:
            cached = self._store.load_all()
        except sqlite3.Error:
            logger.exception("Failed to read holidays_cache")
            return 0
        if cached:
            self._holidays = cached
        return len(cached)

    async def _fetch(self) -> dict[str, str]:
        if self._http is not None:
            resp = await self._http.get(self._api_url, timeout=self._timeout_s)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await client.get(self._api_url)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("holiday API returned a non-object payload")
        return {str(k): str(v) for k, v in data.items()}

    async def refresh(self) -> bool:
        """Fetch the holiday list. Returns False when the persisted copy had to be used."""
        try:
            fetched = await self._fetch()
        except (httpx.HTTPError, ValueError):
            logger.exception("Holiday fetch failed; falling back to cached table")
            n = self.load_cached()
            logger.info("Loaded %d holidays from cache", n)
            return False

        self._holidays = fetched
        self.last_fetched = time.time()
        try:
            self._store.replace_all(fetched)
        except sqlite3.Error:
            logger.exception("Failed to persist holidays_cache")
        logger.info("Fetched %d holidays", len(fetched))
        return True

    def is_holiday(self, d: date) -> bool:
        return d.isoformat() in self._holidays

    def holiday_name(self, d: date) -> str | None:
        return self._holidays.get(d.isoformat())
