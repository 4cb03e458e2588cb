# src/focus_companion/tasks/coin_ledger.py

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from .sqlite_base import SQLiteStore

logger = logging.getLogger(__name__)


class CoinLedger(SQLiteStore):
    """
    Persisted coin balance, stored as append-only signed deltas.

    The only runtime mutation is subtract(); the table is seeded once with an
    opening balance. The balance never drops below zero: a deduction larger
    than the balance is clamped to what is left.
    """

    def __init__(self, db_path: str | Path, *, initial_balance: int = 0) -> None:
        self._initial_balance = max(0, int(initial_balance))
        super().__init__(db_path)

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS coin_ledger (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                delta INTEGER NOT NULL,
                reason TEXT NOT NULL,
                created_at REAL NOT NULL
            )
            """
        )
        (n,) = conn.execute("SELECT COUNT(*) FROM coin_ledger").fetchone()
        if int(n) == 0:
            conn.execute(
                "INSERT INTO coin_ledger(delta, reason, created_at) VALUES (?, 'opening balance', ?)",
                (self._initial_balance, time.time()),
            )

    def balance(self) -> int:
        conn = self._get_conn()
        try:
            (total,) = conn.execute("SELECT COALESCE(SUM(delta), 0) FROM coin_ledger").fetchone()
            return max(0, int(total))
        finally:
            conn.close()

    def subtract(self, amount: int, reason: str) -> int:
        """Deduct up to `amount` coins and return the new balance."""
        amount = max(0, int(amount))
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            (total,) = conn.execute("SELECT COALESCE(SUM(delta), 0) FROM coin_ledger").fetchone()
            current = max(0, int(total))
            taken = min(amount, current)
            if taken:
                conn.execute(
                    "INSERT INTO coin_ledger(delta, reason, created_at) VALUES (?, ?, ?)",
                    (-taken, reason, time.time()),
                )
            conn.commit()
        finally:
            conn.close()

        new_balance = current - taken
        logger.info("Coins -%s (%s) balance=%s", taken, reason, new_balance)
        return new_balance
