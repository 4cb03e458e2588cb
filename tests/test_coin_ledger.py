# tests/test_coin_ledger.py

from __future__ import annotations

from pathlib import Path

from focus_companion.tasks.coin_ledger import CoinLedger


def test_subtract_clamps_at_zero(tmp_path: Path) -> None:
    ledger = CoinLedger(tmp_path / "focus.sqlite3", initial_balance=25)
    assert ledger.balance() == 25

    assert ledger.subtract(10, "idle") == 15
    assert ledger.subtract(50, "idle") == 0
    assert ledger.subtract(10, "idle") == 0
    assert ledger.balance() == 0


def test_opening_balance_is_seeded_once(tmp_path: Path) -> None:
    db = tmp_path / "focus.sqlite3"
    CoinLedger(db, initial_balance=40).subtract(10, "idle")

    reopened = CoinLedger(db, initial_balance=999)
    assert reopened.balance() == 30
