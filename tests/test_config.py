# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from focus_companion.config import Settings


def test_from_env_defaults_and_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("FOCUS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("FOCUS_LLM_MODELS", "model-a, model-b")
    monkeypatch.setenv("FOCUS_IDLE_PENALTY_COINS", "25")
    monkeypatch.setenv("FOCUS_REMINDER_INTERVAL_MINUTES", "not-a-number")
    monkeypatch.setenv("FOCUS_MATRIX_ENABLED", "yes")
    monkeypatch.delenv("FOCUS_TIMEZONE", raising=False)
    monkeypatch.delenv("TZ", raising=False)

    s = Settings.from_env()

    assert s.db_path == tmp_path / "focus.sqlite3"
    assert s.llm_models == ["model-a", "model-b"]
    assert s.idle_penalty_coins == 25
    assert s.reminder_interval_minutes == 10
    assert s.matrix_enabled is True
    assert s.timezone == "Asia/Tokyo"
