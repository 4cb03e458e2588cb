# src/focus_companion/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every consumer accepts an injected settings object, so tests never touch the real env.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "FOCUS"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    persona_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool
    matrix_enabled: bool

    # ---- LLM (OpenAI-compatible endpoint) ----
    llm_api_key: str | None
    llm_base_url: str
    llm_models: list[str]
    llm_max_tokens: int
    llm_temperature: float
    extra_headers: dict[str, str]

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_room_id: str
    matrix_owner_id: str

    # ---- Long-term memory (Mem0) ----
    mem0_api_key: str | None
    mem0_base_url: str
    mem0_user_id: str

    # ---- Google Calendar ----
    calendar_id: str
    calendar_service_account_file: Path | None

    # ---- Holidays ----
    holidays_api_url: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    matrix_store_path: Path

    # ---- Scheduling ----
    timezone: str
    reminder_interval_minutes: int
    idle_first_delay_seconds: float
    idle_penalty_threshold: int
    idle_penalty_coins: int
    free_time_threshold_minutes: int
    bedtime_hour: int
    recent_message_limit: int
    coin_initial_balance: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "focus-companion")
        persona_name = _env(_k("PERSONA_NAME"), "Miu")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)

        llm_api_key = _first_env(_k("LLM_API_KEY"), "XAI_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://api.x.ai/v1")
        llm_models = _env_list(_k("LLM_MODELS"), ["grok-4-1-fast-reasoning"])
        llm_max_tokens = _env_int(_k("LLM_MAX_TOKENS"), 300)
        llm_temperature = _env_float(_k("LLM_TEMPERATURE"), 0.8)

        extra_headers: dict[str, str] = {}
        http_referer = _env(_k("HTTP_REFERER"), "")
        if http_referer:
            extra_headers["HTTP-Referer"] = http_referer
            extra_headers["X-Title"] = app_name

        matrix_homeserver = (_env(_k("MATRIX_HOMESERVER"), "")).strip()
        matrix_user_id = (_env(_k("MATRIX_USER_ID"), "")).strip()
        matrix_password = (_env(_k("MATRIX_PASSWORD"), "")).strip()
        matrix_room_id = (_env(_k("MATRIX_ROOM_ID"), "")).strip()
        matrix_owner_id = (_env(_k("MATRIX_OWNER_ID"), "")).strip()

        mem0_api_key = _first_env(_k("MEM0_API_KEY"), "MEM0_API_KEY", default=None)
        mem0_base_url = _env(_k("MEM0_BASE_URL"), "https://api.mem0.ai/v1")
        mem0_user_id = _env(_k("MEM0_USER_ID"), matrix_owner_id or "owner")

        calendar_id = _env(_k("CALENDAR_ID"), "").strip()
        raw_sa = _env(_k("CALENDAR_SERVICE_ACCOUNT_FILE"), "").strip()
        calendar_service_account_file = Path(raw_sa).expanduser() if raw_sa else None

        holidays_api_url = _env(
            _k("HOLIDAYS_API_URL"), "https://holidays-jp.github.io/api/v1/date.json"
        )

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/focus"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "focus.sqlite3")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            persona_name=persona_name,
            log_level=log_level,
            console_enabled=console_enabled,
            matrix_enabled=matrix_enabled,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            llm_max_tokens=llm_max_tokens,
            llm_temperature=llm_temperature,
            extra_headers=extra_headers,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_room_id=matrix_room_id,
            matrix_owner_id=matrix_owner_id,
            mem0_api_key=mem0_api_key,
            mem0_base_url=mem0_base_url,
            mem0_user_id=mem0_user_id,
            calendar_id=calendar_id,
            calendar_service_account_file=calendar_service_account_file,
            holidays_api_url=holidays_api_url,
            data_dir=data_dir,
            db_path=db_path,
            matrix_store_path=matrix_store_path,
            timezone=_env(_k("TIMEZONE"), _env("TZ", "Asia/Tokyo")),
            reminder_interval_minutes=max(1, _env_int(_k("REMINDER_INTERVAL_MINUTES"), 10)),
            idle_first_delay_seconds=_env_float(_k("IDLE_FIRST_DELAY_SECONDS"), 10.0),
            idle_penalty_threshold=max(1, _env_int(_k("IDLE_PENALTY_THRESHOLD"), 3)),
            idle_penalty_coins=max(0, _env_int(_k("IDLE_PENALTY_COINS"), 10)),
            free_time_threshold_minutes=_env_int(_k("FREE_TIME_THRESHOLD_MINUTES"), 30),
            bedtime_hour=_env_int(_k("BEDTIME_HOUR"), 22),
            recent_message_limit=max(1, _env_int(_k("RECENT_MESSAGE_LIMIT"), 10)),
            coin_initial_balance=max(0, _env_int(_k("COIN_INITIAL_BALANCE"), 100)),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
