# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "FOCUS_APP_NAME": "App display name (default: focus-companion).",
    "FOCUS_PERSONA_NAME": "Name the assistant uses for itself (default: Miu).",
    "FOCUS_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "FOCUS_CONSOLE_ENABLED": "Enable console connector (true/false, default: true).",
    "FOCUS_MATRIX_ENABLED": "Enable Matrix connector (true/false, default: false).",
    # LLM (OpenAI-compatible endpoint)
    "FOCUS_LLM_API_KEY": "API key (XAI_API_KEY is accepted too). Without it replies come from the offline generator.",
    "FOCUS_LLM_BASE_URL": "Endpoint base URL (default: https://api.x.ai/v1).",
    "FOCUS_LLM_MODELS": "Comma/space separated list of models to try in order.",
    "FOCUS_LLM_MAX_TOKENS": "Max tokens per reply (default: 300).",
    "FOCUS_LLM_TEMPERATURE": "Sampling temperature (default: 0.8).",
    "FOCUS_HTTP_REFERER": "Optional metadata header for routers that want one.",
    # Matrix
    "FOCUS_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "FOCUS_MATRIX_USER_ID": "Matrix user ID (bot).",
    "FOCUS_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "FOCUS_MATRIX_ROOM_ID": "Room where notifications are delivered and commands are read.",
    "FOCUS_MATRIX_OWNER_ID": "The one user whose messages are handled (empty => anyone in the room).",
    # Long-term memory
    "FOCUS_MEM0_API_KEY": "Mem0 API key (MEM0_API_KEY is accepted too). Empty => memory disabled.",
    "FOCUS_MEM0_BASE_URL": "Mem0 API base URL (default: https://api.mem0.ai/v1).",
    "FOCUS_MEM0_USER_ID": "Mem0 user id (default: the Matrix owner id, else 'owner').",
    # Google Calendar
    "FOCUS_CALENDAR_ID": "Calendar id to read events from and write task events to.",
    "FOCUS_CALENDAR_SERVICE_ACCOUNT_FILE": "Service account JSON key. Both calendar vars are needed to enable it.",
    # Holidays
    "FOCUS_HOLIDAYS_API_URL": (
        "JSON date->name map (default: https://holidays-jp.github.io/api/v1/date.json)."
    ),
    # Paths (gitignored)
    "FOCUS_DATA_DIR": "Local data directory (default: .local/focus).",
    "FOCUS_DB_PATH": "SQLite path for tasks, reminds, coins and caches (default: <data_dir>/focus.sqlite3).",
    "FOCUS_MATRIX_STORE_PATH": "Matrix session store path (default: <data_dir>/matrix_store).",
    # Scheduling
    "FOCUS_TIMEZONE": "Civil timezone for every schedule decision (default: Asia/Tokyo).",
    "FOCUS_REMINDER_INTERVAL_MINUTES": "Overdue / idle reminder interval (default: 10).",
    "FOCUS_IDLE_FIRST_DELAY_SECONDS": "Delay before the first no-schedule reminder (default: 10).",
    "FOCUS_IDLE_PENALTY_THRESHOLD": "Idle tick from which coins are confiscated (default: 3).",
    "FOCUS_IDLE_PENALTY_COINS": "Coins confiscated per idle tick at or past the threshold (default: 10).",
    "FOCUS_FREE_TIME_THRESHOLD_MINUTES": "Free time needed before the no-schedule reminder arms (default: 30).",
    "FOCUS_BEDTIME_HOUR": "End of the day for free-time calculations (default: 22).",
    "FOCUS_RECENT_MESSAGE_LIMIT": "Conversation turns kept as context (default: 10).",
    "FOCUS_COIN_INITIAL_BALANCE": "Opening coin balance, seeded once (default: 100).",
}
