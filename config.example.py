# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "CHIME_APP_NAME": "App display name (default: chime).",
    "CHIME_LOG_LEVEL": "Console logging level (default: INFO).",
    # Connectors
    "CHIME_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    "CHIME_NOTIFIER": "Where alerts go: console | matrix (default: console).",
    # Polling
    "CHIME_REMINDER_POLL_SECONDS": "Reminder refresh period (default: 30).",
    "CHIME_CHORE_POLL_SECONDS": "Chore load refresh period (default: 3600).",
    # Decision rules
    "CHIME_MISSED_WINDOW_HOURS": "How far back the startup catch-up scan looks (default: 24).",
    "CHIME_DUE_WINDOW_SECONDS": "A reminder is 'due now' within this many seconds (default: 60).",
    "CHIME_CHORE_LABEL": "Word used in the daily chore summary (default: laundry).",
    "CHIME_TIMEZONE": "IANA zone for the daily summary day boundary (default: local zone).",
    "CHIME_NOTIFY_ICON": "Optional icon hint passed to the notifier.",
    "CHIME_AUTO_REQUEST_PERMISSION": (
        "Ask for notification permission automatically (never on the first poll; default: false)."
    ),
    "CHIME_EVALUATE_WHEN_UNGRANTED": (
        "Keep deciding (and marking) alerts while permission is not granted (default: true)."
    ),
    # Matrix
    "CHIME_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "CHIME_MATRIX_USER_ID": "Matrix user ID (bot).",
    "CHIME_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "CHIME_MATRIX_ROOM_ID": "Room that receives the alerts.",
    # Paths (gitignored)
    "CHIME_DATA_DIR": "Local data directory (default: .local/chime).",
    "CHIME_REMINDERS_DB_PATH": "ReminderStore SQLite path (default: <data_dir>/reminders.sqlite3).",
    "CHIME_FLAGS_DB_PATH": "Flag store SQLite path (default: <data_dir>/flags.sqlite3).",
    "CHIME_MATRIX_STORE_PATH": "Matrix session directory (default: <data_dir>/matrix_store).",
}
