# src/chime/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "CHIME"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


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


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors ----
    console_enabled: bool
    notifier_backend: str  # "console" | "matrix"

    # ---- Polling ----
    reminder_poll_seconds: float
    chore_poll_seconds: float

    # ---- Decision rules ----
    missed_window_hours: int
    due_window_seconds: float
    chore_label: str
    timezone: str  # empty -> local zone
    notify_icon: str
    auto_request_permission: bool
    evaluate_when_ungranted: bool

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_room_id: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    reminders_db_path: Path
    flags_db_path: Path
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "chime") or "chime"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        notifier_backend = _env(_k("NOTIFIER"), "console").strip().lower() or "console"

        reminder_poll_seconds = _env_float(_k("REMINDER_POLL_SECONDS"), 30.0)
        chore_poll_seconds = _env_float(_k("CHORE_POLL_SECONDS"), 3600.0)

        missed_window_hours = _env_int(_k("MISSED_WINDOW_HOURS"), 24)
        due_window_seconds = _env_float(_k("DUE_WINDOW_SECONDS"), 60.0)
        chore_label = _env(_k("CHORE_LABEL"), "laundry").strip() or "laundry"
        timezone = _env(_k("TIMEZONE"), "").strip()
        notify_icon = _env(_k("NOTIFY_ICON"), "").strip()
        auto_request_permission = _env_bool(_k("AUTO_REQUEST_PERMISSION"), False)
        evaluate_when_ungranted = _env_bool(_k("EVALUATE_WHEN_UNGRANTED"), True)

        matrix_homeserver = _env(_k("MATRIX_HOMESERVER"), "").strip()
        matrix_user_id = _env(_k("MATRIX_USER_ID"), "").strip()
        matrix_password = _env(_k("MATRIX_PASSWORD"), "").strip()
        matrix_room_id = _env(_k("MATRIX_ROOM_ID"), "").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/chime"))
        reminders_db_path = _env_path(_k("REMINDERS_DB_PATH"), data_dir / "reminders.sqlite3")
        flags_db_path = _env_path(_k("FLAGS_DB_PATH"), data_dir / "flags.sqlite3")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            notifier_backend=notifier_backend,
            reminder_poll_seconds=reminder_poll_seconds,
            chore_poll_seconds=chore_poll_seconds,
            missed_window_hours=missed_window_hours,
            due_window_seconds=due_window_seconds,
            chore_label=chore_label,
            timezone=timezone,
            notify_icon=notify_icon,
            auto_request_permission=auto_request_permission,
            evaluate_when_ungranted=evaluate_when_ungranted,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_room_id=matrix_room_id,
            data_dir=data_dir,
            reminders_db_path=reminders_db_path,
            flags_db_path=flags_db_path,
            matrix_store_path=matrix_store_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
