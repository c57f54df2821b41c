# tests/conftest.py

from __future__ import annotations

from datetime import UTC
from pathlib import Path
from types import SimpleNamespace

import pytest

from chime.cli.bootstrap import create_initial_state
from chime.core.state import AppState
from chime.notify.dedup import DailyThrottle, DedupState
from chime.notify.engine import DecisionEngine

from .fakes import MemoryKV

# 2023-11-14T22:13:20Z; integral so window boundaries compare exactly.
NOW = 1_700_000_000.0


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="chime-test",
        data_dir=tmp_path,
        reminders_db_path=tmp_path / "reminders.sqlite3",
        flags_db_path=tmp_path / "flags.sqlite3",
        matrix_store_path=tmp_path / "matrix_store",
        notifier_backend="console",
        reminder_poll_seconds=30.0,
        chore_poll_seconds=3600.0,
        missed_window_hours=24,
        due_window_seconds=60.0,
        chore_label="laundry",
        timezone="UTC",
        notify_icon="",
        auto_request_permission=False,
        evaluate_when_ungranted=True,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired by the real composition root.

    NOTE: We keep real SQLite stores here (ReminderStore/SQLiteKeyValueStore)
    because their correctness is part of what we want to test.
    """
    return create_initial_state(settings=settings)


@pytest.fixture()
def kv() -> MemoryKV:
    return MemoryKV()


@pytest.fixture()
def engine(kv: MemoryKV) -> DecisionEngine:
    return DecisionEngine(DedupState(), DailyThrottle(kv, "chores", tz=UTC))
