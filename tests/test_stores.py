# tests/test_stores.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from chime.core.models import ChoreStatus
from chime.storage.kv_store import SQLiteKeyValueStore
from chime.storage.reminder_store import ReminderStore


def test_reminder_add_list_complete_delete(tmp_path: Path) -> None:
    store = ReminderStore(tmp_path / "reminders.sqlite3")

    later = store.add_reminder(title="  Call mom  ", due_at=2000.0)
    sooner = store.add_reminder(title="Pay rent", due_at=1000.0)
    undated = store.add_reminder(title="Someday")

    items = store.list_reminders()
    assert [r.id for r in items][:2] == [sooner, later]
    by_id = {r.id: r for r in items}
    assert by_id[later].title == "Call mom"
    assert by_id[undated].due_at is None
    assert not any(r.completed for r in items)

    assert store.complete_reminder(sooner) is True
    assert {r.id: r for r in store.list_reminders()}[sooner].completed is True

    assert store.delete_reminder(undated) is True
    assert store.delete_reminder(undated) is False
    assert store.count_reminders() == 2


def test_reminder_requires_title(tmp_path: Path) -> None:
    store = ReminderStore(tmp_path / "reminders.sqlite3")
    with pytest.raises(ValueError):
        store.add_reminder(title="   ")


def test_chore_loads_and_unknown_status(tmp_path: Path) -> None:
    db = tmp_path / "reminders.sqlite3"
    store = ReminderStore(db)

    a = store.add_chore_load(label="towels")
    b = store.add_chore_load(status=ChoreStatus.DRYING)
    assert store.set_chore_status(a, ChoreStatus.COMPLETE) is True
    assert store.set_chore_status("999", ChoreStatus.COMPLETE) is False

    conn = sqlite3.connect(str(db))
    conn.execute("UPDATE chore_loads SET status = 'lost-sock' WHERE id = ?", (int(b),))
    conn.commit()
    conn.close()

    loads = {c.id: c.status for c in store.list_chore_loads()}
    assert loads == {a: ChoreStatus.COMPLETE, b: ChoreStatus.PENDING}


def test_kv_store_roundtrip_and_persistence(tmp_path: Path) -> None:
    db = tmp_path / "flags.sqlite3"
    kv = SQLiteKeyValueStore(db)

    assert kv.get("last_notify_day:chores") is None
    kv.set("last_notify_day:chores", "2024-05-01")
    kv.set("last_notify_day:chores", "2024-05-02")

    reopened = SQLiteKeyValueStore(db)
    assert reopened.get("last_notify_day:chores") == "2024-05-02"

    reopened.delete("last_notify_day:chores")
    assert kv.get("last_notify_day:chores") is None
