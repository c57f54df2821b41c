# src/chime/storage/reminder_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

from ..core.models import ChoreLoad, ChoreStatus, ReminderRecord

logger = logging.getLogger(__name__)


class ReminderStore:
    """
    SQLite store for reminders and chore loads.

    The notification core only reads from it (list_reminders / list_chore_loads);
    the write helpers exist for the console commands.

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "reminders.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_reminders()
        except Exception:
            total = -1
        logger.info("ReminderStore ready db=%s reminders=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS reminders (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    due_at REAL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS chore_loads (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    label TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("ReminderStore migration: added column %s.%s", table, name)

            add_col("reminders", "due_at", "REAL")
            add_col("reminders", "completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("chore_loads", "label", "TEXT NOT NULL DEFAULT ''")
            add_col("chore_loads", "status", "TEXT NOT NULL DEFAULT 'pending'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_reminders_due ON reminders(completed, due_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_chore_loads_status ON chore_loads(status)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_reminder(row: sqlite3.Row) -> ReminderRecord:
        return ReminderRecord(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            due_at=float(row["due_at"]) if row["due_at"] is not None else None,
            completed=bool(row["completed"]),
        )

    @staticmethod
    def _row_to_chore_load(row: sqlite3.Row) -> ChoreLoad:
        return ChoreLoad(id=str(row["id"]), status=ChoreStatus.from_db(row["status"]))

    # ---- ReminderSource ----

    def list_reminders(self) -> list[ReminderRecord]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT *
                FROM reminders
                ORDER BY COALESCE(due_at, created_at) ASC, id ASC
                """
            )
            return [self._row_to_reminder(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_chore_loads(self) -> list[ChoreLoad]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT * FROM chore_loads ORDER BY created_at ASC, id ASC")
            return [self._row_to_chore_load(r) for r in cur.fetchall()]
        finally:
            conn.close()

    # ---- write helpers ----

    def count_reminders(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM reminders").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_reminder(self, *, title: str, due_at: float | None = None) -> str:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO reminders(title, due_at, completed, created_at, updated_at)
                VALUES (?, ?, 0, ?, ?)
                """,
                (title.strip(), None if due_at is None else float(due_at), now, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for reminders insert")
            logger.debug("Reminder added id=%s due_at=%s", rowid, due_at)
            return str(rowid)
        finally:
            conn.close()

    def complete_reminder(self, reminder_id: str, completed: bool = True) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE reminders SET completed = ?, updated_at = ? WHERE id = ?",
                (1 if completed else 0, time.time(), int(reminder_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def delete_reminder(self, reminder_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM reminders WHERE id = ?", (int(reminder_id),))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def add_chore_load(self, *, label: str = "", status: ChoreStatus = ChoreStatus.PENDING) -> str:
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO chore_loads(label, status, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (label.strip(), status.value, now, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for chore_loads insert")
            return str(rowid)
        finally:
            conn.close()

    def set_chore_status(self, load_id: str, status: ChoreStatus) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE chore_loads SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, time.time(), int(load_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
