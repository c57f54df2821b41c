# src/chime/core/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class PermissionState(StrEnum):
    """Grant state of the dispatch capability."""

    UNSUPPORTED = "unsupported"
    UNDETERMINED = "undetermined"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_raw(cls, raw: str | None) -> PermissionState:
        # Browser-style "default" means the user was never asked.
        if not raw or raw == "default":
            return cls.UNDETERMINED
        try:
            return cls(raw)
        except Exception:
            return cls.UNDETERMINED


class ChoreStatus(StrEnum):
    """
    Chore load lifecycle.

    Only COMPLETE is terminal; everything else counts as pending work.
    """

    PENDING = "pending"
    WASHING = "washing"
    DRYING = "drying"
    FOLDING = "folding"
    COMPLETE = "complete"

    @classmethod
    def from_db(cls, raw: str | None) -> ChoreStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except Exception:
            return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self is ChoreStatus.COMPLETE


class NotificationCategory(StrEnum):
    MISSED_BATCH = "missed-batch"
    DUE_NOW = "due-now"
    DAILY_CATEGORY_SUMMARY = "daily-category-summary"


@dataclass(slots=True, frozen=True)
class ReminderRecord:
    id: str
    title: str
    due_at: float | None
    completed: bool = False


@dataclass(slots=True, frozen=True)
class ChoreLoad:
    id: str
    status: ChoreStatus


@dataclass(slots=True, frozen=True)
class NotificationEvent:
    """
    What the engine wants the user to see.

    The engine decides the category and the text.
    The capability decides how it is presented (console line, Matrix message, ...).
    """

    category: NotificationCategory
    title: str
    body: str
    require_interaction: bool = False
    reminder_id: str | None = None
    icon: str | None = None


@dataclass(slots=True, frozen=True)
class Snapshot:
    """A complete point-in-time read of both collections."""

    reminders: tuple[ReminderRecord, ...]
    chore_loads: tuple[ChoreLoad, ...]
