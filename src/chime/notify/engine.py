# src/chime/notify/engine.py

from __future__ import annotations

"""
Decision engine.

Turns a snapshot of reminders/chore loads plus the current time into the
notification events of one cycle:

1. missed-batch     - once per process, reminders that lapsed while we were away
2. due-now          - every cycle, reminders due within the live window
3. category summary - at most once per calendar day, pending chore loads

Dedup marks are applied while the events are built, before anything is
dispatched. A failed or skipped dispatch therefore never causes a repeat.
"""

import logging

from ..core.models import NotificationCategory, NotificationEvent, ReminderRecord, Snapshot
from .dedup import DailyThrottle, DedupState

logger = logging.getLogger(__name__)

MISSED_WINDOW_SECONDS = 24 * 60 * 60
DUE_WINDOW_SECONDS = 60.0


class DecisionEngine:
    def __init__(
            self,
            state: DedupState,
            chore_throttle: DailyThrottle,
            *,
            missed_window_seconds: float = MISSED_WINDOW_SECONDS,
            due_window_seconds: float = DUE_WINDOW_SECONDS,
            chore_label: str = "laundry",
            icon: str | None = None,
    ) -> None:
        self.state = state
        self.chore_throttle = chore_throttle
        self.missed_window_seconds = float(missed_window_seconds)
        self.due_window_seconds = float(due_window_seconds)
        self.chore_label = (chore_label or "chore").strip()
        self.icon = icon or None

    @staticmethod
    def _open_with_due(r: ReminderRecord) -> bool:
        return not r.completed and r.due_at is not None

    def evaluate(
            self,
            snapshot: Snapshot,
            now_ts: float,
            *,
            can_dispatch: bool = True,
    ) -> list[NotificationEvent]:
        """
        Compute this cycle's events (missed-batch, due-now..., summary) in that order.

        Without can_dispatch the per-item marks still advance, but the daily
        summary is skipped and its day token left untouched, so a grant later
        the same day still gets that day's summary.
        """
        events: list[NotificationEvent] = []

        missed = self._missed_scan(snapshot, now_ts)
        if missed is not None:
            events.append(missed)

        events.extend(self._due_now_sweep(snapshot, now_ts))

        if can_dispatch:
            summary = self._chore_summary(snapshot, now_ts)
            if summary is not None:
                events.append(summary)

        if events:
            logger.debug(
                "Engine cycle now=%.3f events=%s",
                now_ts,
                [e.category.value for e in events],
            )
        return events

    def _missed_scan(self, snapshot: Snapshot, now_ts: float) -> NotificationEvent | None:
        if self.state.has_run_missed_scan:
            return None

        # Reminders still inside the due window are left to the due-now sweep.
        missed = [
            r
            for r in snapshot.reminders
            if self._open_with_due(r)
            and not self.state.is_notified(r.id)
            and self.due_window_seconds <= now_ts - float(r.due_at) <= self.missed_window_seconds  # type: ignore[arg-type]
        ]

        self.state.has_run_missed_scan = True

        if not missed:
            logger.info("Missed-reminder scan: nothing overdue")
            return None

        self.state.mark(r.id for r in missed)
        logger.info("Missed-reminder scan: %d overdue reminder(s)", len(missed))
        return NotificationEvent(
            category=NotificationCategory.MISSED_BATCH,
            title="Missed Reminders",
            body=f"You have {len(missed)} overdue reminders.",
            icon=self.icon,
        )

    def _due_now_sweep(self, snapshot: Snapshot, now_ts: float) -> list[NotificationEvent]:
        out: list[NotificationEvent] = []
        for r in snapshot.reminders:
            if not self._open_with_due(r) or self.state.is_notified(r.id):
                continue
            if abs(now_ts - float(r.due_at)) >= self.due_window_seconds:  # type: ignore[arg-type]
                continue

            self.state.mark([r.id])
            logger.info("Reminder %s is due now", r.id)
            out.append(
                NotificationEvent(
                    category=NotificationCategory.DUE_NOW,
                    title="Reminder",
                    body=r.title,
                    require_interaction=True,
                    reminder_id=r.id,
                    icon=self.icon,
                )
            )
        return out

    def _chore_summary(self, snapshot: Snapshot, now_ts: float) -> NotificationEvent | None:
        if self.chore_throttle.already_notified(now_ts):
            return None

        pending = sum(1 for load in snapshot.chore_loads if not load.status.is_terminal)
        if pending <= 0:
            return None

        self.chore_throttle.mark(now_ts)
        logger.info("Daily %s summary: %d pending load(s)", self.chore_label, pending)
        return NotificationEvent(
            category=NotificationCategory.DAILY_CATEGORY_SUMMARY,
            title=f"{self.chore_label.capitalize()} Reminder",
            body=f"You have {pending} pending {self.chore_label} loads.",
            icon=self.icon,
        )
