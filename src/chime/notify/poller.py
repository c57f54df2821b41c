# src/chime/notify/poller.py

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from ..core.models import ChoreLoad, ReminderRecord, Snapshot
from ..core.ports import ReminderSource

logger = logging.getLogger(__name__)

SnapshotHandler = Callable[[Snapshot], Awaitable[object]]


class SnapshotPoller:
    """
    Keeps the latest complete snapshot of both collections.

    - reminders refresh on every poll (short period)
    - chore loads refresh only when their (long) period elapsed
    - a failed refresh keeps the previous snapshot
    - nothing is handed out until both collections have loaded once
    """

    def __init__(
            self,
            source: ReminderSource,
            *,
            reminder_interval_seconds: float = 30.0,
            chore_interval_seconds: float = 3600.0,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self.reminder_interval = max(0.01, float(reminder_interval_seconds))
        self.chore_interval = max(self.reminder_interval, float(chore_interval_seconds))
        self._clock = clock

        self._reminders: tuple[ReminderRecord, ...] | None = None
        self._chore_loads: tuple[ChoreLoad, ...] | None = None
        self._chores_refreshed_at: float | None = None
        self._last: Snapshot | None = None
        self.changed = False

    @property
    def latest(self) -> Snapshot | None:
        return self._last

    def _refresh_reminders(self) -> None:
        try:
            self._reminders = tuple(self._source.list_reminders())
        except Exception:
            logger.warning("list_reminders failed; keeping previous snapshot", exc_info=True)

    def _refresh_chores(self, now_mono: float) -> None:
        due = (
            self._chore_loads is None
            or self._chores_refreshed_at is None
            or now_mono - self._chores_refreshed_at >= self.chore_interval
        )
        if not due:
            return
        try:
            self._chore_loads = tuple(self._source.list_chore_loads())
            self._chores_refreshed_at = now_mono
        except Exception:
            logger.warning("list_chore_loads failed; keeping previous snapshot", exc_info=True)

    def poll(self, now_mono: float | None = None) -> Snapshot | None:
        """Refresh what is due and return the complete snapshot (or None while still loading)."""
        if now_mono is None:
            now_mono = self._clock()

        self._refresh_reminders()
        self._refresh_chores(now_mono)

        if self._reminders is None or self._chore_loads is None:
            self.changed = False
            return None

        snapshot = Snapshot(reminders=self._reminders, chore_loads=self._chore_loads)
        self.changed = snapshot != self._last
        self._last = snapshot
        return snapshot

    async def run(self, on_snapshot: SnapshotHandler, stop_event: asyncio.Event) -> None:
        """
        Poll every reminder_interval until stop_event is set.

        on_snapshot runs on every tick with a complete snapshot (the engine is
        idempotent, and the clock may have moved a reminder into its window).
        To stop, set stop_event or cancel the coroutine.
        """
        while not stop_event.is_set():
            snapshot = self.poll()
            if snapshot is not None:
                if self.changed:
                    logger.debug(
                        "Snapshot changed reminders=%d chore_loads=%d",
                        len(snapshot.reminders),
                        len(snapshot.chore_loads),
                    )
                try:
                    await on_snapshot(snapshot)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Snapshot handler failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.reminder_interval)
            except asyncio.TimeoutError:
                pass
