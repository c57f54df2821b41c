# src/chime/notify/manager.py

from __future__ import annotations

"""
Notification manager.

One cooperative loop per process:

  poll -> (permission refresh) -> engine.evaluate -> sink.dispatch

Each event is computed, marked in dedup memory and only then dispatched, so a
cancelled loop never leaves a half-emitted event behind.
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable, Coroutine
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.models import NotificationEvent, PermissionState, Snapshot
from ..core.ports import DispatchCapability
from .engine import DecisionEngine
from .permission import PermissionTracker
from .poller import SnapshotPoller
from .sink import DispatchSink

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NotificationManager:
    def __init__(
            self,
            *,
            poller: SnapshotPoller,
            tracker: PermissionTracker,
            engine: DecisionEngine,
            sink: DispatchSink,
            capability: DispatchCapability,
            evaluate_when_ungranted: bool = True,
            clock: Callable[[], float] = time.time,
    ) -> None:
        self.poller = poller
        self.tracker = tracker
        self.engine = engine
        self.sink = sink
        self.capability = capability
        self.evaluate_when_ungranted = evaluate_when_ungranted
        self._clock = clock

    async def handle_snapshot(self, snapshot: Snapshot) -> list[NotificationEvent]:
        """
        One engine cycle for a complete snapshot.

        With evaluate_when_ungranted the engine runs even without a grant, so
        items seen while notifications were off are not replayed after a grant.
        """
        self.tracker.refresh()
        self.tracker.note_observation()
        state = await self.tracker.maybe_auto_request()

        if state != PermissionState.GRANTED and not self.evaluate_when_ungranted:
            logger.debug("Skipping cycle: permission=%s", state.value)
            return []

        events = self.engine.evaluate(
            snapshot,
            self._clock(),
            can_dispatch=state == PermissionState.GRANTED,
        )
        for event in events:
            await self.sink.dispatch(event)
        return events

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until stop_event is set (or the task is cancelled), then close the capability."""
        state = self.tracker.refresh()
        logger.info(
            "Notification manager started (permission=%s, reminders every %.0fs, chores every %.0fs)",
            state.value,
            self.poller.reminder_interval,
            self.poller.chore_interval,
        )
        try:
            await self.poller.run(self.handle_snapshot, stop_event)
        finally:
            try:
                await self.capability.close()
            except Exception:
                logger.debug("Capability close failed.", exc_info=True)
            logger.info("Notification manager stopped.")


@dataclass(slots=True)
class NotifierBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def submit(self, coro: Coroutine[Any, Any, T]) -> Future[T]:
        """Schedule a coroutine on the notifier loop (e.g. a user-requested permission upgrade)."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal notifier stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_notifier_in_background(manager: NotificationManager) -> NotifierBackgroundRunner | None:
    """
    Start the notification loop in a background thread.

    The console REPL is blocking (input()), so the async notifier gets its own
    event loop in a daemon thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(manager.run(stop_event))
        except Exception:
            logger.exception("Notifier loop crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="chime-notifier", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Notifier thread did not initialize properly.")
        return None

    logger.info("Notifier background thread started.")
    return NotifierBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
