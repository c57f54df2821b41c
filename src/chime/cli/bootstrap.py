# src/chime/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (stores, capability) into the notification
  components and AppState.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from zoneinfo import ZoneInfo

from ..capabilities.console import ConsoleCapability
from ..config import get_settings
from ..core.ports import DispatchCapability, KeyValueStore
from ..core.state import AppState
from ..notify.dedup import DailyThrottle, DedupState
from ..notify.engine import DecisionEngine
from ..notify.manager import NotificationManager
from ..notify.permission import PermissionTracker
from ..notify.poller import SnapshotPoller
from ..notify.sink import DispatchSink
from ..storage.kv_store import SQLiteKeyValueStore
from ..storage.reminder_store import ReminderStore

logger = logging.getLogger(__name__)

CHORE_CATEGORY = "chores"


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.reminders_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.flags_db_path.parent.mkdir(parents=True, exist_ok=True)


def _resolve_tz(name: str) -> tzinfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except Exception:
        logger.warning("Unknown timezone %r; using the local zone", name)
        return None


def _confirm_granted() -> None:
    logger.info("Notifications Enabled: you'll receive alerts for your reminders.")


def build_capability(settings, flags: KeyValueStore) -> DispatchCapability:
    backend = str(getattr(settings, "notifier_backend", "console") or "console").lower()
    if backend == "matrix":
        from ..capabilities.matrix import MatrixCapability

        return MatrixCapability(settings)
    if backend != "console":
        logger.warning("Unknown notifier backend %r; falling back to console", backend)
    return ConsoleCapability(flags)


def build_manager(
        settings,
        *,
        source: ReminderStore,
        flags: KeyValueStore,
        capability: DispatchCapability,
) -> tuple[PermissionTracker, NotificationManager]:
    tracker = PermissionTracker(
        capability,
        on_granted=_confirm_granted,
        auto_request=bool(settings.auto_request_permission),
    )
    engine = DecisionEngine(
        DedupState(),
        DailyThrottle(flags, CHORE_CATEGORY, tz=_resolve_tz(settings.timezone)),
        missed_window_seconds=float(settings.missed_window_hours) * 3600.0,
        due_window_seconds=float(settings.due_window_seconds),
        chore_label=settings.chore_label,
        icon=settings.notify_icon or None,
    )
    poller = SnapshotPoller(
        source,
        reminder_interval_seconds=settings.reminder_poll_seconds,
        chore_interval_seconds=settings.chore_poll_seconds,
    )
    manager = NotificationManager(
        poller=poller,
        tracker=tracker,
        engine=engine,
        sink=DispatchSink(capability, tracker),
        capability=capability,
        evaluate_when_ungranted=bool(settings.evaluate_when_ungranted),
    )
    return tracker, manager


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    reminders = ReminderStore(settings.reminders_db_path)
    flags = SQLiteKeyValueStore(settings.flags_db_path)
    capability = build_capability(settings, flags)
    tracker, manager = build_manager(settings, source=reminders, flags=flags, capability=capability)

    return AppState(
        settings=settings,
        reminders=reminders,
        flags=flags,
        capability=capability,
        tracker=tracker,
        manager=manager,
    )
