# src/chime/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .ports import DispatchCapability, KeyValueStore

if TYPE_CHECKING:
    from ..notify.manager import NotificationManager, NotifierBackgroundRunner
    from ..notify.permission import PermissionTracker
    from ..storage.reminder_store import ReminderStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    reminders: ReminderStore
    flags: KeyValueStore
    capability: DispatchCapability
    tracker: PermissionTracker
    manager: NotificationManager

    notifier: NotifierBackgroundRunner | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)
