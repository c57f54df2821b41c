# src/chime/notify/sink.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.models import NotificationEvent, PermissionState
from ..core.ports import DispatchCapability
from .permission import PermissionTracker

logger = logging.getLogger(__name__)

PermissionCheck = Callable[[], bool]


class DispatchSink:
    """
    Last step of a cycle: hand an event to the capability.

    dispatch() never raises. A refused or failed delivery counts as attempted;
    nothing is retried and the engine's dedup marks stay as they are.
    """

    def __init__(
            self,
            capability: DispatchCapability,
            tracker: PermissionTracker | None = None,
            *,
            permission_check: PermissionCheck | None = None,
    ) -> None:
        self._capability = capability
        self._tracker = tracker
        self._permission_check = permission_check
        self.attempted = 0
        self.delivered = 0

    def _is_granted(self) -> bool:
        if self._permission_check is not None:
            return bool(self._permission_check())
        if self._tracker is not None:
            # Grant state may have changed since the cycle started.
            return self._tracker.refresh() == PermissionState.GRANTED
        return self._capability.query_state() == PermissionState.GRANTED

    async def dispatch(self, event: NotificationEvent) -> None:
        try:
            if not self._is_granted():
                logger.debug("Dispatch skipped (not granted) category=%s", event.category.value)
                return
        except Exception:
            logger.exception("Permission check failed; dropping category=%s", event.category.value)
            return

        self.attempted += 1
        try:
            await self._capability.present(
                title=event.title,
                body=event.body,
                require_interaction=event.require_interaction,
                icon=event.icon,
            )
        except Exception:
            logger.exception(
                "Failed to send notification category=%s reminder_id=%s",
                event.category.value,
                event.reminder_id,
            )
            return

        self.delivered += 1
        logger.info("Notification sent category=%s title=%r", event.category.value, event.title)
