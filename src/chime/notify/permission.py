# src/chime/notify/permission.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.models import PermissionState
from ..core.ports import DispatchCapability

logger = logging.getLogger(__name__)

GrantedCallback = Callable[[], None]


class PermissionTracker:
    """
    Cached view of the dispatch capability's grant state.

    Rules:
    - never fatal: capability errors leave the cached state unchanged
    - upgrade requests only start from UNDETERMINED
    - automatic requests are opt-in and never happen on the first observation
      (some platforms crash on ungestured permission prompts)
    """

    def __init__(
            self,
            capability: DispatchCapability,
            *,
            on_granted: GrantedCallback | None = None,
            auto_request: bool = False,
    ) -> None:
        self._capability = capability
        self._on_granted = on_granted
        self._auto_request = auto_request
        self._state = PermissionState.UNDETERMINED
        self._granted_notified = False
        self._auto_requested = False
        self._observations = 0

    def current_state(self) -> PermissionState:
        return self._state

    def refresh(self) -> PermissionState:
        """Re-read support + grant state from the capability."""
        try:
            if not self._capability.check_support():
                new_state = PermissionState.UNSUPPORTED
            else:
                new_state = PermissionState(self._capability.query_state())
        except Exception:
            logger.warning("Permission query failed; keeping state=%s", self._state.value, exc_info=True)
            return self._state

        if new_state != self._state:
            logger.info("Permission state %s -> %s", self._state.value, new_state.value)
            self._state = new_state
        return self._state

    async def request_upgrade(self) -> PermissionState:
        """Ask the capability to leave UNDETERMINED. Returns the resulting state."""
        if self._state != PermissionState.UNDETERMINED:
            return self._state

        try:
            result = PermissionState(await self._capability.request_upgrade())
        except Exception:
            logger.exception("Permission request failed")
            return self._state

        logger.info("Permission request result: %s", result.value)
        self._state = result

        if result == PermissionState.GRANTED and not self._granted_notified:
            self._granted_notified = True
            if self._on_granted is not None:
                try:
                    self._on_granted()
                except Exception:
                    logger.exception("on_granted callback failed")

        return self._state

    def note_observation(self) -> None:
        self._observations += 1

    async def maybe_auto_request(self) -> PermissionState:
        """Opt-in automatic request: once per session, never on the first observation."""
        if (
            not self._auto_request
            or self._auto_requested
            or self._observations < 2
            or self._state != PermissionState.UNDETERMINED
        ):
            return self._state

        self._auto_requested = True
        logger.info("Requesting notification permission (auto, observation=%d)", self._observations)
        return await self.request_upgrade()
