# src/chime/capabilities/console.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import TextIO

from ..core.models import PermissionState
from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

PERMISSION_KEY = "console_permission"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleCapability:
    """
    Prints notifications to a terminal stream.

    The grant is persisted in the flag store so that, like a browser
    permission, it survives restarts. revoke() flips it to DENIED from the
    outside, which the engine only notices on its next re-query.
    """

    def __init__(self, flags: KeyValueStore, *, stream: TextIO | None = None, bell: bool = True) -> None:
        self._flags = flags
        self._stream = stream
        self._bell = bell

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def check_support(self) -> bool:
        try:
            return not self.stream.closed
        except Exception:
            return False

    def query_state(self) -> PermissionState:
        return PermissionState.from_raw(self._flags.get(PERMISSION_KEY))

    async def request_upgrade(self) -> PermissionState:
        state = self.query_state()
        if state != PermissionState.UNDETERMINED:
            return state
        self._flags.set(PERMISSION_KEY, PermissionState.GRANTED.value)
        return PermissionState.GRANTED

    def revoke(self) -> None:
        self._flags.set(PERMISSION_KEY, PermissionState.DENIED.value)

    def reset(self) -> None:
        self._flags.set(PERMISSION_KEY, PermissionState.UNDETERMINED.value)

    async def present(
            self,
            *,
            title: str,
            body: str,
            require_interaction: bool = False,
            icon: str | None = None,
    ) -> None:
        suffix = " (action required)" if require_interaction else ""
        bell = "\a" if self._bell and require_interaction else ""
        self.stream.write(f"{bell}[{_ts_local()}] [NOTIFY] {title}: {body}{suffix}\n")
        self.stream.flush()

    async def close(self) -> None:
        return
