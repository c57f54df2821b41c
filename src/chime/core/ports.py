# src/chime/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the notification core.

The core depends on Protocols instead of concrete implementations.
This keeps the data source, the dispatch capability and the flag storage
swappable and makes testing easier.
"""

from typing import Awaitable, Protocol

from .models import ChoreLoad, PermissionState, ReminderRecord


class ReminderSource(Protocol):
    """
    Externally-owned collections, read-only from the engine's side.

    Each call returns a consistent snapshot; failures are raised and the
    poller keeps the previous snapshot.
    """

    def list_reminders(self) -> list[ReminderRecord]: ...
    def list_chore_loads(self) -> list[ChoreLoad]: ...


class DispatchCapability(Protocol):
    """
    Platform-side port: the permission-gated way of presenting an alert.

    Availability and grant state can change at any time outside our control,
    so callers re-query instead of trusting an old answer.
    """

    def check_support(self) -> bool: ...
    def query_state(self) -> PermissionState: ...
    def request_upgrade(self) -> Awaitable[PermissionState]: ...

    def present(
            self,
            *,
            title: str,
            body: str,
            require_interaction: bool = False,
            icon: str | None = None,
    ) -> Awaitable[None]: ...

    def close(self) -> Awaitable[None]: ...


class KeyValueStore(Protocol):
    """Durable string flags that survive restarts."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
