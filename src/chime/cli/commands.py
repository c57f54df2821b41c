# src/chime/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.models import ChoreStatus, PermissionState
from ..core.state import AppState

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

PERMISSION_REQUEST_TIMEOUT = 60.0


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /remind, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(ts: float | None) -> str:
    if ts is None:
        return "no due date"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


async def _enable_notifications(state: AppState) -> PermissionState:
    current = state.tracker.refresh()
    reset = getattr(state.capability, "reset", None)
    if current == PermissionState.DENIED and callable(reset):
        # Console grants are ours to reset; platform denials are not.
        reset()
        state.tracker.refresh()
    return await state.tracker.request_upgrade()


def _run_on_notifier(state: AppState, coro) -> PermissionState:
    if state.notifier is not None:
        return state.notifier.submit(coro).result(timeout=PERMISSION_REQUEST_TIMEOUT)
    return asyncio.run(coro)


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    reminders = state.reminders.list_reminders()
    open_reminders = [r for r in reminders if not r.completed]
    pending_loads = [c for c in state.reminders.list_chore_loads() if not c.status.is_terminal]
    notifier = "running" if state.notifier is not None and state.notifier.thread.is_alive() else "stopped"
    seen = state.manager.poller.latest
    if seen is None:
        last_poll = "not loaded yet"
    else:
        last_poll = f"{len(seen.reminders)} reminders, {len(seen.chore_loads)} loads"
    return (
        "Status:\n"
        f"  Notifier: {getattr(settings, 'notifier_backend', 'console')} ({notifier})\n"
        f"  Permission: {state.tracker.current_state().value}\n"
        f"  Notifier snapshot: {last_poll}\n"
        f"  Open reminders: {len(open_reminders)} of {len(reminders)}\n"
        f"  Pending {getattr(settings, 'chore_label', 'chore')} loads: {len(pending_loads)}\n"
        f"  Alerted this session: {len(state.manager.engine.state.notified_ids)}"
    )


def cmd_notify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /notify       -> show permission state
    /notify on    -> request permission (this is the user gesture)
    /notify off   -> revoke the console grant
    """
    if not args:
        return (
            f"Notifications: {state.tracker.current_state().value}. "
            "Use /notify on or /notify off."
        )

    arg = args[0].lower()

    if arg in ("on", "1", "true", "yes"):
        if emit:
            with contextlib.suppress(Exception):
                emit("[NOTIFY] Requesting permission...")
        try:
            result = _run_on_notifier(state, _enable_notifications(state))
        except Exception:
            logger.exception("Permission request via /notify failed")
            return "Permission request failed; see logs."
        return f"Notifications: {result.value}."

    if arg in ("off", "0", "false", "no"):
        revoke = getattr(state.capability, "revoke", None)
        if not callable(revoke):
            return "This notifier cannot be revoked from here."
        revoke()
        return "Notifications disabled."

    return "Usage: /notify on or /notify off."


def cmd_remind(state: AppState, args: list[str]) -> str:
    """/remind <minutes> <title...>"""
    if len(args) < 2:
        return "Usage: /remind <minutes> <title>"
    try:
        minutes = float(args[0])
    except ValueError:
        return "Minutes must be a number."

    due_at = time.time() + max(0.0, minutes) * 60.0
    try:
        rid = state.reminders.add_reminder(title=" ".join(args[1:]), due_at=due_at)
    except ValueError as e:
        return f"Cannot add reminder: {e}"
    return f"Reminder #{rid} set for {_fmt_ts(due_at)}."


def cmd_reminders(state: AppState, args: list[str]) -> str:
    items = [r for r in state.reminders.list_reminders() if not r.completed]
    if not items:
        return "No open reminders."
    lines = ["Open reminders:"]
    for r in items:
        lines.append(f"  #{r.id} {_fmt_ts(r.due_at)} {r.title}")
    return "\n".join(lines)


def cmd_done(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /done <id>"
    try:
        ok = state.reminders.complete_reminder(args[0])
    except ValueError:
        return f"Invalid reminder id: {args[0]}"
    return f"Reminder #{args[0]} completed." if ok else f"No reminder #{args[0]}."


def cmd_forget(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /forget <id>"
    try:
        ok = state.reminders.delete_reminder(args[0])
    except ValueError:
        return f"Invalid reminder id: {args[0]}"
    return f"Reminder #{args[0]} deleted." if ok else f"No reminder #{args[0]}."


def cmd_load(state: AppState, args: list[str]) -> str:
    """
    /load add [label]        -> new pending load
    /load <id> <status>      -> pending | washing | drying | folding | complete
    """
    statuses = " | ".join(s.value for s in ChoreStatus)
    if not args:
        return f"Usage: /load add [label] | /load <id> <{statuses}>"

    if args[0].lower() == "add":
        lid = state.reminders.add_chore_load(label=" ".join(args[1:]))
        return f"Load #{lid} added (pending)."

    if len(args) != 2:
        return f"Usage: /load <id> <{statuses}>"
    try:
        status = ChoreStatus(args[1].lower())
    except ValueError:
        return f"Unknown status {args[1]!r}. Use one of: {statuses}"
    try:
        ok = state.reminders.set_chore_status(args[0], status)
    except ValueError:
        return f"Invalid load id: {args[0]}"
    return f"Load #{args[0]} -> {status.value}." if ok else f"No load #{args[0]}."


def cmd_loads(state: AppState, args: list[str]) -> str:
    loads = state.reminders.list_chore_loads()
    if not loads:
        return "No loads."
    lines = ["Loads:"]
    for load in loads:
        lines.append(f"  #{load.id} {load.status.value}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show notifier, permission and counts.")
registry.register("notify", cmd_notify, help_text="Enable/disable notifications: /notify on | /notify off.")
registry.register("remind", cmd_remind, help_text="Add a reminder: /remind <minutes> <title>.")
registry.register("reminders", cmd_reminders, help_text="List open reminders.", aliases=["ls"])
registry.register("done", cmd_done, help_text="Complete a reminder: /done <id>.")
registry.register("forget", cmd_forget, help_text="Delete a reminder: /forget <id>.")
registry.register("load", cmd_load, help_text="Chore loads: /load add [label] | /load <id> <status>.")
registry.register("loads", cmd_loads, help_text="List chore loads.")
