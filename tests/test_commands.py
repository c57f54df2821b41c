# tests/test_commands.py

from __future__ import annotations

from chime.cli.commands import CommandRegistry, registry
from chime.core.models import ChoreStatus, PermissionState


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h3"
    assert called["h2"] == 1
    assert called["h3"] == 1


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_remind_then_done(state) -> None:
    reply = registry.handle(state, "/remind 5 Take out the bins") or ""
    assert reply.startswith("Reminder #")

    [rem] = state.reminders.list_reminders()
    assert rem.title == "Take out the bins"
    assert rem.due_at is not None

    assert "Take out the bins" in (registry.handle(state, "/reminders") or "")
    assert "completed" in (registry.handle(state, f"/done {rem.id}") or "")
    assert registry.handle(state, "/reminders") == "No open reminders."
    assert "Invalid reminder id" in (registry.handle(state, "/done abc") or "")


def test_remind_usage_errors(state) -> None:
    assert "Usage" in (registry.handle(state, "/remind 5") or "")
    assert "number" in (registry.handle(state, "/remind soon Stretch") or "")


def test_load_commands(state) -> None:
    reply = registry.handle(state, "/load add whites") or ""
    assert "added" in reply
    [load] = state.reminders.list_chore_loads()

    assert "drying" in (registry.handle(state, f"/load {load.id} drying") or "")
    assert state.reminders.list_chore_loads()[0].status == ChoreStatus.DRYING
    assert "Unknown status" in (registry.handle(state, f"/load {load.id} spinning") or "")


def test_notify_on_and_off_with_console_capability(state) -> None:
    assert state.tracker.refresh() == PermissionState.UNDETERMINED

    assert registry.handle(state, "/notify on") == "Notifications: granted."
    assert state.tracker.current_state() == PermissionState.GRANTED

    assert registry.handle(state, "/notify off") == "Notifications disabled."
    assert state.tracker.refresh() == PermissionState.DENIED

    # The console grant can be given again after a revoke.
    assert registry.handle(state, "/notify on") == "Notifications: granted."


def test_status_mentions_permission(state) -> None:
    reply = registry.handle(state, "/status") or ""
    assert "Permission: undetermined" in reply
    assert "laundry" in reply
    assert "Notifier snapshot: not loaded yet" in reply


def test_status_reports_latest_snapshot(state) -> None:
    registry.handle(state, "/remind 5 Stretch")
    registry.handle(state, "/load add darks")

    assert state.manager.poller.poll() is not None

    reply = registry.handle(state, "/status") or ""
    assert "Notifier snapshot: 1 reminders, 1 loads" in reply
