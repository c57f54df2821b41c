# tests/test_manager.py

from __future__ import annotations

import asyncio
from datetime import UTC

import pytest

from chime.core.models import (
    ChoreLoad,
    ChoreStatus,
    NotificationCategory,
    PermissionState,
    ReminderRecord,
    Snapshot,
)
from chime.notify.dedup import DailyThrottle, DedupState
from chime.notify.engine import DecisionEngine
from chime.notify.manager import NotificationManager, start_notifier_in_background
from chime.notify.permission import PermissionTracker
from chime.notify.poller import SnapshotPoller
from chime.notify.sink import DispatchSink

from .conftest import NOW
from .fakes import FakeCapability, FakeSource, MemoryKV


class Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def build(
    cap: FakeCapability,
    source: FakeSource,
    clock: Clock,
    *,
    evaluate_when_ungranted: bool = True,
    auto_request: bool = False,
    interval: float = 30.0,
) -> NotificationManager:
    tracker = PermissionTracker(cap, auto_request=auto_request)
    return NotificationManager(
        poller=SnapshotPoller(source, reminder_interval_seconds=interval),
        tracker=tracker,
        engine=DecisionEngine(DedupState(), DailyThrottle(MemoryKV(), "chores", tz=UTC)),
        sink=DispatchSink(cap, tracker),
        capability=cap,
        evaluate_when_ungranted=evaluate_when_ungranted,
        clock=clock,
    )


def snapshot_of(source: FakeSource) -> Snapshot:
    return Snapshot(reminders=tuple(source.reminders), chore_loads=tuple(source.chore_loads))


@pytest.mark.asyncio
async def test_due_reminder_is_presented_once() -> None:
    cap = FakeCapability()
    source = FakeSource([ReminderRecord(id="r1", title="Stretch", due_at=NOW - 10)])
    clock = Clock(NOW)
    manager = build(cap, source, clock)

    await manager.handle_snapshot(snapshot_of(source))
    clock.now += 300
    await manager.handle_snapshot(snapshot_of(source))

    assert [p.body for p in cap.presented] == ["Stretch"]


@pytest.mark.asyncio
async def test_denied_still_evolves_dedup_state() -> None:
    cap = FakeCapability(state=PermissionState.DENIED)
    source = FakeSource(
        [
            ReminderRecord(id="old", title="overdue", due_at=NOW - 1800),
            ReminderRecord(id="now", title="due", due_at=NOW - 2),
        ]
    )
    clock = Clock(NOW)
    manager = build(cap, source, clock)

    events = await manager.handle_snapshot(snapshot_of(source))

    assert [e.category for e in events] == [
        NotificationCategory.MISSED_BATCH,
        NotificationCategory.DUE_NOW,
    ]
    assert cap.presented == []
    assert manager.engine.state.has_run_missed_scan is True
    assert manager.engine.state.notified_ids == {"old", "now"}

    # A later grant does not replay what was already processed.
    cap.state = PermissionState.GRANTED
    clock.now += 20
    assert await manager.handle_snapshot(snapshot_of(source)) == []
    assert cap.presented == []


@pytest.mark.asyncio
async def test_failed_present_is_not_retried_next_cycle() -> None:
    cap = FakeCapability(fail_present=True)
    source = FakeSource([ReminderRecord(id="r1", title="Water plants", due_at=NOW - 5)])
    clock = Clock(NOW)
    manager = build(cap, source, clock)

    first = await manager.handle_snapshot(snapshot_of(source))
    assert [e.reminder_id for e in first] == ["r1"]
    assert manager.sink.delivered == 0

    cap.fail_present = False
    clock.now += 10
    assert await manager.handle_snapshot(snapshot_of(source)) == []
    assert cap.presented == []


@pytest.mark.asyncio
async def test_daily_summary_waits_for_grant() -> None:
    cap = FakeCapability(state=PermissionState.UNDETERMINED)
    source = FakeSource(chore_loads=[ChoreLoad(id="l1", status=ChoreStatus.WASHING)])
    clock = Clock(NOW)
    manager = build(cap, source, clock)

    assert await manager.handle_snapshot(snapshot_of(source)) == []
    assert manager.engine.chore_throttle.last_token() is None

    cap.state = PermissionState.GRANTED
    clock.now += 60
    events = await manager.handle_snapshot(snapshot_of(source))

    assert [e.category for e in events] == [NotificationCategory.DAILY_CATEGORY_SUMMARY]
    assert [p.body for p in cap.presented] == ["You have 1 pending laundry loads."]

    clock.now += 60
    assert await manager.handle_snapshot(snapshot_of(source)) == []


@pytest.mark.asyncio
async def test_evaluate_only_when_granted_option() -> None:
    cap = FakeCapability(state=PermissionState.UNDETERMINED)
    source = FakeSource([ReminderRecord(id="r1", title="x", due_at=NOW)])
    manager = build(cap, source, Clock(NOW), evaluate_when_ungranted=False)

    assert await manager.handle_snapshot(snapshot_of(source)) == []
    assert manager.engine.state.has_run_missed_scan is False
    assert manager.engine.state.notified_ids == set()


@pytest.mark.asyncio
async def test_auto_request_happens_after_first_observation() -> None:
    cap = FakeCapability(state=PermissionState.UNDETERMINED)
    source = FakeSource()
    manager = build(cap, source, Clock(NOW), auto_request=True)

    await manager.handle_snapshot(snapshot_of(source))
    assert cap.upgrade_calls == 0

    await manager.handle_snapshot(snapshot_of(source))
    assert cap.upgrade_calls == 1
    assert manager.tracker.current_state() == PermissionState.GRANTED


@pytest.mark.asyncio
async def test_run_stops_and_closes_capability() -> None:
    cap = FakeCapability()
    source = FakeSource([ReminderRecord(id="r1", title="Go", due_at=NOW)])
    manager = build(cap, source, Clock(NOW), interval=0.01)
    stop = asyncio.Event()

    task = asyncio.create_task(manager.run(stop))
    await asyncio.sleep(0.05)
    stop.set()
    await asyncio.wait_for(task, timeout=2.0)

    assert [p.body for p in cap.presented] == ["Go"]
    assert cap.closed is True


@pytest.mark.asyncio
async def test_cancel_closes_capability() -> None:
    cap = FakeCapability()
    manager = build(cap, FakeSource(), Clock(NOW), interval=0.01)

    task = asyncio.create_task(manager.run(asyncio.Event()))
    await asyncio.sleep(0.03)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert cap.closed is True


def test_background_runner_accepts_requests_and_stops() -> None:
    cap = FakeCapability(state=PermissionState.UNDETERMINED)
    manager = build(cap, FakeSource(), Clock(NOW), interval=0.01)

    runner = start_notifier_in_background(manager)
    assert runner is not None
    try:
        result = runner.submit(manager.tracker.request_upgrade()).result(timeout=5.0)
        assert result == PermissionState.GRANTED
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert not runner.thread.is_alive()
    assert cap.closed is True
