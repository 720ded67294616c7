"""
tests/test_reminders.py — Reminder Persistence, Delivery & Scheduler Tests
===========================================================================

Covers reminder_service against SQLite, the NotificationDispatcher's
error translation, and the ReminderScheduler tick / lifecycle behaviour
(at-least-once delivery, transient fetch failures, malformed rows).
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cadence.database.models import Reminder
from cadence.services import reminder_service
from cadence.services.notifications import (
    DeliveryOutcome,
    NotificationDispatcher,
    format_level_up,
    format_reminder,
)
from cadence.services.reminder_scheduler import ReminderScheduler, SchedulerState
from cadence.services.reminder_service import (
    DueReminder,
    create_reminder,
    delete_reminder,
    fetch_due_reminders,
)
from tests.conftest import run_async

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


class FakeDispatcher:
    """Records deliveries; returns queued outcomes (default DELIVERED)."""

    def __init__(self, *outcomes: DeliveryOutcome) -> None:
        self.outcomes = list(outcomes)
        self.delivered: list[int] = []

    async def deliver_reminder(self, reminder: DueReminder) -> DeliveryOutcome:
        self.delivered.append(reminder.id)
        if self.outcomes:
            return self.outcomes.pop(0)
        return DeliveryOutcome.DELIVERED


def _add(engine, *, at: datetime, user_id: int = 10, channel_id: int = 20, text: str = "stand up") -> int:
    return create_reminder(
        engine,
        user_id=user_id,
        channel_id=channel_id,
        guild_id=30,
        reminder_text=text,
        remind_at=at,
    )


def _remaining_ids(engine) -> set[int]:
    with Session(engine) as session:
        return {r.id for r in session.query(Reminder).all()}


def _http_error(cls, status: int):
    response = MagicMock(status=status, reason="error")
    return cls(response, "boom")


# ---------------------------------------------------------------------------
# reminder_service
# ---------------------------------------------------------------------------
class TestReminderService:
    def test_fetch_only_due(self, db_engine):
        past = _add(db_engine, at=NOW - timedelta(minutes=5))
        exact = _add(db_engine, at=NOW)
        _add(db_engine, at=NOW + timedelta(minutes=5))

        due = fetch_due_reminders(db_engine, NOW)
        assert [r.id for r in due] == [past, exact]

    def test_snapshot_fields(self, db_engine):
        rid = _add(db_engine, at=NOW - timedelta(seconds=1), text="drink water")
        [snap] = fetch_due_reminders(db_engine, NOW)
        assert snap == DueReminder(
            id=rid,
            user_id=10,
            channel_id=20,
            guild_id=30,
            reminder_text="drink water",
            remind_at=NOW - timedelta(seconds=1),
        )
        assert snap.remind_at.tzinfo is not None

    def test_delete(self, db_engine):
        rid = _add(db_engine, at=NOW)
        assert delete_reminder(db_engine, rid) is True
        assert delete_reminder(db_engine, rid) is False
        assert fetch_due_reminders(db_engine, NOW) == []

    @pytest.mark.parametrize("channel_id,ok", [
        (20, True), (0, False), (-5, False), (2**64, False),
    ])
    def test_well_formed(self, channel_id, ok):
        snap = DueReminder(1, 10, channel_id, 30, "x", NOW)
        assert snap.is_well_formed is ok


# ---------------------------------------------------------------------------
# NotificationDispatcher
# ---------------------------------------------------------------------------
class TestDispatcher:
    def _reminder(self) -> DueReminder:
        return DueReminder(1, 10, 20, 30, "stand up", NOW)

    def test_delivers_to_cached_channel(self):
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock()
        client = MagicMock()
        client.get_channel.return_value = channel

        outcome = run_async(NotificationDispatcher(client).deliver_reminder(self._reminder()))

        assert outcome is DeliveryOutcome.DELIVERED
        channel.send.assert_awaited_once_with("<@10>: stand up")

    def test_fetches_uncached_channel(self):
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock()
        client = MagicMock()
        client.get_channel.return_value = None
        client.fetch_channel = AsyncMock(return_value=channel)

        outcome = run_async(NotificationDispatcher(client).deliver_reminder(self._reminder()))

        assert outcome is DeliveryOutcome.DELIVERED
        client.fetch_channel.assert_awaited_once_with(20)

    @pytest.mark.parametrize("error,expected", [
        (lambda: _http_error(discord.NotFound, 404), DeliveryOutcome.UNDELIVERABLE),
        (lambda: _http_error(discord.Forbidden, 403), DeliveryOutcome.RETRY),
        (lambda: _http_error(discord.HTTPException, 500), DeliveryOutcome.RETRY),
        (lambda: ConnectionResetError("reset"), DeliveryOutcome.RETRY),
    ])
    def test_error_translation(self, error, expected):
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock(side_effect=error())
        client = MagicMock()
        client.get_channel.return_value = channel

        outcome = run_async(NotificationDispatcher(client).deliver_reminder(self._reminder()))
        assert outcome is expected

    def test_level_up_reply_failure_is_swallowed(self):
        message = MagicMock()
        message.reply = AsyncMock(side_effect=_http_error(discord.HTTPException, 500))
        result = MagicMock(levels_gained=1, level=2, xp_to_next=10, user_id=10)

        assert run_async(NotificationDispatcher(MagicMock()).send_level_up(message, result)) is False

    def test_message_text(self):
        assert format_reminder(5, "hi") == "<@5>: hi"
        assert format_level_up(1, 3, 40) == "Level up. You reached level 3. 40 XP to next level."
        assert format_level_up(4, 9, 12).startswith("Massive gains. +4 levels.")


# ---------------------------------------------------------------------------
# ReminderScheduler.tick()
# ---------------------------------------------------------------------------
class TestSchedulerTick:
    def _scheduler(self, engine, dispatcher, now=NOW) -> ReminderScheduler:
        return ReminderScheduler(engine, dispatcher, interval=0.01, clock=lambda: now)

    def test_past_reminder_delivered_next_tick_then_gone(self, db_engine):
        rid = _add(db_engine, at=NOW - timedelta(minutes=1))
        dispatcher = FakeDispatcher()
        scheduler = self._scheduler(db_engine, dispatcher)

        report = run_async(scheduler.tick())
        assert dispatcher.delivered == [rid]
        assert (report.delivered, report.deleted) == (1, 1)
        assert scheduler.state is SchedulerState.IDLE

        report = run_async(scheduler.tick())
        assert report.fetched == 0
        assert dispatcher.delivered == [rid]

    def test_future_reminder_waits(self, db_engine):
        _add(db_engine, at=NOW + timedelta(minutes=10))
        dispatcher = FakeDispatcher()
        run_async(self._scheduler(db_engine, dispatcher).tick())
        assert dispatcher.delivered == []

    def test_fetch_failure_then_recovery(self, db_engine):
        rid = _add(db_engine, at=NOW)
        real_fetch = reminder_service.fetch_due_reminders
        calls = {"n": 0}

        def flaky_fetch(engine, now=None):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("SELECT", {}, Exception("db down"))
            return real_fetch(engine, now)

        dispatcher = FakeDispatcher()
        scheduler = self._scheduler(db_engine, dispatcher)
        with patch.object(reminder_service, "fetch_due_reminders", side_effect=flaky_fetch):
            first = run_async(scheduler.tick())
            second = run_async(scheduler.tick())

        assert first.fetch_failed
        assert scheduler.state is SchedulerState.IDLE
        assert not second.fetch_failed
        assert dispatcher.delivered == [rid]
        assert _remaining_ids(db_engine) == set()

    def test_retry_outcome_keeps_reminder(self, db_engine):
        rid = _add(db_engine, at=NOW)
        dispatcher = FakeDispatcher(DeliveryOutcome.RETRY)
        scheduler = self._scheduler(db_engine, dispatcher)

        report = run_async(scheduler.tick())
        assert report.retried == 1
        assert _remaining_ids(db_engine) == {rid}

        run_async(scheduler.tick())
        assert dispatcher.delivered == [rid, rid]
        assert _remaining_ids(db_engine) == set()

    def test_undeliverable_reminder_is_dropped(self, db_engine):
        _add(db_engine, at=NOW)
        report = run_async(
            self._scheduler(db_engine, FakeDispatcher(DeliveryOutcome.UNDELIVERABLE)).tick()
        )
        assert (report.dropped, report.deleted) == (1, 1)
        assert _remaining_ids(db_engine) == set()

    def test_missing_permission_keeps_reminder_until_granted(self, db_engine):
        rid = _add(db_engine, at=NOW)
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock(side_effect=[_http_error(discord.Forbidden, 403), None])
        client = MagicMock()
        client.get_channel.return_value = channel
        scheduler = self._scheduler(db_engine, NotificationDispatcher(client))

        first = run_async(scheduler.tick())
        assert (first.retried, first.deleted, first.dropped) == (1, 0, 0)
        assert _remaining_ids(db_engine) == {rid}

        second = run_async(scheduler.tick())
        assert (second.delivered, second.deleted) == (1, 1)
        assert channel.send.await_count == 2
        assert _remaining_ids(db_engine) == set()

    def test_delete_failure_means_redelivery(self, db_engine):
        """At-least-once: a sent reminder whose delete failed is sent again."""
        rid = _add(db_engine, at=NOW)
        real_delete = reminder_service.delete_reminder
        calls = {"n": 0}

        def flaky_delete(engine, reminder_id):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OperationalError("DELETE", {}, Exception("db down"))
            return real_delete(engine, reminder_id)

        dispatcher = FakeDispatcher()
        scheduler = self._scheduler(db_engine, dispatcher)
        with patch.object(reminder_service, "delete_reminder", side_effect=flaky_delete):
            first = run_async(scheduler.tick())
            run_async(scheduler.tick())

        assert first.delete_failed == 1
        assert dispatcher.delivered == [rid, rid]
        assert _remaining_ids(db_engine) == set()

    def test_malformed_row_skipped_rest_delivered(self, db_engine):
        bad = _add(db_engine, at=NOW, channel_id=-1)
        good = _add(db_engine, at=NOW)
        dispatcher = FakeDispatcher()

        report = run_async(self._scheduler(db_engine, dispatcher).tick())

        assert report.skipped == 1
        assert dispatcher.delivered == [good]
        assert _remaining_ids(db_engine) == {bad}

    def test_one_crashing_delivery_does_not_block_batch(self, db_engine):
        first = _add(db_engine, at=NOW - timedelta(minutes=2))
        second = _add(db_engine, at=NOW - timedelta(minutes=1))
        dispatcher = FakeDispatcher()
        original = dispatcher.deliver_reminder

        async def explode_first(reminder):
            if reminder.id == first:
                raise RuntimeError("unexpected")
            return await original(reminder)

        dispatcher.deliver_reminder = explode_first
        run_async(self._scheduler(db_engine, dispatcher).tick())

        assert dispatcher.delivered == [second]
        assert _remaining_ids(db_engine) == {first}


# ---------------------------------------------------------------------------
# ReminderScheduler lifecycle
# ---------------------------------------------------------------------------
class TestSchedulerLifecycle:
    def test_start_ticks_immediately_and_stop_is_clean(self, db_engine):
        rid = _add(db_engine, at=NOW)
        dispatcher = FakeDispatcher()
        scheduler = ReminderScheduler(db_engine, dispatcher, interval=3600, clock=lambda: NOW)

        async def _inner():
            scheduler.start()
            scheduler.start()  # no second task
            for _ in range(200):
                if dispatcher.delivered:
                    break
                await asyncio.sleep(0.01)
            await scheduler.stop()

        run_async(_inner())
        assert dispatcher.delivered == [rid]
        assert not scheduler.running

    def test_stop_waits_for_in_flight_delivery(self, db_engine):
        _add(db_engine, at=NOW)
        finished = []

        class SlowDispatcher:
            async def deliver_reminder(self, reminder):
                await asyncio.sleep(0.05)
                finished.append(reminder.id)
                return DeliveryOutcome.DELIVERED

        scheduler = ReminderScheduler(
            db_engine, SlowDispatcher(), interval=3600, clock=lambda: NOW
        )

        async def _inner():
            scheduler.start()
            while scheduler.state is not SchedulerState.DELIVERING:
                await asyncio.sleep(0.001)
            await scheduler.stop()

        run_async(_inner())
        assert len(finished) == 1
        assert _remaining_ids(db_engine) == set()

    def test_stop_without_start(self, db_engine):
        scheduler = ReminderScheduler(db_engine, FakeDispatcher())
        run_async(scheduler.stop())
        assert not scheduler.running
