"""
cadence.services.reminder_scheduler — Reminder Delivery Loop
==============================================================

One long-lived asyncio task.  Every ``interval`` seconds it moves from
``IDLE`` to ``DELIVERING``:

1. Fetch every reminder due at or before now.  If the fetch fails the
   tick is abandoned; the reminders are still due on the next tick.
2. For each reminder, in order and independently:
   - skip rows whose ids cannot be Discord snowflakes (logged),
   - deliver through the :class:`NotificationDispatcher`,
   - delete it, unless delivery asked for a retry.
3. Return to ``IDLE`` whatever happened to individual reminders.

Delivery is **at-least-once**.  If the send succeeds but the delete
fails, the reminder is sent again on the next tick.

Shutdown is cooperative: :meth:`ReminderScheduler.stop` sets an event,
lets an in-flight tick finish, then awaits the task.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine

from cadence.database.engine import run_db
from cadence.services import reminder_service
from cadence.services.notifications import DeliveryOutcome, NotificationDispatcher
from cadence.services.reminder_service import DueReminder

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0


class SchedulerState(enum.StrEnum):
    IDLE = "idle"
    DELIVERING = "delivering"


@dataclass
class TickReport:
    """Counts for one tick.  ``fetch_failed`` means nothing else ran."""

    fetched: int = 0
    delivered: int = 0
    deleted: int = 0
    retried: int = 0
    dropped: int = 0
    skipped: int = 0
    delete_failed: int = 0
    fetch_failed: bool = False


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReminderScheduler:
    """Periodic reminder delivery with an explicit stop signal.

    Parameters
    ----------
    engine:
        SQLAlchemy engine holding the ``reminders`` table.
    dispatcher:
        Sends each due reminder.
    interval:
        Seconds between ticks.
    clock:
        Returns the current UTC time; swappable for tests.
    """

    def __init__(
        self,
        engine: Engine,
        dispatcher: NotificationDispatcher,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.engine = engine
        self.dispatcher = dispatcher
        self.interval = interval
        self.clock = clock
        self.state = SchedulerState.IDLE
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    def start(self) -> None:
        """Start the loop on the running event loop.  No-op if running."""
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="reminder-scheduler"
        )
        logger.info("Reminder scheduler started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        """Stop ticking; an in-flight tick runs to completion."""
        self._stop.set()
        task, self._task = self._task, None
        if task is not None:
            await task
            logger.info("Reminder scheduler stopped.")

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Reminder tick crashed")
                self.state = SchedulerState.IDLE
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except TimeoutError:
                pass

    # -----------------------------------------------------------------------
    # One tick
    # -----------------------------------------------------------------------
    async def tick(self) -> TickReport:
        """Deliver everything currently due."""
        report = TickReport()
        self.state = SchedulerState.DELIVERING
        try:
            now = self.clock()
            try:
                due = await run_db(reminder_service.fetch_due_reminders, self.engine, now)
            except Exception:
                logger.warning(
                    "Could not fetch due reminders; retrying next tick", exc_info=True
                )
                report.fetch_failed = True
                return report

            report.fetched = len(due)
            for reminder in due:
                try:
                    await self._process(reminder, report)
                except Exception:
                    logger.exception("Unexpected error processing reminder %d", reminder.id)
        finally:
            self.state = SchedulerState.IDLE

        if report.fetched:
            logger.info(
                "Reminder tick: fetched=%d delivered=%d deleted=%d retried=%d "
                "dropped=%d skipped=%d delete_failed=%d",
                report.fetched, report.delivered, report.deleted, report.retried,
                report.dropped, report.skipped, report.delete_failed,
            )
        return report

    async def _process(self, reminder: DueReminder, report: TickReport) -> None:
        if not reminder.is_well_formed:
            logger.warning(
                "Skipping malformed reminder %d (user=%r, channel=%r)",
                reminder.id, reminder.user_id, reminder.channel_id,
            )
            report.skipped += 1
            return

        outcome = await self.dispatcher.deliver_reminder(reminder)
        if outcome is DeliveryOutcome.RETRY:
            report.retried += 1
            return
        if outcome is DeliveryOutcome.DELIVERED:
            report.delivered += 1
        else:
            report.dropped += 1

        try:
            await run_db(reminder_service.delete_reminder, self.engine, reminder.id)
            report.deleted += 1
        except Exception:
            logger.warning(
                "Reminder delete failed for %d; it may be delivered again",
                reminder.id, exc_info=True,
            )
            report.delete_failed += 1
