"""
cadence.services.reminder_service — Reminder Persistence
==========================================================

Create, fetch-due and delete reminders.  Synchronous; call through
``run_db``.

Unlike :mod:`cadence.services.progress_store`, these functions let
storage errors propagate: the caller decides whether a failure means
"reply with an error" (``remindme``) or "skip this tick" (scheduler).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine, delete, select

from cadence.database.engine import get_session
from cadence.database.models import Reminder

logger = logging.getLogger(__name__)

# Discord snowflakes are positive unsigned 64-bit integers
MAX_SNOWFLAKE = 2**64 - 1


@dataclass(frozen=True, slots=True)
class DueReminder:
    """Detached snapshot of a reminder row, taken once per scheduler tick."""

    id: int
    user_id: int
    channel_id: int
    guild_id: int
    reminder_text: str
    remind_at: datetime

    @property
    def is_well_formed(self) -> bool:
        """False when a stored id cannot be a Discord snowflake."""
        return all(
            isinstance(v, int) and 0 < v <= MAX_SNOWFLAKE
            for v in (self.user_id, self.channel_id)
        )


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC; drop microseconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).replace(microsecond=0)


def create_reminder(
    engine: Engine,
    *,
    user_id: int,
    channel_id: int,
    guild_id: int,
    reminder_text: str,
    remind_at: datetime,
) -> int:
    """Persist a reminder and return its id."""
    with get_session(engine) as session:
        row = Reminder(
            user_id=user_id,
            channel_id=channel_id,
            guild_id=guild_id,
            reminder_text=reminder_text,
            remind_at=as_utc(remind_at),
        )
        session.add(row)
        session.flush()
        logger.info(
            "Reminder %d stored for user %d at %s", row.id, user_id, row.remind_at
        )
        return row.id


def fetch_due_reminders(engine: Engine, now: datetime | None = None) -> list[DueReminder]:
    """Every reminder whose due time is at or before *now* (UTC)."""
    cutoff = as_utc(now or datetime.now(UTC))
    with get_session(engine) as session:
        rows = session.scalars(
            select(Reminder)
            .where(Reminder.remind_at <= cutoff)
            .order_by(Reminder.remind_at, Reminder.id)
        ).all()
        return [
            DueReminder(
                id=r.id,
                user_id=r.user_id,
                channel_id=r.channel_id,
                guild_id=r.guild_id,
                reminder_text=r.reminder_text,
                remind_at=as_utc(r.remind_at),
            )
            for r in rows
        ]


def delete_reminder(engine: Engine, reminder_id: int) -> bool:
    """Delete by id.  Returns False if the row was already gone."""
    with get_session(engine) as session:
        result = session.execute(delete(Reminder).where(Reminder.id == reminder_id))
        return bool(result.rowcount)
