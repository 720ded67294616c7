"""
cadence.services.progress_store — Best-Effort user_xp Access
==============================================================

Synchronous helpers; call them through :func:`cadence.database.engine.run_db`.

Contract:

* :func:`load_progress` never raises.  A miss or a storage error yields
  ``(0, 0)``.  Callers that write back must use :func:`read_progress`,
  which raises, so a zero state from a failed read is never persisted.
* Writes never raise.  Failures are logged and reported as ``False``.
* No transaction spans a read and the following write, so two concurrent
  events for the same member can race.  The last ``save_progress`` wins.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from cadence.database.engine import get_session
from cadence.database.models import UserXp

logger = logging.getLogger(__name__)


def read_progress(engine: Engine, user_id: int) -> tuple[int, int]:
    """Return the stored ``(progress, level)``, ``(0, 0)`` on a miss.

    Storage errors propagate.
    """
    with get_session(engine) as session:
        row = session.get(UserXp, user_id)
        if row is None:
            return 0, 0
        return row.xp, row.level


def load_progress(engine: Engine, user_id: int) -> tuple[int, int]:
    """Return the stored ``(progress, level)`` for *user_id*."""
    try:
        return read_progress(engine, user_id)
    except SQLAlchemyError:
        logger.warning("Failed to load user_xp for %d; using zero state", user_id, exc_info=True)
        return 0, 0


def _upsert(engine: Engine, user_id: int, progress: int, level: int) -> None:
    with get_session(engine) as session:
        row = session.get(UserXp, user_id)
        if row is None:
            session.add(UserXp(user_id=user_id, xp=progress, level=level))
        else:
            row.xp = progress
            row.level = level


def save_progress(engine: Engine, user_id: int, progress: int, level: int) -> bool:
    """Insert or overwrite the row for *user_id*.  Returns success."""
    try:
        try:
            _upsert(engine, user_id, progress, level)
        except IntegrityError:
            # A concurrent first event inserted the row; overwrite it
            _upsert(engine, user_id, progress, level)
        return True
    except SQLAlchemyError:
        logger.exception(
            "DB error updating user_xp for %d (xp=%d, level=%d)", user_id, progress, level
        )
        return False


def top_by_level(engine: Engine, limit: int = 10) -> list[tuple[int, int]]:
    """Top members as ``(user_id, level)``, by level then progress, descending."""
    try:
        with get_session(engine) as session:
            rows = session.execute(
                select(UserXp.user_id, UserXp.level)
                .order_by(UserXp.level.desc(), UserXp.xp.desc())
                .limit(limit)
            ).all()
            return [(r[0], r[1]) for r in rows]
    except SQLAlchemyError:
        logger.warning("Failed to load leaderboard", exc_info=True)
        return []
