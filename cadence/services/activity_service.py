"""
cadence.services.activity_service — Activity → XP Pipeline
============================================================

Shared by the ``on_message`` handler and the ``mystats`` command.

Pipeline for one activity event:
1. Load the stored pair (a miss is the zero state; a read error skips
   the event entirely so the real row is never overwritten)
2. Renormalize it against the current leveling formula
3. Apply the XP gain
4. Save (best-effort, failure logged)

Synchronous; call through ``run_db``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from cadence.engine.progression import apply, renormalize, requirement, xp_to_next
from cadence.services.progress_store import load_progress, read_progress, save_progress

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActivityResult:
    """Outcome of :func:`record_activity`."""

    user_id: int
    xp_gained: int
    old_level: int
    level: int
    progress: int
    levels_gained: int
    saved: bool

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0

    @property
    def xp_to_next(self) -> int:
        return xp_to_next(self.level, self.progress)


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Renormalized view of a member's progress, for display."""

    user_id: int
    level: int
    progress: int
    requirement: int
    xp_to_next: int


def record_activity(engine: Engine, user_id: int, xp_gain: int) -> ActivityResult:
    """Award *xp_gain* to *user_id* and persist the new pair.

    Levels gained by renormalizing a stale row are not counted as a
    level-up; only the gain from this event is.

    If the stored pair cannot be read, nothing is written and the result
    reports ``saved=False`` with no progress applied.
    """
    try:
        stored_progress, stored_level = read_progress(engine, user_id)
    except SQLAlchemyError:
        logger.warning(
            "Could not read progress for %d; skipping this gain", user_id, exc_info=True
        )
        return ActivityResult(
            user_id=user_id,
            xp_gained=xp_gain,
            old_level=0,
            level=0,
            progress=0,
            levels_gained=0,
            saved=False,
        )

    level, progress = renormalize(stored_level, stored_progress)
    result = apply(level, progress, xp_gain)

    saved = save_progress(engine, user_id, result.progress, result.level)
    if not saved:
        logger.warning("Progress for %d was not saved; this gain is lost", user_id)

    return ActivityResult(
        user_id=user_id,
        xp_gained=xp_gain,
        old_level=level,
        level=result.level,
        progress=result.progress,
        levels_gained=result.levels_gained,
        saved=saved,
    )


def get_progress(engine: Engine, user_id: int) -> ProgressSnapshot:
    """Load and renormalize *user_id*'s stored progress.  Read-only."""
    stored_progress, stored_level = load_progress(engine, user_id)
    level, progress = renormalize(stored_level, stored_progress)
    return ProgressSnapshot(
        user_id=user_id,
        level=level,
        progress=progress,
        requirement=requirement(level),
        xp_to_next=xp_to_next(level, progress),
    )
