"""
cadence.engine.progression — XP → Level State Machine
=======================================================

Pure calculation, no Discord I/O, no DB I/O.

Stored state is ``(level, progress)`` where *progress* is the XP earned
toward the **next** level only, not lifetime XP.  The cost of a level is
given by :func:`requirement`; :func:`apply` turns an XP gain into level
advances plus leftover progress.

Older deployments stored rows under different leveling formulas.  Instead
of migrating them, every read path calls ``apply(level, progress, 0)`` to
renormalize the pair against the current formula.  On a pair that is
already normalized this is the identity.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import NamedTuple

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_LEVEL",
    "MAX_STEPS",
    "MAX_XP",
    "Progression",
    "apply",
    "renormalize",
    "requirement",
    "xp_to_next",
]

# Stored values are unsigned 32-bit; everything saturates at this bound.
MAX_XP = 2**32 - 1
MAX_LEVEL = 2**32 - 1

# Hard cap on loop iterations inside apply()
MAX_STEPS = 10_000

RequirementFn = Callable[[int], int]


class Progression(NamedTuple):
    """Result of :func:`apply`."""

    level: int
    progress: int
    levels_gained: int


# ---------------------------------------------------------------------------
# Leveling formula — the single canonical implementation
# ---------------------------------------------------------------------------
def requirement(level: int) -> int:
    """XP needed to complete *level* (i.e. advance to ``level + 1``).

    ::

        required = 5 * level² + 50 * level + 100

    Clamped to :data:`MAX_XP` for extreme levels.
    """
    level = max(level, 0)
    return min(5 * level * level + 50 * level + 100, MAX_XP)


def xp_to_next(level: int, progress: int, *, requirement: RequirementFn = requirement) -> int:
    """XP still missing before *level* completes, floored at 0."""
    return max(requirement(level) - progress, 0)


def apply(
    level: int,
    progress: int,
    xp_gain: int,
    *,
    requirement: RequirementFn = requirement,
) -> Progression:
    """Consume *xp_gain* into level advances and leftover progress.

    Parameters
    ----------
    level, progress:
        The stored pair.  May be un-normalized (``progress`` at or above
        the requirement) when it was written by an older formula.
    xp_gain:
        XP to add.  ``0`` only renormalizes.
    requirement:
        Level cost function, swappable for tests.

    The loop stops after :data:`MAX_STEPS` iterations.  A misconfigured
    *requirement* that returns 0 hits that cap and returns whatever was
    reached so far.
    """
    level = min(max(level, 0), MAX_LEVEL)
    progress = min(max(progress, 0), MAX_XP)
    remaining = max(xp_gain, 0)
    gained = 0

    for _ in range(MAX_STEPS):
        if level >= MAX_LEVEL:
            break

        need = requirement(level)

        # Stored progress already covers this level: normalize
        if progress >= need:
            progress -= need
            level += 1
            gained += 1
            continue

        if remaining == 0:
            break

        gap = need - progress
        if remaining >= gap:
            remaining -= gap
            progress = 0
            level += 1
            gained += 1
        else:
            progress += remaining
            remaining = 0
            break
    else:
        logger.warning(
            "Progression hit the %d-step cap at level %d (progress=%d, unspent=%d)",
            MAX_STEPS, level, progress, remaining,
        )

    return Progression(level, min(progress, MAX_XP), gained)


def renormalize(
    level: int, progress: int, *, requirement: RequirementFn = requirement
) -> tuple[int, int]:
    """Return the canonical ``(level, progress)`` for a stored pair."""
    result = apply(level, progress, 0, requirement=requirement)
    return result.level, result.progress
