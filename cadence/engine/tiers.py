"""
cadence.engine.tiers — Level Role Tiers
=========================================

Maps a level onto one of seven role tiers and plans the add/remove
operations that bring a member's role set in line with it.

Pure calculation.  Executing the plan against Discord lives in
:mod:`cadence.services.role_sync`.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

__all__ = [
    "DEFAULT_TIER_MIN_LEVELS",
    "TIER_COUNT",
    "RolePlan",
    "RoleTier",
    "RoleTierTable",
    "plan_role_changes",
]

TIER_COUNT = 7

# Lower bound of each tier: 1-5, 6-10, 11-20, 21-30, 31-40, 41-50, 51+
DEFAULT_TIER_MIN_LEVELS: tuple[int, ...] = (1, 6, 11, 21, 31, 41, 51)


@dataclass(frozen=True, slots=True)
class RoleTier:
    """One contiguous level range mapped to a Discord role.

    ``max_level`` is inclusive; ``None`` means open-ended.
    """

    min_level: int
    max_level: int | None
    role_id: int

    def contains(self, level: int) -> bool:
        if level < self.min_level:
            return False
        return self.max_level is None or level <= self.max_level


@dataclass(frozen=True, slots=True)
class RoleTierTable:
    """Seven tiers partitioning ``[1, ∞)`` with no gaps or overlaps."""

    tiers: tuple[RoleTier, ...]

    def __post_init__(self) -> None:
        if len(self.tiers) != TIER_COUNT:
            raise ValueError(f"Expected {TIER_COUNT} role tiers, got {len(self.tiers)}")
        if self.tiers[0].min_level != 1:
            raise ValueError("The first role tier must start at level 1")
        for tier in self.tiers:
            if tier.max_level is not None and tier.max_level < tier.min_level:
                raise ValueError(f"Role tier starting at {tier.min_level} is empty")
        for prev, nxt in zip(self.tiers, self.tiers[1:]):
            if prev.max_level is None or prev.max_level + 1 != nxt.min_level:
                raise ValueError(
                    f"Role tiers must be contiguous: tier ending at {prev.max_level} "
                    f"is followed by a tier starting at {nxt.min_level}"
                )
        if self.tiers[-1].max_level is not None:
            raise ValueError("The last role tier must be open-ended")
        role_ids = [t.role_id for t in self.tiers]
        if len(set(role_ids)) != len(role_ids):
            raise ValueError("Each role tier needs a distinct role id")

    @classmethod
    def from_bounds(
        cls, role_ids: Sequence[int], min_levels: Sequence[int] = DEFAULT_TIER_MIN_LEVELS
    ) -> RoleTierTable:
        """Build a table from per-tier role ids and tier lower bounds."""
        if len(role_ids) != len(min_levels):
            raise ValueError("role_ids and min_levels must have the same length")
        tiers = []
        for i, (role_id, lo) in enumerate(zip(role_ids, min_levels)):
            hi = min_levels[i + 1] - 1 if i + 1 < len(min_levels) else None
            tiers.append(RoleTier(min_level=lo, max_level=hi, role_id=role_id))
        return cls(tuple(tiers))

    @property
    def role_ids(self) -> frozenset[int]:
        return frozenset(t.role_id for t in self.tiers)

    def tier_for_level(self, level: int) -> RoleTier | None:
        """First tier containing *level*, or ``None`` below level 1."""
        for tier in self.tiers:
            if tier.contains(level):
                return tier
        return None


@dataclass(frozen=True, slots=True)
class RolePlan:
    """Role ids to remove and add, in that order."""

    to_remove: tuple[int, ...]
    to_add: tuple[int, ...]

    @property
    def is_noop(self) -> bool:
        return not self.to_remove and not self.to_add


def plan_role_changes(
    held_role_ids: Iterable[int], table: RoleTierTable, level: int
) -> RolePlan:
    """Compute the changes that leave exactly the target tier role held.

    Roles outside the tier table are never touched.  At level 0 there is
    no target tier, so every held tier role is removed.
    """
    held = set(held_role_ids)
    target = table.tier_for_level(level)
    target_id = target.role_id if target else None

    to_remove = tuple(
        t.role_id for t in table.tiers if t.role_id in held and t.role_id != target_id
    )
    to_add = (target_id,) if target_id is not None and target_id not in held else ()
    return RolePlan(to_remove=to_remove, to_add=to_add)
