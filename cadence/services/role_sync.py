"""
cadence.services.role_sync — Level Role Convergence
=====================================================

Applies a :class:`~cadence.engine.tiers.RolePlan` to a guild member.
Each add/remove is its own Discord call: one failing (usually
``discord.Forbidden`` because the bot's role sits below the tier role) is
logged and the rest still run.  Nothing is rolled back, so a partial run
is completed by the next sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import discord

from cadence.engine.tiers import RoleTierTable, plan_role_changes

logger = logging.getLogger(__name__)

SYNC_REASON = "Level role update"


@dataclass
class RoleSyncReport:
    """What a sync attempt did."""

    removed: list[int] = field(default_factory=list)
    added: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


async def sync_tier_roles(
    member: discord.Member, table: RoleTierTable, level: int
) -> RoleSyncReport:
    """Leave *member* holding exactly the tier role for *level*."""
    held = [role.id for role in member.roles]
    plan = plan_role_changes(held, table, level)
    report = RoleSyncReport()
    if plan.is_noop:
        return report

    for role_id in plan.to_remove:
        try:
            await member.remove_roles(discord.Object(id=role_id), reason=SYNC_REASON)
            report.removed.append(role_id)
        except Exception:
            logger.warning(
                "Remove role %d from %d failed", role_id, member.id, exc_info=True
            )
            report.failed.append(role_id)

    for role_id in plan.to_add:
        try:
            await member.add_roles(discord.Object(id=role_id), reason=SYNC_REASON)
            report.added.append(role_id)
        except Exception:
            logger.warning(
                "Assign role %d to %d failed", role_id, member.id, exc_info=True
            )
            report.failed.append(role_id)

    logger.info(
        "Role sync for %d at level %d: -%s +%s",
        member.id, level, report.removed, report.added,
    )
    return report
