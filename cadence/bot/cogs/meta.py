"""
cadence.bot.cogs.meta — Stats, Leaderboard & Utility Commands
===============================================================

- ping     — Round-trip latency
- top      — Top members by level, then progress
- mystats  — Renormalized level and XP progress
- help     — Command list
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from cadence.database.engine import run_db
from cadence.services.activity_service import get_progress
from cadence.services.embeds import (
    build_help_embed,
    build_leaderboard_embed,
    build_stats_embed,
)
from cadence.services.progress_store import top_by_level

if TYPE_CHECKING:
    from cadence.bot.core import CadenceBot

logger = logging.getLogger(__name__)


def format_latency(seconds: float) -> str:
    if seconds < 1:
        return f"Ping took {int(seconds * 1000)}ms"
    return f"Ping took {seconds:.2f}s"


class Meta(commands.Cog, name="Meta"):
    """Leaderboard, personal stats and utility commands."""

    def __init__(self, bot: CadenceBot) -> None:
        self.bot = bot

    async def _resolve_names(self, rows: list[tuple[int, int]]) -> list[tuple[str, int]]:
        """Map ``(user_id, level)`` to ``(name, level)``, dropping unknown users."""
        resolved: list[tuple[str, int]] = []
        for user_id, level in rows:
            user = self.bot.get_user(user_id)
            if user is None:
                try:
                    user = await self.bot.fetch_user(user_id)
                except discord.HTTPException:
                    logger.debug("Leaderboard: could not resolve user %d", user_id)
                    continue
            resolved.append((user.name, level))
        return resolved

    # -------------------------------------------------------------------
    # !ping
    # -------------------------------------------------------------------
    @commands.hybrid_command(name="ping", description="Responds with latency of the bot.")
    async def ping(self, ctx: commands.Context) -> None:
        start = time.perf_counter()
        handle = await ctx.send("Pinging...")
        elapsed = time.perf_counter() - start
        await handle.edit(content=format_latency(elapsed))

    # -------------------------------------------------------------------
    # !top
    # -------------------------------------------------------------------
    @commands.hybrid_command(name="top", description="Shows the top users.")
    async def top(self, ctx: commands.Context) -> None:
        rows = await run_db(top_by_level, self.bot.engine, self.bot.cfg.leaderboard_size)
        named = await self._resolve_names(rows)
        await ctx.send(embed=build_leaderboard_embed(named))

    # -------------------------------------------------------------------
    # !mystats
    # -------------------------------------------------------------------
    @commands.hybrid_command(name="mystats", description="Shows your level and XP progress.")
    async def mystats(self, ctx: commands.Context) -> None:
        snapshot = await run_db(get_progress, self.bot.engine, ctx.author.id)
        await ctx.send(embed=build_stats_embed(snapshot))

    # -------------------------------------------------------------------
    # !help
    # -------------------------------------------------------------------
    @commands.hybrid_command(name="help", description="Lists available commands.")
    async def help(self, ctx: commands.Context) -> None:
        await ctx.send(
            "Commands available:", embed=build_help_embed(self.bot.cfg.bot_prefix)
        )


async def setup(bot: CadenceBot) -> None:
    await bot.add_cog(Meta(bot))
