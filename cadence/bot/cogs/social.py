"""
cadence.bot.cogs.social — Message XP Engine
=============================================

Listens for on_message events and runs them through the activity
pipeline.

Pipeline:
1. on_message fires → gate checks (shutting down, bot author)
2. Random XP gain in the configured range
3. activity_service.record_activity (background thread via run_db)
4. On level-up: reply, then sync the member's tier role (guild only)
5. Thanks auto-reply
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from cadence.database.engine import run_db
from cadence.engine.replies import thanks_reply
from cadence.services.activity_service import ActivityResult, record_activity
from cadence.services.role_sync import sync_tier_roles

if TYPE_CHECKING:
    from cadence.bot.core import CadenceBot

logger = logging.getLogger(__name__)


class Social(commands.Cog, name="Social"):
    """Awards XP for messages and keeps level roles current."""

    def __init__(self, bot: CadenceBot, rng: random.Random | None = None) -> None:
        self.bot = bot
        self.rng = rng or random.Random()

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle_message(message)
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id,
                message.author.id,
            )

    async def _handle_message(self, message: discord.Message) -> None:
        """Inner message handler (separated for error isolation)."""

        if not self.bot.accepting_events:
            return

        if message.author.bot:
            return

        cfg = self.bot.cfg
        xp_gain = self.rng.randint(cfg.xp_gain_min, cfg.xp_gain_max)
        result: ActivityResult = await run_db(
            record_activity, self.bot.engine, message.author.id, xp_gain
        )
        logger.debug(
            "Message XP: %s +%d → level %d (%d/%d to next)",
            message.author.id, xp_gain, result.level, result.progress, result.xp_to_next,
        )

        if result.leveled_up:
            logger.info(
                "Level up: %s reached level %d (+%d)",
                message.author.id, result.level, result.levels_gained,
            )
            await self.bot.dispatcher.send_level_up(message, result)
            if message.guild is not None:
                member = await self._resolve_member(message)
                if member is not None:
                    await sync_tier_roles(member, cfg.role_tiers, result.level)

        if cfg.thanks_enabled and self.bot.user is not None:
            reply = thanks_reply(
                message.content,
                author_mention=message.author.mention,
                bot_id=self.bot.user.id,
                bot_name=self.bot.user.name,
                rng=self.rng,
            )
            if reply is not None:
                try:
                    await message.reply(reply)
                except discord.HTTPException:
                    logger.warning("Thanks reply failed", exc_info=True)

    async def _resolve_member(self, message: discord.Message) -> discord.Member | None:
        if isinstance(message.author, discord.Member):
            return message.author
        guild = message.guild
        assert guild is not None
        member = guild.get_member(message.author.id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(message.author.id)
        except discord.HTTPException:
            logger.warning(
                "Could not resolve member %d in guild %d for role sync",
                message.author.id, guild.id,
            )
            return None


async def setup(bot: CadenceBot) -> None:
    await bot.add_cog(Social(bot))
