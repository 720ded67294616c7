"""
cadence.bot.cogs.reminders — The remindme Command
===================================================

``!remindme "stand up" in 10 minutes`` stores a reminder; delivery is the
job of :class:`~cadence.services.reminder_scheduler.ReminderScheduler`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands
from sqlalchemy.exc import SQLAlchemyError

from cadence.database.engine import run_db
from cadence.engine.time_parser import (
    TimeParseError,
    format_timestamp,
    parse_time_expression,
    split_reminder_request,
)
from cadence.services.reminder_service import create_reminder

if TYPE_CHECKING:
    from cadence.bot.core import CadenceBot

logger = logging.getLogger(__name__)


class Reminders(commands.Cog, name="Reminders"):
    """User-scheduled reminders."""

    def __init__(self, bot: CadenceBot) -> None:
        self.bot = bot

    @commands.hybrid_command(
        name="remindme",
        description='Sets a reminder. Usage: remindme "<text>" in <time>',
    )
    @commands.guild_only()
    async def remindme(self, ctx: commands.Context, *, request: str = "") -> None:
        prefix = self.bot.cfg.bot_prefix
        parts = split_reminder_request(request)
        if parts is None:
            await ctx.reply(f'Please use the format: {prefix}remindme "[reminder]" in [time]')
            return

        text, when = parts
        try:
            remind_at = parse_time_expression(when)
        except TimeParseError as exc:
            await ctx.reply(f"Error parsing time. {exc}.")
            return

        assert ctx.guild is not None  # guild_only
        try:
            await run_db(
                create_reminder,
                self.bot.engine,
                user_id=ctx.author.id,
                channel_id=ctx.channel.id,
                guild_id=ctx.guild.id,
                reminder_text=text,
                remind_at=remind_at,
            )
        except SQLAlchemyError:
            logger.exception("Failed to store reminder for user %d", ctx.author.id)
            await ctx.reply("Sorry, I couldn't save that reminder. Please try again later.")
            return

        await ctx.reply(f"I'll remind you about '{text}' at {format_timestamp(remind_at)} UTC")


async def setup(bot: CadenceBot) -> None:
    await bot.add_cog(Reminders(bot))
