"""
cadence.bot.core — Bot Instance & Cog Loader
==============================================

Defines :class:`CadenceBot`, a ``commands.Bot`` subclass that:

1. Carries the shared state built once at startup — config (``bot.cfg``),
   DB engine (``bot.engine``), notification dispatcher and reminder
   scheduler — so cogs never reach for globals.
2. Loads every cog listed in :data:`EXTENSIONS`.
3. Starts the reminder scheduler once connected and stops it on close.
"""

from __future__ import annotations

import logging

import discord
from discord.ext import commands
from sqlalchemy import Engine

from cadence.config import CadenceConfig
from cadence.services.notifications import NotificationDispatcher
from cadence.services.reminder_scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

# Cog modules to load on startup
EXTENSIONS: list[str] = [
    "cadence.bot.cogs.social",
    "cadence.bot.cogs.meta",
    "cadence.bot.cogs.reminders",
]


class CadenceBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`CadenceConfig`.
    engine:
        A SQLAlchemy :class:`Engine` holding ``user_xp`` and ``reminders``.
    """

    def __init__(self, cfg: CadenceConfig, engine: Engine) -> None:
        # MESSAGE_CONTENT: prefix commands and thanks detection
        # GUILD_MEMBERS: resolving members for role sync
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            help_command=None,  # replaced by the Meta cog's help
        )

        self.cfg = cfg
        self.engine = engine
        self.dispatcher = NotificationDispatcher(self)
        self.scheduler = ReminderScheduler(
            engine, self.dispatcher, interval=cfg.reminder_interval_seconds,
        )

        # Cleared by close(); cogs drop new events once False
        self.accepting_events = True

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cog extensions.  One broken cog doesn't take the bot down."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when connected.  May fire again after a reconnect."""
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)
        self.scheduler.start()

    async def close(self) -> None:
        """Graceful shutdown: stop taking events, let in-flight work finish."""
        logger.info("Bot shutting down…")
        self.accepting_events = False
        await self.scheduler.stop()
        await super().close()
