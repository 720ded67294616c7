"""
cadence.services.embeds — Discord embed builders for commands
===============================================================

Layout lives here so cogs only supply data.
"""

from __future__ import annotations

from datetime import UTC, datetime

import discord

from cadence.services.activity_service import ProgressSnapshot

COLOR_PRIMARY = discord.Color(0x94A425)

# (command, description) pairs shown by help
COMMAND_HELP: list[tuple[str, str]] = [
    ("ping", "Responds with latency of the bot."),
    ("top", "Shows the top users."),
    ("mystats", "Shows your level and XP progress."),
    ("remindme", 'Sets a reminder. Usage: remindme "<text>" in <time>'),
    ("help", "Shows this message."),
]


def build_leaderboard_embed(rows: list[tuple[str, int]]) -> discord.Embed:
    """Ranked list of ``(display_name, level)``."""
    embed = discord.Embed(
        title="Top Users",
        description="Here are the top users:" if rows else "No one has earned XP yet.",
        color=COLOR_PRIMARY,
    )
    for rank, (name, level) in enumerate(rows, 1):
        embed.add_field(name=f"{rank}. {name}", value=f"Level: {level}", inline=False)
    return embed


def build_stats_embed(snapshot: ProgressSnapshot) -> discord.Embed:
    embed = discord.Embed(title="Current Stats:", color=COLOR_PRIMARY)
    embed.add_field(name="Level", value=str(snapshot.level), inline=True)
    embed.add_field(
        name="XP Progress",
        value=f"{snapshot.progress}/{snapshot.requirement}",
        inline=True,
    )
    embed.add_field(name="XP to Next Level", value=str(snapshot.xp_to_next), inline=True)
    return embed


def build_help_embed(prefix: str) -> discord.Embed:
    embed = discord.Embed(
        title="Help: List of Commands",
        description="Here's a list of all the commands you can use:",
        color=COLOR_PRIMARY,
        timestamp=datetime.now(UTC),
    )
    for name, description in COMMAND_HELP:
        embed.add_field(name=f"{prefix}{name}", value=description, inline=False)
    embed.set_footer(text=f"Use {prefix}command to run any of these commands.")
    return embed
