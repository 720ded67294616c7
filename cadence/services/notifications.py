"""
cadence.services.notifications — Level-Up & Reminder Delivery
===============================================================

Thin layer over the Discord client.  Message text is built by the pure
``format_*`` helpers; the dispatcher only resolves channels, sends, and
translates Discord errors into outcomes the callers can act on.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

import discord
from discord.abc import Messageable

if TYPE_CHECKING:
    from cadence.services.activity_service import ActivityResult
    from cadence.services.reminder_service import DueReminder

logger = logging.getLogger(__name__)


class DeliveryOutcome(enum.StrEnum):
    """How a reminder delivery attempt ended."""

    DELIVERED = "delivered"
    RETRY = "retry"                  # transient failure, keep the reminder
    UNDELIVERABLE = "undeliverable"  # channel gone or not messageable, drop it


# ---------------------------------------------------------------------------
# Message text
# ---------------------------------------------------------------------------
def format_level_up(levels_gained: int, new_level: int, xp_left: int) -> str:
    if levels_gained == 1:
        return f"Level up. You reached level {new_level}. {xp_left} XP to next level."
    return (
        f"Massive gains. +{levels_gained} levels. You are now level {new_level}. "
        f"{xp_left} XP to next level."
    )


def format_reminder(user_id: int, reminder_text: str) -> str:
    return f"<@{user_id}>: {reminder_text}"


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
class NotificationDispatcher:
    """Sends level-up replies and due reminders through *client*."""

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    async def send_level_up(self, message: discord.Message, result: ActivityResult) -> bool:
        """Reply to the message that caused the level-up.  Never raises."""
        text = format_level_up(result.levels_gained, result.level, result.xp_to_next)
        try:
            await message.reply(text)
            return True
        except Exception:
            logger.warning(
                "Level-up reply failed for user %d", result.user_id, exc_info=True
            )
            return False

    async def _resolve_channel(self, channel_id: int) -> Messageable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        if not isinstance(channel, Messageable):
            raise TypeError(f"Channel {channel_id} cannot receive messages")
        return channel

    async def deliver_reminder(self, reminder: DueReminder) -> DeliveryOutcome:
        """Post *reminder* in its origin channel.  Never raises.

        A channel send is not idempotent, so anything but a permanent
        failure is reported as :attr:`DeliveryOutcome.RETRY`.  A missing
        permission (``discord.Forbidden``) can be granted back, so it is
        retried too; only a deleted or non-messageable channel is dropped.
        """
        try:
            channel = await self._resolve_channel(reminder.channel_id)
            await channel.send(format_reminder(reminder.user_id, reminder.reminder_text))
        except (discord.NotFound, TypeError) as exc:
            logger.warning(
                "Reminder %d is undeliverable to channel %d: %s",
                reminder.id, reminder.channel_id, exc,
            )
            return DeliveryOutcome.UNDELIVERABLE
        except Exception:
            logger.warning(
                "Reminder send failed for %d; will retry next tick",
                reminder.id, exc_info=True,
            )
            return DeliveryOutcome.RETRY
        return DeliveryOutcome.DELIVERED
