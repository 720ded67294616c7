"""
cadence.engine.replies — Thanks Auto-Reply
============================================

Picks a friendly response when someone thanks the bot.  Pure — the caller
supplies the bot's identity and sends the reply.
"""

from __future__ import annotations

import random

THANKS_RESPONSES: tuple[str, ...] = (
    "Glad to assist you, {user}!",
    "You're welcome, {user}, happy to help!",
)


def thanks_triggers(bot_id: int, bot_name: str) -> tuple[str, ...]:
    """Lower-cased phrases that count as thanking the bot."""
    return (
        f"thanks <@{bot_id}>",
        f"thanks <@!{bot_id}>",
        f"thanks @{bot_name.lower()}",
    )


def thanks_reply(
    content: str,
    *,
    author_mention: str,
    bot_id: int,
    bot_name: str,
    rng: random.Random | None = None,
) -> str | None:
    """Return a reply if *content* thanks the bot, else ``None``.

    Half of the replies mention the author.
    """
    lowered = content.lower()
    if not any(trigger in lowered for trigger in thanks_triggers(bot_id, bot_name)):
        return None

    rng = rng or random.Random()
    base = rng.choice(THANKS_RESPONSES)
    if rng.random() < 0.5:
        return base.replace("{user}", author_mention)
    return base.replace(", {user}", "")
