"""
cadence.bot.__main__ — Entry point for ``python -m cadence.bot``
==================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings + role tiers).  Invalid → exit 1.
3. Create the SQLAlchemy engine and ensure tables exist.
4. Create the CadenceBot and hand it config + engine.
5. Start the bot (blocking — runs the asyncio event loop).
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from cadence.bot.core import CadenceBot
from cadence.config import ConfigError, load_config
from cadence.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("cadence")


def main() -> None:
    """Bootstrap and run the Cadence bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Soft configuration.
    try:
        cfg = load_config(os.getenv("CADENCE_CONFIG", "config.yaml"))
    except ConfigError as exc:
        logger.critical("Configuration error: %s", exc)
        sys.exit(1)
    logger.info(
        "Config loaded — prefix %r, %d role tiers",
        cfg.bot_prefix, len(cfg.role_tiers.tiers),
    )

    # 3. Database.
    try:
        engine = create_db_engine()
    except RuntimeError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    init_db(engine)

    # 4. Bot.
    bot = CadenceBot(cfg=cfg, engine=engine)

    # 5. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Cadence bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
