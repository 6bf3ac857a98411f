"""
antartica.bot.__main__ — Entry point for ``python -m antartica.bot``
====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings); write an example and exit if missing.
3. Create the SQLAlchemy engine and ensure tables exist.
4. Create the AntarticaBot and hand it config + engine.
5. Start the bot (blocking — runs the asyncio event loop).

Run with::

    python -m antartica.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from antartica.bot.core import AntarticaBot
from antartica.config import load_config, write_default_config
from antartica.database.engine import create_db_engine, init_db
from antartica.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("antartica")

CONFIG_PATH = "config.yaml"


def main() -> None:
    """Bootstrap and run the Antartica bot."""

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
        cfg = load_config(CONFIG_PATH)
    except FileNotFoundError:
        path = write_default_config(CONFIG_PATH)
        logger.critical("Wrote example configuration to %s; edit it and restart.", path)
        sys.exit(1)
    except KeyError as exc:
        logger.critical("config.yaml is missing required key %s", exc)
        sys.exit(1)

    logging.getLogger().setLevel(cfg.log_level)
    logger.info("Config loaded — Bot: %s", cfg.bot_name)

    # 3. Database.
    try:
        engine = create_db_engine()
    except ConfigurationError as exc:
        logger.critical("%s", exc)
        sys.exit(1)
    init_db(engine)

    # 4. Bot.
    bot = AntarticaBot(cfg=cfg, engine=engine)

    # 5. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Antartica bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
