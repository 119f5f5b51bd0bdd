"""
todbot.bot.__main__ — Entry point for ``python -m todbot.bot``
===============================================================

Startup order: secrets from ``.env``, then ``config.yaml`` (or the file
named by ``TODBOT_CONFIG``), then the database (migrations + tables),
then the bot itself, which blocks on the event loop until shutdown.

Run with::

    python -m todbot.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from todbot.bot.core import TodBot
from todbot.config import load_config
from todbot.database.engine import create_db_engine, init_db
from todbot.services.prompt_service import count_prompts

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("todbot")

_PLACEHOLDER_TOKEN = "your-discord-bot-token-here"


def main() -> None:
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == _PLACEHOLDER_TOKEN:
        logger.critical("DISCORD_TOKEN is not set. Copy .env.example to .env and add your bot token.")
        sys.exit(1)

    try:
        cfg = load_config(os.getenv("TODBOT_CONFIG", "config.yaml"))
    except (FileNotFoundError, KeyError) as exc:
        logger.critical("Invalid configuration: %s", exc)
        sys.exit(1)
    logger.info(
        "Approval channel %d, %d privileged role(s)",
        cfg.approval_channel_id, len(cfg.privileged_role_ids),
    )

    engine = create_db_engine()
    init_db(engine)
    counts = count_prompts(engine)
    logger.info(
        "Prompt pool: %s", ", ".join(f"{n} {category}" for category, n in counts.items()),
    )

    bot = TodBot(cfg=cfg, engine=engine)
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down.")
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
