"""
todbot.bot.core — The TodBot Client
===================================

:class:`TodBot` is the one object every cog, view and service callback
can reach.  It holds:

* ``cfg`` / ``engine`` for configuration and persistence,
* ``pending`` for submissions waiting on a similarity confirmation,
* ``prompt_limiter`` / ``submission_limiter`` for per-user throttling.

Cogs are loaded in ``setup_hook``, which also re-attaches the persistent
prompt and review views.  Slash commands are synced once the gateway
reports ready; set ``DEV_GUILD_ID`` to sync into a single test guild.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from todbot.config import TodConfig
from todbot.engine.cache import PendingSubmissionCache
from todbot.services.moderation_service import SubmissionNotice
from todbot.services.review_service import dm_submitter
from todbot.services.throttle import RateLimiter

logger = logging.getLogger(__name__)

COGS: tuple[str, ...] = (
    "todbot.bot.cogs.play",
    "todbot.bot.cogs.submissions",
    "todbot.bot.cogs.questions",
    "todbot.bot.cogs.maintenance",
)


class TodBot(commands.Bot):
    """Truth-or-dare bot carrying config, storage and in-memory state."""

    def __init__(self, cfg: TodConfig, engine: Engine) -> None:
        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=discord.Intents.default(),
            description="Truth or Dare",
        )
        self.cfg = cfg
        self.engine = engine
        self.pending = PendingSubmissionCache()
        self.prompt_limiter = RateLimiter(*cfg.prompt_rate_limit)
        self.submission_limiter = RateLimiter(*cfg.submission_rate_limit)

    async def notify_submitter(self, notice: SubmissionNotice) -> None:
        await dm_submitter(self, notice)

    # -----------------------------------------------------------------------
    # discord.py hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        from todbot.bot.views import PromptView, ReviewView

        loaded = 0
        for name in COGS:
            try:
                await self.load_extension(name)
            except Exception:
                logger.exception("Cog %s failed to load; continuing without it", name)
                continue
            loaded += 1
        logger.info("%d/%d cogs loaded", loaded, len(COGS))

        # custom_id-bound buttons keep working on messages sent before a restart
        self.add_view(PromptView(self))
        self.add_view(ReviewView(self))

    async def on_ready(self) -> None:
        if self.user is not None:
            logger.info("Connected as %s (%s)", self.user, self.user.id)
        await self._sync_commands()

    async def close(self) -> None:
        logger.info("Disconnecting")
        await super().close()

    async def _sync_commands(self) -> None:
        guild_id = os.getenv("DEV_GUILD_ID")
        if not guild_id:
            commands_synced = await self.tree.sync()
            logger.info("%d slash commands synced globally", len(commands_synced))
            return

        target = discord.Object(id=int(guild_id))
        self.tree.copy_global_to(guild=target)
        commands_synced = await self.tree.sync(guild=target)
        logger.info("%d slash commands synced to guild %s", len(commands_synced), guild_id)
