"""
todbot.bot.cogs.maintenance — Periodic Housekeeping
====================================================

Trims the in-memory helpers so idle members and abandoned similarity
confirmations do not accumulate:

- **Rate-limit cleanup** — every 5 minutes, forgets users with no calls
  inside their window.
- **Pending purge** — every 5 minutes, drops expired confirmations.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

if TYPE_CHECKING:
    from todbot.bot.core import TodBot

logger = logging.getLogger(__name__)


class Maintenance(commands.Cog):
    """Cog for scheduled in-memory cleanup."""

    def __init__(self, bot: TodBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.cleanup_loop.start()

    async def cog_unload(self) -> None:
        self.cleanup_loop.cancel()

    @tasks.loop(minutes=5)
    async def cleanup_loop(self):
        limiter_entries = (
            self.bot.prompt_limiter.cleanup() + self.bot.submission_limiter.cleanup()
        )
        expired = self.bot.pending.purge()
        if limiter_entries or expired:
            logger.debug(
                "Cleanup: %d idle rate-limit entries, %d expired confirmations",
                limiter_entries, expired,
            )

    @cleanup_loop.before_loop
    async def _wait_cleanup(self):
        await self.bot.wait_until_ready()


async def setup(bot: TodBot) -> None:
    await bot.add_cog(Maintenance(bot))
