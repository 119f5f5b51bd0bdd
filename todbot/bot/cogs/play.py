"""
todbot.bot.cogs.play — /truth and /dare
========================================

Serves the next prompt of a category in rotation.  The reply carries the
persistent :class:`~todbot.bot.views.PromptView` buttons, so the game can
go on without typing another command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from todbot.bot.views import serve_prompt
from todbot.constants import Category

if TYPE_CHECKING:
    from todbot.bot.core import TodBot


class Play(commands.Cog, name="Play"):
    """Truth or dare prompts for everyone."""

    def __init__(self, bot: TodBot) -> None:
        self.bot = bot

    @app_commands.command(name="truth", description="Get the next truth question.")
    async def truth(self, interaction: discord.Interaction) -> None:
        await serve_prompt(self.bot, interaction, Category.TRUTH)

    @app_commands.command(name="dare", description="Get the next dare.")
    async def dare(self, interaction: discord.Interaction) -> None:
        await serve_prompt(self.bot, interaction, Category.DARE)


async def setup(bot: TodBot) -> None:
    await bot.add_cog(Play(bot))
