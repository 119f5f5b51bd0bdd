"""
todbot.bot.cogs.submissions — /submit
======================================

Lets any member propose a truth or dare.  Near-duplicates of existing
prompts trigger a confirm/cancel warning first; everything else goes
straight to the approval channel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from todbot.bot.views import submit_prompt
from todbot.constants import MAX_PROMPT_LENGTH, Category

if TYPE_CHECKING:
    from todbot.bot.core import TodBot

CATEGORY_CHOICES = [
    app_commands.Choice(name=c.value.title(), value=c.value) for c in Category
]


class Submissions(commands.Cog, name="Submissions"):
    """Member-proposed prompts."""

    def __init__(self, bot: TodBot) -> None:
        self.bot = bot

    @app_commands.command(name="submit", description="Submit a truth or dare question for approval.")
    @app_commands.describe(
        category="The type of question.",
        text="The question you would like to submit.",
    )
    @app_commands.choices(category=CATEGORY_CHOICES)
    @app_commands.rename(category="type")
    async def submit(
        self,
        interaction: discord.Interaction,
        category: app_commands.Choice[str],
        text: app_commands.Range[str, 1, MAX_PROMPT_LENGTH],
    ) -> None:
        await submit_prompt(self.bot, interaction, Category(category.value), text)


async def setup(bot: TodBot) -> None:
    await bot.add_cog(Submissions(bot))
