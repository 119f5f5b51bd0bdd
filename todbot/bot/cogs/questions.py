"""
todbot.bot.cogs.questions — /question moderation commands
===========================================================

Slash commands for moderators:
- /question add — add a prompt directly, skipping review
- /question edit — replace a prompt's text
- /question delete — remove a prompt (its ratings go with it)
- /question view — show one prompt
- /question list — all prompts, paged
- /question pending — the review queue
- /question approve / reject — resolve a submission by ID

Every command requires Administrator or a configured privileged role, and
every reply is ephemeral.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from todbot.bot.checks import is_privileged
from todbot.bot.views import ListPaginationView, approve, reject
from todbot.constants import MAX_PROMPT_LENGTH, MAX_REASON_LENGTH, Category
from todbot.database.engine import run_db
from todbot.engine.ids import normalize_id
from todbot.errors import TodError, ValidationError
from todbot.services.embeds import (
    build_pending_list_embed,
    build_prompt_detail_embed,
    prompt_list_pages,
)
from todbot.services.prompt_service import (
    add_prompt,
    delete_prompt,
    edit_prompt,
    get_prompt,
    list_prompts,
)
from todbot.services.submission_service import list_pending

if TYPE_CHECKING:
    from todbot.bot.core import TodBot

logger = logging.getLogger(__name__)

CATEGORY_CHOICES = [
    app_commands.Choice(name=c.value.title(), value=c.value) for c in Category
]


class Questions(commands.GroupCog, group_name="question", group_description="Manage truth or dare questions."):
    """Prompt pool and review queue management."""

    def __init__(self, bot: TodBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # /question add
    # -------------------------------------------------------------------
    @app_commands.command(name="add", description="Add a question directly, without review.")
    @app_commands.describe(category="Truth or dare", text="The question text")
    @app_commands.choices(category=CATEGORY_CHOICES)
    @app_commands.rename(category="type")
    @is_privileged()
    async def add(
        self,
        interaction: discord.Interaction,
        category: app_commands.Choice[str],
        text: app_commands.Range[str, 1, MAX_PROMPT_LENGTH],
    ) -> None:
        prompt = await run_db(
            add_prompt, self.bot.engine, category.value, text, created_by=interaction.user.id,
        )
        await interaction.response.send_message(
            f"New question added with ID: `{prompt.id}`",
            embed=build_prompt_detail_embed(prompt),
            ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /question edit
    # -------------------------------------------------------------------
    @app_commands.command(name="edit", description="Replace the text of a question.")
    @app_commands.describe(question_id="Question ID", text="The new question text")
    @app_commands.rename(question_id="id")
    @is_privileged()
    async def edit(
        self,
        interaction: discord.Interaction,
        question_id: str,
        text: app_commands.Range[str, 1, MAX_PROMPT_LENGTH],
    ) -> None:
        question_id = normalize_id(question_id)
        if not await run_db(edit_prompt, self.bot.engine, question_id, text):
            await interaction.response.send_message(
                f"Question `{question_id}` was not found.", ephemeral=True,
            )
            return
        prompt = await run_db(get_prompt, self.bot.engine, question_id)
        await interaction.response.send_message(
            f"Question `{question_id}` has been updated.",
            embed=build_prompt_detail_embed(prompt),
            ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /question delete
    # -------------------------------------------------------------------
    @app_commands.command(name="delete", description="Delete a question.")
    @app_commands.describe(question_id="Question ID")
    @app_commands.rename(question_id="id")
    @is_privileged()
    async def delete(self, interaction: discord.Interaction, question_id: str) -> None:
        question_id = normalize_id(question_id)
        if await run_db(delete_prompt, self.bot.engine, question_id):
            message = f"Question `{question_id}` has been deleted."
        else:
            message = f"Question `{question_id}` was not found."
        await interaction.response.send_message(message, ephemeral=True)

    # -------------------------------------------------------------------
    # /question view
    # -------------------------------------------------------------------
    @app_commands.command(name="view", description="Show a single question.")
    @app_commands.describe(question_id="Question ID")
    @app_commands.rename(question_id="id")
    @is_privileged()
    async def view(self, interaction: discord.Interaction, question_id: str) -> None:
        question_id = normalize_id(question_id)
        prompt = await run_db(get_prompt, self.bot.engine, question_id)
        if prompt is None:
            await interaction.response.send_message(
                f"Question `{question_id}` was not found.", ephemeral=True,
            )
            return
        await interaction.response.send_message(
            embed=build_prompt_detail_embed(prompt), ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /question list
    # -------------------------------------------------------------------
    @app_commands.command(name="list", description="List questions in rotation order.")
    @app_commands.describe(category="Only this type (default: all)")
    @app_commands.choices(category=CATEGORY_CHOICES)
    @app_commands.rename(category="type")
    @is_privileged()
    async def list_(
        self,
        interaction: discord.Interaction,
        category: app_commands.Choice[str] | None = None,
    ) -> None:
        prompts = await run_db(
            list_prompts, self.bot.engine, category.value if category else None,
        )
        if not prompts:
            await interaction.response.send_message("No questions found.", ephemeral=True)
            return

        pages = prompt_list_pages(prompts)
        logger.debug("Listing %d prompts on %d page(s)", len(prompts), len(pages))
        if len(pages) == 1:
            await interaction.response.send_message(
                ListPaginationView.render(pages[0]),
                ephemeral=True,
                allowed_mentions=discord.AllowedMentions.none(),
            )
            return
        await interaction.response.send_message(
            ListPaginationView.render(pages[0]),
            view=ListPaginationView(pages, interaction.user.id),
            ephemeral=True,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    # -------------------------------------------------------------------
    # /question pending
    # -------------------------------------------------------------------
    @app_commands.command(name="pending", description="Show submissions waiting for review.")
    @is_privileged()
    async def pending(self, interaction: discord.Interaction) -> None:
        submissions = await run_db(list_pending, self.bot.engine)
        await interaction.response.send_message(
            embed=build_pending_list_embed(submissions),
            ephemeral=True,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    # -------------------------------------------------------------------
    # /question approve
    # -------------------------------------------------------------------
    @app_commands.command(name="approve", description="Approve a pending submission.")
    @app_commands.describe(submission_id="Submission ID")
    @app_commands.rename(submission_id="submission-id")
    @is_privileged()
    async def approve_cmd(self, interaction: discord.Interaction, submission_id: str) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await approve(self.bot, normalize_id(submission_id), interaction.user.id)
        await interaction.followup.send(reply, ephemeral=True)

    # -------------------------------------------------------------------
    # /question reject
    # -------------------------------------------------------------------
    @app_commands.command(name="reject", description="Reject a pending submission.")
    @app_commands.describe(
        submission_id="Submission ID",
        reason="Optional reason, sent only to the submitter",
    )
    @app_commands.rename(submission_id="submission-id")
    @is_privileged()
    async def reject_cmd(
        self,
        interaction: discord.Interaction,
        submission_id: str,
        reason: app_commands.Range[str, 1, MAX_REASON_LENGTH] | None = None,
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await reject(self.bot, normalize_id(submission_id), interaction.user.id, reason)
        await interaction.followup.send(reply, ephemeral=True)

    # -------------------------------------------------------------------
    # Error handler
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            message = "🔒 You do not have permission to manage questions."
        elif isinstance(error, app_commands.CommandInvokeError) and isinstance(
            error.original, ValidationError
        ):
            message = f"❌ {error.original}"
        elif isinstance(error, app_commands.CommandInvokeError) and isinstance(
            error.original, TodError
        ):
            logger.error("Question command failed: %s", error.original)
            message = "❌ Something went wrong. Please try again."
        else:
            raise error

        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)


async def setup(bot: TodBot) -> None:
    await bot.add_cog(Questions(bot))
