"""
todbot.bot.views — Buttons, modals and the interaction flows behind them
=========================================================================

Two views are **persistent** (``timeout=None`` with fixed ``custom_id``
values, registered once in :meth:`TodBot.setup_hook`), so their buttons
keep working across restarts:

* :class:`PromptView` — Truth / Dare / Submit / Upvote / Downvote under
  every served prompt.  The prompt ID is read back from the embed footer.
* :class:`ReviewView` — Approve / Reject under every moderation message.
  The submission ID is read back from the embed's ``Submission ID`` field.

The rest are short-lived: the similarity confirm/cancel prompt, the
submission and reject-reason modals, and list pagination.

The ``serve_prompt`` / ``handle_vote`` / ``submit_prompt`` / ``approve`` /
``reject`` coroutines are shared by the slash commands in ``bot/cogs``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import discord
from discord import ui

from todbot.bot.checks import has_privileged_role
from todbot.constants import MAX_PROMPT_LENGTH, MAX_REASON_LENGTH, Category
from todbot.database.engine import run_db
from todbot.engine.cache import PENDING_TTL_SECONDS, PendingSubmission
from todbot.engine.ids import normalize_id
from todbot.engine.sanitize import sanitize
from todbot.errors import ConflictError, NotFoundError, TodError
from todbot.services.embeds import (
    build_prompt_embed,
    build_similarity_warning_embed,
    prompt_id_from_embed,
    submission_id_from_embed,
    vote_feedback,
    with_rating,
)
from todbot.services.moderation_service import approve_submission, reject_submission
from todbot.services.prompt_service import next_prompt
from todbot.services.rating_service import DOWNVOTE, UPVOTE, cast_vote, get_counts
from todbot.services.review_service import post_for_review, refresh_review_message
from todbot.services.similarity_service import find_similar
from todbot.services.submission_service import create_submission, get_submission

if TYPE_CHECKING:
    from todbot.bot.core import TodBot

logger = logging.getLogger(__name__)

_NO_MENTIONS = discord.AllowedMentions.none()


def _first_embed(interaction: discord.Interaction) -> discord.Embed | None:
    message = interaction.message
    if message is None or not message.embeds:
        return None
    return message.embeds[0]


# ===========================================================================
# Flows
# ===========================================================================
async def serve_prompt(
    bot: TodBot,
    interaction: discord.Interaction,
    category: Category,
    *,
    replace: bool = False,
) -> None:
    """Answer with the next prompt of *category*.

    ``replace=True`` edits the message the button sits on instead of
    posting a new one.
    """
    user = interaction.user
    if not bot.prompt_limiter.is_allowed(user.id):
        wait = math.ceil(bot.prompt_limiter.retry_after(user.id))
        await interaction.response.send_message(
            f"⏳ You're asking for questions too quickly. Try again in {wait} second{'s' if wait != 1 else ''}.",
            ephemeral=True,
        )
        return

    prompt = await run_db(next_prompt, bot.engine, category)
    if prompt is None:
        await interaction.response.send_message(
            f"There are currently no {category.value} questions available.",
            ephemeral=True,
        )
        return

    counts = await run_db(get_counts, bot.engine, prompt.id)
    embed = build_prompt_embed(
        prompt,
        counts,
        requested_by=user.display_name,
        avatar_url=user.display_avatar.url,
    )
    if replace:
        await interaction.response.edit_message(embed=embed)
    else:
        await interaction.response.send_message(
            embed=embed, view=PromptView(bot), allowed_mentions=_NO_MENTIONS,
        )


async def handle_vote(bot: TodBot, interaction: discord.Interaction, value: int) -> None:
    """Record an up/down vote on the prompt shown in the clicked message."""
    embed = _first_embed(interaction)
    prompt_id = prompt_id_from_embed(embed)
    if embed is None or prompt_id is None:
        await interaction.response.send_message(
            "Unable to find question information.", ephemeral=True,
        )
        return

    try:
        outcome = await run_db(cast_vote, bot.engine, prompt_id, interaction.user.id, value)
    except NotFoundError:
        await interaction.response.send_message(
            "This question no longer exists.", ephemeral=True,
        )
        return
    except TodError:
        logger.exception("Vote on prompt %s by %d failed", prompt_id, interaction.user.id)
        await interaction.response.send_message(
            "❌ Your vote could not be recorded. Please try again.", ephemeral=True,
        )
        return

    counts = await run_db(get_counts, bot.engine, prompt_id)
    await interaction.response.edit_message(embed=with_rating(embed, counts))
    await interaction.followup.send(vote_feedback(outcome, value, counts), ephemeral=True)


async def file_submission(
    bot: TodBot, pending: PendingSubmission, author: discord.abc.User | None,
) -> str:
    """Store *pending* and post it for review.  Returns the reply for the member."""
    try:
        submission = await run_db(
            create_submission,
            bot.engine,
            pending.category,
            pending.text,
            pending.submitter_id,
            pending.origin_guild_id,
        )
    except TodError:
        logger.exception("Failed to store submission from user %d", pending.submitter_id)
        return (
            "We were unable to process your submission. "
            "Please try again later or contact a moderator."
        )

    try:
        await post_for_review(bot, submission, author)
    except (TodError, discord.HTTPException):
        logger.exception("Unable to post submission %s to the approval channel", submission.id)
        return (
            "Your submission was saved but we were unable to post it to the "
            "approval channel. Please alert a moderator."
        )
    return (
        "✅ Your question has been submitted for approval. "
        "You will be notified once it has been reviewed."
    )


async def submit_prompt(
    bot: TodBot,
    interaction: discord.Interaction,
    category: Category,
    text: str,
) -> None:
    """Rate-limit, sanitize, run the similarity gate, then file or ask to confirm."""
    user = interaction.user
    if not bot.submission_limiter.is_allowed(user.id):
        minutes = max(math.ceil(bot.submission_limiter.retry_after(user.id) / 60), 1)
        await interaction.response.send_message(
            "You have submitted too many questions recently. "
            f"Please try again in {minutes} minute{'s' if minutes != 1 else ''}.",
            ephemeral=True,
        )
        logger.info("User %d rate limited on submission", user.id)
        return

    cleaned = sanitize(text, MAX_PROMPT_LENGTH)
    if not cleaned:
        await interaction.response.send_message(
            "Please provide a valid question to submit.", ephemeral=True,
        )
        return

    pending = PendingSubmission(
        category=category.value,
        text=cleaned,
        submitter_id=user.id,
        origin_guild_id=interaction.guild_id,
    )
    matches = await run_db(
        find_similar,
        bot.engine,
        cleaned,
        category,
        bot.cfg.similarity_threshold,
        bot.cfg.similarity_limit,
    )
    if matches:
        token = bot.pending.store(pending)
        await interaction.response.send_message(
            embed=build_similarity_warning_embed(matches, cleaned),
            view=SimilarityConfirmView(bot, token),
            ephemeral=True,
        )
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    reply = await file_submission(bot, pending, user)
    await interaction.followup.send(reply, ephemeral=True)


async def approve(bot: TodBot, submission_id: str, moderator_id: int) -> str:
    """Approve and sync the moderation message.  Returns the moderator's reply."""
    try:
        result = await approve_submission(
            bot.engine, submission_id, moderator_id, notifier=bot.notify_submitter,
        )
    except (NotFoundError, ConflictError) as exc:
        return str(exc)
    except TodError:
        logger.exception("Error approving submission %s", submission_id)
        return "An error occurred while approving the submission."

    await refresh_review_message(
        bot,
        result.submission,
        result.status,
        reviewer_id=moderator_id,
        prompt_id=result.prompt.id,
    )
    return f"Submission `{submission_id}` approved. New question ID: `{result.prompt.id}`"


async def reject(
    bot: TodBot, submission_id: str, moderator_id: int, reason: str | None,
) -> str:
    """Reject and sync the moderation message.  Returns the moderator's reply."""
    try:
        result = await reject_submission(
            bot.engine, submission_id, moderator_id, reason, notifier=bot.notify_submitter,
        )
    except (NotFoundError, ConflictError) as exc:
        return str(exc)
    except TodError:
        logger.exception("Error rejecting submission %s", submission_id)
        return "An error occurred while rejecting the submission."

    await refresh_review_message(
        bot,
        result.submission,
        result.status,
        reviewer_id=moderator_id,
        notes=result.reason,
    )
    return f"Submission `{submission_id}` was rejected."


# ===========================================================================
# Persistent views
# ===========================================================================
class PromptView(ui.View):
    """Buttons under a served prompt."""

    def __init__(self, bot: TodBot) -> None:
        super().__init__(timeout=None)
        self.bot = bot

    @ui.button(label="Truth", style=discord.ButtonStyle.primary, custom_id="todbot:prompt:truth", row=0)
    async def truth_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await serve_prompt(self.bot, interaction, Category.TRUTH, replace=True)

    @ui.button(label="Dare", style=discord.ButtonStyle.danger, custom_id="todbot:prompt:dare", row=0)
    async def dare_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await serve_prompt(self.bot, interaction, Category.DARE, replace=True)

    @ui.button(label="Submit Question", style=discord.ButtonStyle.secondary, custom_id="todbot:prompt:submit", row=0)
    async def submit_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await interaction.response.send_modal(SubmissionModal(self.bot))

    @ui.button(emoji="👍", style=discord.ButtonStyle.success, custom_id="todbot:prompt:upvote", row=1)
    async def upvote_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await handle_vote(self.bot, interaction, UPVOTE)

    @ui.button(emoji="👎", style=discord.ButtonStyle.secondary, custom_id="todbot:prompt:downvote", row=1)
    async def downvote_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await handle_vote(self.bot, interaction, DOWNVOTE)


class ReviewView(ui.View):
    """Approve / Reject under a moderation message."""

    def __init__(self, bot: TodBot) -> None:
        super().__init__(timeout=None)
        self.bot = bot

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if has_privileged_role(interaction.user, self.bot.cfg.privileged_role_ids):
            return True
        await interaction.response.send_message(
            "🔒 You do not have permission to moderate submissions.", ephemeral=True,
        )
        return False

    async def _pending_submission_id(self, interaction: discord.Interaction) -> str | None:
        submission_id = submission_id_from_embed(_first_embed(interaction))
        if submission_id is None:
            await interaction.response.send_message(
                "Unable to find submission ID.", ephemeral=True,
            )
            return None
        submission = await run_db(get_submission, self.bot.engine, submission_id)
        if submission is None:
            await interaction.response.send_message(
                f"Submission `{submission_id}` was not found.", ephemeral=True,
            )
            return None
        if not submission.is_pending:
            await interaction.response.send_message(
                f"Submission `{submission_id}` has already been processed.", ephemeral=True,
            )
            return None
        return submission_id

    @ui.button(label="Approve", emoji="✅", style=discord.ButtonStyle.success, custom_id="todbot:review:approve")
    async def approve_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        submission_id = await self._pending_submission_id(interaction)
        if submission_id is None:
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await approve(self.bot, submission_id, interaction.user.id)
        await interaction.followup.send(reply, ephemeral=True)

    @ui.button(label="Reject", emoji="❌", style=discord.ButtonStyle.danger, custom_id="todbot:review:reject")
    async def reject_button(self, interaction: discord.Interaction, button: ui.Button) -> None:
        submission_id = await self._pending_submission_id(interaction)
        if submission_id is None:
            return
        await interaction.response.send_modal(RejectReasonModal(self.bot, submission_id))


# ===========================================================================
# Short-lived views and modals
# ===========================================================================
class SimilarityConfirmView(ui.View):
    """Submit Anyway / Cancel after the similarity warning."""

    def __init__(self, bot: TodBot, token: str) -> None:
        super().__init__(timeout=PENDING_TTL_SECONDS)
        self.bot = bot
        self.token = token

    @ui.button(label="Submit Anyway", emoji="✅", style=discord.ButtonStyle.success)
    async def confirm(self, interaction: discord.Interaction, button: ui.Button) -> None:
        pending = self.bot.pending.peek(self.token)
        if pending is None:
            await interaction.response.edit_message(
                content=(
                    "This submission confirmation has expired or is no longer valid. "
                    "Please submit your question again using the `/submit` command."
                ),
                embed=None,
                view=None,
            )
            return
        if pending.submitter_id != interaction.user.id:
            await interaction.response.send_message(
                "You can only confirm your own submissions.", ephemeral=True,
            )
            return

        self.bot.pending.pop(self.token)
        await interaction.response.edit_message(content="Submitting…", embed=None, view=None)
        reply = await file_submission(self.bot, pending, interaction.user)
        await interaction.edit_original_response(content=reply)
        self.stop()

    @ui.button(label="Cancel", emoji="❌", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: ui.Button) -> None:
        self.bot.pending.pop(self.token)
        await interaction.response.edit_message(
            content="Submission cancelled.", embed=None, view=None,
        )
        self.stop()


class SubmissionModal(ui.Modal, title="Submit a Question"):
    """Opened by the Submit Question button."""

    category: ui.TextInput[ui.Modal] = ui.TextInput(
        label="Type (truth or dare)",
        placeholder="truth",
        required=True,
        min_length=4,
        max_length=5,
    )
    question_text: ui.TextInput[ui.Modal] = ui.TextInput(
        label="Your question",
        style=discord.TextStyle.paragraph,
        required=True,
        max_length=MAX_PROMPT_LENGTH,
    )

    def __init__(self, bot: TodBot) -> None:
        super().__init__()
        self.bot = bot

    async def on_submit(self, interaction: discord.Interaction) -> None:
        raw = self.category.value.strip().lower()
        try:
            category = Category(raw)
        except ValueError:
            await interaction.response.send_message(
                'Invalid question type. Please enter either "truth" or "dare".',
                ephemeral=True,
            )
            return
        await submit_prompt(self.bot, interaction, category, self.question_text.value)


class RejectReasonModal(ui.Modal, title="Reject Submission"):
    """Optional reason, shown only to the submitter."""

    reason: ui.TextInput[ui.Modal] = ui.TextInput(
        label="Reason (optional)",
        style=discord.TextStyle.paragraph,
        required=False,
        max_length=MAX_REASON_LENGTH,
    )

    def __init__(self, bot: TodBot, submission_id: str) -> None:
        super().__init__()
        self.bot = bot
        self.submission_id = normalize_id(submission_id)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        reply = await reject(
            self.bot, self.submission_id, interaction.user.id, self.reason.value or None,
        )
        await interaction.followup.send(reply, ephemeral=True)


class ListPaginationView(ui.View):
    """◀ Previous / Page n/N / Next ▶ over pre-rendered list pages."""

    def __init__(self, pages: list[str], owner_id: int) -> None:
        super().__init__(timeout=300)
        self.pages = pages
        self.owner_id = owner_id
        self.index = 0
        self._sync_buttons()

    @staticmethod
    def render(page: str) -> str:
        return f"```\n{page}\n```"

    def _sync_buttons(self) -> None:
        self.previous_page.disabled = self.index == 0
        self.next_page.disabled = self.index >= len(self.pages) - 1
        self.page_info.label = f"Page {self.index + 1}/{len(self.pages)}"

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    async def _show(self, interaction: discord.Interaction) -> None:
        self._sync_buttons()
        await interaction.response.edit_message(
            content=self.render(self.pages[self.index]), view=self,
        )

    @ui.button(label="◀ Previous", style=discord.ButtonStyle.primary)
    async def previous_page(self, interaction: discord.Interaction, button: ui.Button) -> None:
        self.index = max(self.index - 1, 0)
        await self._show(interaction)

    @ui.button(label="Page", style=discord.ButtonStyle.secondary, disabled=True)
    async def page_info(self, interaction: discord.Interaction, button: ui.Button) -> None:
        await interaction.response.defer()

    @ui.button(label="Next ▶", style=discord.ButtonStyle.primary)
    async def next_page(self, interaction: discord.Interaction, button: ui.Button) -> None:
        self.index = min(self.index + 1, len(self.pages) - 1)
        await self._show(interaction)
