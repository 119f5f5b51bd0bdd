"""
todbot.services.review_service — Moderation channel delivery
=============================================================

Posts new submissions to the approval channel, keeps that message in step
with the submission's status, and DMs submitters once a moderator acts.

Embed construction lives in :mod:`todbot.services.embeds`; the persistent
Approve/Reject buttons live in :mod:`todbot.bot.views`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.abc import Messageable

from todbot.constants import STATUS_META, SubmissionStatus
from todbot.database.engine import run_db
from todbot.database.models import Submission
from todbot.errors import NotFoundError
from todbot.services.embeds import build_submission_embed
from todbot.services.moderation_service import SubmissionNotice
from todbot.services.submission_service import record_moderation_message

if TYPE_CHECKING:
    from todbot.bot.core import TodBot

logger = logging.getLogger(__name__)


async def _resolve_channel(bot: TodBot, channel_id: int) -> Messageable | None:
    channel = bot.get_channel(channel_id)
    if channel is None:
        try:
            channel = await bot.fetch_channel(channel_id)
        except discord.HTTPException:
            logger.warning("Approval channel %d could not be fetched", channel_id)
            return None
    return channel if isinstance(channel, Messageable) else None


async def post_for_review(
    bot: TodBot,
    submission: Submission,
    author: discord.abc.User | None = None,
) -> discord.Message:
    """Send *submission* to the approval channel and remember the message.

    Raises
    ------
    NotFoundError
        If the configured approval channel is unavailable.
    discord.HTTPException
        If Discord rejects the message.
    """
    from todbot.bot.views import ReviewView  # circular import

    channel = await _resolve_channel(bot, bot.cfg.approval_channel_id)
    if channel is None:
        raise NotFoundError("Approval channel not found.")

    embed = build_submission_embed(
        submission,
        status=SubmissionStatus.PENDING,
        author_name=author.name if author else None,
        avatar_url=author.display_avatar.url if author else None,
    )
    message = await channel.send(
        embed=embed,
        view=ReviewView(bot),
        allowed_mentions=discord.AllowedMentions.none(),
    )
    try:
        await message.add_reaction(STATUS_META[SubmissionStatus.PENDING][1])
    except discord.HTTPException:
        logger.warning("Could not react to approval message %d", message.id)

    await run_db(
        record_moderation_message, bot.engine, submission.id, message.id, message.channel.id,
    )
    logger.info("Posted submission %s for approval (message %d)", submission.id, message.id)
    return message


async def refresh_review_message(
    bot: TodBot,
    submission: Submission,
    status: SubmissionStatus,
    reviewer_id: int | None = None,
    prompt_id: str | None = None,
    notes: str | None = None,
) -> bool:
    """Rewrite the approval message for a resolved submission.

    Best-effort: returns ``False`` (and logs) when the message is gone or
    cannot be edited.  The submission's state is already final either way.
    """
    if not submission.moderation_channel_id or not submission.moderation_message_id:
        return False

    channel = await _resolve_channel(bot, submission.moderation_channel_id)
    if channel is None or not hasattr(channel, "fetch_message"):
        return False

    try:
        message = await channel.fetch_message(submission.moderation_message_id)
        embed = build_submission_embed(
            submission,
            status=status,
            reviewer_id=reviewer_id,
            prompt_id=prompt_id,
            notes=notes,
        )
        await message.edit(
            embed=embed,
            view=None,
            allowed_mentions=discord.AllowedMentions.none(),
        )
        if bot.user is not None:
            pending_emoji = STATUS_META[SubmissionStatus.PENDING][1]
            await message.remove_reaction(pending_emoji, bot.user)
        await message.add_reaction(STATUS_META[status][1])
    except discord.HTTPException:
        logger.exception(
            "Unable to update approval message %d for submission %s",
            submission.moderation_message_id, submission.id,
        )
        return False

    logger.info("Approval message for submission %s marked %s", submission.id, status.value)
    return True


async def dm_submitter(bot: TodBot, notice: SubmissionNotice) -> None:
    """Deliver *notice* by DM.  Raises on failure; callers treat it as best-effort."""
    user = bot.get_user(notice.submitter_id) or await bot.fetch_user(notice.submitter_id)
    await user.send(notice.render())
