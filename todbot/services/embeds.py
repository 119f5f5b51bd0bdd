"""
todbot.services.embeds — Discord embed builders
================================================

All embed and list-text construction lives here so cogs and views only
supply data.  Prompt embeds carry ``ID: <prompt id>`` in their footer and
submission embeds a ``Submission ID`` field; buttons on those messages
read the IDs back with :func:`prompt_id_from_embed` and
:func:`submission_id_from_embed`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

import discord

from todbot.constants import (
    CATEGORY_COLORS,
    LIST_PAGE_CHARS,
    LIST_TEXT_PREVIEW,
    STATUS_META,
    Category,
    SubmissionStatus,
)
from todbot.database.models import Prompt, Submission
from todbot.engine.similarity import SimilarityMatch
from todbot.services.rating_service import RatingCounts, VoteOutcome

SUBMISSION_ID_FIELD = "Submission ID"
SIMILARITY_PREVIEW_LENGTH = 150
_FOOTER_ID = re.compile(r"ID:\s*([^\s|]+)")


def _category_meta(category: str) -> tuple[str, int]:
    try:
        cat = Category(category)
    except ValueError:
        cat = Category.TRUTH
    return cat.value.title(), CATEGORY_COLORS[cat]


# ---------------------------------------------------------------------------
# Served prompts
# ---------------------------------------------------------------------------
def format_rating(counts: RatingCounts) -> str:
    net = f"+{counts.net}" if counts.net > 0 else str(counts.net)
    return f"{net} (↑{counts.upvotes} ↓{counts.downvotes})"


def build_prompt_embed(
    prompt: Prompt,
    counts: RatingCounts | None = None,
    requested_by: str | None = None,
    avatar_url: str | None = None,
) -> discord.Embed:
    """The public card for a served truth or dare."""
    label, color = _category_meta(prompt.category)
    embed = discord.Embed(
        title=f"{label} Question",
        description=prompt.text,
        color=color,
        timestamp=datetime.now(UTC),
    )
    footer = f"ID: {prompt.id}"
    if counts is not None:
        footer += f" | Rating: {format_rating(counts)}"
    embed.set_footer(text=footer)
    if requested_by:
        embed.set_author(name=f"Requested by {requested_by}", icon_url=avatar_url)
    return embed


def with_rating(embed: discord.Embed, counts: RatingCounts) -> discord.Embed:
    """Copy of *embed* with the footer rating replaced."""
    updated = embed.copy()
    prompt_id = prompt_id_from_embed(embed) or "?"
    updated.set_footer(text=f"ID: {prompt_id} | Rating: {format_rating(counts)}")
    return updated


def prompt_id_from_embed(embed: discord.Embed | None) -> str | None:
    if embed is None or not embed.footer or not embed.footer.text:
        return None
    match = _FOOTER_ID.search(embed.footer.text)
    return match.group(1) if match else None


def vote_feedback(outcome: VoteOutcome, value: int, counts: RatingCounts) -> str:
    """Ephemeral reply after an up/down button press."""
    kind = "upvote" if value > 0 else "downvote"
    rating = f"Current rating: {format_rating(counts)}"
    if outcome is VoteOutcome.REMOVED:
        return f"{kind.title()} removed. {rating}"
    if outcome is VoteOutcome.UPDATED:
        return f"Changed to {kind}. {rating}"
    return f"{kind.title()}d! {rating}"


def build_prompt_detail_embed(prompt: Prompt) -> discord.Embed:
    """Moderator view of a stored prompt (``/question view``)."""
    label, color = _category_meta(prompt.category)
    embed = discord.Embed(
        title=label,
        description=prompt.text,
        color=color,
        timestamp=prompt.updated_at or prompt.created_at,
    )
    embed.add_field(name="Question ID", value=prompt.id, inline=True)
    embed.add_field(name="Position", value=str(prompt.position), inline=True)
    if prompt.created_by:
        embed.add_field(name="Created By", value=prompt.created_by, inline=True)
    return embed


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
def build_submission_embed(
    submission: Submission,
    status: SubmissionStatus | None = None,
    reviewer_id: int | None = None,
    prompt_id: str | None = None,
    notes: str | None = None,
    author_name: str | None = None,
    avatar_url: str | None = None,
) -> discord.Embed:
    """The moderation-channel card for a submission, in any state."""
    state = status or SubmissionStatus(submission.status)
    status_label = STATUS_META[state][0]
    _, color = _category_meta(submission.category)

    embed = discord.Embed(
        title="Question Submission",
        description=submission.text,
        color=color,
        timestamp=datetime.now(UTC),
    )
    embed.add_field(name=SUBMISSION_ID_FIELD, value=submission.id, inline=True)
    embed.add_field(name="Type", value=submission.category, inline=True)
    embed.add_field(name="Submitted By", value=f"<@{submission.submitter_id}>", inline=False)
    embed.add_field(name="Status", value=status_label, inline=True)
    if prompt_id:
        embed.add_field(name="Question ID", value=prompt_id, inline=True)
    if reviewer_id:
        embed.add_field(name="Reviewed By", value=f"<@{reviewer_id}>", inline=True)
    if notes:
        embed.add_field(name="Notes", value=notes, inline=False)
    if author_name:
        embed.set_author(name=author_name, icon_url=avatar_url)
    return embed


def submission_id_from_embed(embed: discord.Embed | None) -> str | None:
    if embed is None:
        return None
    for embed_field in embed.fields:
        if embed_field.name == SUBMISSION_ID_FIELD and embed_field.value:
            return embed_field.value.strip().upper()
    return None


def build_pending_list_embed(submissions: Sequence[Submission]) -> discord.Embed:
    """Summary of the moderation queue (``/question pending``)."""
    embed = discord.Embed(
        title=f"❓ Pending Submissions ({len(submissions)})",
        color=STATUS_META[SubmissionStatus.PENDING][2],
    )
    if not submissions:
        embed.description = "The queue is empty."
        return embed
    for submission in submissions[:25]:  # Discord caps at 25 fields
        embed.add_field(
            name=f"{submission.id} · {submission.category}",
            value=f"{format_prompt_text(submission.text)}\nby <@{submission.submitter_id}>",
            inline=False,
        )
    if len(submissions) > 25:
        embed.set_footer(text=f"…and {len(submissions) - 25} more")
    return embed


# ---------------------------------------------------------------------------
# Similarity warning
# ---------------------------------------------------------------------------
def format_similar_prompts(matches: Iterable[SimilarityMatch]) -> str:
    blocks = []
    for match in matches:
        percentage = round(match.score * 100)
        preview = match.text
        if len(preview) > SIMILARITY_PREVIEW_LENGTH:
            preview = f"{preview[:SIMILARITY_PREVIEW_LENGTH]}..."
        blocks.append(f"**{match.prompt_id}** ({percentage}% similar):\n> {preview}")
    return "\n\n".join(blocks)


def build_similarity_warning_embed(
    matches: Sequence[SimilarityMatch], submitted_text: str,
) -> discord.Embed:
    embed = discord.Embed(
        title="⚠️ Similar Questions Found",
        description=(
            "We found existing questions similar to yours:\n\n"
            f"{format_similar_prompts(matches)}\n\n"
            "**Do you still want to submit your question?**"
        ),
        color=0xFFA500,
    )
    preview = submitted_text if len(submitted_text) <= 200 else f"{submitted_text[:200]}..."
    embed.add_field(name="Your Question", value=preview, inline=False)
    embed.set_footer(text="Similar questions help avoid duplicates in our database.")
    return embed


# ---------------------------------------------------------------------------
# Paged plain-text listings
# ---------------------------------------------------------------------------
def format_prompt_text(value: str, limit: int = LIST_TEXT_PREVIEW) -> str:
    """Shorten *value* to at most *limit* characters for list display."""
    if len(value) <= limit:
        return value
    return f"{value[:limit - 3]}..."


def chunk_lines(lines: Iterable[str], chunk_size: int = LIST_PAGE_CHARS) -> list[str]:
    """Join *lines* into pages of at most *chunk_size* characters.

    Lines are never split unless a single line is itself too long, in which
    case it is cut into *chunk_size* slices.
    """
    chunks: list[str] = []
    current = ""
    for line in lines:
        appended = f"{current}\n{line}" if current else line
        if len(appended) <= chunk_size:
            current = appended
            continue
        if current:
            chunks.append(current)
        if len(line) > chunk_size:
            segments = [line[i:i + chunk_size] for i in range(0, len(line), chunk_size)]
            chunks.extend(segments[:-1])
            current = segments[-1]
        else:
            current = line
    if current:
        chunks.append(current)
    return chunks


def prompt_list_pages(prompts: Sequence[Prompt]) -> list[str]:
    """Render prompts as ``/question list`` pages."""
    lines: list[str] = []
    for idx, prompt in enumerate(prompts):
        lines.append(f"[{prompt.category.upper()}] {format_prompt_text(prompt.text)}")
        lines.append(f"ID: {prompt.id} | Position: {prompt.position}")
        if idx < len(prompts) - 1:
            lines.append("")
    return chunk_lines(lines)
