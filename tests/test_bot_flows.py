"""
tests/test_bot_flows.py — Interaction Flow Tests
=================================================

Drives the coroutines behind the slash commands and buttons with a mocked
bot and interaction, against the in-memory store.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from conftest import run_async
from todbot.bot.checks import has_privileged_role
from todbot.bot.views import (
    ListPaginationView,
    PromptView,
    SimilarityConfirmView,
    approve,
    handle_vote,
    reject,
    serve_prompt,
    submit_prompt,
)
from todbot.constants import Category, SubmissionStatus
from todbot.engine.cache import PendingSubmissionCache
from todbot.errors import NotFoundError
from todbot.services.embeds import build_prompt_embed
from todbot.services.prompt_service import add_prompt, delete_prompt, get_cursor
from todbot.services.rating_service import RatingCounts
from todbot.services.submission_service import create_submission, get_submission, list_pending
from todbot.services.throttle import RateLimiter


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _make_bot(engine, *, prompt_limit=(20, 60), submission_limit=(5, 600)) -> MagicMock:
    """Create a lightweight mock TodBot."""
    bot = MagicMock()
    bot.engine = engine
    bot.cfg = SimpleNamespace(
        similarity_threshold=0.7,
        similarity_limit=5,
        approval_channel_id=500,
        privileged_role_ids=(7,),
    )
    bot.pending = PendingSubmissionCache()
    bot.prompt_limiter = RateLimiter(*prompt_limit)
    bot.submission_limiter = RateLimiter(*submission_limit)
    bot.notify_submitter = AsyncMock()
    return bot


def _make_interaction(user_id: int = 42, message: MagicMock | None = None) -> MagicMock:
    interaction = MagicMock()
    interaction.user = SimpleNamespace(
        id=user_id,
        name="alex",
        display_name="Alex",
        display_avatar=SimpleNamespace(url="https://cdn.example/avatar.png"),
    )
    interaction.guild_id = 1000
    interaction.message = message
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    return interaction


def _sent_text(mock: AsyncMock) -> str:
    args, kwargs = mock.await_args
    return kwargs.get("content") or (args[0] if args else "")


# ---------------------------------------------------------------------------
# /truth, /dare and the Truth/Dare buttons
# ---------------------------------------------------------------------------
class TestServePrompt:
    def test_sends_embed_with_buttons(self, db_engine):
        prompt = add_prompt(db_engine, "truth", "Who was your first crush?")
        bot = _make_bot(db_engine)
        interaction = _make_interaction()

        run_async(serve_prompt(bot, interaction, Category.TRUTH))

        kwargs = interaction.response.send_message.await_args.kwargs
        assert kwargs["embed"].description == prompt.text
        assert kwargs["embed"].footer.text.startswith(f"ID: {prompt.id}")
        assert isinstance(kwargs["view"], PromptView)
        assert get_cursor(db_engine, "truth") == prompt.position

    def test_button_replaces_message(self, db_engine):
        add_prompt(db_engine, "dare", "Do ten squats")
        bot = _make_bot(db_engine)
        interaction = _make_interaction()

        run_async(serve_prompt(bot, interaction, Category.DARE, replace=True))

        interaction.response.edit_message.assert_awaited_once()
        interaction.response.send_message.assert_not_awaited()

    def test_empty_category(self, db_engine):
        bot = _make_bot(db_engine)
        interaction = _make_interaction()

        run_async(serve_prompt(bot, interaction, Category.DARE))

        assert "no dare questions" in _sent_text(interaction.response.send_message)

    def test_rate_limited(self, db_engine):
        add_prompt(db_engine, "truth", "a")
        add_prompt(db_engine, "truth", "b")
        bot = _make_bot(db_engine, prompt_limit=(1, 60))

        run_async(serve_prompt(bot, _make_interaction(), Category.TRUTH))
        limited = _make_interaction()
        run_async(serve_prompt(bot, limited, Category.TRUTH))

        assert "too quickly" in _sent_text(limited.response.send_message)
        assert get_cursor(db_engine, "truth") == 1


# ---------------------------------------------------------------------------
# Up/down buttons
# ---------------------------------------------------------------------------
class TestHandleVote:
    def _message_for(self, prompt) -> MagicMock:
        message = MagicMock()
        message.embeds = [build_prompt_embed(prompt, RatingCounts())]
        return message

    def test_vote_updates_footer(self, db_engine):
        prompt = add_prompt(db_engine, "truth", "Biggest regret?")
        bot = _make_bot(db_engine)
        interaction = _make_interaction(message=self._message_for(prompt))

        run_async(handle_vote(bot, interaction, 1))

        embed = interaction.response.edit_message.await_args.kwargs["embed"]
        assert embed.footer.text == f"ID: {prompt.id} | Rating: +1 (↑1 ↓0)"
        assert _sent_text(interaction.followup.send).startswith("Upvoted!")

    def test_vote_on_deleted_prompt(self, db_engine):
        prompt = add_prompt(db_engine, "truth", "Gone soon")
        message = self._message_for(prompt)
        delete_prompt(db_engine, prompt.id)
        interaction = _make_interaction(message=message)

        run_async(handle_vote(_make_bot(db_engine), interaction, -1))

        assert "no longer exists" in _sent_text(interaction.response.send_message)

    def test_message_without_prompt_id(self, db_engine):
        message = MagicMock()
        message.embeds = [discord.Embed(title="something else")]
        interaction = _make_interaction(message=message)

        run_async(handle_vote(_make_bot(db_engine), interaction, 1))

        assert "Unable to find question" in _sent_text(interaction.response.send_message)


# ---------------------------------------------------------------------------
# /submit and the similarity gate
# ---------------------------------------------------------------------------
class TestSubmitPrompt:
    def test_files_and_posts_for_review(self, db_engine):
        bot = _make_bot(db_engine)
        interaction = _make_interaction()

        with patch("todbot.bot.views.post_for_review", new_callable=AsyncMock) as post:
            run_async(submit_prompt(bot, interaction, Category.DARE, "  Moonwalk across the room "))

        pending = list_pending(db_engine)
        assert len(pending) == 1
        assert pending[0].text == "Moonwalk across the room"
        assert pending[0].origin_guild_id == 1000
        post.assert_awaited_once()
        assert "submitted for approval" in _sent_text(interaction.followup.send)

    def test_similar_prompt_asks_for_confirmation(self, db_engine):
        add_prompt(db_engine, "dare", "Moonwalk across the room")
        bot = _make_bot(db_engine)
        interaction = _make_interaction()

        run_async(submit_prompt(bot, interaction, Category.DARE, "Moonwalk across the room!"))

        kwargs = interaction.response.send_message.await_args.kwargs
        assert isinstance(kwargs["view"], SimilarityConfirmView)
        assert kwargs["ephemeral"] is True
        assert len(bot.pending) == 1
        assert list_pending(db_engine) == []

    def test_confirm_files_pending_submission(self, db_engine):
        add_prompt(db_engine, "dare", "Moonwalk across the room")
        bot = _make_bot(db_engine)
        first = _make_interaction()
        run_async(submit_prompt(bot, first, Category.DARE, "Moonwalk across the room!"))
        view = first.response.send_message.await_args.kwargs["view"]

        confirm = _make_interaction()
        with patch("todbot.bot.views.post_for_review", new_callable=AsyncMock):
            run_async(view.confirm.callback(confirm))

        assert len(list_pending(db_engine)) == 1
        assert len(bot.pending) == 0
        assert "submitted for approval" in _sent_text(confirm.edit_original_response)

    def test_only_submitter_can_confirm(self, db_engine):
        add_prompt(db_engine, "dare", "Moonwalk across the room")
        bot = _make_bot(db_engine)
        first = _make_interaction()
        run_async(submit_prompt(bot, first, Category.DARE, "Moonwalk across the room!"))
        view = first.response.send_message.await_args.kwargs["view"]

        stranger = _make_interaction(user_id=99)
        run_async(view.confirm.callback(stranger))

        assert "only confirm your own" in _sent_text(stranger.response.send_message)
        assert len(bot.pending) == 1

    def test_cancel_drops_pending(self, db_engine):
        add_prompt(db_engine, "dare", "Moonwalk across the room")
        bot = _make_bot(db_engine)
        first = _make_interaction()
        run_async(submit_prompt(bot, first, Category.DARE, "Moonwalk across the room!"))
        view = first.response.send_message.await_args.kwargs["view"]

        run_async(view.cancel.callback(_make_interaction()))

        assert len(bot.pending) == 0
        assert list_pending(db_engine) == []

    def test_post_failure_keeps_submission(self, db_engine):
        bot = _make_bot(db_engine)
        interaction = _make_interaction()

        with patch(
            "todbot.bot.views.post_for_review",
            new_callable=AsyncMock,
            side_effect=NotFoundError("Approval channel not found."),
        ):
            run_async(submit_prompt(bot, interaction, Category.TRUTH, "Favourite smell?"))

        assert len(list_pending(db_engine)) == 1
        assert "alert a moderator" in _sent_text(interaction.followup.send)

    def test_rate_limited(self, db_engine):
        bot = _make_bot(db_engine, submission_limit=(1, 600))
        with patch("todbot.bot.views.post_for_review", new_callable=AsyncMock):
            run_async(submit_prompt(bot, _make_interaction(), Category.TRUTH, "one"))
            limited = _make_interaction()
            run_async(submit_prompt(bot, limited, Category.TRUTH, "two"))

        assert "10 minutes" in _sent_text(limited.response.send_message)
        assert len(list_pending(db_engine)) == 1

    def test_blank_text(self, db_engine):
        interaction = _make_interaction()
        run_async(submit_prompt(_make_bot(db_engine), interaction, Category.TRUTH, " \x00 "))
        assert "valid question" in _sent_text(interaction.response.send_message)


# ---------------------------------------------------------------------------
# Approve / reject
# ---------------------------------------------------------------------------
class TestModerationReplies:
    @pytest.fixture
    def submission(self, db_engine):
        return create_submission(db_engine, "truth", "Worst date ever?", 42)

    def test_approve(self, db_engine, submission):
        bot = _make_bot(db_engine)
        with patch("todbot.bot.views.refresh_review_message", new_callable=AsyncMock) as refresh:
            reply = run_async(approve(bot, submission.id, 99))

        assert reply.startswith(f"Submission `{submission.id}` approved. New question ID:")
        assert refresh.await_args.args[2] is SubmissionStatus.APPROVED
        bot.notify_submitter.assert_awaited_once()

    def test_approve_twice(self, db_engine, submission):
        bot = _make_bot(db_engine)
        with patch("todbot.bot.views.refresh_review_message", new_callable=AsyncMock):
            run_async(approve(bot, submission.id, 99))
            reply = run_async(approve(bot, submission.id, 100))
        assert reply == f"Submission `{submission.id}` has already been processed."

    def test_approve_unknown(self, db_engine):
        reply = run_async(approve(_make_bot(db_engine), "NOPE00", 99))
        assert reply == "Submission `NOPE00` was not found."

    def test_reject_with_reason(self, db_engine, submission):
        bot = _make_bot(db_engine)
        with patch("todbot.bot.views.refresh_review_message", new_callable=AsyncMock) as refresh:
            reply = run_async(reject(bot, submission.id, 99, "Duplicate"))

        assert reply == f"Submission `{submission.id}` was rejected."
        assert refresh.await_args.kwargs["notes"] == "Duplicate"
        assert get_submission(db_engine, submission.id).status == SubmissionStatus.REJECTED


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------
class TestListPagination:
    def test_buttons_track_page(self):
        async def scenario():
            view = ListPaginationView(["one", "two", "three"], owner_id=42)
            assert view.previous_page.disabled and not view.next_page.disabled

            interaction = _make_interaction()
            await view.next_page.callback(interaction)
            await view.next_page.callback(interaction)
            return view, interaction

        view, interaction = run_async(scenario())
        assert view.index == 2
        assert view.next_page.disabled
        assert view.page_info.label == "Page 3/3"
        assert interaction.response.edit_message.await_args.kwargs["content"] == "```\nthree\n```"


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
class TestPrivilegedRole:
    def _member(self, *, admin: bool = False, role_ids=()) -> MagicMock:
        member = MagicMock(spec=discord.Member)
        member.guild_permissions = SimpleNamespace(administrator=admin)
        member.roles = [SimpleNamespace(id=role_id) for role_id in role_ids]
        return member

    def test_administrator(self):
        assert has_privileged_role(self._member(admin=True), []) is True

    def test_configured_role(self):
        assert has_privileged_role(self._member(role_ids=(3, 7)), [7]) is True

    def test_other_roles(self):
        assert has_privileged_role(self._member(role_ids=(3,)), [7]) is False

    def test_non_member(self):
        assert has_privileged_role(MagicMock(spec=discord.User), [7]) is False
        assert has_privileged_role(None, [7]) is False
