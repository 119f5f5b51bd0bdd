"""
tests/test_review_service.py — Approval Channel Delivery Tests
===============================================================
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from conftest import run_async
from todbot.bot.views import ReviewView
from todbot.constants import SubmissionStatus
from todbot.errors import NotFoundError
from todbot.services.moderation_service import SubmissionNotice
from todbot.services.review_service import dm_submitter, post_for_review, refresh_review_message
from todbot.services.submission_service import (
    create_submission,
    get_submission,
    record_moderation_message,
)


def _make_bot(engine, channels: dict[int, object] | None = None) -> MagicMock:
    bot = MagicMock()
    bot.engine = engine
    bot.cfg = SimpleNamespace(approval_channel_id=500, privileged_role_ids=())
    bot.user = SimpleNamespace(id=1)
    bot.get_channel = lambda ch_id: (channels or {}).get(ch_id)
    bot.fetch_channel = AsyncMock(return_value=None)
    return bot


def _make_message(message_id: int = 555, channel_id: int = 500) -> MagicMock:
    message = MagicMock()
    message.id = message_id
    message.channel.id = channel_id
    message.add_reaction = AsyncMock()
    message.remove_reaction = AsyncMock()
    message.edit = AsyncMock()
    return message


def _make_channel(message: MagicMock) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = 500
    channel.send = AsyncMock(return_value=message)
    channel.fetch_message = AsyncMock(return_value=message)
    return channel


@pytest.fixture
def submission(db_engine):
    return create_submission(db_engine, "truth", "Most embarrassing moment?", 42)


class TestPostForReview:
    def test_posts_and_records_message(self, db_engine, submission):
        message = _make_message()
        channel = _make_channel(message)
        bot = _make_bot(db_engine, {500: channel})

        run_async(post_for_review(bot, submission))

        kwargs = channel.send.await_args.kwargs
        assert isinstance(kwargs["view"], ReviewView)
        fields = {f.name: f.value for f in kwargs["embed"].fields}
        assert fields["Submission ID"] == submission.id
        message.add_reaction.assert_awaited_once_with("❓")

        stored = get_submission(db_engine, submission.id)
        assert (stored.moderation_message_id, stored.moderation_channel_id) == (555, 500)

    def test_reaction_failure_is_tolerated(self, db_engine, submission):
        message = _make_message()
        message.add_reaction.side_effect = discord.HTTPException(
            MagicMock(status=403, reason="Forbidden"), "Missing Permissions",
        )
        bot = _make_bot(db_engine, {500: _make_channel(message)})

        run_async(post_for_review(bot, submission))

        assert get_submission(db_engine, submission.id).moderation_message_id == 555

    def test_missing_channel(self, db_engine, submission):
        bot = _make_bot(db_engine)
        with pytest.raises(NotFoundError):
            run_async(post_for_review(bot, submission))
        bot.fetch_channel.assert_awaited_once_with(500)


class TestRefreshReviewMessage:
    def test_marks_resolved(self, db_engine, submission):
        record_moderation_message(db_engine, submission.id, 555, 500)
        stored = get_submission(db_engine, submission.id)
        message = _make_message()
        bot = _make_bot(db_engine, {500: _make_channel(message)})

        ok = run_async(refresh_review_message(
            bot, stored, SubmissionStatus.APPROVED, reviewer_id=99, prompt_id="NEWID123",
        ))

        assert ok is True
        kwargs = message.edit.await_args.kwargs
        assert kwargs["view"] is None
        fields = {f.name: f.value for f in kwargs["embed"].fields}
        assert fields["Status"] == "Approved"
        assert fields["Question ID"] == "NEWID123"
        message.remove_reaction.assert_awaited_once_with("❓", bot.user)
        message.add_reaction.assert_awaited_once_with("✅")

    def test_without_recorded_message(self, db_engine, submission):
        bot = _make_bot(db_engine)
        assert run_async(refresh_review_message(bot, submission, SubmissionStatus.REJECTED)) is False

    def test_edit_failure_returns_false(self, db_engine, submission):
        record_moderation_message(db_engine, submission.id, 555, 500)
        stored = get_submission(db_engine, submission.id)
        message = _make_message()
        channel = _make_channel(message)
        channel.fetch_message.side_effect = discord.HTTPException(
            MagicMock(status=404, reason="Not Found"), "Unknown Message",
        )
        bot = _make_bot(db_engine, {500: channel})

        assert run_async(refresh_review_message(bot, stored, SubmissionStatus.REJECTED)) is False


def test_dm_submitter_sends_rendered_notice():
    user = SimpleNamespace(send=AsyncMock())
    bot = MagicMock()
    bot.get_user = MagicMock(return_value=user)
    notice = SubmissionNotice(42, "ABC123", SubmissionStatus.APPROVED, prompt_id="QWERTY12")

    run_async(dm_submitter(bot, notice))

    user.send.assert_awaited_once_with(notice.render())
