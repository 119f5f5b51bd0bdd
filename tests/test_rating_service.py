"""
tests/test_rating_service.py — Vote Ledger Tests
=================================================

Add / retract / flip scenarios, cached counts, and cascade on delete.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from todbot.database.engine import get_session as real_get_session
from todbot.errors import NotFoundError, StoreError, ValidationError
from todbot.services.prompt_service import add_prompt, delete_prompt
from todbot.services.rating_service import (
    DOWNVOTE,
    UPVOTE,
    RatingCounts,
    VoteOutcome,
    cast_vote,
    get_counts,
    get_user_vote,
)


@pytest.fixture
def prompt(db_engine):
    return add_prompt(db_engine, "truth", "What is your guilty pleasure?")


class TestCastVote:
    def test_first_vote_is_added(self, db_engine, prompt):
        assert cast_vote(db_engine, prompt.id, 1, UPVOTE) is VoteOutcome.ADDED
        assert get_user_vote(db_engine, prompt.id, 1) == UPVOTE

    def test_same_vote_twice_retracts(self, db_engine, prompt):
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        assert cast_vote(db_engine, prompt.id, 1, UPVOTE) is VoteOutcome.REMOVED
        assert get_user_vote(db_engine, prompt.id, 1) is None

    def test_opposite_vote_flips(self, db_engine, prompt):
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        assert cast_vote(db_engine, prompt.id, 1, DOWNVOTE) is VoteOutcome.UPDATED
        assert get_user_vote(db_engine, prompt.id, 1) == DOWNVOTE

    def test_scenario_counts(self, db_engine, prompt):
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        cast_vote(db_engine, prompt.id, 2, UPVOTE)
        cast_vote(db_engine, prompt.id, 3, DOWNVOTE)
        assert get_counts(db_engine, prompt.id) == RatingCounts(upvotes=2, downvotes=1)

        cast_vote(db_engine, prompt.id, 2, DOWNVOTE)   # flip
        cast_vote(db_engine, prompt.id, 3, DOWNVOTE)   # retract
        counts = get_counts(db_engine, prompt.id)
        assert counts == RatingCounts(upvotes=1, downvotes=1)
        assert counts.net == 0

    @pytest.mark.parametrize("value", [0, 2, -2])
    def test_rejects_invalid_value(self, db_engine, prompt, value):
        with pytest.raises(ValidationError):
            cast_vote(db_engine, prompt.id, 1, value)

    def test_missing_prompt(self, db_engine):
        with pytest.raises(NotFoundError):
            cast_vote(db_engine, "NOPE0000", 1, UPVOTE)

    def test_store_failure_propagates_and_invalidates(self, db_engine, prompt, caplog):
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        get_counts(db_engine, prompt.id)   # warm the cache

        with patch(
            "todbot.services.rating_service.write_session",
            side_effect=OperationalError("UPDATE", {}, Exception("disk I/O error")),
        ):
            with pytest.raises(StoreError):
                cast_vote(db_engine, prompt.id, 2, UPVOTE)
        assert "Failed to cast vote" in caplog.text

        with patch("todbot.services.rating_service.get_session") as get_session:
            get_session.return_value.__enter__.return_value.execute.return_value.one.return_value = (7, 7)
            assert get_counts(db_engine, prompt.id) == RatingCounts(7, 7)

    def test_concurrent_same_user_votes_stay_consistent(self, db_engine, prompt):
        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: cast_vote(db_engine, prompt.id, 1, UPVOTE), range(4)))
        # Four toggles from one user end with no vote
        assert get_user_vote(db_engine, prompt.id, 1) is None
        assert get_counts(db_engine, prompt.id) == RatingCounts()


class TestCounts:
    def test_unrated_prompt(self, db_engine, prompt):
        assert get_counts(db_engine, prompt.id) == RatingCounts(0, 0)

    def test_cache_invalidated_by_vote(self, db_engine, prompt):
        assert get_counts(db_engine, prompt.id).upvotes == 0
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        assert get_counts(db_engine, prompt.id).upvotes == 1

    def test_vote_landing_mid_read_is_not_masked(self, db_engine, prompt):
        @contextmanager
        def read_then_vote(engine):
            with real_get_session(engine) as session:
                yield session
            # commits after the count query, before the cache is filled
            cast_vote(engine, prompt.id, 1, UPVOTE)

        with patch("todbot.services.rating_service.get_session", read_then_vote):
            assert get_counts(db_engine, prompt.id) == RatingCounts(0, 0)

        assert get_counts(db_engine, prompt.id) == RatingCounts(1, 0)

    def test_counts_are_cached(self, db_engine, prompt):
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        first = get_counts(db_engine, prompt.id)
        with patch("todbot.services.rating_service.get_session") as get_session:
            assert get_counts(db_engine, prompt.id) is first
        get_session.assert_not_called()

    def test_delete_prompt_cascades_ratings(self, db_engine, prompt):
        cast_vote(db_engine, prompt.id, 1, UPVOTE)
        cast_vote(db_engine, prompt.id, 2, DOWNVOTE)
        assert get_counts(db_engine, prompt.id) == RatingCounts(1, 1)

        delete_prompt(db_engine, prompt.id)
        assert get_user_vote(db_engine, prompt.id, 1) is None
        assert get_counts(db_engine, prompt.id) == RatingCounts(0, 0)

    def test_net(self):
        assert RatingCounts(upvotes=3, downvotes=5).net == -2
