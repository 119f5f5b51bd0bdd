"""
todbot.services.rating_service — Up/Down Vote Ledger
=====================================================

One row per (prompt, user).  Pressing the same button twice retracts the
vote; pressing the other one flips it.  Counts are cached per prompt and
invalidated inside every :func:`cast_vote`, before it returns.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import Engine, case, func, select
from sqlalchemy.exc import SQLAlchemyError

from todbot.database.engine import get_session, write_session
from todbot.database.models import Prompt, Rating
from todbot.engine.cache import LRUCache
from todbot.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

UPVOTE = 1
DOWNVOTE = -1
_VALID_VOTES = (UPVOTE, DOWNVOTE)


class VoteOutcome(enum.StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"


@dataclass(frozen=True, slots=True)
class RatingCounts:
    upvotes: int = 0
    downvotes: int = 0

    @property
    def net(self) -> int:
        return self.upvotes - self.downvotes


# Advisory only: never consulted by cast_vote
_counts_cache: LRUCache[str, RatingCounts] = LRUCache(500)


def cast_vote(engine: Engine, prompt_id: str, user_id: int, value: int) -> VoteOutcome:
    """Apply one button press and report what happened to the vote.

    Raises
    ------
    ValidationError
        If *value* is not +1 or -1.
    NotFoundError
        If the prompt does not exist.
    StoreError
        On any persistence failure.  Logged first, never swallowed.
    """
    if value not in _VALID_VOTES:
        raise ValidationError(f"Vote must be +1 or -1, got {value!r}")

    try:
        with write_session(engine) as session:
            if session.scalar(select(Prompt.seq).where(Prompt.id == prompt_id)) is None:
                raise NotFoundError(f"Prompt {prompt_id} not found")

            existing = session.get(Rating, (prompt_id, user_id))
            if existing is None:
                session.add(Rating(prompt_id=prompt_id, user_id=user_id, value=value))
                outcome = VoteOutcome.ADDED
            elif existing.value == value:
                session.delete(existing)
                outcome = VoteOutcome.REMOVED
            else:
                existing.value = value
                existing.updated_at = func.now()
                outcome = VoteOutcome.UPDATED
    except SQLAlchemyError as exc:
        logger.exception(
            "Failed to cast vote %+d on prompt %s for user %d", value, prompt_id, user_id,
        )
        raise StoreError("Failed to cast vote") from exc
    finally:
        _counts_cache.delete(prompt_id)

    logger.info("Vote %s: prompt %s user %d value %+d", outcome.value, prompt_id, user_id, value)
    return outcome


def get_counts(engine: Engine, prompt_id: str) -> RatingCounts:
    """Up/down totals for a prompt (zeros if unrated or missing)."""
    cached = _counts_cache.get(prompt_id)
    if cached is not None:
        return cached

    generation = _counts_cache.generation
    with get_session(engine) as session:
        row = session.execute(
            select(
                func.coalesce(func.sum(case((Rating.value == UPVOTE, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Rating.value == DOWNVOTE, 1), else_=0)), 0),
            ).where(Rating.prompt_id == prompt_id)
        ).one()

    counts = RatingCounts(upvotes=int(row[0]), downvotes=int(row[1]))
    # a vote committed during the read leaves the cache empty
    _counts_cache.set_if_unchanged(prompt_id, counts, generation)
    return counts


def get_user_vote(engine: Engine, prompt_id: str, user_id: int) -> int | None:
    with get_session(engine) as session:
        return session.scalar(
            select(Rating.value).where(Rating.prompt_id == prompt_id, Rating.user_id == user_id)
        )


def clear_counts_cache() -> None:
    """Drop every cached count (tests, and after bulk deletes)."""
    _counts_cache.clear()


def invalidate_counts(prompt_id: str) -> None:
    _counts_cache.delete(prompt_id)
