"""
todbot.services.similarity_service — Near-Duplicate Lookup
===========================================================

Compares a candidate prompt against every approved prompt of the same
category.  One read, then pure scoring in
:func:`todbot.engine.similarity.rank_matches`.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from todbot.constants import DEFAULT_SIMILARITY_LIMIT, DEFAULT_SIMILARITY_THRESHOLD, Category
from todbot.database.engine import get_session
from todbot.database.models import Prompt
from todbot.engine.similarity import SimilarityMatch, rank_matches
from todbot.services.prompt_service import normalize_category

logger = logging.getLogger(__name__)


def find_similar(
    engine: Engine,
    text: str,
    category: str | Category,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    limit: int = DEFAULT_SIMILARITY_LIMIT,
) -> list[SimilarityMatch]:
    """Return up to *limit* prompts scoring at least *threshold*, best first."""
    cat = normalize_category(category)
    with get_session(engine) as session:
        rows = session.execute(
            select(Prompt.id, Prompt.text)
            .where(Prompt.category == cat.value)
            .order_by(Prompt.position)
        ).all()

    matches = rank_matches(text, ((row.id, row.text) for row in rows), threshold, limit)
    if matches:
        logger.debug(
            "%d similar %s prompt(s) found (best %.2f)", len(matches), cat.value, matches[0].score,
        )
    return matches
