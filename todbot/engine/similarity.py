"""
todbot.engine.similarity — Edit-Distance Similarity
====================================================

Pure functions behind the duplicate warning shown on ``/submit``.

Scores are ``1 - levenshtein(a, b) / max(len(a), len(b))`` after
lower-casing and trimming both sides, so identical strings score 1.0 and
an empty side scores 0.0.

Scaling note: :func:`rank_matches` is a full scan, O(n·L²) for n
candidates of length L.  That is fine for a few thousand prompts per
category; beyond that this needs an index (n-gram prefilter or similar).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

__all__ = ["SimilarityMatch", "levenshtein", "similarity", "rank_matches"]


@dataclass(frozen=True, slots=True)
class SimilarityMatch:
    """An existing prompt that looks like the candidate text."""

    prompt_id: str
    text: str
    score: float


def levenshtein(a: str, b: str) -> int:
    """Classic insert/delete/substitute edit distance (two-row DP)."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,                 # deletion
                current[j - 1] + 1,              # insertion
                previous[j - 1] + (ca != cb),    # substitution
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity in ``[0, 1]``; symmetric in its arguments."""
    s1 = a.lower().strip()
    s2 = b.lower().strip()
    if s1 == s2:
        return 1.0 if s1 else 0.0
    if not s1 or not s2:
        return 0.0
    return 1.0 - levenshtein(s1, s2) / max(len(s1), len(s2))


def rank_matches(
    text: str,
    candidates: Iterable[tuple[str, str]],
    threshold: float,
    limit: int,
) -> list[SimilarityMatch]:
    """Score ``(prompt_id, text)`` candidates and keep the best *limit*.

    Only scores ``>= threshold`` survive.  The sort is stable, so equal
    scores keep candidate order.
    """
    matches = [
        SimilarityMatch(prompt_id=prompt_id, text=candidate, score=score)
        for prompt_id, candidate in candidates
        if (score := similarity(text, candidate)) >= threshold
    ]
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches[:max(limit, 0)]
