"""
tests/test_similarity.py — Edit-Distance Scoring and Duplicate Lookup
======================================================================
"""

from __future__ import annotations

import pytest

from todbot.engine.similarity import levenshtein, rank_matches, similarity
from todbot.services.prompt_service import add_prompt
from todbot.services.similarity_service import find_similar


class TestLevenshtein:
    @pytest.mark.parametrize(
        "a, b, expected",
        [
            ("", "", 0),
            ("abc", "", 3),
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
            ("same", "same", 0),
        ],
    )
    def test_distance(self, a, b, expected):
        assert levenshtein(a, b) == expected

    def test_symmetric(self):
        assert levenshtein("truth", "trust") == levenshtein("trust", "truth")


class TestSimilarity:
    def test_identical_is_one(self):
        assert similarity("Sing a song", "Sing a song") == 1.0

    def test_case_and_outer_whitespace_ignored(self):
        assert similarity("  SING A SONG ", "sing a song") == 1.0

    def test_empty_side_is_zero(self):
        assert similarity("", "anything") == 0.0
        assert similarity("anything", "   ") == 0.0

    def test_both_empty_is_zero(self):
        assert similarity("", "") == 0.0

    def test_known_value(self):
        # distance 3 over max length 7
        assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_range_and_symmetry(self):
        a, b = "What is your biggest fear?", "What's your greatest fear?"
        score = similarity(a, b)
        assert 0.0 <= score <= 1.0
        assert score == similarity(b, a)


class TestRankMatches:
    CANDIDATES = [
        ("AAAA0001", "Dance for ten seconds"),
        ("AAAA0002", "Dance for ten minutes"),
        ("AAAA0003", "Tell us your middle name"),
        ("AAAA0004", "dance for ten seconds"),
    ]

    def test_threshold_filters(self):
        matches = rank_matches("Dance for ten seconds", self.CANDIDATES, 0.7, 10)
        ids = [m.prompt_id for m in matches]
        assert "AAAA0003" not in ids
        assert all(m.score >= 0.7 for m in matches)

    def test_sorted_descending_stable_on_ties(self):
        matches = rank_matches("Dance for ten seconds", self.CANDIDATES, 0.7, 10)
        assert [m.prompt_id for m in matches][:2] == ["AAAA0001", "AAAA0004"]
        scores = [m.score for m in matches]
        assert scores == sorted(scores, reverse=True)

    def test_limit(self):
        assert len(rank_matches("Dance for ten seconds", self.CANDIDATES, 0.0, 2)) == 2

    def test_non_positive_limit_returns_nothing(self):
        assert rank_matches("Dance", self.CANDIDATES, 0.0, 0) == []


class TestFindSimilar:
    def test_scoped_to_category(self, db_engine):
        add_prompt(db_engine, "truth", "What is your biggest fear?")
        add_prompt(db_engine, "dare", "What is your biggest fear?")

        matches = find_similar(db_engine, "What is your biggest fear", "truth")
        assert len(matches) == 1
        assert matches[0].score > 0.9

    def test_empty_category_has_no_matches(self, db_engine):
        assert find_similar(db_engine, "Anything at all", "dare") == []

    def test_respects_threshold_and_limit(self, db_engine):
        for n in range(6):
            add_prompt(db_engine, "dare", f"Do {n} push-ups right now")
        add_prompt(db_engine, "dare", "Call your best friend")

        matches = find_similar(db_engine, "Do 9 push-ups right now", "dare", 0.7, 3)
        assert len(matches) == 3
        assert all("push-ups" in m.text for m in matches)
