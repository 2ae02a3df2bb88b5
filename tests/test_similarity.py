"""Tests for the string similarity primitives and name matching."""

from __future__ import annotations

import pytest

from src.services.verification.similarity import (
    EMPTY_EVIDENCE_CONFIDENCE,
    find_best_name_match,
    levenshtein_distance,
    levenshtein_similarity,
    name_match_confidence,
    word_match_score,
)


# -----------------------------------------------------------------------
# Levenshtein
# -----------------------------------------------------------------------


class TestLevenshteinDistance:
    def test_classic_example(self) -> None:
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_identical_strings(self) -> None:
        assert levenshtein_distance("biya", "biya") == 0

    def test_empty_against_non_empty(self) -> None:
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_symmetric(self) -> None:
        assert levenshtein_distance("njifenji", "njifenj") == levenshtein_distance("njifenj", "njifenji")


class TestLevenshteinSimilarity:
    @pytest.mark.parametrize("value", ["a", "Paul Biya", "Cavaye Yeguie Djibril"])
    def test_identity_is_one(self, value: str) -> None:
        assert levenshtein_similarity(value, value) == 1.0

    def test_two_empty_strings_are_identical(self) -> None:
        assert levenshtein_similarity("", "") == 1.0

    def test_empty_against_non_empty_is_zero(self) -> None:
        assert levenshtein_similarity("abc", "") == 0.0

    def test_normalised_by_longer_string(self) -> None:
        assert levenshtein_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


# -----------------------------------------------------------------------
# Word match
# -----------------------------------------------------------------------


class TestWordMatchScore:
    def test_symmetric(self) -> None:
        a = ["paul", "biya"]
        b = ["paul", "biyah", "president"]
        assert word_match_score(a, b) == word_match_score(b, a)

    def test_threshold_is_strict(self) -> None:
        # "biya" vs "biyah" is exactly 0.8, which does not count.
        assert word_match_score(["paul", "biya"], ["paul", "biyah", "president"]) == pytest.approx(1 / 3)

    def test_full_match(self) -> None:
        assert word_match_score(["paul", "biya"], ["biya", "paul"]) == 1.0

    def test_empty_lists(self) -> None:
        assert word_match_score([], []) == 0.0
        assert word_match_score(["paul"], []) == 0.0


# -----------------------------------------------------------------------
# Name matching
# -----------------------------------------------------------------------


class TestNameMatchConfidence:
    def test_empty_candidates_floor(self) -> None:
        assert name_match_confidence("Paul Biya", []) == EMPTY_EVIDENCE_CONFIDENCE == 0.1

    def test_exact_match(self) -> None:
        assert name_match_confidence("Paul Biya", ["Marcel Niat", "Paul Biya"]) == pytest.approx(1.0)

    def test_case_insensitive(self) -> None:
        assert name_match_confidence("paul biya", ["PAUL BIYA"]) == pytest.approx(1.0)

    def test_blended_score(self) -> None:
        # levenshtein 0.9, one of two words matching -> 0.7 * 0.9 + 0.3 * 0.5
        assert name_match_confidence("Paul Biya", ["Paul Biyah"]) == pytest.approx(0.78)

    def test_never_exceeds_one(self) -> None:
        assert name_match_confidence("Paul Paul", ["Paul Paul"]) <= 1.0


class TestFindBestNameMatch:
    def test_returns_closest_candidate(self) -> None:
        assert find_best_name_match("Paul Biya", ["Marcel Niat", "Paul Biyah"]) == "Paul Biyah"

    def test_none_for_empty_candidates(self) -> None:
        assert find_best_name_match("Paul Biya", []) is None

    def test_none_when_levenshtein_too_low(self) -> None:
        # Same words in a different order: high word overlap, low edit similarity.
        candidates = ["Biya Paul"]
        assert levenshtein_similarity("paul biya", "biya paul") <= 0.6
        assert name_match_confidence("Paul Biya", candidates) > 0.3
        assert find_best_name_match("Paul Biya", candidates) is None

    def test_custom_threshold(self) -> None:
        assert find_best_name_match("Paul Biya", ["Paul Biyah"], threshold=0.95) is None
