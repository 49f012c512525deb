"""
Unit tests for the code similarity engine.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from llkb.similarity import (
    calculate_similarity,
    count_lines,
    find_similar_patterns,
    is_near_duplicate,
    jaccard_similarity,
    line_count_similarity,
    normalize_code,
    tokenize,
)


class TestNormalizeCode:
    """Test canonicalization of code snippets."""

    def test_literals_and_names_replaced(self):
        """Test that strings, numbers and declared names are replaced."""
        normalized = normalize_code("const total = 'abc' + 42")

        assert normalized == "const <VAR> = <STRING> + <NUMBER>"

    def test_whitespace_collapsed(self):
        """Test that runs of whitespace collapse to single spaces."""
        assert normalize_code("  a \n\n  b\t c ") == "a b c"

    def test_all_quote_styles(self):
        """Test that single, double and backtick strings are all replaced."""
        normalized = normalize_code("f('a', \"b\", `c`)")

        assert normalized.count("<STRING>") == 3


class TestSimilarityPrimitives:
    """Test the building blocks of the score."""

    def test_jaccard_of_empty_sets(self):
        """Test that two empty sets are identical and one empty set is disjoint."""
        assert jaccard_similarity(set(), set()) == 1.0
        assert jaccard_similarity({"a"}, set()) == 0.0

    def test_jaccard_overlap(self):
        """Test Jaccard on partially overlapping sets."""
        assert jaccard_similarity({"a", "b", "c"}, {"a", "b", "d"}) == 0.5

    def test_line_count_similarity(self):
        """Test line-count ratio."""
        assert line_count_similarity(0, 0) == 1.0
        assert line_count_similarity(2, 4) == 0.5

    def test_count_lines(self):
        """Test line counting of empty and multi-line code."""
        assert count_lines("") == 0
        assert count_lines("a\nb\nc") == 3

    def test_tokenize_splits_on_punctuation(self):
        """Test that tokens are split on whitespace and punctuation."""
        assert tokenize("page.click(button)") == {"page", "click", "button"}


class TestCalculateSimilarity:
    """Test the combined similarity score."""

    def test_identical_after_normalization(self):
        """Test that code differing only in literals and names scores 1.0."""
        assert calculate_similarity("const a = 1", "const b = 2") == 1.0

    def test_empty_strings_are_identical(self):
        """Test that two empty snippets are identical."""
        assert calculate_similarity("", "") == 1.0

    def test_partial_overlap_score(self):
        """Test the weighted score for a partial token overlap."""
        # jaccard 0.5 * 0.8 + equal line counts * 0.2
        assert calculate_similarity("a b c", "a b d") == 0.6

    def test_symmetric(self):
        """Test that the score does not depend on argument order."""
        a = "await page.click('#save')\nawait expect(toast).toBeVisible()"
        b = "await page.fill('#name', 'x')"

        assert calculate_similarity(a, b) == calculate_similarity(b, a)

    def test_score_in_range(self):
        """Test that unrelated code scores between 0 and 1."""
        score = calculate_similarity("alpha beta", "gamma\ndelta\nepsilon")

        assert 0.0 <= score <= 1.0


class TestNearDuplicates:
    """Test near-duplicate detection and ranking."""

    def test_is_near_duplicate_threshold(self):
        """Test that the default threshold is inclusive at 0.8."""
        assert is_near_duplicate("const a = 1", "const b = 2")
        assert not is_near_duplicate("a b c", "a b d")
        assert is_near_duplicate("a b c", "a b d", threshold=0.6)

    def test_find_similar_skips_none_and_keeps_order_on_ties(self):
        """Test that None candidates are skipped and ties keep input order."""
        matches = find_similar_patterns("a b c", ["a b c", None, "x y z", "a b c"], threshold=0.5)

        assert [m.index for m in matches] == [0, 3]
        assert all(m.similarity == 1.0 for m in matches)

    def test_find_similar_sorted_best_first(self):
        """Test that matches are ordered by descending similarity."""
        matches = find_similar_patterns("a b c", ["a b d", "a b c"], threshold=0.5)

        assert [m.index for m in matches] == [1, 0]
        assert matches[0].similarity >= matches[1].similarity
