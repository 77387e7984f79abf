"""Test the name matcher."""

import pytest

from chanrelay.core.constants import MAX_SUGGESTIONS
from chanrelay.core.errors import NoCandidates
from chanrelay.matching import fuzzy_score, rank


class TestFuzzyScore:
    """Test subsequence scoring."""

    def test_non_subsequence_is_none(self):
        assert fuzzy_score("xyz", "#alerts") is None

    def test_case_insensitive(self):
        assert fuzzy_score("ALR", "#alerts") == fuzzy_score("alr", "#alerts")

    def test_empty_query_scores_zero(self):
        assert fuzzy_score("", "#anything") == 0
        assert fuzzy_score("   ", "#anything") == 0

    def test_contiguous_beats_scattered(self):
        # Arrange
        query = "ale"

        # Act
        contiguous = fuzzy_score(query, "#alerts")
        scattered = fuzzy_score(query, "#a-long-era")

        # Assert
        assert contiguous is not None and scattered is not None
        assert contiguous > scattered

    def test_word_start_beats_mid_word(self):
        assert fuzzy_score("n", "#news") > fuzzy_score("n", "#general")

    def test_best_start_position_is_used(self):
        # The first 'a' leads to a scattered match; the later one is contiguous
        assert fuzzy_score("al", "#a-x-al") == fuzzy_score("al", "#al")


class TestRank:
    """Test ranking and truncation."""

    def test_best_match_first(self):
        # Arrange
        candidates = ["#general", "#alerts", "#announcements"]

        # Act
        result = rank("alr", candidates)

        # Assert
        assert result[0] == "#alerts"

    def test_non_matching_kept_after_matches(self):
        # Arrange
        candidates = ["#zzz", "#alerts", "#yyy"]

        # Act
        result = rank("alerts", candidates)

        # Assert
        assert result == ["#alerts", "#yyy", "#zzz"]

    def test_empty_query_returns_sorted_full_list(self):
        candidates = ["#news", "#alerts", "#mirror"]
        assert rank("", candidates) == ["#alerts", "#mirror", "#news"]

    def test_empty_query_is_deterministic(self):
        candidates = [f"#chan-{i}" for i in range(40)]
        assert rank("", candidates) == rank("", list(reversed(candidates)))

    def test_truncates_to_max_suggestions(self):
        # Arrange
        candidates = [f"#alerts-{i:02d}" for i in range(60)]

        # Act
        result = rank("alerts", candidates)

        # Assert
        assert len(result) == MAX_SUGGESTIONS

    def test_returns_all_when_under_cap(self):
        candidates = [f"#c{i}" for i in range(MAX_SUGGESTIONS)]
        assert sorted(rank("q", candidates)) == sorted(candidates)

    def test_ties_broken_by_candidate_value(self):
        assert rank("a", ["#ab", "#aa"]) == ["#aa", "#ab"]

    def test_no_candidates_raises(self):
        with pytest.raises(NoCandidates):
            rank("anything", [])
