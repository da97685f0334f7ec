"""
Tests for relevance ranking: fuzzy tiers, category precedence, dedup,
stable ordering, result cap and category-only boosts.
"""

import time

import pytest

from conftest import DAY, make_result
from omnitab.search.ranking import (
    EXACT_SCORE,
    PREFIX_SCORE,
    SUBSTRING_SCORE,
    RankOptions,
    category_boost,
    fuzzy_score,
    rank,
)

TAB_BAND = RankOptions().category_band("tab")


class TestFuzzyScore:
    """Single-field scoring tiers."""

    def test_exact_match(self):
        assert fuzzy_score("React", "react") == EXACT_SCORE

    def test_prefix_match(self):
        assert fuzzy_score("React Docs", "react") == PREFIX_SCORE

    def test_substring_match(self):
        assert fuzzy_score("The React Way", "react") == SUBSTRING_SCORE

    def test_long_term_without_substring_scores_zero(self):
        assert fuzzy_score("rxeaxcxt", "react") == 0

    def test_short_term_without_substring_scores_zero(self):
        assert fuzzy_score("React Docs", "xq") == 0
        assert fuzzy_score("React Docs", "r d") == 0

    def test_short_term_inside_a_word_is_a_substring_match(self):
        assert fuzzy_score("React Docs", "oc") == SUBSTRING_SCORE
        assert fuzzy_score("React Docs", "do") == SUBSTRING_SCORE

    def test_empty_text(self):
        assert fuzzy_score("", "react") == 0
        assert fuzzy_score(None, "react") == 0

    def test_empty_term_matches_everything(self):
        assert fuzzy_score("anything", "") == EXACT_SCORE

    def test_tiers_are_strictly_ordered(self):
        assert EXACT_SCORE > PREFIX_SCORE > SUBSTRING_SCORE > 0


class TestMatchQuality:
    """Within one category, better matches come first."""

    def test_exact_beats_prefix_beats_substring_beats_filtered(self):
        results = [
            make_result("sub", "The React Way"),
            make_result("none", "rxeaxcxt"),
            make_result("prefix", "React Docs"),
            make_result("exact", "React"),
        ]
        ranked = rank(results, "react")

        assert [r.id for r in ranked] == ["exact", "prefix", "sub"]
        assert ranked[0].score > ranked[1].score > ranked[2].score

    def test_weighted_fields(self):
        result = make_result(
            "pr", "Pull requests", metadata={"url": "https://github.com/pulls"},
        )
        [scored] = rank([result], "github")

        # hostname prefix 90 * 1.2 + url substring 80 * 0.8, over weights 2.0 + 1.2 + 0.8
        assert scored.matched_fields == ["hostname", "url"]
        assert scored.score == pytest.approx(TAB_BAND + (90 * 1.2 + 80 * 0.8) / 4.0)

    def test_missing_fields_do_not_dilute_the_score(self):
        [scored] = rank([make_result("a", "React")], "react")
        assert scored.score == pytest.approx(TAB_BAND + EXACT_SCORE)
        assert scored.matched_fields == ["title"]

    def test_weak_url_only_match_is_below_the_gate(self):
        result = make_result("home", "Home", metadata={"url": "https://example.com/react-guide"})
        assert rank([result], "react") == []

    def test_secondary_text_is_used_when_no_url(self):
        result = make_result("t", "Home", secondary_text="https://react.dev/learn")
        [scored] = rank([result], "react")
        assert "hostname" in scored.matched_fields


class TestCategoryPrecedence:
    """Category is the primary sort key."""

    def test_higher_category_wins_over_better_match(self):
        results = [
            make_result("h", "git", category="history"),
            make_result("t", "Some git notes", category="tab"),
            make_result("b", "git", category="bookmark"),
        ]
        ranked = rank(results, "git")
        assert [r.id for r in ranked] == ["t", "h", "b"]

    def test_command_category_comes_first(self):
        results = [
            make_result("t", "git", category="tab"),
            make_result("c", "Gitter", category="command"),
        ]
        assert [r.id for r in rank(results, "git")] == ["c", "t"]

    def test_unknown_category_sorts_last(self):
        results = [
            make_result("x", "git", category="weather"),
            make_result("b", "git tips", category="bookmark"),
        ]
        assert [r.id for r in rank(results, "git")] == ["b", "x"]

    def test_bands_keep_categories_apart(self):
        options = RankOptions()
        assert options.category_band("tab") - options.category_band("history") == options.band_size
        assert options.category_band("command") > options.category_band("tab")

    def test_top_sites_rank_after_bookmarks(self):
        results = [
            make_result("s", "git", category="topsite"),
            make_result("b", "git tips", category="bookmark"),
        ]
        assert [r.id for r in rank(results, "git")] == ["b", "s"]

    def test_custom_category_order(self):
        options = RankOptions(category_order=("bookmark", "tab"))
        results = [
            make_result("t", "git", category="tab"),
            make_result("b", "git", category="bookmark"),
        ]
        assert [r.id for r in rank(results, "git", options)] == ["b", "t"]


class TestDeterminism:

    def test_duplicate_ids_keep_first_occurrence(self):
        results = [
            make_result("dup", "First copy"),
            make_result("other", "Other"),
            make_result("dup", "Second copy"),
        ]
        ranked = rank(results, "")
        assert [r.id for r in ranked] == ["dup", "other"]
        assert ranked[0].title == "First copy"

    def test_equal_scores_keep_input_order(self):
        results = [make_result(f"r{i}", "Docs") for i in range(5)]
        assert [r.id for r in rank(results, "docs")] == ["r0", "r1", "r2", "r3", "r4"]

    def test_cap_is_applied_after_sorting(self):
        options = RankOptions(max_results=2)
        results = [
            make_result("b1", "docs", category="bookmark"),
            make_result("b2", "docs", category="bookmark"),
            make_result("b3", "docs", category="bookmark"),
            make_result("t1", "docs", category="tab"),
        ]
        ranked = rank(results, "docs", options)
        assert [r.id for r in ranked] == ["t1", "b1"]

    def test_default_cap(self):
        results = [make_result(f"r{i}", "Docs") for i in range(80)]
        assert len(rank(results, "docs")) == 50

    def test_input_is_not_mutated(self):
        results = [make_result("b", "b", category="bookmark"), make_result("a", "a")]
        rank(results, "")
        assert [r.id for r in results] == ["b", "a"]


class TestCategoryBoosts:
    """Boosts applied when browsing without a search term."""

    def test_more_visited_history_ranks_higher(self):
        now = time.time()
        results = [
            make_result("rare", "Rare", category="history",
                        metadata={"visit_count": 2, "last_visit_time": now - DAY}),
            make_result("often", "Often", category="history",
                        metadata={"visit_count": 40, "last_visit_time": now - DAY}),
        ]
        assert [r.id for r in rank(results, "", now=now)] == ["often", "rare"]

    def test_recent_bookmark_ranks_higher(self):
        now = time.time()
        results = [
            make_result("old", "Old", category="bookmark", metadata={"date_added": now - 60 * DAY}),
            make_result("new", "New", category="bookmark", metadata={"date_added": now - DAY}),
        ]
        assert [r.id for r in rank(results, "", now=now)] == ["new", "old"]

    def test_history_boost_never_outranks_a_tab(self):
        now = time.time()
        results = [
            make_result("h", "Hot", category="history",
                        metadata={"visit_count": 10_000, "last_visit_time": now}),
            make_result("t", "Cold tab", category="tab"),
        ]
        ranked = rank(results, "", now=now)
        assert [r.id for r in ranked] == ["t", "h"]
        assert ranked[0].score > ranked[1].score

    def test_history_boost_is_capped(self):
        now = time.time()
        result = make_result("h", "Hot", category="history",
                             metadata={"visit_count": 10_000, "last_visit_time": now})
        assert category_boost(result, now) == 50

    def test_bookmark_boost_decays_to_zero(self):
        now = time.time()
        fresh = make_result("a", "A", category="bookmark", metadata={"date_added": now})
        stale = make_result("b", "B", category="bookmark", metadata={"date_added": now - 365 * DAY})
        assert category_boost(fresh, now) == pytest.approx(10)
        assert category_boost(stale, now) == 0

    def test_missing_metadata_gives_no_boost(self):
        now = time.time()
        assert category_boost(make_result("h", "H", category="history"), now) == 0
        assert category_boost(make_result("b", "B", category="bookmark"), now) == 0
        assert category_boost(make_result("t", "T", category="tab"), now) == 0
