"""
Unit tests for lexical/vector score fusion.
"""

import pytest

from src.config import CombinerConfig
from src.hybrid_retrieval.retrieval import (
    SearchResultCombiner, SearchResult, RankedResult, normalize_fulltext_score,
)


def hit(node_id, score, search_type, node_type="method"):
    return SearchResult(node_id=node_id, name=node_id, score=score, type=node_type, search_type=search_type)


@pytest.fixture
def fulltext_hits():
    return [
        hit("A", 3.0, "fulltext"),
        hit("A", 1.0, "fulltext", "filedoc"),
        hit("B", 1.0, "fulltext", "class"),
    ]


@pytest.fixture
def vector_hits():
    return [
        hit("A", 0.9, "semantic"),
        hit("C", 0.5, "semantic"),
        hit("D", 0.1, "semantic"),
    ]


class TestNormalization:
    """Tests for score normalization."""

    @pytest.mark.parametrize("raw,expected", [
        (0.0, 0.0),
        (-1.0, 0.0),
        (1.0, 0.5),
        (3.0, 0.75),
    ])
    def test_saturating_normalization(self, raw, expected):
        assert normalize_fulltext_score(raw) == pytest.approx(expected)

    def test_monotonic_and_bounded(self):
        scores = [normalize_fulltext_score(s) for s in (0.5, 2.0, 10.0, 1000.0)]

        assert scores == sorted(scores)
        assert all(0.0 <= s < 1.0 for s in scores)


class TestSearchResultCombiner:
    """Unit tests for SearchResultCombiner."""

    def test_combine(self, fulltext_hits, vector_hits):
        """Test weighting, the both-match boost, thresholding and ordering."""
        ranked = SearchResultCombiner(CombinerConfig()).combine(fulltext_hits, vector_hits)
        by_id = {r.node_id: r for r in ranked}

        assert [r.node_id for r in ranked] == ["A", "C", "B"]
        assert by_id["A"].full_text_score == pytest.approx(0.3)
        assert by_id["A"].vector_score == pytest.approx(0.54)
        assert by_id["A"].combined_score == pytest.approx((0.3 + 0.54) * 1.2)
        assert by_id["A"].has_both_matches
        assert by_id["B"].combined_score == pytest.approx(0.2)
        assert by_id["C"].combined_score == pytest.approx(0.3)
        assert "D" not in by_id

    def test_both_match_with_large_lexical_score(self):
        ranked = SearchResultCombiner().combine([hit("A", 8.0, "fulltext")], [hit("A", 0.9, "semantic")])

        assert ranked[0].combined_score == pytest.approx((8.0 / 9.0 * 0.4 + 0.9 * 0.6) * 1.2)

    def test_one_result_per_node(self, fulltext_hits, vector_hits):
        ranked = SearchResultCombiner().combine(fulltext_hits, vector_hits)

        ids = [r.node_id for r in ranked]
        assert len(ids) == len(set(ids))

    def test_best_raw_score_kept(self, fulltext_hits):
        """Test that the node keeps its best hit's type and score."""
        ranked = SearchResultCombiner().combine(fulltext_hits, [])

        assert ranked[0].node_id == "A"
        assert ranked[0].type == "method"
        assert ranked[0].dominant_search_type == "fulltext"

    def test_vector_scores_clamped(self):
        ranked = SearchResultCombiner().combine([], [hit("A", 1.5, "semantic")])

        assert ranked[0].vector_score == pytest.approx(0.6)
        assert ranked[0].dominant_search_type == "semantic"

    def test_empty_inputs(self):
        assert SearchResultCombiner().combine([], []) == []

    def test_initial_limit(self):
        vector = [hit(f"n{i}", 0.5 + i / 100, "semantic") for i in range(10)]

        ranked = SearchResultCombiner(CombinerConfig(initial_limit=3)).combine([], vector)

        assert [r.node_id for r in ranked] == ["n9", "n8", "n7"]

    def test_combine_with_weights(self, fulltext_hits, vector_hits):
        """Test one-off weights without touching the configured ones."""
        combiner = SearchResultCombiner()

        ranked = combiner.combine_with_weights(fulltext_hits, vector_hits, 1.0, 0.0)

        assert [r.node_id for r in ranked] == ["A", "B"]
        assert combiner.config.full_text_weight == 0.4

    def test_filter_and_top_n(self, fulltext_hits, vector_hits):
        ranked = SearchResultCombiner().combine(fulltext_hits, vector_hits)

        assert [r.node_id for r in SearchResultCombiner.filter_by_type(ranked, "CLASS")] == ["B"]
        assert SearchResultCombiner.top_n(ranked, 1) == ranked[:1]
        assert SearchResultCombiner.top_n(ranked, -1) == []

    def test_dominant_search_type_balanced(self):
        assert RankedResult(node_id="x").dominant_search_type == "balanced"

    def test_min_score_tightens_threshold(self, fulltext_hits, vector_hits):
        """Test a stricter per-call cutoff and that a looser one is ignored."""
        combiner = SearchResultCombiner()

        strict = combiner.combine(fulltext_hits, vector_hits, min_score=0.25)
        loose = combiner.combine(fulltext_hits, vector_hits, min_score=0.01)

        assert [r.node_id for r in strict] == ["A", "C"]
        assert [r.node_id for r in loose] == ["A", "C", "B"]
