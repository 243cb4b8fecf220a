"""
Unit tests for semantic re-ranking.
"""

import pytest
from unittest.mock import Mock

from src.config import ReRankingConfig
from src.hybrid_retrieval.graph import GraphNode, SubGraph
from src.hybrid_retrieval.retrieval import ReRankingService
from src.hybrid_retrieval.retrieval.reranker import (
    RankedNode, NodeEmbeddingData, query_terms, is_technical_token, describe_from_properties,
)

QUERY = "process refund"


def node(node_id, label="Method", **properties):
    return GraphNode(id=node_id, labels=[label], properties={"name": node_id, **properties})


@pytest.fixture
def subgraph():
    return SubGraph.build([node("m1"), node("m2"), node("p1", "Package")], [])


@pytest.fixture
def mock_store():
    """m1 matches the query vector, m2 is orthogonal but well described."""
    rows = {
        "m1": {"embedding": [1.0, 0.0], "text": "Refund entry point"},
        "m2": {"embedding": [0.0, 1.0], "text": "Handles refund processing"},
    }
    store = Mock()
    store.get_node_embedding.side_effect = lambda node_id, node_type: rows.get(node_id)
    store.get_linked_description.return_value = None
    store.get_file_doc_content.return_value = None
    return store


@pytest.fixture
def mock_embedder():
    embedder = Mock()
    embedder.embed.return_value = [1.0, 0.0]
    return embedder


@pytest.fixture
def service(mock_store, mock_embedder):
    return ReRankingService(mock_store, mock_embedder, ReRankingConfig())


class TestHelpers:
    """Tests for the module-level helpers."""

    def test_query_terms(self):
        assert query_terms("How is a Refund processed?") == ["how", "refund", "processed"]

    @pytest.mark.parametrize("token,technical", [
        ("processRefund", True),
        ("PaymentService", True),
        ("refund_amount", True),
        ("com.acme", True),
        ("refund", False),
        ("Refund", False),
    ])
    def test_is_technical_token(self, token, technical):
        assert is_technical_token(token) is technical

    def test_describe_from_properties(self):
        refund = node("processRefund", signature="processRefund(Order)",
                      className="PaymentServiceImpl", businessTags=["billing", "refunds"])

        assert describe_from_properties(refund) == (
            "Method: processRefund - processRefund(Order) in PaymentServiceImpl (Tags: billing, refunds)"
        )


class TestReRankingService:
    """Unit tests for ReRankingService."""

    def test_rerank_scores(self, service, subgraph):
        """Test cosine scoring and the text fallback for weak and missing embeddings."""
        ranked = service.rerank(subgraph, QUERY)
        scores = {r.node_id: r.similarity_score for r in ranked}

        assert [r.node_id for r in ranked] == ["m1", "m2", "p1"]
        assert scores["m1"] == pytest.approx(1.0)
        # weak cosine replaced by 0.3 + 2/2 * 0.2
        assert scores["m2"] == pytest.approx(0.5)
        assert scores["p1"] == 0.0

    def test_fallback_disabled_keeps_cosine(self, mock_store, mock_embedder, subgraph):
        service = ReRankingService(mock_store, mock_embedder, ReRankingConfig(enable_fallback_scoring=False))

        scores = {r.node_id: r.similarity_score for r in service.rerank(subgraph, QUERY)}

        assert scores["m2"] == 0.0

    def test_disabled(self, mock_store, mock_embedder, subgraph):
        """Test that a disabled service keeps every node at the neutral score."""
        service = ReRankingService(mock_store, mock_embedder, ReRankingConfig(enabled=False))

        result = service.rerank_and_filter(subgraph, QUERY)

        assert len(result.nodes) == 3
        assert all(r.similarity_score == 0.5 for r in result.nodes)
        assert result.nodes[0].description == "No re-ranking performed"
        assert result.threshold == 0.35
        mock_embedder.embed.assert_not_called()

    def test_embedding_failure(self, service, mock_embedder, subgraph):
        """Test that a failing query embedding scores every node 0."""
        mock_embedder.embed.side_effect = RuntimeError("model missing")

        ranked = service.rerank(subgraph, QUERY)

        assert len(ranked) == 3
        assert all(r.similarity_score == 0.0 for r in ranked)

    def test_store_failure_uses_properties(self, service, mock_store):
        """Test that a failed embedding lookup falls back to the property summary."""
        mock_store.get_node_embedding.side_effect = RuntimeError("timeout")

        data = service._node_data(node("m1", signature="m1()"))

        assert data.embedding is None
        assert data.description == "Method: m1 - m1()"

    def test_file_doc_description(self, service, mock_store):
        """Test the description chain for a file doc without stored text."""
        mock_store.get_node_embedding.side_effect = None
        mock_store.get_node_embedding.return_value = {"embedding": None, "text": ""}
        mock_store.get_file_doc_content.return_value = "Refund flow overview"

        data = service._node_data(GraphNode(id="d1", labels=["FileDoc"], properties={"fileName": "REFUNDS.md"}))

        assert data.description == "Refund flow overview"
        mock_store.get_node_embedding.assert_called_once_with("d1", "filedoc")

    def test_fallback_text_score(self, service):
        assert service.fallback_text_score("refund ledger", ["refund", "process"]) == pytest.approx(0.4)
        assert service.fallback_text_score("", ["refund"]) == 0.0
        assert service.fallback_text_score("ledger", ["refund"]) == 0.0

    def test_similarity_clamped(self, service):
        data = NodeEmbeddingData(embedding=[-1.0, 0.0], description="")

        assert service.similarity([1.0, 0.0], data, ["refund"]) == 0.0


class TestThreshold:
    """Tests for the adaptive cut-off."""

    def test_generic_query(self, service):
        assert service.compute_threshold("explain show", []) == pytest.approx(0.35 * 0.8)

    def test_technical_query(self, service):
        threshold = service.compute_threshold("PaymentService processRefund RefundHandler", [])

        assert threshold == pytest.approx(0.35 * 1.3)

    def test_distribution_and_clamp(self, service, subgraph):
        """Test that all-zero scores push the threshold down to the minimum."""
        ranked = [RankedNode(n, 0.0) for n in subgraph.nodes_list]

        assert service.compute_threshold("explain how", ranked) == 0.15

    def test_not_adaptive(self, mock_store, mock_embedder):
        service = ReRankingService(mock_store, mock_embedder, ReRankingConfig(adaptive_threshold=False))

        assert service.compute_threshold("PaymentService", []) == 0.35

    def test_rerank_and_filter(self, service, subgraph):
        """Test that nodes under the threshold are dropped."""
        result = service.rerank_and_filter(subgraph, QUERY)

        # distribution: 0.7 * 2/3 + 0.3 * 1.0
        assert result.threshold == pytest.approx(0.35 * (0.7 * 2 / 3 + 0.3))
        assert [r.node_id for r in result.nodes] == ["m1", "m2"]
        assert result.considered == 3

    def test_final_limit(self, mock_store, mock_embedder, subgraph):
        service = ReRankingService(mock_store, mock_embedder, ReRankingConfig(final_limit=1))

        assert [r.node_id for r in service.rerank_and_filter(subgraph, QUERY).nodes] == ["m1"]

    def test_apply_reranking(self, service, subgraph):
        """Test the filtered subgraph and its metadata."""
        reranked = service.apply_reranking(subgraph, QUERY)

        assert list(reranked.nodes) == ["m1", "m2"]
        assert reranked.metadata["reRanked"] is True
        assert reranked.metadata["originalNodeCount"] == 3
        assert reranked.metadata["reRankedNodeCount"] == 2
        assert 0.15 <= reranked.metadata["reRankThreshold"] <= 0.75
