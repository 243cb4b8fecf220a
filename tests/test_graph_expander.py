"""
Unit tests for subgraph models and bounded graph expansion.
"""

import pytest
from unittest.mock import Mock

from src.config import GraphExpansionConfig
from src.hybrid_retrieval.graph import GraphNode, GraphRelationship, SubGraph
from src.hybrid_retrieval.retrieval import GraphExpander


def node(node_id, label="Method", **properties):
    return GraphNode(id=node_id, labels=[label], properties={"name": node_id, **properties})


def rel(rel_id, start, end, rel_type="CALLS"):
    return GraphRelationship(id=rel_id, type=rel_type, start_node_id=start, end_node_id=end)


@pytest.fixture
def nodes():
    return [
        node("svc", "Class"),
        node("refund"),
        node("validate"),
    ]


@pytest.fixture
def relationships():
    return [
        rel("r1", "svc", "refund", "CONTAINS"),
        rel("r2", "refund", "validate"),
    ]


@pytest.fixture
def mock_store(nodes, relationships):
    store = Mock()
    store.expand_subgraph.return_value = (nodes, relationships)
    return store


class TestSubGraph:
    """Tests for the SubGraph model."""

    def test_build_deduplicates(self, nodes, relationships):
        """Test that duplicate nodes and relationships are dropped."""
        subgraph = SubGraph.build(nodes + nodes[:1], relationships + relationships[:1])

        assert subgraph.node_count == 3
        assert subgraph.relationship_count == 2

    def test_filtered_drops_dangling_relationships(self, nodes, relationships):
        """Test that relationships need both endpoints to survive filtering."""
        subgraph = SubGraph.build(nodes, relationships, {"expansionDepth": 2})

        filtered = subgraph.filtered(["validate", "refund", "missing"], reRanked=True)

        assert list(filtered.nodes) == ["validate", "refund"]
        assert [r.id for r in filtered.relationships] == ["r2"]
        assert filtered.metadata == {"expansionDepth": 2, "reRanked": True}
        assert subgraph.node_count == 3

    def test_adjacency_is_undirected(self, nodes, relationships):
        adjacency = SubGraph.build(nodes, relationships).adjacency()

        assert adjacency["refund"] == ["svc", "validate"]
        assert adjacency["validate"] == ["refund"]

    def test_empty(self):
        subgraph = SubGraph.empty(reason="no_seeds")

        assert subgraph.is_empty
        assert subgraph.metadata == {"reason": "no_seeds"}

    def test_node_accessors(self):
        doc = GraphNode(id="d1", labels=["FileDoc"], properties={"fileName": "Refunds.md"})

        assert doc.type == "FileDoc"
        assert doc.name == "Refunds.md"
        assert GraphNode(id="x").type == "Unknown"
        assert doc.to_dict()["type"] == "FileDoc"


class TestGraphExpander:
    """Unit tests for GraphExpander."""

    def test_expand_subgraph(self, mock_store):
        """Test the store call and the resulting metadata."""
        expander = GraphExpander(mock_store, GraphExpansionConfig())

        subgraph = expander.expand_subgraph(["refund", "refund", "svc"])

        mock_store.expand_subgraph.assert_called_once_with(["refund", "svc"], 2, 50, None)
        assert subgraph.node_count == 3
        assert subgraph.metadata["startNodeCount"] == 2
        assert subgraph.metadata["requestedDepth"] == 2
        assert subgraph.metadata["expansionDepth"] == 1
        assert subgraph.metadata["totalRelationships"] == 2

    def test_depth_reached(self, mock_store):
        """Test that the reported depth is the farthest hop actually returned."""
        subgraph = GraphExpander(mock_store).expand_subgraph(["svc"], depth=3)

        assert subgraph.metadata["requestedDepth"] == 3
        assert subgraph.metadata["expansionDepth"] == 2

    def test_depth_reached_seeds_only(self):
        store = Mock()
        store.expand_subgraph.return_value = ([node("refund")], [])

        subgraph = GraphExpander(store).expand_subgraph(["refund"])

        assert subgraph.metadata["expansionDepth"] == 0

    def test_depth_override_and_relationship_types(self, mock_store):
        """Test that a strategy depth and restricted relationship types reach the store."""
        config = GraphExpansionConfig(include_all_relationships=False, relationship_types=["CALLS"])
        expander = GraphExpander(mock_store, config)

        expander.expand_subgraph(["refund"], depth=3)

        mock_store.expand_subgraph.assert_called_once_with(["refund"], 3, 50, ["CALLS"])

    def test_expand_with_relationship_types(self, mock_store):
        expander = GraphExpander(mock_store)

        expander.expand_with_relationship_types(["refund"], ["IMPLEMENTS"])

        mock_store.expand_subgraph.assert_called_once_with(["refund"], 2, 50, ["IMPLEMENTS"])

    def test_empty_seeds(self, mock_store):
        """Test that no seeds means no store call."""
        subgraph = GraphExpander(mock_store).expand_subgraph([])

        assert subgraph.is_empty
        assert subgraph.metadata["reason"] == "empty_start_nodes"
        mock_store.expand_subgraph.assert_not_called()

    def test_store_failure(self, mock_store):
        """Test that a store error gives an empty subgraph with the error."""
        mock_store.expand_subgraph.side_effect = RuntimeError("connection reset")

        subgraph = GraphExpander(mock_store).expand_subgraph(["refund"])

        assert subgraph.is_empty
        assert subgraph.metadata["error"] == "connection reset"

    def test_filter_by_node_types(self, mock_store):
        subgraph = GraphExpander(mock_store).expand_subgraph(["refund"])

        classes = GraphExpander.filter_by_node_types(subgraph, ["CLASS"])

        assert list(classes.nodes) == ["svc"]
        assert classes.metadata["filteredNodeTypes"] == ["class"]
