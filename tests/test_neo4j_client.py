"""
Tests for the Neo4j store.

Unit tests run against a mocked driver; the integration tests need a
running Neo4j instance (NEO4J_URI/NEO4J_USER/NEO4J_PASSWORD) and are
skipped otherwise.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch
from neo4j.exceptions import ServiceUnavailable

from src.config import Neo4jConfig
from src.hybrid_retrieval.graph import Neo4jClient


class FakeNode(dict):
    """Stands in for neo4j.graph.Node: a mapping with labels and an element id."""

    def __init__(self, element_id, labels, **properties):
        super().__init__(properties)
        self.element_id = element_id
        self.labels = frozenset(labels)


class FakeRelationship(dict):
    def __init__(self, element_id, rel_type, start_node, end_node, **properties):
        super().__init__(properties)
        self.element_id = element_id
        self.type = rel_type
        self.start_node = start_node
        self.end_node = end_node


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    """Client with a mocked driver, constructor bypassed."""
    client = Neo4jClient.__new__(Neo4jClient)
    client.config = Neo4jConfig()
    client.uri = client.config.uri
    client.database = "neo4j"
    client._driver = MagicMock()
    client._driver.session.return_value.__enter__.return_value = session
    return client


class TestNeo4jClient:
    """Unit tests for Neo4jClient with a mocked driver."""

    def test_connection_failure(self):
        """Test that an unreachable server raises ConnectionError."""
        with patch("src.hybrid_retrieval.graph.neo4j_client.GraphDatabase") as graph_database:
            graph_database.driver.return_value.verify_connectivity.side_effect = ServiceUnavailable("down")

            with pytest.raises(ConnectionError):
                Neo4jClient(Neo4jConfig(uri="bolt://localhost:1"))

    def test_execute_cypher(self, client, session):
        session.run.return_value = [{"name": "processRefund"}]

        rows = client.execute_cypher("MATCH (n) RETURN n.name AS name", limit=1)

        assert rows == [{"name": "processRefund"}]
        client._driver.session.assert_called_with(database="neo4j")
        session.run.assert_called_once_with("MATCH (n) RETURN n.name AS name", limit=1)

    def test_fulltext_search_parameters(self, client):
        """Test the index call and the description join."""
        client.execute_cypher = Mock(return_value=[])

        client.fulltext_search("description_content", "refund", 10, result_type="description", via_description=True)

        query = client.execute_cypher.call_args.args[0]
        kwargs = client.execute_cypher.call_args.kwargs
        assert "db.index.fulltext.queryNodes" in query
        assert "HAS_DESCRIPTION" in query
        assert kwargs == {
            "indexName": "description_content",
            "searchTerms": "refund",
            "limit": 10,
            "resultType": "description",
        }

    def test_vector_search_parameters(self, client):
        client.execute_cypher = Mock(return_value=[])

        client.vector_search("method_embeddings", (0.1, 0.2), 5)

        query = client.execute_cypher.call_args.args[0]
        kwargs = client.execute_cypher.call_args.kwargs
        assert "db.index.vector.queryNodes" in query
        assert "HAS_DESCRIPTION" not in query
        assert kwargs["queryVector"] == [0.1, 0.2]
        assert kwargs["k"] == 5

    def test_expand_subgraph(self, client, session):
        """Test node and relationship conversion with property ids."""
        refund = FakeNode("4:x:1", ["Method"], id="m:processRefund", name="processRefund")
        service = FakeNode("4:x:2", ["Class"], id="c:PaymentServiceImpl", name="PaymentServiceImpl")
        contains = FakeRelationship("5:x:1", "CONTAINS", service, refund)
        session.run.side_effect = [
            [{"n": refund}],
            [{"connected": service, "rels": [contains]}],
        ]

        nodes, relationships = client.expand_subgraph(["m:processRefund"], 2, 50, ["CONTAINS"])

        assert [n.id for n in nodes] == ["m:processRefund", "c:PaymentServiceImpl"]
        assert nodes[1].type == "Class"
        assert relationships[0].start_node_id == "c:PaymentServiceImpl"
        assert relationships[0].end_node_id == "m:processRefund"
        expansion_call = session.run.call_args_list[1]
        assert "[*1..2]" in expansion_call.args[0]
        assert "$relTypes" in expansion_call.args[0]
        assert expansion_call.kwargs["relTypes"] == ["CONTAINS"]

    def test_expand_without_seeds(self, client, session):
        assert client.expand_subgraph([], 2, 50) == ([], [])
        session.run.assert_not_called()

    def test_element_id_fallback(self, client):
        node = client._to_graph_node(FakeNode("4:x:9", ["Package"], name="billing"))

        assert node.id == "4:x:9"

    def test_node_embedding_text_fallbacks(self, client):
        """Test the embedding text built from descriptions when none is stored."""
        client.execute_cypher = Mock(return_value=[{
            "embedding": (1.0, 0.0),
            "text": None,
            "name": "PaymentServiceImpl",
            "descriptions": ["Handles payments", None],
        }])

        data = client.get_node_embedding("c:PaymentServiceImpl", "Interface")

        assert data == {"embedding": [1.0, 0.0], "text": "Class: PaymentServiceImpl Handles payments"}

    def test_node_embedding_unsupported_type(self, client):
        client.execute_cypher = Mock()

        assert client.get_node_embedding("p:billing", "package") is None
        client.execute_cypher.assert_not_called()

    def test_node_embedding_missing_node(self, client):
        client.execute_cypher = Mock(return_value=[])

        assert client.get_node_embedding("m:missing", "method") is None


@pytest.fixture(scope="module")
def neo4j_client():
    """Neo4j client fixture (requires running Neo4j instance)."""
    try:
        client = Neo4jClient(Neo4jConfig.from_env())
    except Exception as e:
        pytest.skip(f"Neo4j not available: {e}")
    yield client
    client.close()


@pytest.fixture
def refund_graph(neo4j_client):
    """Small graph tagged with a marker label, removed after the test."""
    neo4j_client.execute_cypher("""
        CREATE (c:Class:RetrievalTest {id: 'it:PaymentServiceImpl', name: 'PaymentServiceImpl'})
        CREATE (m:Method:RetrievalTest {id: 'it:processRefund', name: 'processRefund', embedding: [1.0, 0.0]})
        CREATE (d:Description:RetrievalTest {id: 'it:refundDescription', content: 'Processes a refund'})
        CREATE (c)-[:CONTAINS]->(m)
        CREATE (m)-[:HAS_DESCRIPTION]->(d)
    """)
    yield neo4j_client
    neo4j_client.execute_cypher("MATCH (n:RetrievalTest) DETACH DELETE n")


class TestNeo4jIntegration:
    """Integration tests against a live database."""

    def test_expand_subgraph(self, refund_graph):
        nodes, relationships = refund_graph.expand_subgraph(["it:processRefund"], 1, 50)

        ids = {n.id for n in nodes}
        assert {"it:processRefund", "it:PaymentServiceImpl"} <= ids
        assert "it:refundDescription" not in ids
        assert any(r.type == "CONTAINS" for r in relationships)

    def test_node_lookups(self, refund_graph):
        assert refund_graph.get_linked_description("it:processRefund") == "Processes a refund"

        data = refund_graph.get_node_embedding("it:processRefund", "method")

        assert data["embedding"] == [1.0, 0.0]
        assert data["text"] == "Processes a refund"
