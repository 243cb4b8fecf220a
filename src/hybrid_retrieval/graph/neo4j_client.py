"""
Neo4j client for retrieval over the code knowledge graph.

Handles the connection and the read-only queries used by search,
expansion and re-ranking: full-text and vector index lookups, bounded
n-hop traversal, and per-node embedding/description fetches.
"""

from typing import List, Dict, Any, Optional, Sequence, Tuple
from neo4j import GraphDatabase, Driver
from neo4j.exceptions import ServiceUnavailable, AuthError

from .models import GraphNode, GraphRelationship, ENTITY_NODE_TYPES
from src.config import Neo4jConfig
from src.logger import get_logger


logger = get_logger(__name__)


# Projection of an index hit onto the search-result row shape.
# {src} is the node that represents the code entity.
_RESULT_PROJECTION = """
RETURN {src}.id AS nodeId,
       COALESCE({src}.name, {src}.fileName) AS name,
       COALESCE({src}.signature, {src}.fullName, {src}.fileName) AS signature,
       COALESCE({src}.className, {src}.packageName) AS className,
       score,
       COALESCE($resultType, toLower(labels({src})[0])) AS type
ORDER BY score DESC
LIMIT $limit
"""

_DESCRIPTION_JOIN = "MATCH (code)-[:HAS_DESCRIPTION]->(node)"

_SEED_QUERY = """
MATCH (n)
WHERE n.id IN $nodeIds
RETURN n
"""

_EXPANSION_QUERY = """
MATCH (start)
WHERE start.id IN $nodeIds
CALL {{
    WITH start
    MATCH path = (start)-[*1..{depth}]-(connected)
    WHERE ({label_filter}){rel_filter}
    RETURN connected, relationships(path) AS rels, length(path) AS distance
    ORDER BY distance
    LIMIT $maxNodes
}}
RETURN connected, rels, distance
"""

_EMBEDDING_QUERIES = {
    "method": """
        MATCH (m:Method)
        WHERE m.id = $nodeId
        OPTIONAL MATCH (m)-[:HAS_DESCRIPTION]->(d:Description)
        RETURN m.embedding AS embedding,
               m.embeddingText AS text,
               m.name AS name,
               collect(d.content) AS descriptions
        LIMIT 1
    """,
    "class": """
        MATCH (c:Class|Interface|Enum)
        WHERE c.id = $nodeId
        OPTIONAL MATCH (c)-[:HAS_DESCRIPTION]->(d:Description)
        RETURN c.embedding AS embedding,
               c.embeddingText AS text,
               c.name AS name,
               collect(d.content) AS descriptions
        LIMIT 1
    """,
    "description": """
        MATCH (d:Description)
        WHERE d.id = $nodeId
        RETURN d.embedding AS embedding, d.content AS text, null AS name, [] AS descriptions
        LIMIT 1
    """,
    "filedoc": """
        MATCH (f:FileDoc)
        WHERE f.id = $nodeId
        RETURN f.embedding AS embedding, f.content AS text, f.fileName AS name, [] AS descriptions
        LIMIT 1
    """,
}
_EMBEDDING_QUERIES["interface"] = _EMBEDDING_QUERIES["class"]
_EMBEDDING_QUERIES["enum"] = _EMBEDDING_QUERIES["class"]


class Neo4jClient:
    """
    Client for the Neo4j knowledge graph.

    One driver (with its connection pool) is shared by every retrieval
    stage; each call acquires and releases its own session.
    """

    def __init__(self, config: Optional[Neo4jConfig] = None):
        """
        Initialize Neo4j client.

        Args:
            config: Connection settings (defaults to Neo4jConfig.from_env())
        """
        self.config = config or Neo4jConfig.from_env()
        self.uri = self.config.uri
        self.database = self.config.database
        self._driver: Optional[Driver] = None

        try:
            self._driver = GraphDatabase.driver(
                self.uri,
                auth=(self.config.user, self.config.password),
                max_connection_pool_size=self.config.max_connection_pool_size,
                connection_timeout=self.config.connection_timeout,
            )
            self._driver.verify_connectivity()
            logger.info(f"Connected to Neo4j at {self.uri}")
        except (ServiceUnavailable, AuthError) as e:
            logger.error(f"Failed to connect to Neo4j: {e}")
            raise ConnectionError(f"Cannot connect to Neo4j at {self.uri}: {e}")

    def close(self):
        """Close Neo4j connection."""
        if self._driver:
            self._driver.close()
            logger.info("Neo4j connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def execute_cypher(self, query: str, **params) -> List[Dict[str, Any]]:
        """
        Execute a raw Cypher query.

        Args:
            query: Cypher query string
            **params: Query parameters

        Returns:
            List of result records
        """
        with self._driver.session(database=self.database) as session:
            result = session.run(query, **params)
            return [dict(record) for record in result]

    # ============== INDEX SEARCH ==============

    def fulltext_search(
        self,
        index_name: str,
        search_terms: str,
        limit: int,
        result_type: Optional[str] = None,
        via_description: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Query a full-text index.

        Args:
            index_name: Full-text index name
            search_terms: Lucene query string (terms joined with OR)
            limit: Maximum rows
            result_type: Fixed type tag for every row (default: first label, lowercased)
            via_description: The index covers Description nodes, report their owners

        Returns:
            Rows of nodeId/name/signature/className/score/type
        """
        query = (
            "CALL db.index.fulltext.queryNodes($indexName, $searchTerms)\n"
            "YIELD node, score\n"
        )
        query += self._projection(via_description)

        return self.execute_cypher(
            query,
            indexName=index_name,
            searchTerms=search_terms,
            limit=limit,
            resultType=result_type,
        )

    def vector_search(
        self,
        index_name: str,
        query_vector: Sequence[float],
        k: int,
        result_type: Optional[str] = None,
        via_description: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Query a vector index for the k nearest neighbours.

        Args:
            index_name: Vector index name
            query_vector: Query embedding
            k: Number of neighbours
            result_type: Fixed type tag for every row
            via_description: The index covers Description nodes, report their owners
        """
        query = (
            "CALL db.index.vector.queryNodes($indexName, $k, $queryVector)\n"
            "YIELD node, score\n"
        )
        query += self._projection(via_description)

        return self.execute_cypher(
            query,
            indexName=index_name,
            k=k,
            queryVector=list(query_vector),
            limit=k,
            resultType=result_type,
        )

    @staticmethod
    def _projection(via_description: bool) -> str:
        if via_description:
            return _DESCRIPTION_JOIN + "\n" + _RESULT_PROJECTION.format(src="code")
        return _RESULT_PROJECTION.format(src="node")

    # ============== GRAPH TRAVERSAL ==============

    def expand_subgraph(
        self,
        seed_ids: Sequence[str],
        depth: int,
        max_nodes_per_hop: int,
        relationship_types: Optional[Sequence[str]] = None,
    ) -> Tuple[List[GraphNode], List[GraphRelationship]]:
        """
        Collect the neighbourhood of the seed nodes.

        Args:
            seed_ids: Values of the `id` property of the start nodes
            depth: Maximum path length
            max_nodes_per_hop: Paths kept per seed, shortest first
            relationship_types: Only follow these types (None follows all)

        Returns:
            (nodes, relationships); seeds are included as nodes
        """
        if not seed_ids:
            return [], []

        depth = max(1, int(depth))
        label_filter = " OR ".join(f"connected:{label}" for label in ENTITY_NODE_TYPES)
        rel_filter = ""
        if relationship_types:
            rel_filter = "\n      AND ALL(rel IN relationships(path) WHERE type(rel) IN $relTypes)"

        query = _EXPANSION_QUERY.format(depth=depth, label_filter=label_filter, rel_filter=rel_filter)
        params = {
            "nodeIds": list(seed_ids),
            "maxNodes": int(max_nodes_per_hop),
            "relTypes": list(relationship_types or []),
        }

        nodes: Dict[str, GraphNode] = {}
        relationships: Dict[str, GraphRelationship] = {}

        with self._driver.session(database=self.database) as session:
            for record in session.run(_SEED_QUERY, nodeIds=params["nodeIds"]):
                node = self._to_graph_node(record["n"])
                nodes.setdefault(node.id, node)

            for record in session.run(query, **params):
                node = self._to_graph_node(record["connected"])
                nodes.setdefault(node.id, node)
                for rel in record["rels"]:
                    graph_rel = self._to_graph_relationship(rel)
                    relationships.setdefault(graph_rel.id, graph_rel)

        logger.debug(
            f"Expanded {len(seed_ids)} seeds to {len(nodes)} nodes, "
            f"{len(relationships)} relationships (depth={depth})"
        )
        return list(nodes.values()), list(relationships.values())

    @staticmethod
    def _node_id(node) -> str:
        node_id = node.get("id")
        return str(node_id) if node_id is not None else node.element_id

    def _to_graph_node(self, node) -> GraphNode:
        return GraphNode(
            id=self._node_id(node),
            labels=list(node.labels),
            properties=dict(node),
        )

    def _to_graph_relationship(self, rel) -> GraphRelationship:
        # Endpoints are expressed with the same ids as GraphNode.id
        return GraphRelationship(
            id=rel.element_id,
            type=rel.type,
            start_node_id=self._node_id(rel.start_node),
            end_node_id=self._node_id(rel.end_node),
            properties=dict(rel),
        )

    # ============== NODE LOOKUPS ==============

    def get_node_embedding(self, node_id: str, node_type: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the precomputed embedding and its source text.

        Args:
            node_id: Node id
            node_type: Node type (method/class/interface/enum/description/filedoc)

        Returns:
            {"embedding": list or None, "text": str} or None for unsupported
            types and missing nodes
        """
        query = _EMBEDDING_QUERIES.get(node_type.lower())
        if query is None:
            return None

        rows = self.execute_cypher(query, nodeId=node_id)
        if not rows:
            return None

        row = rows[0]
        text = row.get("text") or ""
        descriptions = [d for d in (row.get("descriptions") or []) if d]
        kind = node_type.lower()

        if not text:
            if kind == "method":
                text = " ".join(descriptions)
            elif kind in ("class", "interface", "enum"):
                text = f"Class: {row.get('name') or ''} {' '.join(descriptions)}".strip()
            elif kind == "filedoc":
                text = f"File: {row.get('name') or ''}"

        embedding = row.get("embedding")
        return {
            "embedding": list(embedding) if embedding is not None else None,
            "text": text,
        }

    def get_linked_description(self, node_id: str) -> Optional[str]:
        """Content of the first Description attached through HAS_DESCRIPTION."""
        rows = self.execute_cypher(
            """
            MATCH (n)-[:HAS_DESCRIPTION]->(d:Description)
            WHERE n.id = $nodeId OR elementId(n) = $nodeId
            RETURN d.content AS description
            LIMIT 1
            """,
            nodeId=node_id,
        )
        return rows[0].get("description") if rows else None

    def get_file_doc_content(self, node_id: str) -> Optional[str]:
        """Content of a FileDoc node."""
        rows = self.execute_cypher(
            """
            MATCH (f:FileDoc)
            WHERE f.id = $nodeId OR elementId(f) = $nodeId
            RETURN f.content AS content
            LIMIT 1
            """,
            nodeId=node_id,
        )
        return rows[0].get("content") if rows else None
