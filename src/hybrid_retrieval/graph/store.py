"""
Graph/index store contract consumed by the retrieval stages.

Neo4jClient is the production implementation; tests substitute mocks.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .models import GraphNode, GraphRelationship


@runtime_checkable
class GraphStore(Protocol):
    """Operations the retrieval engine needs from the knowledge graph."""

    def fulltext_search(
        self,
        index_name: str,
        search_terms: str,
        limit: int,
        result_type: Optional[str] = None,
        via_description: bool = False,
    ) -> List[Dict[str, Any]]:
        """Rows of {nodeId, name, signature, className, score, type}, best first."""
        ...

    def vector_search(
        self,
        index_name: str,
        query_vector: Sequence[float],
        k: int,
        result_type: Optional[str] = None,
        via_description: bool = False,
    ) -> List[Dict[str, Any]]:
        """Same row shape as fulltext_search, score is the index similarity."""
        ...

    def expand_subgraph(
        self,
        seed_ids: Sequence[str],
        depth: int,
        max_nodes_per_hop: int,
        relationship_types: Optional[Sequence[str]] = None,
    ) -> Tuple[List[GraphNode], List[GraphRelationship]]:
        ...

    def get_node_embedding(self, node_id: str, node_type: str) -> Optional[Dict[str, Any]]:
        """{embedding, text} for a node, None when the node has no embedding data."""
        ...

    def get_linked_description(self, node_id: str) -> Optional[str]:
        ...

    def get_file_doc_content(self, node_id: str) -> Optional[str]:
        ...

    def execute_cypher(self, query: str, **params) -> List[Dict[str, Any]]:
        ...
