"""
Knowledge graph access.

This module handles:
- Graph node models (GraphNode, GraphRelationship, SubGraph)
- The store contract used by the retrieval stages
- Neo4j integration (index search, traversal, embedding lookups)
"""

from .models import (
    GraphNode, GraphRelationship, SubGraph,
    NodeType, RelationshipType, ENTITY_NODE_TYPES,
)
from .store import GraphStore
from .neo4j_client import Neo4jClient

__all__ = [
    # Models
    'GraphNode', 'GraphRelationship', 'SubGraph',
    'NodeType', 'RelationshipType', 'ENTITY_NODE_TYPES',

    # Store
    'GraphStore',
    'Neo4jClient',
]
