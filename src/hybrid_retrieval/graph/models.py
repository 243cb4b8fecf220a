"""
Graph node and relationship models.

Mirrors the structure of the code knowledge graph as seen by retrieval:
nodes carry their Neo4j labels and raw properties, a SubGraph is the
bounded neighbourhood built around the search seeds.
"""

from collections import deque
from typing import Optional, List, Dict, Any, Iterable
from dataclasses import dataclass, field
from enum import Enum


class NodeType(str, Enum):
    """Node labels produced by the ingestion side."""
    METHOD = "Method"
    CLASS = "Class"
    INTERFACE = "Interface"
    ENUM = "Enum"
    DESCRIPTION = "Description"
    FILE_DOC = "FileDoc"
    PACKAGE = "Package"
    FIELD = "Field"


class RelationshipType(str, Enum):
    """Relationship types in the knowledge graph."""
    # Containment
    CONTAINS = "CONTAINS"  # Class CONTAINS Method

    # Code dependencies
    CALLS = "CALLS"            # Method CALLS Method
    EXTENDS = "EXTENDS"        # Class EXTENDS Class
    IMPLEMENTS = "IMPLEMENTS"  # Class IMPLEMENTS Interface

    # Documentation
    HAS_DESCRIPTION = "HAS_DESCRIPTION"  # Method/Class HAS_DESCRIPTION Description


# Node types a traversal may land on
ENTITY_NODE_TYPES = (NodeType.METHOD.value, NodeType.CLASS.value, NodeType.INTERFACE.value)


@dataclass(frozen=True)
class GraphNode:
    """
    A node of the knowledge graph.

    `type` is the first label, `id` the node's `id` property (falling back
    to the driver's element id when the property is missing).
    """

    id: str
    labels: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return self.labels[0] if self.labels else "Unknown"

    @property
    def name(self) -> str:
        return self.properties.get("name") or self.properties.get("fileName") or "Unknown"

    def get(self, key: str, default: Any = None) -> Any:
        """Property lookup."""
        return self.properties.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'labels': list(self.labels),
            **self.properties
        }


@dataclass(frozen=True)
class GraphRelationship:
    """
    Relationship between two nodes in the knowledge graph.
    """

    id: str
    type: str
    start_node_id: str
    end_node_id: str
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'start_node_id': self.start_node_id,
            'end_node_id': self.end_node_id,
            **self.properties
        }


@dataclass(frozen=True)
class SubGraph:
    """
    Bounded neighbourhood around the seed nodes.

    Never mutated after construction: scoring and re-ranking derive
    filtered copies through `filtered()`.
    """

    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    relationships: List[GraphRelationship] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, **metadata) -> 'SubGraph':
        """Empty subgraph carrying an explanatory metadata entry."""
        return cls(metadata=dict(metadata))

    @classmethod
    def build(
        cls,
        nodes: Iterable[GraphNode],
        relationships: Iterable[GraphRelationship],
        metadata: Optional[Dict[str, Any]] = None
    ) -> 'SubGraph':
        """Build from node/relationship lists, deduplicating by id."""
        node_map: Dict[str, GraphNode] = {}
        for node in nodes:
            node_map.setdefault(node.id, node)

        seen = set()
        unique_rels = []
        for rel in relationships:
            if rel.id in seen:
                continue
            seen.add(rel.id)
            unique_rels.append(rel)

        return cls(nodes=node_map, relationships=unique_rels, metadata=dict(metadata or {}))

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def nodes_list(self) -> List[GraphNode]:
        return list(self.nodes.values())

    def filtered(self, node_ids: Iterable[str], **extra_metadata) -> 'SubGraph':
        """
        Copy restricted to `node_ids`, in the given order.

        Relationships survive only when both endpoints are kept.
        """
        kept = {nid: self.nodes[nid] for nid in node_ids if nid in self.nodes}
        rels = [
            r for r in self.relationships
            if r.start_node_id in kept and r.end_node_id in kept
        ]
        metadata = dict(self.metadata)
        metadata.update(extra_metadata)
        return SubGraph(nodes=kept, relationships=rels, metadata=metadata)

    def adjacency(self) -> Dict[str, List[str]]:
        """Undirected adjacency lists over nodes present in the subgraph."""
        adj: Dict[str, List[str]] = {nid: [] for nid in self.nodes}
        for rel in self.relationships:
            if rel.start_node_id in adj and rel.end_node_id in adj:
                adj[rel.start_node_id].append(rel.end_node_id)
                adj[rel.end_node_id].append(rel.start_node_id)
        return adj

    def distances_from(self, start_node_ids: Iterable[str]) -> Dict[str, int]:
        """BFS hop counts from the seeds present in the subgraph."""
        adjacency = self.adjacency()
        distances: Dict[str, int] = {}
        queue = deque()
        for seed in start_node_ids:
            if seed in self.nodes and seed not in distances:
                distances[seed] = 0
                queue.append(seed)

        while queue:
            current = queue.popleft()
            for neighbour in adjacency.get(current, []):
                if neighbour not in distances:
                    distances[neighbour] = distances[current] + 1
                    queue.append(neighbour)
        return distances
