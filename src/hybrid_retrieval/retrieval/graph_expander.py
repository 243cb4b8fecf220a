"""
Bounded n-hop expansion of search seeds into a SubGraph.
"""

from typing import Iterable, List, Optional, Sequence

from ...config import GraphExpansionConfig
from ...logger import get_logger
from ..graph.models import SubGraph

logger = get_logger(__name__)


class GraphExpander:
    """
    Builds the connected neighbourhood of the seed nodes.

    Store failures return an empty SubGraph whose metadata carries the
    error; an empty seed list returns an empty SubGraph with
    reason "empty_start_nodes".
    """

    def __init__(self, store, config: Optional[GraphExpansionConfig] = None):
        self.store = store
        self.config = config or GraphExpansionConfig()

    def expand_subgraph(self, start_node_ids: Sequence[str], depth: Optional[int] = None) -> SubGraph:
        """
        Args:
            start_node_ids: Seed node ids, usually the combined search results
            depth: Overrides the configured depth (the search strategy's depth)
        """
        relationship_types = None if self.config.include_all_relationships else self.config.relationship_types
        return self._expand(start_node_ids, depth or self.config.depth, relationship_types)

    def expand_with_relationship_types(self, start_node_ids: Sequence[str],
                                       relationship_types: List[str],
                                       depth: Optional[int] = None) -> SubGraph:
        """Expansion following only `relationship_types`."""
        return self._expand(start_node_ids, depth or self.config.depth, list(relationship_types))

    def _expand(self, start_node_ids: Sequence[str], depth: int,
                relationship_types: Optional[List[str]]) -> SubGraph:
        seeds = list(dict.fromkeys(start_node_ids or []))
        if not seeds:
            logger.debug("No start nodes, skipping graph expansion")
            return SubGraph.empty(reason="empty_start_nodes")

        try:
            nodes, relationships = self.store.expand_subgraph(
                seeds, depth, self.config.max_nodes_per_hop, relationship_types
            )
        except Exception as e:
            logger.error(f"Graph expansion failed: {e}")
            return SubGraph.empty(error=str(e))

        subgraph = SubGraph.build(nodes, relationships, {
            "startNodeCount": len(seeds),
            "requestedDepth": depth,
        })
        distances = subgraph.distances_from(seeds)
        subgraph.metadata["expansionDepth"] = max(distances.values(), default=0)
        subgraph.metadata["totalNodes"] = subgraph.node_count
        subgraph.metadata["totalRelationships"] = subgraph.relationship_count

        logger.info(
            f"Expanded {len(seeds)} seeds to {subgraph.node_count} nodes and "
            f"{subgraph.relationship_count} relationships "
            f"(depth {subgraph.metadata['expansionDepth']} of {depth})"
        )
        return subgraph

    @staticmethod
    def filter_by_node_types(subgraph: SubGraph, node_types: Iterable[str]) -> SubGraph:
        """Copy keeping only nodes whose type is in `node_types` (case-insensitive)."""
        wanted = {t.lower() for t in node_types}
        kept = [nid for nid, node in subgraph.nodes.items() if node.type.lower() in wanted]
        return subgraph.filtered(kept, filteredNodeTypes=sorted(wanted))
