"""
Subgraph node scoring.

score = ft × w_ft + vec × w_vec + type boost + property boost − distance penalty,
floored at 0. Distance is the BFS hop count from the nearest seed inside
the subgraph; unreachable nodes take the maximum penalty.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ...config import ScoringConfig
from ...logger import get_logger
from ..graph.models import GraphNode, SubGraph

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScoredNode:
    node: GraphNode
    score: float

    @property
    def node_id(self) -> str:
        return self.node.id

    @property
    def node_type(self) -> str:
        return self.node.type

    @property
    def node_name(self) -> str:
        return self.node.name


def _non_empty_list(value) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


class NodeScorer:
    """
    Multi-factor scoring of subgraph nodes.

    Example:
        >>> scorer = NodeScorer()
        >>> scores = scorer.calculate_node_scores(subgraph, ft_scores, vec_scores, seed_ids)
        >>> ranked = scorer.rank_nodes_by_score(subgraph, scores)
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def calculate_node_scores(
        self,
        subgraph: SubGraph,
        full_text_scores: Dict[str, float],
        vector_scores: Dict[str, float],
        start_node_ids: Sequence[str],
    ) -> Dict[str, float]:
        """Scores of the nodes at or above `min_score`, keyed by node id."""
        distances = self.distances_from_start(subgraph, start_node_ids)

        scores: Dict[str, float] = {}
        for node in subgraph.nodes_list:
            score = self.calculate_score(
                node,
                full_text_scores.get(node.id, 0.0),
                vector_scores.get(node.id, 0.0),
                distances.get(node.id),
            )
            if score >= self.config.min_score:
                scores[node.id] = score

        logger.info(f"Scored {len(scores)}/{subgraph.node_count} nodes above {self.config.min_score}")
        return scores

    def calculate_score(self, node: GraphNode, full_text_score: float, vector_score: float,
                        distance: Optional[int]) -> float:
        cfg = self.config
        if distance is None:
            penalty = cfg.max_distance_penalty
        else:
            penalty = min(distance * cfg.distance_penalty, cfg.max_distance_penalty)

        score = (
            full_text_score * cfg.full_text_weight
            + vector_score * cfg.vector_weight
            + self.type_boost(node)
            + self.property_boost(node)
            - penalty
        )
        return max(0.0, score)

    def type_boost(self, node: GraphNode) -> float:
        return self.config.type_boost * self.config.type_multipliers.get(node.type.lower(), 0.0)

    @staticmethod
    def property_boost(node: GraphNode) -> float:
        boost = 0.0
        if node.get("isPublic") is True:
            boost += 0.1
        if _non_empty_list(node.get("annotations")):
            boost += 0.15
        if _non_empty_list(node.get("businessTags")):
            boost += 0.2
        complexity = node.get("complexity")
        if isinstance(complexity, str) and complexity.lower() == "high":
            boost -= 0.1
        return boost

    @staticmethod
    def distances_from_start(subgraph: SubGraph, start_node_ids: Sequence[str]) -> Dict[str, int]:
        return subgraph.distances_from(start_node_ids)

    @staticmethod
    def rank_nodes_by_score(subgraph: SubGraph, node_scores: Dict[str, float]) -> List[ScoredNode]:
        scored = [
            ScoredNode(node=node, score=node_scores[node.id])
            for node in subgraph.nodes_list
            if node.id in node_scores
        ]
        return sorted(scored, key=lambda s: s.score, reverse=True)

    @staticmethod
    def filter_by_score(subgraph: SubGraph, node_scores: Dict[str, float], threshold: float) -> SubGraph:
        accepted = [nid for nid in subgraph.nodes if node_scores.get(nid, -1.0) >= threshold]
        return subgraph.filtered(
            accepted,
            scoreThreshold=threshold,
            originalNodeCount=subgraph.node_count,
            filteredNodeCount=len(accepted),
        )

    @staticmethod
    def top_node_ids(node_scores: Dict[str, float], n: int) -> List[str]:
        ranked = sorted(node_scores.items(), key=lambda kv: kv[1], reverse=True)
        return [node_id for node_id, _ in ranked[:max(0, n)]]
