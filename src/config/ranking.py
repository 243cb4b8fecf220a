"""
Ranking configuration: graph expansion, node scoring, semantic re-ranking.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .base import BaseConfig


@dataclass
class GraphExpansionConfig(BaseConfig):
    """
    Configuration for n-hop subgraph expansion.

    Attributes:
        depth: Maximum hops from the seed nodes
        max_nodes_per_hop: Nodes collected per seed
        include_all_relationships: Follow every relationship type
        relationship_types: Allow-list used when include_all_relationships is False
    """
    depth: int = 2
    max_nodes_per_hop: int = 50
    include_all_relationships: bool = True
    relationship_types: List[str] = field(
        default_factory=lambda: ["CALLS", "CONTAINS", "EXTENDS", "IMPLEMENTS", "HAS_DESCRIPTION"]
    )


@dataclass
class ScoringConfig(BaseConfig):
    """
    Configuration for subgraph node scoring.

    Attributes:
        full_text_weight: Weight of the node's lexical search score
        vector_weight: Weight of the node's vector search score
        distance_penalty: Penalty per hop from the nearest seed
        max_distance_penalty: Upper bound of the distance penalty
        min_score: Nodes below this are dropped
        type_boost: Base boost, multiplied per node type
        type_multipliers: Per-type share of the base boost (lowercase type names)
    """
    full_text_weight: float = 0.4
    vector_weight: float = 0.6
    distance_penalty: float = 0.1
    max_distance_penalty: float = 0.5
    min_score: float = 0.1
    type_boost: float = 0.2
    type_multipliers: Dict[str, float] = field(
        default_factory=lambda: {
            "method": 1.0,
            "class": 0.8,
            "interface": 0.7,
            "enum": 0.6,
            "description": 0.9,
            "filedoc": 0.6,
        }
    )


@dataclass
class ReRankingConfig(BaseConfig):
    """
    Configuration for semantic re-ranking.

    Attributes:
        enabled: Run re-ranking at all
        base_threshold: Threshold before adaptive adjustment
        min_threshold: Lower clamp of the adaptive threshold
        max_threshold: Upper clamp of the adaptive threshold
        adaptive_threshold: Adjust the threshold per query and score distribution
        final_limit: Maximum nodes returned
        batch_size: Nodes per embedding lookup batch
        max_workers: Batches processed concurrently
        enable_fallback_scoring: Blend text overlap into weak cosine scores
        fallback_base_score: Fallback score when at least one query term matches
        text_match_bonus: Extra fallback score scaled by the match ratio
        weak_similarity: Cosine scores below this get the fallback blend
    """
    enabled: bool = True
    base_threshold: float = 0.35
    min_threshold: float = 0.15
    max_threshold: float = 0.75
    adaptive_threshold: bool = True
    final_limit: int = 50
    batch_size: int = 10
    max_workers: int = 4
    enable_fallback_scoring: bool = True
    fallback_base_score: float = 0.3
    text_match_bonus: float = 0.2
    weak_similarity: float = 0.4
