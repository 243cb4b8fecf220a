"""
Query understanding configuration: intent analysis, term expansion, quality filtering.
"""

from dataclasses import dataclass, field
from typing import List

from .base import BaseConfig


@dataclass
class IntentConfig(BaseConfig):
    """
    Configuration for query intent analysis.

    Attributes:
        confidence_threshold: Below this the text-model fallback is consulted
        enable_llm_fallback: Allow the text-model fallback at all
        enable_multi_intent: Report secondary intents
        llm_weight: Share of the model score when blending with pattern scores
    """
    confidence_threshold: float = 0.7
    enable_llm_fallback: bool = True
    enable_multi_intent: bool = True
    llm_weight: float = 0.6


@dataclass
class ExpansionConfig(BaseConfig):
    """
    Configuration for the term expanders and the multi-level orchestration.

    Attributes:
        level1_weight: Weight of pattern/compound expansions
        level2_weight: Weight of semantic expansions
        level3_weight: Weight of graph/embedding expansions
        max_total_expansions: Cap on the merged term list
        enable_parallel_embedding: Run embedding expansion next to graph expansion
        max_pattern_expansions: Cap per term for naming-pattern expansion
        max_compound_terms: Cap for compound generation
        max_semantic_expansions: Cap per term for synonym expansion
        embedding_similarity_threshold: Minimum neighbour score for embedding expansion
        max_embedding_expansions: Cap per term for embedding expansion
        embedding_search_limit: k per vector index query
        max_graph_depth: Hops for graph-relationship expansion
        max_graph_expansions: Cap per term for graph-relationship expansion
        graph_relationship_types: Relationship types followed by graph expansion
        expander_pool_size: Worker threads inside the embedding/graph expanders
    """
    level1_weight: float = 1.0
    level2_weight: float = 0.8
    level3_weight: float = 0.6
    max_total_expansions: int = 50
    enable_parallel_embedding: bool = True

    max_pattern_expansions: int = 15
    max_compound_terms: int = 20
    max_semantic_expansions: int = 10

    embedding_similarity_threshold: float = 0.65
    max_embedding_expansions: int = 15
    embedding_search_limit: int = 30

    max_graph_depth: int = 2
    max_graph_expansions: int = 20
    graph_relationship_types: List[str] = field(
        default_factory=lambda: ["CALLS", "CONTAINS", "EXTENDS", "IMPLEMENTS"]
    )

    expander_pool_size: int = 3


@dataclass
class QualityFilterConfig(BaseConfig):
    """
    Configuration for the expansion quality filter.

    Attributes:
        relevance_threshold: Minimum relevance for filter_by_relevance
        max_total_expansions: Cap on the tiered output
        enable_ranking: Sort filter_by_relevance output by relevance
        min_string_similarity: Similarity floor used when tiering
        max_edit_distance: Edit distance above which Jaccard similarity is used
    """
    relevance_threshold: float = 0.5
    max_total_expansions: int = 50
    enable_ranking: bool = True
    min_string_similarity: float = 0.3
    max_edit_distance: int = 5
