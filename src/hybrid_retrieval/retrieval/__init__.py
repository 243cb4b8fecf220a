"""
Search, fusion and ranking.

This module handles:
- Parallel full-text and vector search over the store indexes
- Fusion of both result lists into one ranked list
- Graph expansion, node scoring and semantic re-ranking
- The HybridRetriever pipeline tying the stages together
"""

from .parallel_search import ParallelSearchService, SearchResult, SearchResults
from .combiner import SearchResultCombiner, RankedResult, normalize_fulltext_score
from .graph_expander import GraphExpander
from .node_scorer import NodeScorer, ScoredNode
from .reranker import ReRankingService, RankedNode, ReRankResult
from .hybrid_retriever import HybridRetriever, RetrievalResult, build_final_score_map

__all__ = [
    # Search
    'ParallelSearchService', 'SearchResult', 'SearchResults',
    'SearchResultCombiner', 'RankedResult', 'normalize_fulltext_score',

    # Ranking
    'GraphExpander', 'NodeScorer', 'ScoredNode',
    'ReRankingService', 'RankedNode', 'ReRankResult',

    # Pipeline
    'HybridRetriever', 'RetrievalResult', 'build_final_score_map',
]
