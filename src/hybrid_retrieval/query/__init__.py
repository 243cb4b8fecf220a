"""
Query understanding.

This module handles:
- Intent analysis (pattern table with text-model fallback)
- Term expansion (naming patterns, compounds, synonyms, graph, embeddings)
- Multi-level orchestration and quality filtering of expansion terms
- Search strategy selection and entity extraction
"""

from .intent import IntentType, ContextType, QueryIntent, QueryIntentAnalyzer
from .naming_patterns import NamingPatternExpander
from .compounds import CompoundTermGenerator
from .semantic import SemanticExpander
from .embedding_expander import EmbeddingBasedExpander
from .relationship_expander import GraphRelationshipExpander
from .multi_level import MultiLevelExpander, QueryExpansion, WeightedTerm, merge_weighted_terms
from .quality_filter import ExpansionQualityFilter, QualityFilterResult
from .strategy import IntentBasedSearchStrategy, SearchStrategy, SearchDepth
from .entities import EntityExtractor, EntityExtraction, ExtractedEntities

__all__ = [
    # Intent
    'IntentType', 'ContextType', 'QueryIntent', 'QueryIntentAnalyzer',

    # Expanders
    'NamingPatternExpander', 'CompoundTermGenerator', 'SemanticExpander',
    'EmbeddingBasedExpander', 'GraphRelationshipExpander',

    # Orchestration
    'MultiLevelExpander', 'QueryExpansion', 'WeightedTerm', 'merge_weighted_terms',
    'ExpansionQualityFilter', 'QualityFilterResult',
    'IntentBasedSearchStrategy', 'SearchStrategy', 'SearchDepth',

    # Entities
    'EntityExtractor', 'EntityExtraction', 'ExtractedEntities',
]
