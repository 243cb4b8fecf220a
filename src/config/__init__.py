"""
Unified configuration module for hybrid retrieval.

All configuration classes in one place:
- Neo4jConfig: Graph/index store connection
- LLMConfig, EmbeddingConfig: Model clients
- IntentConfig, ExpansionConfig, QualityFilterConfig: Query understanding
- SearchConfig, CombinerConfig: Parallel search and fusion
- GraphExpansionConfig, ScoringConfig, ReRankingConfig: Ranking
- PipelineConfig, RetrievalConfig: Pipeline settings and the aggregate bundle

Usage:
    from src.config import RetrievalConfig, ReRankingConfig

    config = RetrievalConfig(reranking=ReRankingConfig(base_threshold=0.5))
"""

from pathlib import Path

from .base import BaseConfig
from .database import Neo4jConfig
from .llm import LLMConfig, EmbeddingConfig
from .expansion import IntentConfig, ExpansionConfig, QualityFilterConfig
from .search import SearchConfig, CombinerConfig
from .ranking import GraphExpansionConfig, ScoringConfig, ReRankingConfig
from .pipeline import PipelineConfig, RetrievalConfig

# =============================================================================
# Path constants
# =============================================================================
PROJECT_ROOT = Path(__file__).parent.parent.parent
OUTPUTS_DIR = PROJECT_ROOT / "outputs"

# OUTPUTS_DIR is created lazily in setup_logging()

__all__ = [
    # Base
    'BaseConfig',
    # Connections and models
    'Neo4jConfig',
    'LLMConfig',
    'EmbeddingConfig',
    # Query understanding
    'IntentConfig',
    'ExpansionConfig',
    'QualityFilterConfig',
    # Search
    'SearchConfig',
    'CombinerConfig',
    # Ranking
    'GraphExpansionConfig',
    'ScoringConfig',
    'ReRankingConfig',
    # Pipeline
    'PipelineConfig',
    'RetrievalConfig',
    # Path constants
    'PROJECT_ROOT',
    'OUTPUTS_DIR',
]
