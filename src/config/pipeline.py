"""
Pipeline configuration and the aggregate config handed to HybridRetriever.
"""

from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional
import yaml

from .base import BaseConfig
from .database import Neo4jConfig
from .llm import LLMConfig, EmbeddingConfig
from .expansion import IntentConfig, ExpansionConfig, QualityFilterConfig
from .search import SearchConfig, CombinerConfig
from .ranking import GraphExpansionConfig, ScoringConfig, ReRankingConfig


@dataclass
class PipelineConfig(BaseConfig):
    """
    Pipeline-level settings.

    Attributes:
        timeout_seconds: Per-query deadline covering all stages
        enable_graph_expansion: Expand seeds into a subgraph
        enable_reranking: Run semantic re-ranking after scoring
        combined_score_weight: Share of the combined search score in the final score map
        node_score_weight: Share of the node score in the final score map
        expansion_only_weight: Node score multiplier for nodes reached only through expansion
        use_llm_entities: Ask the text model for entities in addition to expansion
    """
    timeout_seconds: float = 30.0
    enable_graph_expansion: bool = True
    enable_reranking: bool = True
    combined_score_weight: float = 0.6
    node_score_weight: float = 0.4
    expansion_only_weight: float = 0.3
    use_llm_entities: bool = False


# section name in YAML -> (attribute, config class)
_SECTIONS = {
    "neo4j": Neo4jConfig,
    "llm": LLMConfig,
    "embedding": EmbeddingConfig,
    "intent": IntentConfig,
    "expansion": ExpansionConfig,
    "quality_filter": QualityFilterConfig,
    "search": SearchConfig,
    "combiner": CombinerConfig,
    "graph_expansion": GraphExpansionConfig,
    "scoring": ScoringConfig,
    "reranking": ReRankingConfig,
    "pipeline": PipelineConfig,
}


@dataclass
class RetrievalConfig(BaseConfig):
    """
    All component configs in one immutable bundle.

    Built once at startup and passed to HybridRetriever, which hands each
    component its own section.

    Usage:
        config = RetrievalConfig.from_yaml("retrieval.yaml")
        config = RetrievalConfig(reranking=ReRankingConfig(base_threshold=0.5))
    """
    neo4j: Neo4jConfig = field(default_factory=Neo4jConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    intent: IntentConfig = field(default_factory=IntentConfig)
    expansion: ExpansionConfig = field(default_factory=ExpansionConfig)
    quality_filter: QualityFilterConfig = field(default_factory=QualityFilterConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    combiner: CombinerConfig = field(default_factory=CombinerConfig)
    graph_expansion: GraphExpansionConfig = field(default_factory=GraphExpansionConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    reranking: ReRankingConfig = field(default_factory=ReRankingConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RetrievalConfig':
        """Create from a dict of sections; missing sections use defaults."""
        data = data or {}
        kwargs = {}
        for f in fields(cls):
            section = data.get(f.name)
            if isinstance(section, BaseConfig):
                kwargs[f.name] = section
            elif isinstance(section, dict):
                kwargs[f.name] = _SECTIONS[f.name].from_dict(section)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str, section: Optional[str] = None) -> 'RetrievalConfig':
        """Load every section from one YAML file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if section:
            data = data.get(section) or {}

        return cls.from_dict(data)

    @classmethod
    def from_env(cls, prefix: str = "") -> 'RetrievalConfig':
        """Connection settings from the environment, tuning defaults elsewhere."""
        return cls(
            neo4j=Neo4jConfig.from_env(),
            llm=LLMConfig.from_env(),
            pipeline=PipelineConfig.from_env(prefix="RETRIEVAL_"),
            reranking=ReRankingConfig.from_env(prefix="RERANK_"),
        )
