"""
Hybrid retrieval pipeline.

query -> intent + expansion + entities -> parallel search -> fusion
-> graph expansion -> node scoring -> re-ranking -> score map

Every stage runs under one per-query deadline. When the deadline passes,
stages that have not started are skipped and whatever was produced so
far is returned with metadata["timedOut"] = True.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...config import RetrievalConfig
from ...logger import get_logger, log_timing
from ..context import QueryContext
from ..graph.models import GraphNode, NodeType, SubGraph
from ..query.entities import EntityExtractor, ExtractedEntities
from ..query.embedding_expander import EmbeddingBasedExpander
from ..query.intent import QueryIntent, QueryIntentAnalyzer
from ..query.multi_level import MultiLevelExpander, QueryExpansion
from ..query.quality_filter import ExpansionQualityFilter
from ..query.relationship_expander import GraphRelationshipExpander
from ..query.strategy import IntentBasedSearchStrategy
from .combiner import RankedResult, SearchResultCombiner
from .graph_expander import GraphExpander
from .node_scorer import NodeScorer, ScoredNode
from .parallel_search import ParallelSearchService, SearchResult
from .reranker import RankedNode, ReRankingService

logger = get_logger(__name__)

_TYPE_LABELS = {t.value.lower(): t.value for t in NodeType}


@dataclass
class RetrievalResult:
    """Everything retrieval produced for one query."""
    query: str
    intent: Optional[QueryIntent] = None
    expansion: Optional[QueryExpansion] = None
    entities: ExtractedEntities = field(default_factory=ExtractedEntities)
    search_results: List[SearchResult] = field(default_factory=list)
    combined_results: List[RankedResult] = field(default_factory=list)
    subgraph: SubGraph = field(default_factory=SubGraph)
    scored_nodes: List[ScoredNode] = field(default_factory=list)
    ranked_nodes: List[RankedNode] = field(default_factory=list)
    score_map: Dict[str, float] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def top_node_ids(self) -> List[str]:
        """Node ids ordered by final score."""
        return [nid for nid, _ in sorted(self.score_map.items(), key=lambda kv: kv[1], reverse=True)]

    @property
    def timed_out(self) -> bool:
        return bool(self.metadata.get("timedOut"))


def build_final_score_map(
    combined_results: List[RankedResult],
    node_scores: Dict[str, float],
    accepted_node_ids,
    combined_weight: float = 0.6,
    node_weight: float = 0.4,
    expansion_only_weight: float = 0.3,
) -> Dict[str, float]:
    """
    Final score per accepted node.

    Nodes found by search: combined × combined_weight + node × node_weight.
    Nodes reached only through graph expansion: node × expansion_only_weight.
    """
    accepted = list(accepted_node_ids)
    accepted_set = set(accepted)
    scores: Dict[str, float] = {}
    for result in combined_results:
        if result.node_id in accepted_set and result.node_id not in scores:
            scores[result.node_id] = (
                result.combined_score * combined_weight
                + node_scores.get(result.node_id, 0.0) * node_weight
            )
    for node_id in accepted:
        if node_id not in scores:
            scores[node_id] = node_scores.get(node_id, 0.0) * expansion_only_weight
    return scores


class HybridRetriever:
    """
    Facade over the retrieval stages.

    Components are built from one RetrievalConfig; the store, embedder and
    text-model client can be injected (tests pass mocks).

    Example:
        >>> retriever = HybridRetriever(RetrievalConfig.from_env())
        >>> result = retriever.retrieve("How does PaymentService process a refund?")
        >>> result.top_node_ids[:5]
    """

    def __init__(
        self,
        config: Optional[RetrievalConfig] = None,
        store=None,
        embedder=None,
        llm_client=None,
    ):
        """
        Args:
            config: All component settings
            store: GraphStore; a Neo4jClient is opened from config.neo4j otherwise
            embedder: Object with embed(text); a sentence-transformers Embedder otherwise
            llm_client: Text-model client; built from config.llm when it is configured
        """
        self.config = config or RetrievalConfig()
        self._owns_store = store is None

        if store is None:
            from ..graph.neo4j_client import Neo4jClient
            store = Neo4jClient(self.config.neo4j)
        if embedder is None:
            from ..llm.embedder import Embedder
            embedder = Embedder(self.config.embedding)
        if llm_client is None and self.config.llm.is_configured:
            from ..llm.client import LLMClient
            llm_client = LLMClient(self.config.llm)

        self.store = store
        self.embedder = embedder
        self.llm_client = llm_client

        cfg = self.config
        expander = MultiLevelExpander(
            cfg.expansion,
            graph_expander=GraphRelationshipExpander(store, cfg.expansion),
            embedding_expander=EmbeddingBasedExpander(store, embedder, cfg.expansion, cfg.search),
        )
        self.entity_extractor = EntityExtractor(
            intent_analyzer=QueryIntentAnalyzer(cfg.intent, llm_client),
            expander=expander,
            quality_filter=ExpansionQualityFilter(cfg.quality_filter),
            strategy_builder=IntentBasedSearchStrategy(),
            llm_client=llm_client,
            use_llm_entities=cfg.pipeline.use_llm_entities,
        )
        self.search_service = ParallelSearchService(store, embedder, cfg.search)
        self.combiner = SearchResultCombiner(cfg.combiner)
        self.graph_expander = GraphExpander(store, cfg.graph_expansion)
        self.node_scorer = NodeScorer(cfg.scoring)
        self.reranker = ReRankingService(store, embedder, cfg.reranking)

    def close(self):
        if self._owns_store and hasattr(self.store, "close"):
            self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def retrieve(self, query: str) -> RetrievalResult:
        """
        Run the full pipeline for one question.

        Raises:
            TypeError: If query is not a string
        """
        if not isinstance(query, str):
            raise TypeError(f"query must be a string, got {type(query).__name__}")
        if not query.strip():
            logger.warning("Empty query, nothing to retrieve")
            return RetrievalResult(query=query, metadata={"reason": "empty_query", "timedOut": False})

        pipeline = self.config.pipeline
        context = QueryContext(timeout_seconds=pipeline.timeout_seconds)
        result = RetrievalResult(query=query)
        started = time.time()
        logger.info(f"Hybrid retrieval for query: {query}")

        with log_timing(logger, "Entity extraction"):
            extraction = self.entity_extractor.extract_and_expand(query, context=context)
        result.intent = extraction.intent
        result.expansion = extraction.expansion
        result.entities = extraction.entities
        strategy = extraction.strategy
        min_score = strategy.min_score_threshold if strategy else None

        if not context.is_cancelled():
            with log_timing(logger, "Parallel search"):
                search = self.search_service.search(extraction.entities, query, context)
            result.search_results = search.all
            fulltext_count, vector_count = len(search.fulltext), len(search.vector)
            with log_timing(logger, "Result combination"):
                result.combined_results = self.combiner.combine(search.fulltext, search.vector, min_score)
        else:
            fulltext_count = vector_count = 0

        seed_ids = [r.node_id for r in result.combined_results]
        depth = strategy.graph_expansion_depth if strategy else self.config.graph_expansion.depth
        expand = pipeline.enable_graph_expansion and (strategy is None or strategy.expand_graph_relationships)

        if seed_ids and expand and not context.is_cancelled():
            with log_timing(logger, "Graph expansion"):
                result.subgraph = self.graph_expander.expand_subgraph(seed_ids, depth)
        else:
            if seed_ids and not expand:
                logger.info("Graph expansion disabled for this query, scoring search hits only")
            result.subgraph = self.seed_subgraph(result.combined_results)
        expanded_count = result.subgraph.node_count
        reached_depth = result.subgraph.metadata.get("expansionDepth", 0)
        requested_depth = result.subgraph.metadata.get("requestedDepth", 0)

        ft_scores = {r.node_id: r.full_text_score for r in result.combined_results}
        vec_scores = {r.node_id: r.vector_score for r in result.combined_results}
        with log_timing(logger, "Node scoring"):
            node_scores = self.node_scorer.calculate_node_scores(result.subgraph, ft_scores, vec_scores, seed_ids)
            result.scored_nodes = self.node_scorer.rank_nodes_by_score(result.subgraph, node_scores)

        threshold = None
        accepted_ids = list(result.subgraph.nodes)
        if pipeline.enable_reranking and not result.subgraph.is_empty and not context.is_cancelled():
            with log_timing(logger, "Re-ranking"):
                reranked = self.reranker.rerank_and_filter(result.subgraph, query, context)
            result.ranked_nodes = reranked.nodes
            threshold = reranked.threshold
            accepted_ids = [r.node_id for r in reranked.nodes]
            result.subgraph = result.subgraph.filtered(
                accepted_ids,
                reRanked=True,
                originalNodeCount=expanded_count,
                reRankedNodeCount=len(accepted_ids),
                reRankThreshold=threshold,
            )

        result.score_map = build_final_score_map(
            result.combined_results,
            node_scores,
            accepted_ids,
            pipeline.combined_score_weight,
            pipeline.node_score_weight,
            pipeline.expansion_only_weight,
        )

        timed_out = context.is_cancelled()
        result.metadata = {
            "intent": extraction.intent.primary_intent.value if extraction.intent else None,
            "usedFallbackExtraction": extraction.used_fallback,
            "entityCount": extraction.entities.total_count,
            "fullTextResultCount": fulltext_count,
            "vectorResultCount": vector_count,
            "combinedResultCount": len(result.combined_results),
            "expandedNodeCount": expanded_count,
            "scoredNodeCount": len(node_scores),
            "reRankedNodeCount": len(result.ranked_nodes),
            "finalNodeCount": len(result.score_map),
            "scoreThreshold": max(self.config.combiner.score_threshold, min_score or 0.0),
            "reRankThreshold": threshold,
            "requestedDepth": requested_depth,
            "expansionDepth": reached_depth,
            "elapsedSeconds": round(time.time() - started, 3),
            "timedOut": timed_out,
        }
        if timed_out:
            logger.warning(f"Query timed out after {context.elapsed():.2f}s, returning partial results")
        logger.info(
            f"Retrieval finished: {len(result.combined_results)} combined, "
            f"{expanded_count} expanded, {len(result.score_map)} final nodes"
        )
        return result

    @staticmethod
    def seed_subgraph(combined_results: List[RankedResult]) -> SubGraph:
        """Subgraph of the search hits alone, used when expansion is skipped."""
        nodes = []
        for r in combined_results:
            label = _TYPE_LABELS.get(r.type.lower(), r.type.capitalize())
            nodes.append(GraphNode(
                id=r.node_id,
                labels=[label],
                properties={"id": r.node_id, "name": r.name, "signature": r.signature, "className": r.class_name},
            ))
        return SubGraph.build(nodes, [], {"startNodeCount": len(nodes), "expansionDepth": 0})
