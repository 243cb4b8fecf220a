"""
Semantic re-ranking of subgraph nodes.

Each node is scored by the cosine similarity between the query embedding
and the node's precomputed embedding. Nodes without an embedding, and
nodes whose cosine is weak, fall back to a text-overlap score over the
node's description. The cut-off adapts to how technical the query is and
to how the scores are distributed.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ...config import ReRankingConfig
from ...logger import get_logger
from ..context import QueryContext
from ..graph.models import GraphNode, SubGraph
from ..llm.embedder import cosine_similarity

logger = get_logger(__name__)

# node types with a precomputed embedding in the store
EMBEDDED_TYPES = {"method", "class", "interface", "enum", "description", "filedoc"}

GENERIC_QUERY_WORDS = {"explain", "show", "find", "what", "how", "describe", "list", "tell", "give"}

_CAMEL_CASE = re.compile(r"[a-z][A-Z]|^[A-Z][a-z]+[A-Z]")
_CODE_SUFFIX = re.compile(r"(Service|Controller|Manager|Handler|Impl|Repository|Factory|Processor|Exception)$")
_QUERY_TOKEN = re.compile(r"[\w.]+")

NEUTRAL_SIMILARITY = 0.5


@dataclass(frozen=True)
class RankedNode:
    node: GraphNode
    similarity_score: float
    description: str = ""

    @property
    def node_id(self) -> str:
        return self.node.id


@dataclass(frozen=True)
class NodeEmbeddingData:
    embedding: Optional[List[float]]
    description: str


@dataclass
class ReRankResult:
    """Filtered nodes plus the threshold that produced them."""
    nodes: List[RankedNode] = field(default_factory=list)
    threshold: float = 0.0
    considered: int = 0


def query_terms(query: str) -> List[str]:
    """Lower-cased query words longer than two characters."""
    return [w for w in re.findall(r"\w+", (query or "").lower()) if len(w) > 2]


def is_technical_token(token: str) -> bool:
    token = token.strip(".")
    if not token:
        return False
    if "_" in token or "." in token:
        return True
    return bool(_CAMEL_CASE.search(token) or _CODE_SUFFIX.search(token))


def describe_from_properties(node: GraphNode) -> str:
    """"Type: name - signature in className (Tags: a, b)" from whatever properties exist."""
    text = f"{node.type}: {node.name}"
    signature = node.get("signature")
    if signature:
        text += f" - {signature}"
    class_name = node.get("className")
    if class_name:
        text += f" in {class_name}"
    tags = node.get("businessTags")
    if isinstance(tags, (list, tuple)) and tags:
        text += f" (Tags: {', '.join(str(t) for t in tags)})"
    return text


class ReRankingService:
    """
    Re-scores subgraph nodes against the query embedding.

    Example:
        >>> service = ReRankingService(store, embedder)
        >>> reranked = service.apply_reranking(subgraph, "How does PaymentService process a refund?")
        >>> reranked.metadata["reRankThreshold"]
    """

    def __init__(self, store, embedder, config: Optional[ReRankingConfig] = None):
        """
        Args:
            store: GraphStore used for embedding and description lookups
            embedder: Object with embed(text) -> list of floats
            config: Thresholds, batching and fallback settings
        """
        self.store = store
        self.embedder = embedder
        self.config = config or ReRankingConfig()

    # ---- scoring ----

    def rerank(self, subgraph: SubGraph, query: str,
               context: Optional[QueryContext] = None) -> List[RankedNode]:
        """All nodes with a similarity in [0, 1], best first."""
        nodes = subgraph.nodes_list
        if not self.config.enabled or subgraph.is_empty:
            logger.debug("Re-ranking disabled or empty subgraph, returning original order")
            return [RankedNode(n, NEUTRAL_SIMILARITY, "No re-ranking performed") for n in nodes]

        try:
            query_vector = self.embedder.embed(query)
            node_data = self._fetch_node_data(nodes, context)
            terms = query_terms(query)

            ranked = []
            for node in nodes:
                data = node_data.get(node.id) or NodeEmbeddingData(None, describe_from_properties(node))
                ranked.append(RankedNode(
                    node=node,
                    similarity_score=self.similarity(query_vector, data, terms),
                    description=data.description,
                ))
        except Exception as e:
            logger.error(f"Re-ranking failed, returning original order: {e}")
            return [RankedNode(n, 0.0, f"Re-ranking failed: {e}") for n in nodes]

        ranked.sort(key=lambda r: r.similarity_score, reverse=True)
        logger.debug(f"Top similarities: {[round(r.similarity_score, 3) for r in ranked[:5]]}")
        return ranked

    def similarity(self, query_vector: Sequence[float], data: NodeEmbeddingData,
                   terms: Sequence[str]) -> float:
        """Cosine similarity, with the text-overlap fallback for missing or weak embeddings."""
        if not data.embedding:
            score = self.fallback_text_score(data.description, terms)
        else:
            score = cosine_similarity(query_vector, data.embedding)
            if self.config.enable_fallback_scoring and score < self.config.weak_similarity:
                score = max(score, self.fallback_text_score(data.description, terms))
        return max(0.0, min(1.0, score))

    def fallback_text_score(self, text: str, terms: Sequence[str]) -> float:
        if not text or not terms:
            return 0.0
        lower = text.lower()
        matched = sum(1 for term in terms if term in lower)
        if matched == 0:
            return 0.0
        ratio = matched / len(terms)
        return self.config.fallback_base_score + ratio * self.config.text_match_bonus

    # ---- thresholding ----

    def compute_threshold(self, query: str, ranked: Sequence[RankedNode]) -> float:
        """Adaptive cut-off: base × query specificity × score distribution, clamped."""
        cfg = self.config
        if not cfg.adaptive_threshold:
            return cfg.base_threshold

        tokens = _QUERY_TOKEN.findall(query or "")
        technical = sum(1 for t in tokens if is_technical_token(t))
        generic = sum(1 for t in tokens if t.lower() in GENERIC_QUERY_WORDS)
        specificity = max(0.5, min(1.5, 1.0 + 0.1 * technical - 0.1 * generic))

        if ranked:
            nonzero = sum(1 for r in ranked if r.similarity_score > 0) / len(ranked)
            top = max(0.0, min(1.0, max(r.similarity_score for r in ranked)))
            distribution = max(0.3, min(1.2, 0.7 * nonzero + 0.3 * top))
        else:
            distribution = 1.0

        threshold = max(cfg.min_threshold, min(cfg.max_threshold, cfg.base_threshold * specificity * distribution))
        logger.info(
            f"Re-rank threshold {threshold:.3f} (specificity {specificity:.2f}, distribution {distribution:.2f})"
        )
        return threshold

    def rerank_and_filter(self, subgraph: SubGraph, query: str,
                          context: Optional[QueryContext] = None) -> ReRankResult:
        ranked = self.rerank(subgraph, query, context)
        if not self.config.enabled or subgraph.is_empty:
            threshold = self.config.base_threshold
        else:
            threshold = self.compute_threshold(query, ranked)

        kept = [r for r in ranked if r.similarity_score >= threshold][:self.config.final_limit]
        logger.info(f"Re-ranking kept {len(kept)}/{len(ranked)} nodes at threshold {threshold:.3f}")
        return ReRankResult(nodes=kept, threshold=threshold, considered=len(ranked))

    def apply_reranking(self, subgraph: SubGraph, query: str,
                        context: Optional[QueryContext] = None) -> SubGraph:
        """Filtered copy of `subgraph` holding only the re-ranked nodes."""
        result = self.rerank_and_filter(subgraph, query, context)
        return subgraph.filtered(
            [r.node_id for r in result.nodes],
            reRanked=True,
            originalNodeCount=subgraph.node_count,
            reRankedNodeCount=len(result.nodes),
            reRankThreshold=result.threshold,
        )

    # ---- node data ----

    def _fetch_node_data(self, nodes: List[GraphNode],
                         context: Optional[QueryContext] = None) -> Dict[str, NodeEmbeddingData]:
        size = max(1, self.config.batch_size)
        batches = [nodes[i:i + size] for i in range(0, len(nodes), size)]

        executor = ThreadPoolExecutor(max_workers=max(1, self.config.max_workers))
        try:
            futures = {
                f"batch-{i}": executor.submit(self._fetch_batch, batch, context)
                for i, batch in enumerate(batches)
            }
            context = context or QueryContext(timeout_seconds=None)
            joined = context.collect(futures, empty_factory=dict)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        data: Dict[str, NodeEmbeddingData] = {}
        for batch_data in joined.values():
            data.update(batch_data)
        return data

    def _fetch_batch(self, batch: List[GraphNode],
                     context: Optional[QueryContext] = None) -> Dict[str, NodeEmbeddingData]:
        if context is not None and context.is_cancelled():
            return {}
        return {node.id: self._node_data(node) for node in batch}

    def _node_data(self, node: GraphNode) -> NodeEmbeddingData:
        node_type = node.type.lower()
        if node_type not in EMBEDDED_TYPES:
            return NodeEmbeddingData(None, self._describe(node))

        try:
            row = self.store.get_node_embedding(node.id, node_type)
        except Exception as e:
            logger.debug(f"Failed to get embedding data for node {node.id}: {e}")
            return NodeEmbeddingData(None, describe_from_properties(node))

        if row is None:
            return NodeEmbeddingData(None, self._describe(node))
        embedding = row.get("embedding")
        text = row.get("text") or self._describe(node)
        return NodeEmbeddingData(list(embedding) if embedding else None, text)

    def _describe(self, node: GraphNode) -> str:
        """Linked description, then file-doc content, then a property summary."""
        try:
            description = self.store.get_linked_description(node.id)
            if description and description.strip():
                return description
            if node.type.lower() == "filedoc":
                content = self.store.get_file_doc_content(node.id)
                if content:
                    return content
        except Exception as e:
            logger.debug(f"Failed to get description for node {node.id}: {e}")
        return describe_from_properties(node)
