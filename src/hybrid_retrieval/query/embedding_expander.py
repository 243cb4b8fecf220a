"""
Embedding-similarity term expansion.

Embeds a term and asks the method, class and description vector indexes
for nearest neighbours; the names of sufficiently similar code entities
become expansion terms.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...config import ExpansionConfig, SearchConfig
from ...logger import get_logger
from .intent import IntentType, QueryIntent

logger = get_logger(__name__)

_STOP_WORDS = {
    "the", "is", "at", "which", "on", "and", "a", "an", "as", "are", "was", "were",
    "been", "be", "have", "has", "had", "do", "does", "did", "will", "would", "should",
    "could", "may", "might", "what", "how", "where", "when", "why", "who", "for", "with",
}


@dataclass(frozen=True)
class SimilarTerm:
    term: str
    context: str
    score: float
    type: str


@dataclass(frozen=True)
class CodeElement:
    id: str
    name: str
    type: str
    context: str
    score: float


@dataclass
class EmbeddingExpansionResult:
    original_query: str
    key_terms: List[str] = field(default_factory=list)
    similar_terms: Dict[str, List[str]] = field(default_factory=dict)
    related_elements: List[CodeElement] = field(default_factory=list)


class EmbeddingBasedExpander:
    """
    Nearest-neighbour expansion over precomputed code embeddings.

    Every store or model failure degrades to an empty expansion.
    """

    def __init__(
        self,
        store,
        embedder,
        config: Optional[ExpansionConfig] = None,
        search_config: Optional[SearchConfig] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.config = config or ExpansionConfig()
        self.search_config = search_config or SearchConfig()

    def find_similar_terms(self, term: str, threshold: Optional[float] = None) -> List[str]:
        """Names of code entities whose embedding is close to `term`."""
        if not term or not term.strip():
            return []
        threshold = self.config.embedding_similarity_threshold if threshold is None else threshold

        try:
            vector = self.embedder.embed(term)
        except Exception as e:
            logger.error(f"Failed to embed term '{term}': {e}")
            return []
        if not vector:
            return []

        indexes = [
            (self.search_config.method_vector_index, "method", False),
            (self.search_config.class_vector_index, None, False),
            (self.search_config.description_vector_index, None, True),
        ]
        with ThreadPoolExecutor(max_workers=self.config.expander_pool_size) as executor:
            futures = [
                executor.submit(self._query_index, index, vector, threshold, result_type, joined)
                for index, result_type, joined in indexes
            ]
            hits: List[SimilarTerm] = []
            for future in futures:
                try:
                    hits.extend(future.result())
                except Exception as e:
                    logger.error(f"Embedding neighbour search failed for '{term}': {e}")

        unique: Dict[tuple, SimilarTerm] = {}
        for hit in hits:
            key = (hit.term, hit.type)
            if key not in unique or hit.score > unique[key].score:
                unique[key] = hit

        ordered = sorted(unique.values(), key=lambda h: h.score, reverse=True)
        result: List[str] = []
        for hit in ordered:
            if hit.term not in result:
                result.append(hit.term)
            if len(result) >= self.config.max_embedding_expansions:
                break

        logger.debug(f"Embedding expansion for '{term}': {len(result)} terms")
        return result

    def _query_index(self, index_name, vector, threshold, result_type, via_description) -> List[SimilarTerm]:
        rows = self.store.vector_search(
            index_name,
            vector,
            self.config.embedding_search_limit,
            result_type=result_type,
            via_description=via_description,
        )
        return [
            SimilarTerm(
                term=row.get("name"),
                context=row.get("className") or "",
                score=float(row.get("score") or 0.0),
                type=(row.get("type") or "").lower(),
            )
            for row in rows
            if row.get("name") and float(row.get("score") or 0.0) >= threshold
        ]

    def find_similar_terms_for_multiple(self, terms: List[str]) -> Dict[str, List[str]]:
        return {term: self.find_similar_terms(term) for term in terms}

    def find_related_code_elements(self, concept: str, limit: int = 20) -> List[CodeElement]:
        """Method and class nodes close to a free-text concept."""
        if not concept or not concept.strip():
            return []
        try:
            vector = self.embedder.embed(concept)
            rows = self.store.vector_search(
                self.search_config.method_vector_index, vector, self.config.embedding_search_limit,
                result_type="method",
            )
            rows += self.store.vector_search(
                self.search_config.class_vector_index, vector, self.config.embedding_search_limit,
            )
        except Exception as e:
            logger.error(f"Related code element search failed for '{concept}': {e}")
            return []

        threshold = self.config.embedding_similarity_threshold
        elements = {}
        for row in rows:
            score = float(row.get("score") or 0.0)
            node_id = row.get("nodeId")
            if not node_id or score < threshold:
                continue
            if node_id not in elements or score > elements[node_id].score:
                elements[node_id] = CodeElement(
                    id=node_id,
                    name=row.get("name") or "",
                    type=(row.get("type") or "").lower(),
                    context=row.get("className") or "",
                    score=score,
                )
        return sorted(elements.values(), key=lambda e: e.score, reverse=True)[:limit]

    def expand_query_with_embeddings(
        self, query: str, intent: Optional[QueryIntent] = None
    ) -> EmbeddingExpansionResult:
        key_terms = self.extract_key_terms(query)
        result = EmbeddingExpansionResult(
            original_query=query,
            key_terms=key_terms,
            similar_terms=self.find_similar_terms_for_multiple(key_terms),
        )
        if intent is None or intent.primary_intent in (IntentType.DISCOVERY, IntentType.IMPLEMENTATION):
            result.related_elements = self.find_related_code_elements(query)
        return result

    @staticmethod
    def extract_key_terms(query: str) -> List[str]:
        terms = []
        for word in re.split(r"\s+", (query or "").strip()):
            word = re.sub(r"[^\w]", "", word).lower()
            if len(word) > 2 and word not in _STOP_WORDS and word not in terms:
                terms.append(word)
        return terms
