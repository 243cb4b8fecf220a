"""
Parallel lexical and vector search.

Lexical: one full-text index query per entity category (method names,
class names, descriptions, file docs). Vector: one nearest-neighbour
query per embedding index. The two branches run concurrently; a failing
index query contributes no results and never fails the search.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...config import SearchConfig
from ...logger import get_logger
from ..context import QueryContext
from ..query.entities import ExtractedEntities

logger = get_logger(__name__)

FULLTEXT = "fulltext"
SEMANTIC = "semantic"


@dataclass(frozen=True)
class SearchResult:
    """One index hit. Not deduplicated across indexes."""
    node_id: str
    name: str
    score: float
    type: str
    search_type: str
    signature: str = ""
    class_name: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any], search_type: str) -> 'SearchResult':
        return cls(
            node_id=str(row.get("nodeId")),
            name=row.get("name") or "",
            score=float(row.get("score") or 0.0),
            type=(row.get("type") or "unknown").lower(),
            search_type=search_type,
            signature=row.get("signature") or "",
            class_name=row.get("className") or "",
        )


@dataclass
class SearchResults:
    fulltext: List[SearchResult] = field(default_factory=list)
    vector: List[SearchResult] = field(default_factory=list)
    timed_out: bool = False

    @property
    def all(self) -> List[SearchResult]:
        return self.fulltext + self.vector

    @property
    def total(self) -> int:
        return len(self.fulltext) + len(self.vector)


class ParallelSearchService:
    """
    Fans a query out to the full-text and vector indexes of the store.

    Example:
        >>> service = ParallelSearchService(store, embedder)
        >>> results = service.search(entities, "How does PaymentService process a refund?")
        >>> len(results.fulltext), len(results.vector)
    """

    def __init__(self, store, embedder=None, config: Optional[SearchConfig] = None):
        """
        Args:
            store: GraphStore implementation
            embedder: Object with embed(text) -> list of floats; None disables vector search
            config: Index names and limits
        """
        self.store = store
        self.embedder = embedder
        self.config = config or SearchConfig()

    def search(
        self,
        entities: ExtractedEntities,
        query: str,
        context: Optional[QueryContext] = None,
    ) -> SearchResults:
        """Run both branches concurrently and join them under the query deadline."""
        context = context or QueryContext(timeout_seconds=None)

        executor = ThreadPoolExecutor(max_workers=max(2, self.config.max_workers))
        try:
            futures = {
                FULLTEXT: executor.submit(self.full_text_search, entities, context),
                SEMANTIC: executor.submit(self._embed_and_search, query, context),
            }
            joined = context.collect(futures)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results = SearchResults(
            fulltext=joined[FULLTEXT],
            vector=joined[SEMANTIC],
            timed_out=context.is_cancelled(),
        )
        logger.info(f"Search found {len(results.fulltext)} full-text and {len(results.vector)} vector hits")
        return results

    # ---- lexical ----

    def full_text_search(
        self, entities: ExtractedEntities, context: Optional[QueryContext] = None
    ) -> List[SearchResult]:
        cfg = self.config
        limit = cfg.fulltext_limit
        queries: List[tuple] = []

        if entities.methods:
            queries.append((cfg.method_fulltext_index, entities.methods, "method", False))
        if entities.classes:
            queries.append((cfg.class_fulltext_index, entities.classes, None, False))
        if entities.terms:
            queries.append((cfg.description_fulltext_index, entities.terms, None, True))
        if entities.has_entities():
            queries.append((cfg.file_doc_fulltext_index, entities.all_entities(), "filedoc", False))

        results: List[SearchResult] = []
        for index_name, terms, result_type, via_description in queries:
            if context is not None and context.is_cancelled():
                break
            search_terms = self.build_search_terms(terms)
            if not search_terms:
                continue
            rows = self._safe_query(
                index_name,
                lambda: self.store.fulltext_search(
                    index_name, search_terms, limit,
                    result_type=result_type, via_description=via_description,
                ),
            )
            results.extend(SearchResult.from_row(row, FULLTEXT) for row in rows if row.get("nodeId"))

        logger.debug(f"Full-text search completed with {len(results)} results")
        return results

    @staticmethod
    def build_search_terms(terms: Sequence[str]) -> str:
        """Join terms into a Lucene OR query, escaping reserved characters."""
        escaped = []
        for term in terms:
            term = (term or "").strip()
            if not term:
                continue
            escaped.append("".join("\\" + ch if ch in _LUCENE_SPECIAL else ch for ch in term))
        return " OR ".join(dict.fromkeys(escaped))

    # ---- vector ----

    def _embed_and_search(self, query: str, context: Optional[QueryContext] = None) -> List[SearchResult]:
        if self.embedder is None:
            return []
        try:
            vector = self.embedder.embed(query)
        except Exception as e:
            logger.error(f"Failed to embed query for vector search: {e}")
            return []
        if not vector:
            return []
        return self.vector_search(vector, context)

    def vector_search(
        self, query_vector: Sequence[float], context: Optional[QueryContext] = None
    ) -> List[SearchResult]:
        cfg = self.config
        indexes = [
            (cfg.method_vector_index, "method", False),
            (cfg.class_vector_index, None, False),
            (cfg.description_vector_index, None, True),
            (cfg.file_doc_vector_index, "filedoc", False),
        ]

        results: List[SearchResult] = []
        for index_name, result_type, via_description in indexes:
            if context is not None and context.is_cancelled():
                break
            rows = self._safe_query(
                index_name,
                lambda: self.store.vector_search(
                    index_name, query_vector, cfg.vector_limit,
                    result_type=result_type, via_description=via_description,
                ),
            )
            results.extend(SearchResult.from_row(row, SEMANTIC) for row in rows if row.get("nodeId"))

        logger.debug(f"Vector search completed with {len(results)} results")
        return results

    def unified_vector_search(self, query_vector: Sequence[float], limit: Optional[int] = None) -> List[SearchResult]:
        """All vector indexes merged, best first, capped at twice `limit`."""
        limit = limit or self.config.vector_limit
        results = sorted(self.vector_search(query_vector), key=lambda r: r.score, reverse=True)
        return results[:limit * 2]

    @staticmethod
    def _safe_query(index_name: str, call: Callable[[], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        try:
            return call() or []
        except Exception as e:
            logger.error(f"Search on index '{index_name}' failed: {e}")
            return []


_LUCENE_SPECIAL = set('+-&|!(){}[]^"~*?:\\/')
