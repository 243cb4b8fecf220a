"""
Lexical/vector score fusion.

Lexical index scores are unbounded, so they are normalized with
s / (s + k) before weighting; vector scores are clamped to [0, 1].
A node found by both searches gets the sum of both weighted scores
times the both-match boost.
"""

from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from ...config import CombinerConfig
from ...logger import get_logger
from .parallel_search import SearchResult

logger = get_logger(__name__)


def normalize_fulltext_score(score: float, saturation: float = 1.0) -> float:
    """Map a non-negative lexical score into [0, 1)."""
    if score <= 0:
        return 0.0
    return score / (score + saturation)


def clamp_unit(score: float) -> float:
    return max(0.0, min(1.0, score))


@dataclass(frozen=True)
class RankedResult:
    """One node after fusion. `full_text_score`/`vector_score` are already weighted."""
    node_id: str
    name: str = ""
    signature: str = ""
    class_name: str = ""
    type: str = "unknown"
    full_text_score: float = 0.0
    vector_score: float = 0.0
    combined_score: float = 0.0
    has_full_text_match: bool = False
    has_vector_match: bool = False

    @property
    def has_both_matches(self) -> bool:
        return self.has_full_text_match and self.has_vector_match

    @property
    def dominant_search_type(self) -> str:
        if self.full_text_score > self.vector_score:
            return "fulltext"
        if self.vector_score > self.full_text_score:
            return "semantic"
        return "balanced"


class SearchResultCombiner:
    """
    Fuses lexical and vector hits into one RankedResult per node.

    Example:
        >>> combiner = SearchResultCombiner()
        >>> ranked = combiner.combine(results.fulltext, results.vector)
        >>> ranked[0].combined_score
    """

    def __init__(self, config: Optional[CombinerConfig] = None):
        self.config = config or CombinerConfig()

    def combine(self, full_text_results: List[SearchResult],
                vector_results: List[SearchResult],
                min_score: Optional[float] = None) -> List[RankedResult]:
        """
        Args:
            min_score: Stricter cutoff for this call; never lowers the configured threshold
        """
        cfg = self.config
        threshold = cfg.score_threshold if min_score is None else max(cfg.score_threshold, min_score)
        best_fulltext = self._best_per_node(full_text_results)
        best_vector = self._best_per_node(vector_results)

        combined: Dict[str, RankedResult] = {}
        for node_id, hit in best_fulltext.items():
            score = normalize_fulltext_score(hit.score, cfg.fulltext_saturation) * cfg.full_text_weight
            combined[node_id] = RankedResult(
                node_id=node_id,
                name=hit.name,
                signature=hit.signature,
                class_name=hit.class_name,
                type=hit.type,
                full_text_score=score,
                combined_score=score,
                has_full_text_match=True,
            )

        for node_id, hit in best_vector.items():
            score = clamp_unit(hit.score) * cfg.vector_weight
            existing = combined.get(node_id)
            if existing is None:
                combined[node_id] = RankedResult(
                    node_id=node_id,
                    name=hit.name,
                    signature=hit.signature,
                    class_name=hit.class_name,
                    type=hit.type,
                    vector_score=score,
                    combined_score=score,
                    has_vector_match=True,
                )
            else:
                combined[node_id] = replace(
                    existing,
                    vector_score=score,
                    combined_score=(existing.full_text_score + score) * cfg.both_match_boost,
                    has_vector_match=True,
                )

        ranked = sorted(
            (r for r in combined.values() if r.combined_score >= threshold),
            key=lambda r: r.combined_score,
            reverse=True,
        )[:cfg.initial_limit]

        logger.info(f"Combined {len(combined)} unique nodes, {len(ranked)} above threshold")
        self._log_statistics(ranked)
        return ranked

    def combine_with_weights(self, full_text_results: List[SearchResult], vector_results: List[SearchResult],
                             full_text_weight: float, vector_weight: float) -> List[RankedResult]:
        """Combine with one-off weights; the configured weights are untouched."""
        custom = SearchResultCombiner(
            self.config.with_changes(full_text_weight=full_text_weight, vector_weight=vector_weight)
        )
        return custom.combine(full_text_results, vector_results)

    @staticmethod
    def _best_per_node(results: List[SearchResult]) -> Dict[str, SearchResult]:
        best: Dict[str, SearchResult] = {}
        for result in results:
            current = best.get(result.node_id)
            if current is None or result.score > current.score:
                best[result.node_id] = result
        return best

    @staticmethod
    def _log_statistics(results: List[RankedResult]):
        if not results:
            logger.debug("No results after combination")
            return
        both = sum(1 for r in results if r.has_both_matches)
        fulltext_only = sum(1 for r in results if r.has_full_text_match and not r.has_vector_match)
        vector_only = sum(1 for r in results if r.has_vector_match and not r.has_full_text_match)
        scores = [r.combined_score for r in results]
        logger.debug(f"Both: {both}, full-text only: {fulltext_only}, vector only: {vector_only}")
        logger.debug(f"Type distribution: {dict(Counter(r.type for r in results))}")
        logger.debug(f"Score avg {sum(scores) / len(scores):.3f}, max {max(scores):.3f}")

    @staticmethod
    def filter_by_type(results: List[RankedResult], node_type: str) -> List[RankedResult]:
        return [r for r in results if r.type.lower() == node_type.lower()]

    @staticmethod
    def top_n(results: List[RankedResult], n: int) -> List[RankedResult]:
        return results[:max(0, n)]
