"""
Intent-based search strategy.

Turns a QueryIntent into a SearchStrategy: how many results to gather,
how deep to expand the graph, which expansion buckets to search with,
and which node types/relationships to favour.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional

from ...logger import get_logger
from .intent import ContextType, IntentType, QueryIntent, SearchFocus, SEARCH_FOCUS
from .multi_level import QueryExpansion

logger = get_logger(__name__)


class SearchDepth(str, Enum):
    SHALLOW = "SHALLOW"
    BALANCED = "BALANCED"
    DEEP = "DEEP"
    WIDE = "WIDE"
    TARGETED = "TARGETED"


@dataclass(frozen=True)
class SearchStrategy:
    """Immutable search plan; adjustments produce copies."""
    name: str
    depth: SearchDepth
    focus: SearchFocus = field(default_factory=SearchFocus)

    # aspect ("method_body", "description", ...) -> weight
    aspect_weights: Dict[str, float] = field(default_factory=dict)

    use_high_confidence: bool = True
    use_medium_confidence: bool = True
    use_low_confidence: bool = False

    node_type_boosts: Dict[str, float] = field(default_factory=dict)
    relationship_boosts: Dict[str, float] = field(default_factory=dict)
    pattern_boosts: Dict[str, float] = field(default_factory=dict)
    suffix_boosts: Dict[str, float] = field(default_factory=dict)

    max_search_results: int = 100
    min_score_threshold: float = 0.1
    expand_graph_relationships: bool = True
    graph_expansion_depth: int = 2

    def expansion_terms(self, expansion: QueryExpansion) -> List[str]:
        """Terms of the confidence buckets this strategy searches with, best first."""
        terms = []
        if self.use_high_confidence:
            terms.extend(expansion.high_confidence)
        if self.use_medium_confidence:
            terms.extend(expansion.medium_confidence)
        if self.use_low_confidence:
            terms.extend(expansion.low_confidence)
        return list(dict.fromkeys(t.term for t in terms))

    @property
    def per_category_limit(self) -> int:
        return max(1, self.max_search_results // 4)


_BASE_STRATEGIES = {
    IntentType.IMPLEMENTATION: SearchStrategy(
        name="Implementation Search",
        depth=SearchDepth.DEEP,
        focus=SEARCH_FOCUS[IntentType.IMPLEMENTATION],
        aspect_weights={"method_body": 0.8, "description": 0.7, "signature": 0.6,
                        "relationship": 0.3, "configuration": 0.2},
        node_type_boosts={"Method": 0.8, "Class": 0.6, "Interface": 0.5, "Description": 0.7},
        max_search_results=100,
        min_score_threshold=0.1,
        graph_expansion_depth=2,
    ),
    IntentType.USAGE: SearchStrategy(
        name="Usage Search",
        depth=SearchDepth.WIDE,
        focus=SEARCH_FOCUS[IntentType.USAGE],
        aspect_weights={"relationship": 0.9, "call_pattern": 0.8, "dependency": 0.8,
                        "signature": 0.5, "method_body": 0.2},
        use_low_confidence=True,
        node_type_boosts={"Method": 0.7, "Class": 0.7, "Interface": 0.8},
        relationship_boosts={"CALLS": 0.9, "USES": 0.9, "DEPENDS_ON": 0.8,
                             "EXTENDS": 0.7, "IMPLEMENTS": 0.8},
        max_search_results=150,
        min_score_threshold=0.05,
        graph_expansion_depth=3,
    ),
    IntentType.CONFIGURATION: SearchStrategy(
        name="Configuration Search",
        depth=SearchDepth.TARGETED,
        focus=SEARCH_FOCUS[IntentType.CONFIGURATION],
        aspect_weights={"annotation": 0.9, "property": 0.8, "config_file": 0.8,
                        "configuration": 0.9, "method_body": 0.3},
        use_medium_confidence=False,
        node_type_boosts={"Configuration": 0.9, "Property": 0.9, "Annotation": 0.8, "Field": 0.6},
        pattern_boosts={"@Value": 0.9, "@ConfigurationProperties": 0.95, "application.yml": 0.9,
                        "application.properties": 0.9, "config": 0.7, "Config": 0.7},
        max_search_results=50,
        min_score_threshold=0.2,
        expand_graph_relationships=False,
        graph_expansion_depth=1,
    ),
    IntentType.DISCOVERY: SearchStrategy(
        name="Discovery Search",
        depth=SearchDepth.BALANCED,
        focus=SEARCH_FOCUS[IntentType.DISCOVERY],
        aspect_weights={"class": 0.8, "interface": 0.9, "public_method": 0.7,
                        "description": 0.6, "relationship": 0.5},
        node_type_boosts={"Service": 0.9, "Controller": 0.9, "Manager": 0.8,
                          "Handler": 0.8, "Interface": 0.8},
        suffix_boosts={"Service": 0.8, "Controller": 0.8, "Manager": 0.7, "Handler": 0.7,
                       "Processor": 0.7, "Factory": 0.6},
        max_search_results=100,
        min_score_threshold=0.1,
        graph_expansion_depth=2,
    ),
    IntentType.STATUS: SearchStrategy(
        name="Status Search",
        depth=SearchDepth.TARGETED,
        focus=SEARCH_FOCUS[IntentType.STATUS],
        aspect_weights={"enum": 0.9, "field": 0.7, "constant": 0.8,
                        "state_pattern": 0.8, "method_body": 0.4},
        node_type_boosts={"Enum": 0.9, "Field": 0.7, "Constant": 0.8},
        pattern_boosts={"Status": 0.9, "State": 0.9, "Phase": 0.8, "Stage": 0.8,
                        "Condition": 0.7, "Result": 0.7},
        max_search_results=75,
        min_score_threshold=0.15,
        graph_expansion_depth=1,
    ),
}

DEFAULT_STRATEGY = SearchStrategy(
    name="Default Search",
    depth=SearchDepth.BALANCED,
    aspect_weights={"method_body": 0.5, "description": 0.5, "signature": 0.5,
                    "relationship": 0.5, "configuration": 0.3},
)


class IntentBasedSearchStrategy:
    """Builds a SearchStrategy from the primary intent, then adjusts it."""

    def create_strategy(self, intent: Optional[QueryIntent],
                        expansion: Optional[QueryExpansion] = None) -> SearchStrategy:
        if intent is None:
            logger.info("No intent provided, using default search strategy")
            return DEFAULT_STRATEGY

        strategy = _BASE_STRATEGIES.get(intent.primary_intent, DEFAULT_STRATEGY)
        for secondary in intent.secondary_intents:
            strategy = self._apply_secondary(strategy, secondary)
        if intent.contexts:
            strategy = self._apply_contexts(strategy, intent.contexts)

        logger.info(
            f"Strategy '{strategy.name}': max_results={strategy.max_search_results}, "
            f"min_score={strategy.min_score_threshold:.2f}, depth={strategy.graph_expansion_depth}"
        )
        return strategy

    @staticmethod
    def _apply_secondary(strategy: SearchStrategy, secondary: IntentType) -> SearchStrategy:
        weights = dict(strategy.aspect_weights)
        if secondary == IntentType.IMPLEMENTATION:
            weights["method_body"] = min(1.0, weights.get("method_body", 0.0) + 0.1)
            return replace(strategy, aspect_weights=weights,
                           focus=replace(strategy.focus, descriptions=True))
        if secondary == IntentType.USAGE:
            weights["relationship"] = min(1.0, weights.get("relationship", 0.0) + 0.1)
            return replace(strategy, aspect_weights=weights,
                           graph_expansion_depth=max(strategy.graph_expansion_depth, 2))
        if secondary == IntentType.CONFIGURATION:
            weights["configuration"] = min(1.0, weights.get("configuration", 0.0) + 0.15)
            return replace(strategy, aspect_weights=weights,
                           focus=replace(strategy.focus, configurations=True))
        if secondary == IntentType.DISCOVERY:
            return replace(strategy, max_search_results=max(strategy.max_search_results, 150),
                           use_low_confidence=True)
        if secondary == IntentType.STATUS:
            return replace(strategy, pattern_boosts={**strategy.pattern_boosts, "State": 0.8})
        return strategy

    @staticmethod
    def _apply_contexts(strategy: SearchStrategy, contexts: Dict[ContextType, List[str]]) -> SearchStrategy:
        scope = [s.lower() for s in contexts.get(ContextType.SCOPE, [])]
        if "all" in scope:
            strategy = replace(strategy, max_search_results=strategy.max_search_results * 2,
                               use_low_confidence=True)
        if "specific" in scope:
            strategy = replace(strategy, min_score_threshold=strategy.min_score_threshold * 1.5,
                               use_low_confidence=False)

        temporal = [t.lower() for t in contexts.get(ContextType.TEMPORAL, [])]
        if "deprecated" in temporal:
            strategy = replace(strategy, pattern_boosts={
                **strategy.pattern_boosts, "@Deprecated": 0.9, "deprecated": 0.8})

        quality = contexts.get(ContextType.QUALITY, [])
        if any("performance" in q for q in quality):
            strategy = replace(strategy, pattern_boosts={
                **strategy.pattern_boosts, "Performance": 0.7, "Optimized": 0.7, "Fast": 0.6})
        if any("security" in q for q in quality):
            strategy = replace(strategy, pattern_boosts={
                **strategy.pattern_boosts, "Security": 0.8, "Secure": 0.7, "Auth": 0.7})
        return strategy
