"""
Multi-level query expansion.

Level 1: naming patterns and compounds of the query words (weight 1.0)
Level 2: synonyms, context variants and related concepts (weight 0.8)
Level 3: graph neighbours and embedding neighbours (weight 0.6)

Each level is seeded with the query words plus the strongest terms of
the previous level. Terms are merged across levels keeping the highest
weight, boosted by intent, sorted and capped.
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ...config import ExpansionConfig
from ...logger import get_logger
from .compounds import CompoundTermGenerator
from .intent import IntentType, QueryIntent
from .naming_patterns import NamingPatternExpander
from .semantic import SemanticExpander

logger = get_logger(__name__)

STOP_WORDS = {
    "the", "is", "at", "which", "on", "and", "a", "an", "as", "are", "been", "have",
    "has", "had", "do", "does", "did", "will", "would", "should", "could", "may", "might",
    # question words carry no searchable meaning
    "how", "what", "where", "when", "why", "who", "whom", "whose",
}

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5

# intent -> (substrings, boost)
INTENT_BOOSTS = {
    IntentType.IMPLEMENTATION: (("impl", "execute", "process", "handle"), 0.1),
    IntentType.USAGE: (("use", "call", "invoke", "reference"), 0.1),
    IntentType.CONFIGURATION: (("config", "property", "setting", "option"), 0.15),
    IntentType.DISCOVERY: (("service", "manager", "controller", "handler"), 0.1),
    IntentType.STATUS: (("status", "state", "phase", "condition"), 0.15),
}

# intent -> suffixes kept from the domain pattern table
INTENT_PATTERN_SUFFIXES = {
    IntentType.IMPLEMENTATION: ("Impl", "Engine", "Processor"),
    IntentType.CONFIGURATION: ("Config", "Properties", "Settings"),
    IntentType.DISCOVERY: ("Service", "Manager", "Handler"),
}


@dataclass(frozen=True)
class WeightedTerm:
    """An expansion term; identity is `term`."""
    term: str
    weight: float
    source: str


def merge_weighted_terms(terms: Iterable[WeightedTerm]) -> Dict[str, WeightedTerm]:
    """Merge by term name keeping the highest weight; first-seen order is preserved."""
    merged: Dict[str, WeightedTerm] = {}
    for term in terms:
        current = merged.get(term.term)
        if current is None or term.weight > current.weight:
            merged[term.term] = term
    return merged


@dataclass
class ExpansionLevel:
    level: int
    terms: List[WeightedTerm] = field(default_factory=list)

    @property
    def all_terms(self) -> List[str]:
        return [t.term for t in self.terms]

    def top_terms(self, n: int) -> List[str]:
        ranked = sorted(self.terms, key=lambda t: t.weight, reverse=True)
        out: List[str] = []
        for t in ranked:
            if t.term not in out:
                out.append(t.term)
            if len(out) >= n:
                break
        return out


@dataclass
class QueryExpansion:
    """All expansion terms of one query, tiered by confidence."""
    original_query: str
    intent: Optional[QueryIntent]
    base_terms: List[str] = field(default_factory=list)
    all_terms: List[WeightedTerm] = field(default_factory=list)
    high_confidence: List[WeightedTerm] = field(default_factory=list)
    medium_confidence: List[WeightedTerm] = field(default_factory=list)
    low_confidence: List[WeightedTerm] = field(default_factory=list)
    levels: List[ExpansionLevel] = field(default_factory=list)
    terms_by_type: Dict[str, List[str]] = field(default_factory=dict)

    def all_expanded_terms(self) -> List[str]:
        return [t.term for t in self.all_terms]

    def terms_above_threshold(self, threshold: float) -> List[str]:
        return [t.term for t in self.all_terms if t.weight >= threshold]

    @property
    def is_empty(self) -> bool:
        return not self.all_terms

    @classmethod
    def empty(cls, query: str, intent: Optional[QueryIntent] = None) -> 'QueryExpansion':
        return cls(original_query=query, intent=intent)


def extract_base_terms(query: str) -> List[str]:
    """
    Words of the query worth expanding.

    Lower-cases plain words; identifiers written in camel case
    (PaymentService) keep their spelling.
    """
    terms: List[str] = []
    seen = set()
    for token in re.split(r"[\s,;.!?]+", query or ""):
        token = re.sub(r"[^\w]", "", token)
        if len(token) <= 2:
            continue
        lower = token.lower()
        if lower in STOP_WORDS or lower in seen:
            continue
        is_identifier = any(ch.isupper() for ch in token[1:])
        terms.append(token if is_identifier else lower)
        seen.add(lower)
    return terms


class MultiLevelExpander:
    """
    Orchestrates the term expanders over three weighted levels.

    Example:
        >>> expander = MultiLevelExpander()
        >>> expansion = expander.expand_query("How does PaymentService process a refund?")
        >>> "RefundProcessor" in expansion.all_expanded_terms()
        True
    """

    def __init__(
        self,
        config: Optional[ExpansionConfig] = None,
        pattern_expander: Optional[NamingPatternExpander] = None,
        compound_generator: Optional[CompoundTermGenerator] = None,
        semantic_expander: Optional[SemanticExpander] = None,
        graph_expander=None,
        embedding_expander=None,
    ):
        """
        Args:
            config: Level weights and caps
            pattern_expander: Level 1 naming patterns
            compound_generator: Level 1 compounds
            semantic_expander: Level 2 synonyms
            graph_expander: Level 3 GraphRelationshipExpander (optional)
            embedding_expander: Level 3 EmbeddingBasedExpander (optional)
        """
        self.config = config or ExpansionConfig()
        self.pattern_expander = pattern_expander or NamingPatternExpander(self.config.max_pattern_expansions)
        self.compound_generator = compound_generator or CompoundTermGenerator(self.config.max_compound_terms)
        self.semantic_expander = semantic_expander or SemanticExpander(self.config.max_semantic_expansions)
        self.graph_expander = graph_expander
        self.embedding_expander = embedding_expander

    def expand_query(self, query: str, intent: Optional[QueryIntent] = None, context=None) -> QueryExpansion:
        """
        Expand `query` into weighted terms.

        Args:
            query: Raw question
            intent: Result of intent analysis (enables intent patterns and boosts)
            context: QueryContext; level 3 is skipped once it is cancelled
        """
        base_terms = extract_base_terms(query)
        if not base_terms:
            return QueryExpansion.empty(query, intent)

        level1 = self._level1(base_terms, intent)
        level2 = self._level2(base_terms, level1, intent)
        if context is not None and context.is_cancelled():
            logger.warning("Skipping graph/embedding expansion, query cancelled")
            level3 = ExpansionLevel(level=3)
        else:
            level3 = self._level3(base_terms, level2)

        expansion = self._combine(query, intent, base_terms, [level1, level2, level3])
        logger.info(
            f"Expanded {len(base_terms)} base terms into {len(expansion.all_terms)} terms "
            f"(high={len(expansion.high_confidence)}, medium={len(expansion.medium_confidence)}, "
            f"low={len(expansion.low_confidence)})"
        )
        return expansion

    # ---- levels ----

    def _level1(self, base_terms: List[str], intent: Optional[QueryIntent]) -> ExpansionLevel:
        w1 = self.config.level1_weight
        terms: List[WeightedTerm] = []

        for term in base_terms:
            terms.extend(WeightedTerm(t, w1, "pattern") for t in self.pattern_expander.expand(term))

        terms.extend(
            WeightedTerm(t, w1 * 0.9, "compound") for t in self.compound_generator.generate(base_terms)
        )

        if intent is not None:
            suffixes = INTENT_PATTERN_SUFFIXES.get(intent.primary_intent)
            if suffixes:
                for term in base_terms:
                    for pattern in self.pattern_expander.get_domain_specific_patterns(term):
                        if pattern.endswith(suffixes):
                            terms.append(WeightedTerm(pattern, w1 * 0.95, "intent_pattern"))

        return ExpansionLevel(level=1, terms=terms)

    def _level2(self, base_terms: List[str], level1: ExpansionLevel,
                intent: Optional[QueryIntent]) -> ExpansionLevel:
        w2 = self.config.level2_weight
        terms: List[WeightedTerm] = []

        seeds = _unique(base_terms + level1.top_terms(10))
        for seed in seeds:
            for synonym in self.semantic_expander.expand(seed):
                if synonym != seed:
                    terms.append(WeightedTerm(synonym, w2, "semantic"))

        context_terms = intent.context_terms() if intent is not None else []
        if context_terms:
            for term in base_terms:
                for variant in self.semantic_expander.expand_with_context(term, context_terms):
                    terms.append(WeightedTerm(variant, w2 * 0.9, "context_semantic"))

        for term in base_terms:
            for concept in self.semantic_expander.conceptually_related(term):
                terms.append(WeightedTerm(concept, w2 * 0.8, "conceptual"))

        return ExpansionLevel(level=2, terms=terms)

    def _level3(self, base_terms: List[str], level2: ExpansionLevel) -> ExpansionLevel:
        w3 = self.config.level3_weight
        terms: List[WeightedTerm] = []
        if self.graph_expander is None and self.embedding_expander is None:
            return ExpansionLevel(level=3)

        seeds = _unique(base_terms + level2.top_terms(5))

        graph_result = None
        similar: Dict[str, List[str]] = {}
        if self.config.enable_parallel_embedding and self.graph_expander and self.embedding_expander:
            with ThreadPoolExecutor(max_workers=2) as executor:
                graph_future = executor.submit(self.graph_expander.expand_with_graph_analysis, seeds)
                embedding_future = executor.submit(
                    self.embedding_expander.find_similar_terms_for_multiple, base_terms
                )
                graph_result = self._safe_result(graph_future, "graph expansion")
                similar = self._safe_result(embedding_future, "embedding expansion") or {}
        else:
            if self.graph_expander:
                graph_result = self._safe_call(self.graph_expander.expand_with_graph_analysis, seeds,
                                               "graph expansion")
            if self.embedding_expander:
                similar = self._safe_call(self.embedding_expander.find_similar_terms_for_multiple,
                                          base_terms, "embedding expansion") or {}

        if graph_result is not None:
            terms.extend(WeightedTerm(t, w3, "graph_relationship") for t in graph_result.related_terms)
            for co in graph_result.co_occurring_terms:
                weight = min(w3, w3 * (0.5 + co.count / 10.0))
                terms.append(WeightedTerm(co.term, weight, "co_occurrence"))
            for pattern in graph_result.domain_patterns:
                weight = min(w3, w3 * pattern.strength / 10.0)
                terms.extend(WeightedTerm(c, weight, "domain_pattern") for c in pattern.components)

        for neighbours in similar.values():
            terms.extend(WeightedTerm(t, w3 * 0.9, "embedding_similarity") for t in neighbours)

        return ExpansionLevel(level=3, terms=terms)

    @staticmethod
    def _safe_result(future, label: str):
        try:
            return future.result()
        except Exception as e:
            logger.error(f"Level 3 {label} failed: {e}")
            return None

    @staticmethod
    def _safe_call(fn, arg, label: str):
        try:
            return fn(arg)
        except Exception as e:
            logger.error(f"Level 3 {label} failed: {e}")
            return None

    # ---- combination ----

    def _combine(self, query: str, intent: Optional[QueryIntent], base_terms: List[str],
                 levels: List[ExpansionLevel]) -> QueryExpansion:
        merged = merge_weighted_terms(t for level in levels for t in level.terms)

        if intent is not None:
            substrings, boost = INTENT_BOOSTS.get(intent.primary_intent, ((), 0.0))
            for name, term in list(merged.items()):
                lower = name.lower()
                if any(s in lower for s in substrings):
                    merged[name] = WeightedTerm(term.term, min(1.0, term.weight + boost), term.source)

        ranked = sorted(merged.values(), key=lambda t: t.weight, reverse=True)
        ranked = ranked[:self.config.max_total_expansions]

        by_type: Dict[str, List[str]] = {}
        for term in ranked:
            by_type.setdefault(term.source, []).append(term.term)

        return QueryExpansion(
            original_query=query,
            intent=intent,
            base_terms=base_terms,
            all_terms=ranked,
            high_confidence=[t for t in ranked if t.weight >= HIGH_CONFIDENCE],
            medium_confidence=[t for t in ranked if MEDIUM_CONFIDENCE <= t.weight < HIGH_CONFIDENCE],
            low_confidence=[t for t in ranked if t.weight < MEDIUM_CONFIDENCE],
            levels=levels,
            terms_by_type=by_type,
        )


def _unique(terms: List[str]) -> List[str]:
    return list(dict.fromkeys(terms))
