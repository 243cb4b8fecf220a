"""
Quality filtering of expansion terms.

Scores expanded terms against the original question and sorts them into
three quality tiers; noise (test doubles, placeholders, single
characters) is removed from the output.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional, Set

from ...config import QualityFilterConfig
from ...logger import get_logger
from .intent import IntentType, QueryIntent
from .multi_level import WeightedTerm

logger = get_logger(__name__)

COMMON_CODE_TERMS = {
    "get", "set", "is", "has", "add", "remove", "delete", "update", "create", "build",
    "process", "handle", "execute", "run", "start", "stop", "init", "initialize",
    "validate", "check",
}

NOISE_TERMS = {
    "todo", "fixme", "hack", "temp", "temporary", "test", "testing", "debug", "log",
    "logger", "util", "utils", "helper", "common", "misc", "other", "unknown", "dummy",
    "sample", "example",
}

SEMANTIC_GROUPS = [
    {"process", "handle", "execute", "run", "perform"},
    {"create", "make", "build", "generate", "construct"},
    {"get", "retrieve", "fetch", "obtain", "find"},
    {"data", "info", "information", "content", "payload"},
]

_CAMEL_BOUNDARY = re.compile(r"(?=[A-Z])|_|-|\s+")
_CAMEL_INNER = re.compile(r"[a-z][A-Z]")
_ROLE_SUFFIX = re.compile(r"(Service|Controller|Manager|Handler)$")


@dataclass
class QualityTier:
    tier: int
    description: str
    terms: List[WeightedTerm] = field(default_factory=list)


@dataclass
class QualityFilterResult:
    original_count: int
    filtered_count: int
    filtered_terms: List[WeightedTerm] = field(default_factory=list)
    quality_tiers: List[QualityTier] = field(default_factory=list)
    average_quality: float = 0.0

    @property
    def filtered_term_strings(self) -> List[str]:
        return [t.term for t in self.filtered_terms]


def tokenize(text: str) -> Set[str]:
    """Split on camel-case boundaries, underscores, hyphens and whitespace."""
    return {token.lower() for token in _CAMEL_BOUNDARY.split(text or "") if len(token) > 1}


@lru_cache(maxsize=4096)
def edit_distance(first: str, second: str) -> int:
    """Levenshtein distance."""
    previous = list(range(len(second) + 1))
    for i, a in enumerate(first, 1):
        current = [i]
        for j, b in enumerate(second, 1):
            if a == b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def is_noise_term(term: str) -> bool:
    lower = term.lower()
    if lower in NOISE_TERMS:
        return True
    if "test" in lower or "mock" in lower or "stub" in lower:
        return True
    return len(term) <= 1 or term.isdigit()


class ExpansionQualityFilter:
    """
    Relevance scoring and tiering of expansion terms.

    Relevance = 0.4 string similarity + 0.3 semantic coherence
    + 0.2 naming convention + 0.1 term quality.
    """

    def __init__(self, config: Optional[QualityFilterConfig] = None):
        self.config = config or QualityFilterConfig()

    # ---- scoring ----

    def string_similarity(self, term: str, query: str) -> float:
        return _string_similarity(term, query, self.config.max_edit_distance)

    @staticmethod
    def semantic_coherence(term: str, query: str) -> float:
        query_tokens = tokenize(query)
        term_tokens = tokenize(term)
        if not query_tokens or not term_tokens:
            return 0.0

        shared = len(term_tokens & query_tokens)
        if shared:
            return min(1.0, shared / min(len(query_tokens), len(term_tokens)))

        for q in query_tokens:
            for t in term_tokens:
                if any(q in group and t in group for group in SEMANTIC_GROUPS):
                    return 0.7
        return 0.0

    @staticmethod
    def naming_score(term: str) -> float:
        score = 0.5
        if term[:1].isupper():
            score += 0.2
        if _CAMEL_INNER.search(term):
            score += 0.2
        if _ROLE_SUFFIX.search(term):
            score += 0.1
        return min(1.0, score)

    @staticmethod
    def term_quality(term: str) -> float:
        score = 1.0
        lower = term.lower()
        if len(term) < 3:
            score -= 0.3
        if len(term) > 50:
            score -= 0.2
        if lower in NOISE_TERMS:
            score -= 0.5
        if lower in COMMON_CODE_TERMS:
            score += 0.1
        return max(0.0, min(1.0, score))

    def relevance_score(self, term: str, query: str) -> float:
        return (
            self.string_similarity(term, query) * 0.4
            + self.semantic_coherence(term, query) * 0.3
            + self.naming_score(term) * 0.2
            + self.term_quality(term) * 0.1
        )

    # ---- filtering ----

    def filter_by_relevance(self, terms: List[str], query: str) -> List[str]:
        """Distinct terms scoring at least the relevance threshold, best first."""
        if not self.config.enable_ranking or not terms:
            return terms

        scored = []
        for term in dict.fromkeys(terms):
            score = self.relevance_score(term, query)
            if score >= self.config.relevance_threshold:
                scored.append((term, score))
        scored.sort(key=lambda pair: pair[1], reverse=True)

        filtered = [term for term, _ in scored[:self.config.max_total_expansions]]
        logger.info(f"Filtered {len(terms)} terms to {len(filtered)} relevant terms")
        return filtered

    def filter_with_quality_metrics(
        self, terms: List[WeightedTerm], query: str, intent: Optional[QueryIntent] = None
    ) -> QualityFilterResult:
        """Tier weighted terms and drop noise."""
        tier1 = [t for t in terms if self._is_high_quality(t, query, intent)]
        tier1_ids = {id(t) for t in tier1}
        tier2 = [t for t in terms if id(t) not in tier1_ids and self._is_good_quality(t, query)]
        tier2_ids = {id(t) for t in tier2}
        tier3 = [
            t for t in terms
            if id(t) not in tier1_ids and id(t) not in tier2_ids and self._is_acceptable(t)
        ]

        room = max(0, self.config.max_total_expansions - len(tier1) - len(tier2))
        filtered = [t for t in tier1 + tier2 + tier3[:room] if not is_noise_term(t.term)]

        average = sum(t.weight for t in filtered) / len(filtered) if filtered else 0.0
        logger.info(
            f"Quality filter kept {len(filtered)}/{len(terms)} terms "
            f"(tiers {len(tier1)}/{len(tier2)}/{len(tier3)}, average weight {average:.2f})"
        )
        return QualityFilterResult(
            original_count=len(terms),
            filtered_count=len(filtered),
            filtered_terms=filtered,
            quality_tiers=[
                QualityTier(1, "High Quality", tier1),
                QualityTier(2, "Good Quality", tier2),
                QualityTier(3, "Acceptable Quality", tier3),
            ],
            average_quality=average,
        )

    def _is_high_quality(self, term: WeightedTerm, query: str, intent: Optional[QueryIntent]) -> bool:
        if term.weight >= 0.8:
            return True
        if term.term.lower() in (query or "").lower():
            return True
        return intent is not None and _intent_specific(term.term.lower(), intent.primary_intent)

    def _is_good_quality(self, term: WeightedTerm, query: str) -> bool:
        return term.weight >= 0.6 or self.string_similarity(term.term, query) >= 0.5

    @staticmethod
    def _is_acceptable(term: WeightedTerm) -> bool:
        return term.weight >= 0.3 and not is_noise_term(term.term)


def _intent_specific(lower: str, intent: IntentType) -> bool:
    if intent == IntentType.IMPLEMENTATION:
        return "impl" in lower or "execute" in lower or "process" in lower
    if intent == IntentType.CONFIGURATION:
        return "config" in lower or "property" in lower or "setting" in lower
    if intent == IntentType.DISCOVERY:
        return lower.endswith(("service", "manager", "controller"))
    if intent == IntentType.STATUS:
        return "status" in lower or "state" in lower or "phase" in lower
    return False


@lru_cache(maxsize=4096)
def _string_similarity(term: str, query: str, max_edit_distance: int) -> float:
    first, second = term.lower(), query.lower()
    if first == second:
        return 1.0
    if first in second or second in first:
        return 0.8

    distance = edit_distance(first, second)
    if distance <= max_edit_distance:
        return 1.0 - distance / max(len(first), len(second))

    tokens1, tokens2 = tokenize(term), tokenize(query)
    if not tokens1 or not tokens2:
        return 0.0
    return len(tokens1 & tokens2) / len(tokens1 | tokens2)
