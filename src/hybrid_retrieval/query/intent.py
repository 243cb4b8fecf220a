"""
Query intent analysis.

Classifies a question into one of five intents with a table of regular
expressions; when pattern confidence is low, a text model is asked for
"INTENT:score" lines and its answer is blended with the pattern scores.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ...config import IntentConfig
from ...logger import get_logger

logger = get_logger(__name__)


class IntentType(str, Enum):
    """What kind of answer the question is after."""
    IMPLEMENTATION = "IMPLEMENTATION"
    USAGE = "USAGE"
    CONFIGURATION = "CONFIGURATION"
    DISCOVERY = "DISCOVERY"
    STATUS = "STATUS"


class ContextType(str, Enum):
    """Informational phrase categories extracted next to the intent."""
    SCOPE = "SCOPE"
    RELATIONSHIP = "RELATIONSHIP"
    TEMPORAL = "TEMPORAL"
    QUALITY = "QUALITY"


@dataclass(frozen=True)
class SearchFocus:
    """Which parts of the graph an intent cares about."""
    method_bodies: bool = False
    descriptions: bool = False
    relationships: bool = False
    configurations: bool = False


SEARCH_FOCUS = {
    IntentType.IMPLEMENTATION: SearchFocus(method_bodies=True, descriptions=True),
    IntentType.USAGE: SearchFocus(relationships=True, configurations=True),
    IntentType.CONFIGURATION: SearchFocus(configurations=True),
    IntentType.DISCOVERY: SearchFocus(descriptions=True, relationships=True),
    IntentType.STATUS: SearchFocus(descriptions=True),
}


INTENT_PATTERNS: Dict[IntentType, List[str]] = {
    IntentType.IMPLEMENTATION: [
        r"how\s+does.*work",
        r"how\s+(does|do)\b",
        r"implementation\s+of",
        r"algorithm\s+for",
        r"logic\s+behind",
        r"how\s+is.*implemented",
        r"code\s+for",
        r"source\s+of",
    ],
    IntentType.USAGE: [
        r"where\s+is.*used",
        r"what\s+uses",
        r"called\s+by",
        r"dependencies\s+of",
        r"references\s+to",
        r"who\s+calls",
        r"consumers\s+of",
    ],
    IntentType.CONFIGURATION: [
        r"config(uration)?\s+(for|of)?",
        r"properties\s+(for|of)?",
        r"settings\s+(for|of)?",
        r"parameters\s+(for|of)?",
        r"environment\s+variables",
        r"application\.yml",
        r"@Value|@ConfigurationProperties",
    ],
    IntentType.DISCOVERY: [
        r"what\s+handles",
        r"responsible\s+for",
        r"manages",
        r"controls",
        r"orchestrates",
        r"processes",
        r"service\s+for",
    ],
    IntentType.STATUS: [
        r"status(es)?\s+(of|for)?",
        r"state(s)?\s+(of|for)?",
        r"condition(s)?\s+(of|for)?",
        r"progress\s+(of|for)?",
        r"phase(s)?\s+(of|for)?",
        r"workflow\s+state",
        r"execution\s+status",
    ],
}

CONTEXT_PATTERNS: Dict[ContextType, List[str]] = {
    ContextType.SCOPE: [
        r"\ball\b", r"\bmain\b", r"\bspecific\b", r"\brelated\b", r"\bevery\b", r"\bonly\b",
    ],
    ContextType.RELATIONSHIP: [
        r"connected\s+to", r"part\s+of", r"depends\s+on", r"\bextends\b",
        r"\bimplements\b", r"\buses\b", r"inherits\s+from",
    ],
    ContextType.TEMPORAL: [
        r"\brecent(ly)?\b", r"\blatest\b", r"\bcurrent(ly)?\b", r"\bdeprecated\b",
        r"\bnew(est)?\b", r"\bold(est)?\b",
    ],
    ContextType.QUALITY: [
        r"best\s+practice", r"\bperformance\b", r"\bsecurity\b", r"\befficient\b",
        r"\boptimal\b", r"clean\s+code",
    ],
}

_COMPILED_INTENTS = {
    intent: [re.compile(p, re.IGNORECASE) for p in patterns]
    for intent, patterns in INTENT_PATTERNS.items()
}
_COMPILED_CONTEXTS = {
    ctx: [re.compile(p, re.IGNORECASE) for p in patterns]
    for ctx, patterns in CONTEXT_PATTERNS.items()
}

PATTERN_BASE_SCORE = 0.8
LEADING_MATCH_BONUS = 0.2

CLASSIFICATION_PROMPT = """Classify the intent of this question about a codebase.

Intents:
- IMPLEMENTATION: how something works or is implemented
- USAGE: where or by whom something is used or called
- CONFIGURATION: settings, properties, parameters
- DISCOVERY: which component handles or is responsible for something
- STATUS: states, phases, progress of a process

Question: {query}

Answer with one line per relevant intent in the form INTENT_TYPE:SCORE
where SCORE is between 0.0 and 1.0. No other text."""


@dataclass(frozen=True)
class QueryIntent:
    """Result of intent analysis, immutable once produced."""
    original_query: str
    primary_intent: IntentType
    secondary_intents: List[IntentType] = field(default_factory=list)
    intent_scores: Dict[IntentType, float] = field(default_factory=dict)
    contexts: Dict[ContextType, List[str]] = field(default_factory=dict)
    confidence: float = 0.0

    @property
    def search_focus(self) -> SearchFocus:
        return SEARCH_FOCUS[self.primary_intent]

    def has_intent(self, intent: IntentType) -> bool:
        return self.primary_intent == intent or intent in self.secondary_intents

    def context_terms(self) -> List[str]:
        """All matched context phrases, flattened."""
        return [phrase for phrases in self.contexts.values() for phrase in phrases]


class QueryIntentAnalyzer:
    """
    Pattern-first intent classifier with a text-model fallback.

    Example:
        >>> analyzer = QueryIntentAnalyzer()
        >>> analyzer.analyze("How does PaymentService process a refund?").primary_intent
        <IntentType.IMPLEMENTATION: 'IMPLEMENTATION'>
    """

    def __init__(self, config: Optional[IntentConfig] = None, llm_client=None):
        """
        Args:
            config: Thresholds and fallback switches
            llm_client: Object with generate(prompt) -> str; None disables the fallback
        """
        self.config = config or IntentConfig()
        self.llm_client = llm_client

    def analyze(self, query: str) -> QueryIntent:
        """Classify `query`. Never raises for string input."""
        query = query or ""
        scores = self._pattern_scores(query)
        contexts = self.extract_contexts(query)

        top = max(scores.values()) if scores else 0.0
        if self._fallback_enabled and (not scores or top < self.config.confidence_threshold):
            logger.debug(f"Pattern confidence {top:.2f} below threshold, consulting model")
            scores = self._blend_with_llm(query, scores)

        return self._build_intent(query, scores, contexts)

    @property
    def _fallback_enabled(self) -> bool:
        if not self.config.enable_llm_fallback or self.llm_client is None:
            return False
        return getattr(self.llm_client, "is_available", True)

    def _pattern_scores(self, query: str) -> Dict[IntentType, float]:
        raw: Dict[IntentType, float] = {}
        for intent, patterns in _COMPILED_INTENTS.items():
            best = 0.0
            for pattern in patterns:
                match = pattern.search(query)
                if not match:
                    continue
                score = PATTERN_BASE_SCORE
                if match.start() == 0:
                    score += LEADING_MATCH_BONUS
                best = max(best, score)
            if best > 0:
                raw[intent] = best

        total = sum(raw.values())
        if total <= 0:
            return {}
        return {intent: score / total for intent, score in raw.items()}

    def extract_contexts(self, query: str) -> Dict[ContextType, List[str]]:
        """Matched phrases per context category; categories without matches are omitted."""
        contexts: Dict[ContextType, List[str]] = {}
        for ctx, patterns in _COMPILED_CONTEXTS.items():
            found = []
            for pattern in patterns:
                for match in pattern.finditer(query):
                    phrase = match.group(0).lower()
                    if phrase not in found:
                        found.append(phrase)
            if found:
                contexts[ctx] = found
        return contexts

    def _blend_with_llm(self, query: str, pattern_scores: Dict[IntentType, float]) -> Dict[IntentType, float]:
        try:
            response = self.llm_client.generate(CLASSIFICATION_PROMPT.format(query=query))
        except Exception as e:
            logger.warning(f"Intent fallback failed, keeping pattern scores: {e}")
            return pattern_scores

        llm_scores = self.parse_llm_scores(response)
        if not llm_scores:
            return pattern_scores

        llm_weight = self.config.llm_weight
        # declaration order, so ties resolve the same way in every process
        blended = {}
        for intent in IntentType:
            if intent not in llm_scores and intent not in pattern_scores:
                continue
            blended[intent] = (
                llm_scores.get(intent, 0.0) * llm_weight
                + pattern_scores.get(intent, 0.0) * (1.0 - llm_weight)
            )
        return blended

    @staticmethod
    def parse_llm_scores(response: str) -> Dict[IntentType, float]:
        """Parse INTENT_TYPE:SCORE lines, skipping anything malformed."""
        scores: Dict[IntentType, float] = {}
        for line in (response or "").splitlines():
            parts = line.strip().split(":")
            if len(parts) != 2:
                continue
            name = parts[0].strip().upper()
            if name not in IntentType.__members__:
                continue
            try:
                value = float(parts[1].strip())
            except ValueError:
                continue
            scores[IntentType[name]] = min(1.0, max(0.0, value))
        return scores

    def _build_intent(
        self,
        query: str,
        scores: Dict[IntentType, float],
        contexts: Dict[ContextType, List[str]],
    ) -> QueryIntent:
        if scores:
            primary = max(scores, key=scores.get)
        else:
            primary = IntentType.DISCOVERY

        secondary = []
        if self.config.enable_multi_intent:
            cutoff = self.config.confidence_threshold * 0.7
            secondary = [
                intent for intent, score in sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
                if intent != primary and score >= cutoff
            ]

        intent = QueryIntent(
            original_query=query,
            primary_intent=primary,
            secondary_intents=secondary,
            intent_scores=dict(scores),
            contexts=contexts,
            confidence=scores.get(primary, 0.0),
        )
        logger.info(
            f"Intent: {primary.value} (confidence {intent.confidence:.2f}, "
            f"secondary {[i.value for i in secondary]})"
        )
        return intent
