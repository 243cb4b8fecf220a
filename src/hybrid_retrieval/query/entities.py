"""
Entity extraction.

Turns a question into candidate code entities (classes, methods,
packages, free terms) used as search input. The enhanced path runs
intent analysis, multi-level expansion, quality filtering and strategy
selection, then sorts the surviving terms by naming convention.
"""

import json
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ...logger import get_logger
from .intent import QueryIntent, QueryIntentAnalyzer
from .multi_level import MultiLevelExpander, QueryExpansion, STOP_WORDS
from .quality_filter import ExpansionQualityFilter, QualityFilterResult
from .strategy import IntentBasedSearchStrategy, SearchStrategy

logger = get_logger(__name__)

CLASS_NAME_SUFFIXES = (
    "Service", "Controller", "Manager", "Handler", "Engine", "Factory", "Builder",
    "Repository", "DAO", "Processor", "Provider", "Consumer", "Listener", "Observer",
    "Adapter",
)

METHOD_NAME_PREFIXES = (
    "get", "set", "is", "has", "can", "should", "create", "build", "process", "handle",
    "execute", "validate", "check", "find", "search", "save",
)

COMMON_PACKAGES = {
    "service", "controller", "repository", "model", "entity", "dto", "util", "utils",
    "helper", "config", "security",
}

EXTRACTION_PROMPT = """Extract code entities from this question about a Java codebase: "{query}"

Look for:
- Class names (UserService, Pipeline, DataProcessor)
- Method names (processData, initialize, getUserById)
- Package references (com.example, service, controller)
- Technical terms that might match code elements

Return ONLY a JSON object of this shape, using empty arrays where nothing is found:
{{"classes": [], "methods": [], "packages": [], "terms": []}}"""

_IDENTIFIER = re.compile(r"[A-Za-z_][\w.]*(?:\(\))?")


def _dedupe(items: List[str]) -> List[str]:
    return list(dict.fromkeys(item for item in items if item))


@dataclass
class ExtractedEntities:
    """Candidate entities per category; each list is duplicate-free in first-seen order."""
    classes: List[str] = field(default_factory=list)
    methods: List[str] = field(default_factory=list)
    packages: List[str] = field(default_factory=list)
    terms: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.classes = _dedupe(self.classes)
        self.methods = _dedupe(self.methods)
        self.packages = _dedupe(self.packages)
        self.terms = _dedupe(self.terms)

    def has_entities(self) -> bool:
        return bool(self.classes or self.methods or self.packages or self.terms)

    def all_entities(self) -> List[str]:
        return self.classes + self.methods + self.packages + self.terms

    @property
    def total_count(self) -> int:
        return len(self.classes) + len(self.methods) + len(self.packages) + len(self.terms)


@dataclass
class EntityExtraction:
    """Everything the enhanced path produced for one query."""
    entities: ExtractedEntities
    intent: Optional[QueryIntent] = None
    expansion: Optional[QueryExpansion] = None
    filter_result: Optional[QualityFilterResult] = None
    strategy: Optional[SearchStrategy] = None
    used_fallback: bool = False


def is_class_name(term: str, source: Optional[str] = None) -> bool:
    if not term[:1].isupper():
        return False
    if term.endswith(CLASS_NAME_SUFFIXES):
        return True
    return bool(source) and ("pattern" in source or "compound" in source)


def is_method_name(term: str) -> bool:
    if not term[:1].islower():
        return False
    return term.startswith(METHOD_NAME_PREFIXES) or term.endswith("()")


def is_package_name(term: str) -> bool:
    if "." in term:
        return True
    return term == term.lower() and len(term) > 2 and term in COMMON_PACKAGES


class EntityExtractor:
    """
    Query -> ExtractedEntities.

    Example:
        >>> extractor = EntityExtractor()
        >>> extraction = extractor.extract_and_expand("How does PaymentService process a refund?")
        >>> "PaymentServiceImpl" in extraction.entities.classes
        True
    """

    def __init__(
        self,
        intent_analyzer: Optional[QueryIntentAnalyzer] = None,
        expander: Optional[MultiLevelExpander] = None,
        quality_filter: Optional[ExpansionQualityFilter] = None,
        strategy_builder: Optional[IntentBasedSearchStrategy] = None,
        llm_client=None,
        use_llm_entities: bool = False,
    ):
        """
        Args:
            intent_analyzer: Intent classification
            expander: Multi-level term expansion
            quality_filter: Tiering/noise removal of expansion terms
            strategy_builder: Intent -> SearchStrategy
            llm_client: Object with generate(prompt) -> str for model extraction
            use_llm_entities: Merge model-extracted entities ahead of expansion terms
        """
        self.intent_analyzer = intent_analyzer or QueryIntentAnalyzer()
        self.expander = expander or MultiLevelExpander()
        self.quality_filter = quality_filter or ExpansionQualityFilter()
        self.strategy_builder = strategy_builder or IntentBasedSearchStrategy()
        self.llm_client = llm_client
        self.use_llm_entities = use_llm_entities

    # ---- model extraction ----

    def extract(self, query: str) -> ExtractedEntities:
        """Ask the text model for entities; any failure yields an empty result."""
        if self.llm_client is None:
            return ExtractedEntities()
        try:
            response = self.llm_client.generate(EXTRACTION_PROMPT.format(query=query))
        except Exception as e:
            logger.error(f"Entity extraction request failed: {e}")
            return ExtractedEntities()
        return self.parse_response(response)

    @staticmethod
    def parse_response(response: str) -> ExtractedEntities:
        text = (response or "").strip()
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)

        start, end = text.find("{"), text.rfind("}") + 1
        if start == -1 or end <= start:
            logger.warning("No JSON object in entity extraction response")
            return ExtractedEntities()

        try:
            data = json.loads(text[start:end])
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to parse entity extraction response: {e}")
            return ExtractedEntities()
        if not isinstance(data, dict):
            return ExtractedEntities()

        def strings(key):
            values = data.get(key) or []
            return [str(v) for v in values if isinstance(v, (str, int, float))] if isinstance(values, list) else []

        return ExtractedEntities(
            classes=strings("classes"),
            methods=strings("methods"),
            packages=strings("packages"),
            terms=strings("terms"),
        )

    # ---- enhanced path ----

    def extract_and_expand(self, query: str, context=None) -> EntityExtraction:
        """
        Intent -> expansion -> quality filter -> strategy -> categories.

        Falls back to identifier extraction from the raw query if any
        step raises.
        """
        try:
            intent = self.intent_analyzer.analyze(query)
            llm_entities = self.extract(query) if self.use_llm_entities else None
            expansion = self.expander.expand_query(query, intent, context=context)
            filter_result = self.quality_filter.filter_with_quality_metrics(
                expansion.all_terms, query, intent
            )
            strategy = self.strategy_builder.create_strategy(intent, expansion)
            entities = self._categorize(filter_result, llm_entities, strategy, expansion)
        except Exception as e:
            logger.error(f"Enhanced entity extraction failed, using basic extraction: {e}")
            return EntityExtraction(entities=self.basic_extract(query), used_fallback=True)

        logger.info(
            f"Entities: {len(entities.classes)} classes, {len(entities.methods)} methods, "
            f"{len(entities.packages)} packages, {len(entities.terms)} terms"
        )
        logger.debug(f"Classes: {entities.classes}")
        logger.debug(f"Methods: {entities.methods}")
        return EntityExtraction(
            entities=entities,
            intent=intent,
            expansion=expansion,
            filter_result=filter_result,
            strategy=strategy,
        )

    @staticmethod
    def _categorize(filter_result: QualityFilterResult, llm_entities: Optional[ExtractedEntities],
                    strategy: Optional[SearchStrategy],
                    expansion: Optional[QueryExpansion] = None) -> ExtractedEntities:
        """Sort filtered terms by naming convention, keeping the strategy's confidence buckets only."""
        classes, methods, packages, terms = [], [], [], []
        if llm_entities is not None:
            classes.extend(llm_entities.classes)
            methods.extend(llm_entities.methods)
            packages.extend(llm_entities.packages)
            terms.extend(llm_entities.terms)

        allowed = None
        if strategy is not None and expansion is not None:
            allowed = set(strategy.expansion_terms(expansion))

        for weighted in filter_result.filtered_terms:
            term = weighted.term
            if allowed is not None and term not in allowed:
                continue
            if is_class_name(term, weighted.source):
                classes.append(term)
            elif is_method_name(term):
                methods.append(term)
            elif is_package_name(term):
                packages.append(term)
            else:
                terms.append(term)

        entities = ExtractedEntities(classes=classes, methods=methods, packages=packages, terms=terms)
        if strategy is not None:
            limit = strategy.per_category_limit
            entities = ExtractedEntities(
                classes=entities.classes[:limit],
                methods=entities.methods[:limit],
                packages=entities.packages[:limit],
                terms=entities.terms[:limit],
            )
        return entities

    @staticmethod
    def basic_extract(query: str) -> ExtractedEntities:
        """Identifier-shaped tokens of the raw query, sorted by naming convention."""
        classes, methods, packages, terms = [], [], [], []
        for token in _IDENTIFIER.findall(query or ""):
            token = token.rstrip(".")
            if len(token) <= 2 or token.lower() in STOP_WORDS:
                continue
            if "." in token:
                packages.append(token)
            elif token[:1].isupper() and (any(ch.isupper() for ch in token[1:])
                                          or token.endswith(CLASS_NAME_SUFFIXES)):
                classes.append(token)
            elif token[:1].islower() and (any(ch.isupper() for ch in token) or token.endswith("()")):
                methods.append(token)
            else:
                terms.append(token.lower())
        return ExtractedEntities(classes=classes, methods=methods, packages=packages, terms=terms)
