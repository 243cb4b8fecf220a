"""
Compound term generation.

Code identifiers usually join several words ("data" + "processing" ->
DataProcessor). Given the words of a query, this builds the likely
joined identifiers, including ones where a word is swapped for a member
of its semantic cluster.
"""

from itertools import combinations
from typing import Dict, List

from .naming_patterns import capitalize_word, to_snake_case

CONNECTOR_WORDS = {
    "and", "or", "the", "a", "an", "in", "on", "at", "to", "for", "of", "with", "by",
    "from", "as", "is", "are", "was", "were", "been", "being", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "must",
}

SEMANTIC_CLUSTERS: Dict[str, List[str]] = {
    "pipeline": ["workflow", "orchestration", "sequence", "chain", "flow", "process"],
    "processing": ["execution", "handling", "transformation", "computation", "operation"],
    "data": ["information", "payload", "content", "entity", "model", "object", "record"],
    "status": ["state", "condition", "phase", "stage", "progress", "result"],
    "service": ["component", "module", "handler", "processor", "engine", "manager"],
    "config": ["configuration", "settings", "properties", "options", "parameters"],
    "task": ["job", "work", "operation", "action", "activity", "process"],
    "event": ["message", "notification", "signal", "trigger", "action"],
    "request": ["query", "call", "invocation", "command", "operation"],
    "response": ["result", "reply", "answer", "output", "return"],
}

# (required words) -> identifiers
COMMON_PATTERNS = [
    (("data", "processing"), ["DataProcessor", "DataProcessingEngine", "ProcessingDataService"]),
    (("event", "handler"), ["EventHandler", "EventHandlerService", "EventHandlingManager"]),
    (("pipeline", "processor"), ["PipelineProcessor", "ProcessingPipeline", "PipelineProcessingEngine"]),
    (("task", "executor"), ["TaskExecutor", "TaskExecutionService", "ExecutorTaskManager"]),
    (("message", "queue"), ["MessageQueue", "QueueMessageHandler", "MessageQueueProcessor"]),
]

# verbs that start method names; "process" + "refund" -> processRefund
METHOD_VERBS = {
    "get", "set", "create", "build", "process", "handle", "execute", "run", "validate",
    "check", "find", "search", "fetch", "save", "update", "delete", "remove", "load",
    "send", "calculate", "compute", "parse", "convert", "generate", "apply",
}

_METHOD_CALL_PREFIXES = ("get", "process", "handle")


def _snake(word: str) -> str:
    return word.lower() if word.isupper() else to_snake_case(word)


class CompoundTermGenerator:
    """
    Joins two or more query words into identifier candidates.

    Requires at least two meaningful words; output is capped at
    `max_compound_terms` and keeps generation order.
    """

    def __init__(self, max_compound_terms: int = 20):
        self.max_compound_terms = max_compound_terms

    def generate(self, terms: List[str]) -> List[str]:
        words = self._meaningful(terms)
        if len(words) < 2:
            return []

        out: Dict[str, None] = {}
        for generator in (self._verb_object, self._two_term, self._semantic, self._patterns, self._multi_term):
            for compound in generator(words):
                if len(out) >= self.max_compound_terms:
                    return list(out)
                out.setdefault(compound, None)
        return list(out)

    @staticmethod
    def _meaningful(terms: List[str]) -> List[str]:
        words = []
        for term in terms or []:
            word = (term or "").strip()
            if word and word.lower() not in CONNECTOR_WORDS and word not in words:
                words.append(word)
        return words

    @staticmethod
    def _verb_object(words: List[str]) -> List[str]:
        out = []
        for first, second in combinations(words, 2):
            if first.lower() in METHOD_VERBS:
                out.append(first.lower() + capitalize_word(second))
            if second.lower() in METHOD_VERBS:
                out.append(second.lower() + capitalize_word(first))
        return out

    @staticmethod
    def _two_term(words: List[str]) -> List[str]:
        out = []
        for first, second in combinations(words, 2):
            c1, c2 = capitalize_word(first), capitalize_word(second)
            l1, l2 = _snake(first), _snake(second)
            out.extend([
                c1 + c2, c2 + c1,
                c1 + c2 + "Service", c2 + c1 + "Service",
                c1 + c2 + "Manager", c2 + c1 + "Manager",
                f"{l1}_{l2}", f"{l2}_{l1}",
            ])
            out.extend(prefix + c1 + c2 for prefix in _METHOD_CALL_PREFIXES)
        return out

    @staticmethod
    def alternatives(word: str) -> List[str]:
        """Cluster members for `word`, looking it up as key and as member."""
        lower = word.lower()
        if lower in SEMANTIC_CLUSTERS:
            return list(SEMANTIC_CLUSTERS[lower])
        for key, members in SEMANTIC_CLUSTERS.items():
            if lower in members:
                return [m for m in members if m != lower] + [key]
        return []

    def _semantic(self, words: List[str]) -> List[str]:
        out = []
        for word in words:
            for alt in self.alternatives(word):
                for other in words:
                    if other == word:
                        continue
                    ca, co = capitalize_word(alt), capitalize_word(other)
                    out.extend([ca + co, co + ca, ca + co + "Handler", co + ca + "Processor"])
        return out

    @staticmethod
    def _patterns(words: List[str]) -> List[str]:
        lowered = {w.lower() for w in words}
        out = []
        for required, identifiers in COMMON_PATTERNS:
            if all(word in lowered for word in required):
                for identifier in identifiers:
                    out.extend([identifier, identifier + "Impl", "Default" + identifier,
                                identifier + "Factory"])
        return out

    @staticmethod
    def _multi_term(words: List[str]) -> List[str]:
        if len(words) not in (3, 4):
            return []
        out = []
        for a, b, c in combinations(words, 3):
            ca, cb, cc = capitalize_word(a), capitalize_word(b), capitalize_word(c)
            out.extend([
                ca + cb + cc, ca + cc + cb, cb + ca + cc,
                ca + cb + cc + "Service", ca + cb + cc + "Manager",
            ])
        return out
