"""
Domain-synonym expansion.

Static synonym tables for the vocabulary of backend code (pipelines,
services, status, requests ...), looked up in both directions, plus
verb synonyms and context-triggered variants such as AsyncPipeline.
"""

from typing import Dict, Iterable, List

from .naming_patterns import capitalize_word

DOMAIN_SYNONYMS: Dict[str, List[str]] = {
    "pipeline": ["workflow", "orchestration", "chain", "sequence", "flow", "process",
                 "stream", "channel", "path", "route"],
    "processing": ["execution", "handling", "transformation", "computation", "operation",
                   "manipulation", "treatment", "conversion", "action"],
    "manager": ["coordinator", "orchestrator", "controller", "supervisor", "handler",
                "administrator", "director", "governor", "organizer"],
    "data": ["information", "payload", "content", "entity", "model", "object", "record",
             "item", "element", "resource"],
    "service": ["component", "module", "handler", "processor", "engine", "provider",
                "facility", "utility", "system", "unit"],
    "status": ["state", "condition", "phase", "stage", "progress", "result", "outcome",
               "situation", "position", "standing"],
    "config": ["configuration", "settings", "properties", "options", "parameters",
               "preferences", "setup", "arrangement", "profile"],
    "configuration": ["config", "settings", "properties", "options", "parameters",
                      "preferences", "setup", "arrangement", "profile"],
    "task": ["job", "work", "operation", "action", "activity", "process", "duty",
             "assignment", "function", "responsibility"],
    "event": ["message", "notification", "signal", "trigger", "action", "occurrence",
              "incident", "happening", "alert"],
    "request": ["query", "call", "invocation", "command", "operation", "demand",
                "petition", "solicitation", "appeal", "ask"],
    "response": ["result", "reply", "answer", "output", "return", "feedback", "reaction",
                 "acknowledgment", "echo", "outcome"],
    "error": ["exception", "fault", "failure", "mistake", "problem", "issue", "defect",
              "bug", "glitch", "anomaly"],
    "validate": ["verify", "check", "confirm", "ensure", "test", "examine", "inspect",
                 "audit", "assess", "evaluate"],
    "create": ["build", "generate", "make", "construct", "produce", "form", "establish",
               "instantiate", "initialize", "spawn"],
    "update": ["modify", "change", "alter", "edit", "revise", "adjust", "amend", "refresh",
               "renew", "upgrade"],
    "delete": ["remove", "destroy", "eliminate", "erase", "clear", "purge", "drop",
               "discard", "terminate", "abolish"],
    "get": ["retrieve", "fetch", "obtain", "acquire", "access", "find", "lookup", "search",
            "query", "read"],
    "set": ["assign", "configure", "define", "establish", "specify", "designate",
            "appoint", "allocate", "apply", "put"],
    "start": ["begin", "initiate", "launch", "commence", "open", "activate", "trigger",
              "boot", "kickoff", "startup"],
    "stop": ["end", "terminate", "halt", "cease", "finish", "close", "shutdown", "abort",
             "cancel", "discontinue"],
    "cache": ["store", "buffer", "memory", "storage", "repository", "vault", "reserve",
              "stash", "pool", "bank"],
    "queue": ["buffer", "line", "sequence", "list", "array", "stack", "pipeline",
              "channel", "stream", "fifo"],
    "database": ["db", "datastore", "repository", "storage", "persistence", "store",
                 "warehouse", "archive", "vault", "collection"],
}

ACTION_SYNONYMS: Dict[str, List[str]] = {
    "process": ["handle", "execute", "run", "perform", "operate", "treat", "manage",
                "conduct", "carry", "accomplish"],
    "handle": ["process", "manage", "deal", "treat", "address", "tackle", "cope",
               "control", "direct", "administer"],
    "execute": ["run", "perform", "carry", "implement", "accomplish", "complete",
                "fulfill", "achieve", "realize", "effect"],
}

CONCEPTUAL_RELATIONS: Dict[str, List[str]] = {
    "pipeline": ["stage", "step", "phase", "node", "task", "executor", "runner",
                 "scheduler", "coordinator"],
    "service": ["endpoint", "api", "interface", "contract", "client", "provider",
                "implementation", "facade"],
    "data": ["schema", "structure", "format", "type", "validation", "transformation",
             "serialization"],
    "event": ["listener", "publisher", "subscriber", "emitter", "broadcaster",
              "dispatcher", "propagator"],
    "cache": ["eviction", "ttl", "expiry", "refresh", "invalidation", "warming", "preload"],
    "queue": ["consumer", "producer", "broker", "topic", "partition", "offset",
              "acknowledgment"],
    "transaction": ["commit", "rollback", "isolation", "consistency", "atomicity",
                    "durability", "saga"],
}

# context keywords -> identifier templates, {t} is the capitalized term
CONTEXT_VARIANTS = [
    (("async", "asynchronous"),
     ["Async{t}", "{t}Async", "Asynchronous{t}", "{t}Future", "{t}Promise", "Reactive{t}"]),
    (("batch", "bulk"),
     ["Batch{t}", "{t}Batch", "Bulk{t}", "{t}Bulk", "{t}BatchProcessor"]),
    (("stream", "streaming"),
     ["Stream{t}", "{t}Stream", "Streaming{t}", "{t}StreamProcessor", "Reactive{t}Stream"]),
    (("distributed", "cluster"),
     ["Distributed{t}", "{t}Cluster", "Remote{t}", "{t}Node", "Clustered{t}"]),
]


class SemanticExpander:
    """
    Synonym lookup over the domain and action tables.

    Expansions are deterministic: table order, then case variants
    (as is, Capitalized, UPPER), capped at `max_expansions`.
    """

    def __init__(self, max_expansions: int = 10):
        self.max_expansions = max_expansions

    def expand(self, term: str) -> List[str]:
        if not term or not term.strip():
            return []
        lower = term.strip().lower()

        base: Dict[str, None] = {lower: None}
        for synonym in DOMAIN_SYNONYMS.get(lower, []):
            base.setdefault(synonym, None)
        for key, synonyms in DOMAIN_SYNONYMS.items():
            if lower in synonyms:
                base.setdefault(key, None)
                for synonym in synonyms:
                    base.setdefault(synonym, None)
        for synonym in ACTION_SYNONYMS.get(lower, []):
            base.setdefault(synonym, None)

        out: Dict[str, None] = {}
        for word in base:
            for variant in (word, capitalize_word(word), word.upper()):
                if len(out) >= self.max_expansions:
                    return list(out)
                out.setdefault(variant, None)
        return list(out)

    def conceptually_related(self, term: str) -> List[str]:
        return list(CONCEPTUAL_RELATIONS.get((term or "").lower(), []))

    def expand_with_context(self, term: str, context_terms: Iterable[str]) -> List[str]:
        """Typed variants (AsyncX, XBatch ...) triggered by context keywords."""
        if not term:
            return []
        context = {c.lower() for c in context_terms or []}
        cap = capitalize_word(term)
        out: Dict[str, None] = {}
        for keywords, templates in CONTEXT_VARIANTS:
            if context.intersection(keywords):
                for template in templates:
                    out.setdefault(template.format(t=cap), None)
        return list(out)

    def are_semantically_similar(self, first: str, second: str) -> bool:
        if not first or not second:
            return False
        if first.lower() == second.lower():
            return True
        first_set = {t.lower() for t in self.expand(first)}
        second_set = {t.lower() for t in self.expand(second)}
        return bool(first_set & second_set)
