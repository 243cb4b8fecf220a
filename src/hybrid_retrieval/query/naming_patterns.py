"""
Naming-pattern expansion for Java-style identifiers.

Turns a plain word ("refund") into the identifiers a codebase is likely
to use for it: class names (RefundService), method names (processRefund),
field names (refundId) and case variants (REFUND, refund_id).
"""

from typing import List

CLASS_SUFFIXES = [
    "Service", "Impl", "Controller", "Manager", "Processor", "Handler", "Engine", "Builder",
    "Factory", "Repository", "DAO", "Validator", "Converter", "Mapper", "Adapter",
    "Facade", "Helper", "Util", "Utils", "Component", "Module", "Provider", "Consumer",
    "Producer", "Listener", "Observer", "Strategy", "Decorator", "Proxy", "Wrapper",
    "Filter", "Interceptor", "Resolver", "Generator", "Parser", "Serializer",
    "Deserializer", "Transformer", "Translator", "Executor", "Worker", "Task", "Job",
    "Command", "Query", "Request", "Response", "Result", "Output", "Input", "Context",
    "Config", "Configuration", "Settings", "Options", "Properties",
]

CLASS_PREFIXES = [
    "Data", "Processing", "Pipeline", "Workflow", "Execution", "Task", "Job", "Event",
    "Message", "Request", "Response", "Api", "Web", "Rest", "Http", "Database", "Cache",
    "Queue", "Stream", "Batch", "Async", "Sync", "Concurrent", "Parallel", "Distributed",
    "Remote", "Local", "Internal", "External", "Custom", "Default", "Base", "Abstract",
    "Simple", "Complex", "Generic", "Specific", "Common", "Shared", "Global",
]

METHOD_PREFIXES = [
    "get", "set", "is", "has", "can", "should", "create", "build", "make", "generate",
    "process", "handle", "execute", "run", "perform", "validate", "verify", "check",
    "ensure", "assert", "find", "search", "lookup", "fetch", "retrieve", "save", "store",
    "persist", "update", "delete", "remove", "add", "insert", "append", "prepend",
    "convert", "transform", "map", "translate", "parse", "serialize", "deserialize",
    "encode", "decode", "format", "init", "initialize", "setup", "configure", "prepare",
    "start", "stop", "pause", "resume", "restart", "open", "close", "connect",
    "disconnect", "bind", "register", "unregister", "subscribe", "unsubscribe", "publish",
]

FIELD_SUFFIXES = [
    "Id", "Name", "Type", "Status", "State", "Count", "Size", "Length", "Index", "Offset",
    "Time", "Date", "Timestamp", "Duration", "Timeout", "Path", "Url", "Uri", "Location",
    "Address", "Key", "Value", "Entry", "Item", "Element", "List", "Set", "Map",
    "Collection", "Array", "Queue", "Stack", "Tree", "Graph", "Node", "Config",
    "Settings", "Options", "Parameters", "Properties", "Result", "Response", "Request",
    "Message", "Event",
]

DOMAIN_PATTERNS = {
    "pipeline": [
        "PipelineProcessor", "PipelineManager", "PipelineExecutor", "PipelineOrchestrator",
        "PipelineEngine", "PipelineService", "DataPipeline", "ProcessingPipeline",
        "WorkflowPipeline",
    ],
    "processing": [
        "ProcessingEngine", "ProcessingService", "DataProcessor", "EventProcessor",
        "MessageProcessor", "BatchProcessor", "StreamProcessor", "RequestProcessor",
        "TaskProcessor",
    ],
    "data": [
        "DataService", "DataManager", "DataRepository", "DataProvider", "DataHandler",
        "DataProcessor", "DataTransformer", "DataValidator", "DataMapper",
    ],
    "status": [
        "StatusManager", "StatusService", "StatusHandler", "ExecutionStatus",
        "ProcessingStatus", "WorkflowStatus", "TaskStatus", "JobStatus", "SystemStatus",
    ],
    "config": [
        "ConfigurationService", "ConfigManager", "ConfigProvider", "AppConfig",
        "SystemConfig", "ServiceConfig", "ConfigurationProperties", "ConfigurationBuilder",
    ],
}
DOMAIN_PATTERNS["configuration"] = DOMAIN_PATTERNS["config"]


def capitalize(term: str) -> str:
    """Upper-case the first character only ("paymentService" -> "PaymentService")."""
    return term[:1].upper() + term[1:]


def capitalize_word(word: str) -> str:
    """"refund" -> "Refund", "PAYMENT" -> "Payment", "paymentService" -> "PaymentService"."""
    if word.isupper():
        return word[:1] + word[1:].lower()
    return capitalize(word)


def uncapitalize(term: str) -> str:
    return term[:1].lower() + term[1:]


def to_camel_case(term: str) -> str:
    """"payment_service" -> "PaymentService"."""
    return "".join(capitalize(part) for part in term.split("_") if part)


def to_snake_case(term: str) -> str:
    """"PaymentService" -> "payment_service"."""
    chars = []
    for i, ch in enumerate(term):
        if ch.isupper() and i > 0:
            chars.append("_")
        chars.append(ch)
    return "".join(chars).lower()


class _OrderedTerms:
    """Insertion-ordered set with a size cap."""

    def __init__(self, limit: int):
        self.limit = limit
        self._items = {}

    def add(self, term: str):
        if term and len(self._items) < self.limit:
            self._items.setdefault(term, None)

    def extend(self, terms):
        for term in terms:
            self.add(term)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.limit

    def to_list(self) -> List[str]:
        return list(self._items)


class NamingPatternExpander:
    """
    Combines a term with common Java naming conventions.

    Output order: the term itself, class patterns, method patterns,
    field patterns, case variants; capped at `max_expansions`.
    """

    def __init__(self, max_expansions: int = 15):
        self.max_expansions = max_expansions

    def expand(self, term: str) -> List[str]:
        if not term or not term.strip():
            return []
        term = term.strip()

        out = _OrderedTerms(self.max_expansions)
        out.add(term)
        for generator in (self._class_patterns, self._method_patterns,
                          self._field_patterns, self._case_variations):
            if out.full:
                break
            out.extend(generator(term))
        return out.to_list()

    def get_domain_specific_patterns(self, term: str) -> List[str]:
        return list(DOMAIN_PATTERNS.get((term or "").lower(), []))

    @staticmethod
    def _class_patterns(term: str) -> List[str]:
        patterns = []
        has_underscore = "_" in term
        for suffix in CLASS_SUFFIXES:
            patterns.append(term + suffix)
            patterns.append(capitalize(term) + suffix)
            if has_underscore:
                patterns.append(to_camel_case(term) + suffix)
        for prefix in CLASS_PREFIXES:
            patterns.append(prefix + capitalize(term))
            patterns.append(prefix + term)
            if has_underscore:
                patterns.append(prefix + to_camel_case(term))
        return patterns

    @staticmethod
    def _method_patterns(term: str) -> List[str]:
        patterns = []
        cap = capitalize(term)
        for prefix in METHOD_PREFIXES:
            patterns.append(prefix + cap)
            patterns.append(prefix + term)
            if prefix in ("get", "set"):
                patterns.append(f"{prefix}{cap}()")
            elif prefix in ("is", "has"):
                patterns.append(f"{prefix}{cap}")
                patterns.append(f"{prefix}{cap}()")
        patterns.append(uncapitalize(term) + "()")
        patterns.append(term + "()")
        return patterns

    @staticmethod
    def _field_patterns(term: str) -> List[str]:
        patterns = []
        for suffix in FIELD_SUFFIXES:
            patterns.append(uncapitalize(term) + suffix)
            patterns.append(term + suffix)
            patterns.append(term.lower() + suffix)
        patterns.extend([
            uncapitalize(term),
            term.lower(),
            term.upper(),
            to_snake_case(term).upper(),
        ])
        return patterns

    @staticmethod
    def _case_variations(term: str) -> List[str]:
        variations = []
        if "_" in term:
            camel = to_camel_case(term)
            variations.extend([camel, uncapitalize(camel)])
        if "-" in term:
            camel = to_camel_case(term.replace("-", "_"))
            variations.extend([camel, uncapitalize(camel)])
        if any(ch.isupper() for ch in term) and not term.isupper():
            snake = to_snake_case(term)
            variations.extend([snake, snake.upper()])
        variations.extend([capitalize(term), uncapitalize(term)])
        return variations
