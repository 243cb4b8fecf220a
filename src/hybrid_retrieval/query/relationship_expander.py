"""
Graph-relationship term expansion.

For a term, finds code entities structurally close to the entities whose
names contain it: direct neighbours, class hierarchy, call-chain partners
and package siblings. Their names become expansion terms.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...config import ExpansionConfig
from ...logger import get_logger

logger = get_logger(__name__)


DIRECT_QUERY = """
MATCH (n)
WHERE (n:Method OR n:Class OR n:Interface)
  AND (
    toLower(n.name) CONTAINS $term
    OR (n:Method AND toLower(COALESCE(n.signature, '')) CONTAINS $term)
    OR (n:Method AND toLower(COALESCE(n.className, '')) CONTAINS $term)
    OR ((n:Class OR n:Interface) AND toLower(COALESCE(n.fullName, '')) CONTAINS $term)
  )
MATCH path = (n)-[{rel_pattern}*1..{depth}]-(related)
WHERE (related:Method OR related:Class OR related:Interface) AND related <> n
WITH related,
     type(last(relationships(path))) AS relationshipType,
     min(length(path)) AS distance,
     count(path) AS pathCount
RETURN related.name AS term,
       COALESCE(related.className, related.packageName) AS context,
       relationshipType,
       distance,
       pathCount AS score,
       labels(related)[0] AS nodeType
ORDER BY distance ASC, score DESC
LIMIT $limit
"""

HIERARCHY_QUERY = """
MATCH (n:Class|Interface)
WHERE toLower(n.name) CONTAINS $term OR toLower(COALESCE(n.fullName, '')) CONTAINS $term
CALL {
    WITH n
    MATCH (n)-[:EXTENDS]->(r) RETURN r, 'parent_class' AS relationshipType
    UNION
    WITH n
    MATCH (r)-[:EXTENDS]->(n) RETURN r, 'child_class' AS relationshipType
    UNION
    WITH n
    MATCH (n)-[:IMPLEMENTS]->(r) RETURN r, 'implements' AS relationshipType
    UNION
    WITH n
    MATCH (r)-[:IMPLEMENTS]->(n) RETURN r, 'implementor' AS relationshipType
}
RETURN DISTINCT r.name AS term,
       r.packageName AS context,
       relationshipType,
       1 AS distance,
       1.0 AS score,
       labels(r)[0] AS nodeType
LIMIT $limit
"""

CALL_PATTERN_QUERY = """
MATCH (m1:Method)
WHERE toLower(m1.name) CONTAINS $term OR toLower(COALESCE(m1.signature, '')) CONTAINS $term
MATCH (m1)-[:CALLS]->(m2:Method)-[:CALLS]->(m3:Method)
WITH m2, m3, count(*) AS coOccurrences
WHERE coOccurrences > 1
UNWIND [m2, m3] AS m
RETURN DISTINCT m.name AS term,
       m.className AS context,
       'call_pattern' AS relationshipType,
       2 AS distance,
       coOccurrences AS score,
       'Method' AS nodeType
ORDER BY score DESC
LIMIT $limit
"""

PACKAGE_SIBLING_QUERY = """
MATCH (n:Class|Interface)
WHERE toLower(n.name) CONTAINS $term AND n.packageName IS NOT NULL
MATCH (sibling:Class|Interface)
WHERE sibling.packageName = n.packageName
  AND sibling.name <> n.name
  AND NOT sibling.name CONTAINS 'Test'
  AND NOT sibling.name CONTAINS 'Mock'
RETURN DISTINCT sibling.name AS term,
       sibling.packageName AS context,
       'package_sibling' AS relationshipType,
       1 AS distance,
       1.0 AS score,
       labels(sibling)[0] AS nodeType
LIMIT $limit
"""

CO_OCCURRENCE_QUERY = """
MATCH (n:Method|Class|Interface)
WHERE ALL(term IN $terms WHERE
    toLower(n.name) CONTAINS term OR
    toLower(COALESCE(n.signature, '')) CONTAINS term OR
    toLower(COALESCE(n.fullName, '')) CONTAINS term)
MATCH (n)-[*1..2]-(related:Method|Class|Interface)
WHERE NOT toLower(related.name) IN $terms
WITH related.name AS term,
     count(DISTINCT n) AS count,
     collect(DISTINCT labels(related)[0])[0] AS type
RETURN term, count, type
ORDER BY count DESC
LIMIT $limit
"""

ARCHITECTURE_QUERY = """
MATCH (n:Class|Interface)
WHERE ANY(term IN $terms WHERE toLower(n.name) CONTAINS term)
OPTIONAL MATCH (n)-[:CALLS|CONTAINS*1..3]-(service:Class)
WHERE service.name ENDS WITH 'Service'
OPTIONAL MATCH (service)-[:CALLS|CONTAINS*1..3]-(repo:Class)
WHERE repo.name ENDS WITH 'Repository' OR repo.name ENDS WITH 'DAO'
WITH n,
     collect(DISTINCT service.name) AS services,
     collect(DISTINCT repo.name) AS repositories
WHERE size(services) > 0 OR size(repositories) > 0
RETURN 'MVC/Layered' AS patternType,
       services + repositories AS components,
       size(services) + size(repositories) AS strength
LIMIT 5
"""


@dataclass(frozen=True)
class RelatedTerm:
    term: str
    relationship_type: str
    distance: int
    score: float
    context: str = ""
    node_type: str = ""


@dataclass(frozen=True)
class CoOccurringTerm:
    term: str
    count: int
    type: str


@dataclass(frozen=True)
class DomainPattern:
    pattern_type: str
    components: List[str]
    strength: int


@dataclass
class GraphExpansionResult:
    original_terms: List[str]
    related_terms: List[str] = field(default_factory=list)
    co_occurring_terms: List[CoOccurringTerm] = field(default_factory=list)
    domain_patterns: List[DomainPattern] = field(default_factory=list)

    @property
    def total_expansions(self) -> int:
        return len(self.related_terms) + len(self.co_occurring_terms)


class GraphRelationshipExpander:
    """
    Structural expansion through the knowledge graph.

    The four lookups for a term run concurrently; any failing lookup
    contributes nothing.
    """

    def __init__(self, store, config: Optional[ExpansionConfig] = None):
        self.store = store
        self.config = config or ExpansionConfig()

    def expand_term(self, term: str) -> List[RelatedTerm]:
        """Related terms for one term, nearest and strongest first."""
        if not term or not term.strip():
            return []
        needle = term.strip().lower()
        limit = self.config.max_graph_expansions

        lookups = {
            "direct": (self._direct_query(), limit),
            "hierarchy": (HIERARCHY_QUERY, max(1, limit // 2)),
            "call_pattern": (CALL_PATTERN_QUERY, max(1, limit // 2)),
            "package_sibling": (PACKAGE_SIBLING_QUERY, max(1, limit // 3)),
        }

        found: List[RelatedTerm] = []
        with ThreadPoolExecutor(max_workers=self.config.expander_pool_size) as executor:
            futures = {
                name: executor.submit(self._run_lookup, query, needle, lookup_limit)
                for name, (query, lookup_limit) in lookups.items()
            }
            for name, future in futures.items():
                try:
                    found.extend(future.result())
                except Exception as e:
                    logger.debug(f"Graph lookup '{name}' failed for '{term}': {e}")

        best: Dict[str, RelatedTerm] = {}
        for related in found:
            current = best.get(related.term)
            if current is None or (related.distance, -related.score) < (current.distance, -current.score):
                best[related.term] = related

        ordered = sorted(best.values(), key=lambda r: (r.distance, -r.score))
        return ordered[:limit]

    def _direct_query(self) -> str:
        types = self.config.graph_relationship_types
        rel_pattern = ":" + "|".join(types) if types else ""
        return DIRECT_QUERY.format(rel_pattern=rel_pattern, depth=max(1, int(self.config.max_graph_depth)))

    def _run_lookup(self, query: str, term: str, limit: int) -> List[RelatedTerm]:
        rows = self.store.execute_cypher(query, term=term, limit=limit)
        return [
            RelatedTerm(
                term=row["term"],
                relationship_type=row.get("relationshipType") or "",
                distance=int(row.get("distance") or 1),
                score=float(row.get("score") or 0.0),
                context=row.get("context") or "",
                node_type=row.get("nodeType") or "",
            )
            for row in rows
            if row.get("term")
        ]

    def find_related_terms(self, terms: List[str]) -> List[str]:
        """Names related to any of `terms`, in order of first discovery."""
        out: Dict[str, None] = {}
        for term in terms:
            for related in self.expand_term(term):
                out.setdefault(related.term, None)
        return list(out)

    def find_co_occurring_terms(self, terms: List[str]) -> List[CoOccurringTerm]:
        """Entities near nodes that mention every term; needs at least two terms."""
        needles = [t.lower() for t in terms if t and t.strip()]
        if len(needles) < 2:
            return []
        try:
            rows = self.store.execute_cypher(
                CO_OCCURRENCE_QUERY, terms=needles, limit=self.config.max_graph_expansions
            )
        except Exception as e:
            logger.error(f"Failed to find co-occurring terms: {e}")
            return []
        return [
            CoOccurringTerm(term=row["term"], count=int(row.get("count") or 0), type=row.get("type") or "")
            for row in rows
            if row.get("term")
        ]

    def find_domain_patterns(self, terms: List[str]) -> List[DomainPattern]:
        patterns: List[DomainPattern] = []
        needles = [t.lower() for t in terms if t]
        if not needles:
            return patterns

        try:
            rows = self.store.execute_cypher(ARCHITECTURE_QUERY, terms=needles)
            patterns.extend(
                DomainPattern(
                    pattern_type=row.get("patternType") or "MVC/Layered",
                    components=list(row.get("components") or []),
                    strength=int(row.get("strength") or 0),
                )
                for row in rows
            )
        except Exception as e:
            logger.debug(f"Architectural pattern search failed: {e}")

        if any("factory" in t for t in needles):
            patterns.append(DomainPattern("Factory", ["create", "build", "getInstance", "newInstance"], 5))
        if any("observer" in t or "listener" in t for t in needles):
            patterns.append(DomainPattern("Observer", ["notify", "update", "subscribe", "unsubscribe", "publish"], 5))
        return patterns

    def expand_with_graph_analysis(self, terms: List[str]) -> GraphExpansionResult:
        result = GraphExpansionResult(
            original_terms=list(terms),
            related_terms=self.find_related_terms(terms),
            co_occurring_terms=self.find_co_occurring_terms(terms),
            domain_patterns=self.find_domain_patterns(terms),
        )
        logger.debug(
            f"Graph analysis for {len(terms)} terms: {result.total_expansions} expansions, "
            f"{len(result.domain_patterns)} patterns"
        )
        return result
