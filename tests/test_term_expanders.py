"""
Unit tests for the individual term expanders.

Naming patterns, compounds and synonyms are pure; the graph and
embedding expanders run against a mocked store.
"""

import pytest
from unittest.mock import Mock

from src.config import ExpansionConfig
from src.hybrid_retrieval.query import (
    NamingPatternExpander, CompoundTermGenerator, SemanticExpander,
    EmbeddingBasedExpander, GraphRelationshipExpander, QueryIntent, IntentType,
)
from src.hybrid_retrieval.query.naming_patterns import to_camel_case, to_snake_case


class TestNamingPatternExpander:
    """Tests for Java naming convention expansion."""

    def test_plain_word(self):
        """Test that a plain word yields class names within the cap."""
        expansions = NamingPatternExpander(max_expansions=15).expand("refund")

        assert expansions[0] == "refund"
        assert "RefundService" in expansions
        assert "RefundProcessor" in expansions
        assert len(expansions) == 15

    def test_identifier_gets_impl(self):
        """Test that a class name yields its Impl variant."""
        expansions = NamingPatternExpander().expand("PaymentService")

        assert "PaymentServiceImpl" in expansions

    def test_no_duplicates(self):
        """Test that output is duplicate-free."""
        expansions = NamingPatternExpander(max_expansions=200).expand("Payment")

        assert len(expansions) == len(set(expansions))

    def test_blank_term(self):
        """Test blank input."""
        assert NamingPatternExpander().expand("  ") == []

    def test_method_patterns_when_room(self):
        """Test that method names appear once class patterns fit under the cap."""
        expansions = NamingPatternExpander(max_expansions=1000).expand("refund")

        assert "processRefund" in expansions
        assert "getRefund()" in expansions
        assert "refundId" in expansions

    def test_domain_specific_patterns(self):
        """Test the domain pattern table lookup."""
        patterns = NamingPatternExpander().get_domain_specific_patterns("Pipeline")

        assert "PipelineProcessor" in patterns
        assert NamingPatternExpander().get_domain_specific_patterns("refund") == []

    @pytest.mark.parametrize("snake,camel", [
        ("payment_service", "PaymentService"),
        ("refund", "Refund"),
    ])
    def test_case_helpers(self, snake, camel):
        """Test snake/camel conversion."""
        assert to_camel_case(snake) == camel
        assert to_snake_case(camel) == snake


class TestCompoundTermGenerator:
    """Tests for compound identifier generation."""

    def test_verb_object_compound_first(self):
        """Test that verb + noun becomes a method name ahead of other compounds."""
        compounds = CompoundTermGenerator(max_compound_terms=100).generate(["PaymentService", "process", "refund"])

        assert "processRefund" in compounds
        assert compounds.index("processRefund") < compounds.index("ProcessRefund")

    def test_camel_case_words_keep_inner_capitals(self):
        """Test that identifiers from the query are joined without losing their case."""
        compounds = CompoundTermGenerator(max_compound_terms=100).generate(["PaymentService", "process", "refund"])

        assert "processPaymentService" in compounds
        assert "PaymentServiceRefund" in compounds
        assert "payment_service_refund" in compounds
        assert not any("Paymentservice" in c for c in compounds)

    def test_upper_case_words(self):
        compounds = CompoundTermGenerator().generate(["PAYMENT", "refund"])

        assert "PaymentRefund" in compounds
        assert "payment_refund" in compounds

    def test_same_output_every_call(self):
        generator = CompoundTermGenerator()

        assert generator.generate(["data", "processing", "status"]) == generator.generate(
            ["data", "processing", "status"])

    def test_needs_two_meaningful_words(self):
        """Test that connector words do not count."""
        generator = CompoundTermGenerator()

        assert generator.generate(["refund"]) == []
        assert generator.generate(["the", "data", "and"]) == []

    def test_common_patterns(self):
        """Test the table of well-known compounds."""
        compounds = CompoundTermGenerator(max_compound_terms=500).generate(["data", "processing"])

        assert "DataProcessor" in compounds
        assert "DataProcessorImpl" in compounds

    def test_cap(self):
        """Test the output cap."""
        compounds = CompoundTermGenerator(max_compound_terms=5).generate(["order", "payment", "refund"])

        assert len(compounds) == 5

    def test_alternatives_both_directions(self):
        """Test cluster lookup by key and by member."""
        assert "state" in CompoundTermGenerator.alternatives("status")
        assert "status" in CompoundTermGenerator.alternatives("phase")
        assert CompoundTermGenerator.alternatives("refund") == []


class TestSemanticExpander:
    """Tests for synonym expansion."""

    def test_synonyms_with_case_variants(self):
        """Test table order and case variants."""
        expansions = SemanticExpander(max_expansions=10).expand("status")

        assert expansions[:3] == ["status", "Status", "STATUS"]
        assert "state" in expansions
        assert len(expansions) == 10

    def test_reverse_lookup(self):
        """Test that a synonym finds its key."""
        expansions = SemanticExpander(max_expansions=100).expand("workflow")

        assert "pipeline" in expansions

    def test_unknown_term(self):
        """Test that unknown words yield only their case variants."""
        assert SemanticExpander().expand("refund") == ["refund", "Refund", "REFUND"]

    def test_context_variants(self):
        """Test typed variants triggered by context keywords."""
        variants = SemanticExpander().expand_with_context("payment", ["async"])

        assert "AsyncPayment" in variants
        assert SemanticExpander().expand_with_context("payment", ["recent"]) == []
        assert "AsyncPaymentService" in SemanticExpander().expand_with_context("paymentService", ["async"])

    def test_semantic_similarity(self):
        expander = SemanticExpander(max_expansions=100)

        assert expander.are_semantically_similar("pipeline", "workflow")
        assert expander.are_semantically_similar("Refund", "refund")
        assert not expander.are_semantically_similar("refund", "ledger")

    def test_conceptual_relations(self):
        assert "rollback" in SemanticExpander().conceptually_related("Transaction")
        assert SemanticExpander().conceptually_related("refund") == []


@pytest.fixture
def vector_store():
    """Store whose vector indexes return fixed neighbours."""
    def vector_search(index_name, vector, k, result_type=None, via_description=False):
        if index_name == "method_embeddings":
            return [
                {"nodeId": "m1", "name": "processRefund", "score": 0.9, "type": "Method",
                 "className": "PaymentServiceImpl"},
                {"nodeId": "m2", "name": "unrelated", "score": 0.3, "type": "Method"},
            ]
        if index_name == "class_embeddings":
            return [{"nodeId": "c1", "name": "RefundProcessor", "score": 0.8, "type": "Class"}]
        raise RuntimeError("index offline")

    store = Mock()
    store.vector_search.side_effect = vector_search
    return store


class TestEmbeddingBasedExpander:
    """Tests for embedding-similarity expansion."""

    def test_similar_terms_above_threshold(self, vector_store):
        """Test that neighbours above the threshold are returned best first."""
        embedder = Mock()
        embedder.embed.return_value = [0.1, 0.2]
        expander = EmbeddingBasedExpander(vector_store, embedder, ExpansionConfig())

        terms = expander.find_similar_terms("refund")

        assert terms == ["processRefund", "RefundProcessor"]
        assert vector_store.vector_search.call_count == 3

    def test_embedding_failure(self, vector_store):
        """Test that a failing embedder yields nothing."""
        embedder = Mock()
        embedder.embed.side_effect = RuntimeError("model not loaded")
        expander = EmbeddingBasedExpander(vector_store, embedder)

        assert expander.find_similar_terms("refund") == []
        vector_store.vector_search.assert_not_called()

    def test_related_code_elements(self, vector_store):
        """Test method/class nodes close to a concept."""
        embedder = Mock()
        embedder.embed.return_value = [0.1, 0.2]
        expander = EmbeddingBasedExpander(vector_store, embedder)

        elements = expander.find_related_code_elements("refund handling")

        assert [e.id for e in elements] == ["m1", "c1"]
        assert elements[0].context == "PaymentServiceImpl"

    def test_expand_query_with_embeddings(self, vector_store):
        """Test key terms, per-term neighbours and related elements."""
        embedder = Mock()
        embedder.embed.return_value = [0.1, 0.2]
        expander = EmbeddingBasedExpander(vector_store, embedder)

        result = expander.expand_query_with_embeddings("How does the refund work?")
        usage = expander.expand_query_with_embeddings(
            "Where is refund used?",
            QueryIntent(original_query="Where is refund used?", primary_intent=IntentType.USAGE),
        )

        assert result.key_terms == ["refund", "work"]
        assert result.similar_terms["refund"] == ["processRefund", "RefundProcessor"]
        assert [e.id for e in result.related_elements] == ["m1", "c1"]
        assert usage.related_elements == []

    def test_key_terms(self):
        """Test stop-word removal."""
        assert EmbeddingBasedExpander.extract_key_terms("How does the refund work?") == ["refund", "work"]


class TestGraphRelationshipExpander:
    """Tests for structural expansion."""

    def test_expand_term_keeps_nearest(self):
        """Test that duplicates keep the nearest, strongest entry."""
        store = Mock()
        store.execute_cypher.return_value = [
            {"term": "RefundProcessor", "distance": 2, "score": 0.5},
            {"term": "RefundProcessor", "distance": 1, "score": 0.4},
            {"term": "RefundValidator", "distance": 1, "score": 0.9},
            {"term": None},
        ]
        expander = GraphRelationshipExpander(store, ExpansionConfig())

        related = expander.expand_term("Refund")

        assert [r.term for r in related] == ["RefundValidator", "RefundProcessor"]
        assert related[1].distance == 1
        assert store.execute_cypher.call_count == 4
        assert store.execute_cypher.call_args.kwargs["term"] == "refund"

    def test_failing_lookups(self):
        """Test that failing lookups contribute nothing."""
        store = Mock()
        store.execute_cypher.side_effect = RuntimeError("connection reset")

        assert GraphRelationshipExpander(store).expand_term("refund") == []

    def test_co_occurrence_needs_two_terms(self):
        """Test that a single term skips the co-occurrence query."""
        store = Mock()

        assert GraphRelationshipExpander(store).find_co_occurring_terms(["refund"]) == []
        store.execute_cypher.assert_not_called()

    def test_design_pattern_hints(self):
        """Test keyword-triggered design patterns when the store fails."""
        store = Mock()
        store.execute_cypher.side_effect = RuntimeError("timeout")

        patterns = GraphRelationshipExpander(store).find_domain_patterns(["OrderFactory"])

        assert [p.pattern_type for p in patterns] == ["Factory"]
