"""
Unit tests for configuration dataclasses.
"""

import pytest

from src.config import (
    RetrievalConfig, ReRankingConfig, CombinerConfig, PipelineConfig,
    Neo4jConfig, LLMConfig,
)


class TestBaseConfig:
    """Tests for the shared BaseConfig behaviour."""

    def test_from_dict_ignores_unknown_keys(self):
        """Test that unknown keys are dropped instead of raising."""
        config = CombinerConfig.from_dict({"full_text_weight": 0.3, "bogus": 1})

        assert config.full_text_weight == 0.3
        assert config.vector_weight == 0.6

    def test_from_env_reads_typed_fields(self, monkeypatch):
        """Test that environment values are converted to the field type."""
        monkeypatch.setenv("RERANK_BASE_THRESHOLD", "0.5")
        monkeypatch.setenv("RERANK_ENABLED", "false")
        monkeypatch.setenv("RERANK_FINAL_LIMIT", "20")

        config = ReRankingConfig.from_env(prefix="RERANK_")

        assert config.base_threshold == 0.5
        assert config.enabled is False
        assert config.final_limit == 20

    def test_with_changes_returns_copy(self):
        """Test that with_changes leaves the original untouched."""
        original = CombinerConfig()
        changed = original.with_changes(score_threshold=0.3)

        assert changed.score_threshold == 0.3
        assert original.score_threshold == 0.1

    def test_from_yaml_section(self, tmp_path):
        """Test loading one section of a YAML file."""
        path = tmp_path / "config.yaml"
        path.write_text("pipeline:\n  timeout_seconds: 5\n  enable_reranking: false\n")

        config = PipelineConfig.from_yaml(str(path), section="pipeline")

        assert config.timeout_seconds == 5
        assert config.enable_reranking is False


class TestRetrievalConfig:
    """Tests for the aggregate configuration."""

    def test_defaults(self):
        """Test documented default values."""
        config = RetrievalConfig()

        assert config.combiner.full_text_weight == 0.4
        assert config.combiner.vector_weight == 0.6
        assert config.combiner.score_threshold == 0.1
        assert config.expansion.max_total_expansions == 50
        assert config.graph_expansion.depth == 2
        assert config.reranking.base_threshold == 0.35
        assert config.pipeline.timeout_seconds == 30.0

    def test_from_dict_builds_sections(self):
        """Test that nested dicts become section configs; missing sections use defaults."""
        config = RetrievalConfig.from_dict({
            "reranking": {"base_threshold": 0.6},
            "scoring": {"min_score": 0.2},
        })

        assert isinstance(config.reranking, ReRankingConfig)
        assert config.reranking.base_threshold == 0.6
        assert config.scoring.min_score == 0.2
        assert config.combiner == CombinerConfig()

    def test_from_yaml_loads_all_sections(self, tmp_path):
        """Test loading a whole YAML file."""
        path = tmp_path / "retrieval.yaml"
        path.write_text(
            "combiner:\n"
            "  initial_limit: 25\n"
            "graph_expansion:\n"
            "  depth: 3\n"
        )

        config = RetrievalConfig.from_yaml(str(path))

        assert config.combiner.initial_limit == 25
        assert config.graph_expansion.depth == 3


class TestConnectionConfigs:
    """Tests for Neo4j and model settings."""

    def test_neo4j_from_env(self, monkeypatch):
        """Test NEO4J_* variables."""
        monkeypatch.setenv("NEO4J_URI", "bolt://graph:7687")
        monkeypatch.setenv("NEO4J_USER", "reader")
        monkeypatch.setenv("NEO4J_PASSWORD", "secret")

        config = Neo4jConfig.from_env()

        assert config.uri == "bolt://graph:7687"
        assert config.user == "reader"
        assert config.password == "secret"

    @pytest.mark.parametrize("enabled,api_key,expected", [
        (True, "key", True),
        (True, None, False),
        (False, "key", False),
    ])
    def test_llm_is_configured(self, enabled, api_key, expected):
        """Test that the text model counts as configured only when enabled with a key."""
        config = LLMConfig(enabled=enabled, api_key=api_key)

        assert config.is_configured is expected
