"""
Unit tests for the model clients: rate limiter, text model, embedder.
"""

import httpx
import numpy as np
import pytest
from openai import RateLimitError
from unittest.mock import Mock

from src.config import LLMConfig, EmbeddingConfig
from src.hybrid_retrieval.llm import Embedder, LLMClient, LLMRateLimiter, cosine_similarity


def rate_limit_error(message):
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    return RateLimitError(message, response=httpx.Response(429, request=request), body=None)


def completion(content):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    return response


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def limiter(sleeps):
    return LLMRateLimiter(delay_ms=2000, max_retries=3, min_interval_ms=0, sleep=sleeps.append)


class TestLLMRateLimiter:
    """Unit tests for LLMRateLimiter."""

    def test_success(self, limiter, sleeps):
        assert limiter.execute(lambda: "ok") == "ok"
        assert sleeps == []

    def test_retries_then_succeeds(self, limiter, sleeps):
        """Test that failed calls are retried after the default delay."""
        operation = Mock(side_effect=[RuntimeError("502"), RuntimeError("502"), "ok"])

        assert limiter.execute(operation) == "ok"
        assert operation.call_count == 3
        assert sleeps == [2.0, 2.0]

    def test_gives_up(self, limiter):
        """Test that the last error is raised once retries are used up."""
        operation = Mock(side_effect=RuntimeError("down"))

        with pytest.raises(RuntimeError, match="down"):
            limiter.execute(operation)
        assert operation.call_count == 4

    def test_rate_limit_uses_provider_hint(self, limiter, sleeps):
        operation = Mock(side_effect=[rate_limit_error("Rate limit reached. Please try again in 1.5s"), "ok"])

        assert limiter.execute(operation) == "ok"
        assert sleeps == [2.0]

    @pytest.mark.parametrize("message,delay", [
        ("Please try again in 1.5s", 2000),
        ("Please try again in 20s.", 20500),
        ("slow down", 2000),
        (None, 2000),
    ])
    def test_retry_delay(self, limiter, message, delay):
        assert limiter.retry_delay_ms(message) == delay

    def test_min_interval(self, sleeps):
        """Test that back-to-back calls are spaced out."""
        limiter = LLMRateLimiter(min_interval_ms=1000, sleep=sleeps.append)

        limiter.execute(lambda: 1)
        limiter.execute(lambda: 2)

        assert len(sleeps) == 1
        assert 0 < sleeps[0] <= 1.0


class TestLLMClient:
    """Unit tests for LLMClient."""

    def test_generate(self, limiter):
        """Test the completion request and response cleaning."""
        openai_client = Mock()
        openai_client.chat.completions.create.return_value = completion(
            "<think>the user asks how</think>\nIMPLEMENTATION: 0.9"
        )
        client = LLMClient(LLMConfig(model="test-model"), rate_limiter=limiter, openai_client=openai_client)

        assert client.generate("Classify this") == "IMPLEMENTATION: 0.9"
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][0]["content"] == LLMClient.DEFAULT_SYSTEM_PROMPT
        assert kwargs["messages"][1] == {"role": "user", "content": "Classify this"}

    def test_empty_content(self, limiter):
        openai_client = Mock()
        openai_client.chat.completions.create.return_value = completion(None)

        assert LLMClient(LLMConfig(), limiter, openai_client).generate("x") == ""

    def test_failure_propagates(self, sleeps):
        """Test that callers see the error after the limiter's retries."""
        openai_client = Mock()
        openai_client.chat.completions.create.side_effect = RuntimeError("unavailable")
        limiter = LLMRateLimiter(max_retries=1, min_interval_ms=0, sleep=sleeps.append)

        with pytest.raises(RuntimeError):
            LLMClient(LLMConfig(), limiter, openai_client).generate("x")
        assert openai_client.chat.completions.create.call_count == 2

    def test_availability(self):
        assert not LLMClient(LLMConfig(enabled=False, api_key=None)).is_available
        assert LLMClient(LLMConfig(api_key="sk-or-test")).is_available
        assert LLMClient(LLMConfig(enabled=False), openai_client=Mock()).is_available

    def test_missing_key(self):
        with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
            LLMClient(LLMConfig(api_key=None)).client

    def test_clean_response(self):
        text = "<reasoning>step 1</reasoning> {\"classes\": []} "

        assert LLMClient._clean_response(text) == '{"classes": []}'


class TestEmbedder:
    """Unit tests for Embedder with an injected model."""

    @pytest.fixture
    def model(self):
        model = Mock()
        model.encode.side_effect = lambda texts, **kwargs: (
            np.array([[0.6, 0.8]] * len(texts)) if isinstance(texts, list) else np.array([0.6, 0.8])
        )
        return model

    def test_embed(self, model):
        vector = Embedder(EmbeddingConfig(), model=model).embed("process refund")

        assert vector == pytest.approx([0.6, 0.8])
        assert model.encode.call_args.kwargs["normalize_embeddings"] is True

    def test_blank_text(self, model):
        assert Embedder(model=model).embed("  ") == []
        model.encode.assert_not_called()

    def test_embed_batch(self, model):
        vectors = Embedder(EmbeddingConfig(batch_size=8), model=model).embed_batch(["a", "b"])

        assert len(vectors) == 2
        assert vectors[1] == pytest.approx([0.6, 0.8])
        assert model.encode.call_args.kwargs["batch_size"] == 8

    def test_embed_batch_empty(self, model):
        assert Embedder(model=model).embed_batch([]) == []


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    @pytest.mark.parametrize("a,b,expected", [
        ([1.0, 0.0], [2.0, 0.0], 1.0),
        ([1.0, 0.0], [0.0, 1.0], 0.0),
        ([1.0, 0.0], [-1.0, 0.0], -1.0),
        ([1.0, 0.0], [1.0, 0.0, 0.0], 0.0),
        ([0.0, 0.0], [1.0, 0.0], 0.0),
        (None, [1.0], 0.0),
        ([], [], 0.0),
    ])
    def test_cosine(self, a, b, expected):
        assert cosine_similarity(a, b) == pytest.approx(expected)

    @pytest.mark.parametrize("a,b", [
        ([0.3, -1.2, 4.5], [2.0, 0.7, -0.1]),
        ([1e-3, 5.0], [7.0, 2.5]),
        ([1.0, 2.0, 3.0], [1.0, 2.0, 3.5]),
    ])
    def test_symmetric(self, a, b):
        assert cosine_similarity(a, b) == cosine_similarity(b, a)
        assert -1.0 <= cosine_similarity(a, b) <= 1.0
