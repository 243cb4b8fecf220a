"""
Model configuration: text-generation (OpenRouter) and embeddings.
"""

from dataclasses import dataclass, field
from typing import Optional
import os

from .base import BaseConfig


@dataclass
class LLMConfig(BaseConfig):
    """
    Configuration for the text-generation model.

    The model is only used as a fallback (low-confidence intent
    classification and entity extraction), so an unconfigured client
    simply disables those paths.

    Attributes:
        enabled: Whether model fallbacks are enabled
        api_key: OpenRouter API key
        api_base: API base URL
        model: Model name
        max_tokens: Token limit per call
        temperature: Sampling temperature
        request_timeout: HTTP timeout per call in seconds
        rate_limit_delay_ms: Default wait before retrying a failed call
        max_retries: Retries per call before giving up
        min_interval_ms: Minimum spacing between two requests
    """
    enabled: bool = True
    api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENROUTER_API_KEY")
    )
    api_base: str = "https://openrouter.ai/api/v1"
    model: str = field(
        default_factory=lambda: os.getenv("INTENT_MODEL", "deepseek/deepseek-r1:free")
    )
    max_tokens: int = 512
    temperature: float = 0.1
    request_timeout: float = 30.0

    # Rate limiting
    rate_limit_delay_ms: int = 2000
    max_retries: int = 3
    min_interval_ms: int = 200

    @classmethod
    def from_env(cls, prefix: str = "") -> 'LLMConfig':
        """Load config from environment variables."""
        return cls(
            enabled=os.getenv("LLM_ENABLED", "true").lower() == "true",
            api_key=os.getenv("OPENROUTER_API_KEY"),
            model=os.getenv("INTENT_MODEL", "deepseek/deepseek-r1:free"),
            rate_limit_delay_ms=int(os.getenv("LLM_RATE_LIMIT_DELAY_MS", "2000")),
            max_retries=int(os.getenv("LLM_MAX_RETRIES", "3")),
        )

    @property
    def is_configured(self) -> bool:
        """Check if the model client can be used."""
        return self.enabled and bool(self.api_key)


@dataclass
class EmbeddingConfig(BaseConfig):
    """
    Configuration for the sentence-transformers embedding model.

    The model must match the one used to precompute the node embeddings
    stored in the graph, otherwise cosine scores are meaningless.
    """
    model_name: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
    )
    # None lets sentence-transformers pick cuda/mps/cpu
    device: Optional[str] = field(
        default_factory=lambda: os.getenv("EMBEDDING_DEVICE")
    )
    normalize: bool = True
    batch_size: int = 32
