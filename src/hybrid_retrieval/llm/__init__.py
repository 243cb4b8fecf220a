"""
Model clients: embeddings, text generation, rate limiting.
"""

from .embedder import Embedder, cosine_similarity
from .client import LLMClient
from .rate_limiter import LLMRateLimiter

__all__ = [
    'Embedder',
    'cosine_similarity',
    'LLMClient',
    'LLMRateLimiter',
]
