"""
Query embedding with sentence-transformers.
"""

from typing import List, Optional, Sequence

import numpy as np

from ...config import EmbeddingConfig
from ...logger import get_logger

logger = get_logger(__name__)


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity in [-1, 1].

    Mismatched dimensions are a configuration error (query and stored
    embeddings from different models): logged and scored as 0.0.
    """
    if a is None or b is None:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or vb.size == 0:
        return 0.0
    if va.shape != vb.shape:
        logger.warning(f"Embedding dimension mismatch: {va.size} vs {vb.size}")
        return 0.0

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


class Embedder:
    """
    Lazily loaded SentenceTransformer.

    Loading the model is slow, so it happens on first use and the
    instance is shared by every stage of the pipeline.
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None, model=None):
        self.config = config or EmbeddingConfig()
        self._model = model

    @property
    def model(self):
        """Lazy-load embedding model."""
        if self._model is None:
            logger.info(f"Loading embedding model: {self.config.model_name}")
            from sentence_transformers import SentenceTransformer

            self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
            logger.info(
                f"Embedding model loaded (dimension: {self._model.get_sentence_embedding_dimension()})"
            )
        return self._model

    def embed(self, text: str) -> List[float]:
        """Embed one text; blank text gives an empty vector."""
        if not text or not text.strip():
            return []
        vector = self.model.encode(
            text,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return np.asarray(vector, dtype=np.float32).tolist()

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        vectors = self.model.encode(
            list(texts),
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return [np.asarray(v, dtype=np.float32).tolist() for v in vectors]
