"""
Search configuration: parallel lexical/vector search and score fusion.
"""

from dataclasses import dataclass

from .base import BaseConfig


@dataclass
class SearchConfig(BaseConfig):
    """
    Configuration for the parallel search fan-out.

    Attributes:
        fulltext_limit: Hits per full-text index
        vector_limit: Nearest neighbours per vector index
        max_workers: Threads used for the lexical/vector branches
        method_fulltext_index: Full-text index over method names/signatures
        class_fulltext_index: Full-text index over class names
        description_fulltext_index: Full-text index over description nodes
        file_doc_fulltext_index: Full-text index over file documentation
        method_vector_index: Vector index over method embeddings
        class_vector_index: Vector index over class embeddings
        description_vector_index: Vector index over description embeddings
        file_doc_vector_index: Vector index over file documentation embeddings
    """
    fulltext_limit: int = 50
    vector_limit: int = 50
    max_workers: int = 2

    # Index names as created by the ingestion side
    method_fulltext_index: str = "method_names"
    class_fulltext_index: str = "class_names"
    description_fulltext_index: str = "description_content"
    file_doc_fulltext_index: str = "file_doc_content"
    method_vector_index: str = "method_embeddings"
    class_vector_index: str = "class_embeddings"
    description_vector_index: str = "description_embeddings"
    file_doc_vector_index: str = "file_doc_embeddings"


@dataclass
class CombinerConfig(BaseConfig):
    """
    Configuration for lexical/vector score fusion.

    Attributes:
        full_text_weight: Weight of the normalized lexical score
        vector_weight: Weight of the clamped vector score
        score_threshold: Combined results below this are dropped
        initial_limit: Maximum combined results kept
        both_match_boost: Multiplier for nodes found by both searches
        fulltext_saturation: k in s / (s + k), the lexical score normalization
    """
    full_text_weight: float = 0.4
    vector_weight: float = 0.6
    score_threshold: float = 0.1
    initial_limit: int = 100
    both_match_boost: float = 1.2
    fulltext_saturation: float = 1.0
