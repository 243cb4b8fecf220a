"""
Hybrid retrieval - retrieval and ranking engine for code Q&A over a knowledge graph.

This package contains modules for:
- Query understanding (intent, multi-level term expansion, quality filtering)
- Parallel full-text and vector search with score fusion
- Bounded graph expansion, node scoring and semantic re-ranking
"""

__version__ = "0.1.0"
