"""
docrag RAG Module
=================

Retrieval over command documentation.

Architecture:
- Markdown chunker: one chunk per heading, code- and table-aware
- OpenAI embeddings (any EmbeddingGenerator works)
- JSON file chunk store with cosine similarity search, command / section
  boosts and one-chunk-per-section-type diversification
"""

from .models import Chunk, ChunkMetadata, ScoredChunk, SectionType
from .chunker import MarkdownChunker, ChunkConfig
from .embedder import (
    EmbeddingGenerator,
    OpenAIEmbedder,
    EmbeddingError,
    QueryEmbeddingError,
)
from .store import ChunkStore, StoreError, cosine_similarity, format_context
from .ingestion import DocsIngestion, IngestionError

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "ScoredChunk",
    "SectionType",
    "MarkdownChunker",
    "ChunkConfig",
    "EmbeddingGenerator",
    "OpenAIEmbedder",
    "EmbeddingError",
    "QueryEmbeddingError",
    "ChunkStore",
    "StoreError",
    "cosine_similarity",
    "format_context",
    "DocsIngestion",
    "IngestionError",
]
