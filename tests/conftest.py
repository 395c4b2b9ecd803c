"""
Shared fixtures for docrag tests.

No test talks to OpenAI: embeddings come from FakeGenerator, which maps
known texts (exact match first, then substring) to fixed vectors.
"""

import math
from typing import Dict, List, Optional, Sequence

import pytest

from docrag.rag.embedder import EmbeddingError
from docrag.rag.models import Chunk, ChunkMetadata, SectionType


class FakeGenerator:
    """Deterministic EmbeddingGenerator for tests."""

    def __init__(
        self,
        vectors: Optional[Dict[str, Sequence[float]]] = None,
        default: Sequence[float] = (0.0, 1.0),
        fail_on: Optional[str] = None,
    ):
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.fail_on = fail_on
        self.calls: List[str] = []

    def generate(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingError("upstream model unavailable")
        if text in self.vectors:
            return list(self.vectors[text])
        for key, vector in self.vectors.items():
            if key in text:
                return list(vector)
        return list(self.default)

    def generate_batch(self, texts: List[str]) -> List[List[float]]:
        return [self.generate(t) for t in texts]


def unit(similarity: float) -> List[float]:
    """2-d unit vector whose cosine with [1, 0] is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity * similarity))]


def make_chunk(
    content: str,
    embedding: Sequence[float],
    command: str = "",
    section_type: SectionType = SectionType.OVERVIEW,
    source: Optional[str] = None,
    start_line: int = 0,
    end_line: int = 5,
) -> Chunk:
    return Chunk(
        content=content,
        embedding=list(embedding),
        metadata=ChunkMetadata(
            source=source or f"{command or 'general'}.md",
            start_line=start_line,
            end_line=end_line,
            command=command,
            topic=section_type.value.title(),
            type=section_type,
        ),
    )


@pytest.fixture
def fake_generator_cls():
    return FakeGenerator


@pytest.fixture
def unit_vector():
    return unit


@pytest.fixture
def chunk_factory():
    return make_chunk
