"""
RAG Embedder
============

Generates embeddings for documentation chunks and search queries.

The store and ingestion code only depend on the ``EmbeddingGenerator``
protocol; ``OpenAIEmbedder`` is the production implementation.
"""

import logging
from typing import List, Optional, Protocol, runtime_checkable

from ..config import EmbeddingConfig

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Embedding generation failed for a text."""

    def __init__(self, message: str, source: Optional[str] = None, chunk_id: Optional[str] = None):
        self.message = message
        self.source = source
        self.chunk_id = chunk_id
        super().__init__(self.message)

    def __str__(self) -> str:
        context = []
        if self.source:
            context.append(f"source={self.source}")
        if self.chunk_id:
            context.append(f"chunk={self.chunk_id}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class QueryEmbeddingError(EmbeddingError):
    """The search query itself could not be embedded."""


@runtime_checkable
class EmbeddingGenerator(Protocol):
    """text -> fixed-length vector."""

    def generate(self, text: str) -> List[float]:
        ...

    def generate_batch(self, texts: List[str]) -> List[List[float]]:
        ...


class OpenAIEmbedder:
    """
    Generates embeddings with the OpenAI embeddings endpoint.

    Dimensions are fixed by the model (1536 for text-embedding-ada-002).
    Any client failure is raised as ``EmbeddingError``; a zero vector is
    never substituted.
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None, api_key: Optional[str] = None):
        self.config = config or EmbeddingConfig()
        self.api_key = api_key or self.config.api_key
        if not self.api_key:
            raise ValueError("OpenAI API key required for embeddings (set OPENAI_API_KEY)")

        self.model = self.config.model
        self._client = None
        self._total_tokens = 0
        self._total_requests = 0

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, timeout=self.config.timeout)
        return self._client

    def generate(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the API call fails
        """
        if not text.strip():
            raise ValueError("Cannot embed empty text")

        try:
            response = self.client.embeddings.create(model=self.model, input=[text])
        except Exception as e:
            raise EmbeddingError(f"failed to generate embedding: {e}") from e

        if not response.data:
            raise EmbeddingError("no embedding data received")

        self._record_usage(response)
        logger.debug(f"Embedded text ({len(text)} chars)")
        return list(response.data[0].embedding)

    def generate_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts, preserving input order.

        Args:
            texts: List of texts to embed

        Returns:
            One vector per input text, same order
        """
        if any(not t.strip() for t in texts):
            raise ValueError("Cannot embed empty text")

        results: List[List[float]] = []
        batch_size = self.config.batch_size

        for i in range(0, len(texts), batch_size):
            batch = texts[i:i + batch_size]

            try:
                response = self.client.embeddings.create(model=self.model, input=batch)
            except Exception as e:
                raise EmbeddingError(f"failed to generate embeddings: {e}") from e

            if len(response.data) != len(batch):
                raise EmbeddingError(
                    f"expected {len(batch)} embeddings, received {len(response.data)}"
                )

            ordered = sorted(response.data, key=lambda d: d.index)
            results.extend(list(d.embedding) for d in ordered)
            self._record_usage(response)

            logger.debug(f"Embedded batch of {len(batch)} texts")

        return results

    def _record_usage(self, response) -> None:
        usage = getattr(response, "usage", None)
        if usage is not None:
            self._total_tokens += usage.total_tokens
        self._total_requests += 1

    @property
    def total_tokens(self) -> int:
        return self._total_tokens

    @property
    def total_requests(self) -> int:
        return self._total_requests
