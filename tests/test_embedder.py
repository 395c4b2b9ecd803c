"""
Tests for the OpenAI embedder.

Note: These tests mock the OpenAI client to avoid actual API calls.
"""

import pytest
from unittest.mock import Mock, patch

from docrag.config import EmbeddingConfig
from docrag.rag.embedder import (
    EmbeddingError,
    EmbeddingGenerator,
    OpenAIEmbedder,
    QueryEmbeddingError,
)


def embedding_response(vectors, indexes=None, total_tokens=7):
    indexes = indexes if indexes is not None else list(range(len(vectors)))
    return Mock(
        data=[Mock(embedding=v, index=i) for v, i in zip(vectors, indexes)],
        usage=Mock(total_tokens=total_tokens),
    )


class TestEmbedderInit:

    @patch.dict('os.environ', {}, clear=True)
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            OpenAIEmbedder(EmbeddingConfig())

    @patch.dict('os.environ', {'OPENAI_API_KEY': 'sk-test', 'DOCRAG_EMBEDDING_MODEL': 'text-embedding-3-small'})
    def test_init_from_env(self):
        embedder = OpenAIEmbedder()

        assert embedder.api_key == 'sk-test'
        assert embedder.model == 'text-embedding-3-small'

    def test_satisfies_generator_protocol(self):
        embedder = OpenAIEmbedder(EmbeddingConfig(api_key="sk-test"))

        assert isinstance(embedder, EmbeddingGenerator)


class TestGenerate:

    def setup_method(self):
        self.embedder = OpenAIEmbedder(EmbeddingConfig(api_key="sk-test", batch_size=2))
        self.client = Mock()
        self.embedder._client = self.client

    def test_single_text(self):
        self.client.embeddings.create.return_value = embedding_response([[0.1, 0.2, 0.3]])

        vector = self.embedder.generate("k8stool logs POD")

        assert vector == [0.1, 0.2, 0.3]
        self.client.embeddings.create.assert_called_once_with(
            model=self.embedder.model, input=["k8stool logs POD"],
        )
        assert self.embedder.total_requests == 1
        assert self.embedder.total_tokens == 7

    def test_empty_text_rejected(self):
        with pytest.raises(ValueError):
            self.embedder.generate("   ")
        self.client.embeddings.create.assert_not_called()

    def test_client_failure_wrapped(self):
        self.client.embeddings.create.side_effect = RuntimeError("connection reset")

        with pytest.raises(EmbeddingError) as exc_info:
            self.embedder.generate("text")

        assert "connection reset" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_empty_response(self):
        self.client.embeddings.create.return_value = embedding_response([])

        with pytest.raises(EmbeddingError):
            self.embedder.generate("text")


class TestGenerateBatch:

    def setup_method(self):
        self.embedder = OpenAIEmbedder(EmbeddingConfig(api_key="sk-test", batch_size=2))
        self.client = Mock()
        self.embedder._client = self.client

    def test_order_preserved_across_batches(self):
        self.client.embeddings.create.side_effect = [
            embedding_response([[2.0], [1.0]], indexes=[1, 0]),
            embedding_response([[3.0]]),
        ]

        vectors = self.embedder.generate_batch(["a", "b", "c"])

        assert vectors == [[1.0], [2.0], [3.0]]
        assert self.client.embeddings.create.call_count == 2
        assert self.embedder.total_requests == 2

    def test_count_mismatch(self):
        self.client.embeddings.create.return_value = embedding_response([[1.0]])

        with pytest.raises(EmbeddingError):
            self.embedder.generate_batch(["a", "b"])

    def test_empty_member_rejected(self):
        with pytest.raises(ValueError):
            self.embedder.generate_batch(["a", ""])

    def test_empty_input(self):
        assert self.embedder.generate_batch([]) == []


class TestEmbeddingError:

    def test_context_in_message(self):
        error = EmbeddingError("rate limited", source="docs/logs.md", chunk_id="logs.md:0-3")

        assert str(error) == "rate limited (source=docs/logs.md, chunk=logs.md:0-3)"

    def test_query_error_is_embedding_error(self):
        assert issubclass(QueryEmbeddingError, EmbeddingError)
