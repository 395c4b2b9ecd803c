"""
Tests for environment-driven configuration.
"""

import pytest
from unittest.mock import patch

from docrag.config import (
    EmbeddingConfig,
    IngestionConfig,
    SearchConfig,
    get_env,
    get_env_bool,
    get_env_int,
    load_settings,
)


class TestEnvHelpers:

    @patch.dict('os.environ', {'DOCRAG_X': '12'})
    def test_get_env_int(self):
        assert get_env_int('DOCRAG_X', 3) == 12
        assert get_env_int('DOCRAG_MISSING_X', 3) == 3

    @patch.dict('os.environ', {'DOCRAG_X': 'twelve'})
    def test_get_env_int_invalid(self):
        with pytest.raises(ValueError):
            get_env_int('DOCRAG_X', 3)

    @patch.dict('os.environ', {'DOCRAG_FLAG': 'Yes'})
    def test_get_env_bool(self):
        assert get_env_bool('DOCRAG_FLAG', False) is True
        assert get_env_bool('DOCRAG_MISSING_FLAG', False) is False

    @patch.dict('os.environ', {}, clear=True)
    def test_required_missing(self):
        with pytest.raises(ValueError):
            get_env('DOCRAG_REQUIRED', required=True)


class TestSettings:

    @patch.dict('os.environ', {}, clear=True)
    def test_defaults(self):
        settings = load_settings()

        assert settings.embedding.api_key is None
        assert settings.embedding.model == "text-embedding-ada-002"
        assert settings.embedding.batch_size == 100
        assert settings.storage.store_path == "embeddings.json"
        assert settings.storage.learning_path.endswith("learning.json")
        assert settings.ingestion.docs_dir == "docs"
        assert settings.ingestion.min_chunk_lines == 3
        assert settings.search.limit == 5
        assert settings.logging.json_logs is False

    @patch.dict('os.environ', {
        'OPENAI_API_KEY': 'sk-test',
        'DOCRAG_STORE_PATH': '/data/embeddings.json',
        'DOCRAG_MIN_CHUNK_LINES': '5',
        'DOCRAG_SEARCH_LIMIT': '8',
        'DOCRAG_LOG_JSON': 'true',
    }, clear=True)
    def test_env_override(self):
        settings = load_settings()

        assert settings.embedding.api_key == 'sk-test'
        assert settings.storage.store_path == '/data/embeddings.json'
        assert settings.ingestion.min_chunk_lines == 5
        assert settings.search.limit == 8
        assert settings.logging.json_logs is True


class TestValidation:

    def test_batch_size_positive(self):
        with pytest.raises(ValueError):
            EmbeddingConfig(api_key="sk-test", batch_size=0)

    def test_min_chunk_lines(self):
        with pytest.raises(ValueError):
            IngestionConfig(min_chunk_lines=0)

    def test_search_limit(self):
        with pytest.raises(ValueError):
            SearchConfig(limit=0)
