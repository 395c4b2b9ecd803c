"""
docrag Configuration Module
===========================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    OPENAI_API_KEY: OpenAI API key (required for embedding calls)
    DOCRAG_EMBEDDING_MODEL: Embedding model (default: text-embedding-ada-002)
    DOCRAG_EMBEDDING_TIMEOUT: Client timeout in seconds (default: 30)
    DOCRAG_EMBEDDING_BATCH_SIZE: Max texts per batch call (default: 100)

    DOCRAG_STORE_PATH: Chunk store file (default: embeddings.json)
    DOCRAG_LEARNING_PATH: Learning store file (default: ~/.docrag/learning.json)
    DOCRAG_DOCS_DIR: Documentation directory to ingest (default: docs)
    DOCRAG_MIN_CHUNK_LINES: Minimum lines per chunk (default: 3)
    DOCRAG_SEARCH_LIMIT: Default number of search results (default: 5)

    DOCRAG_LOG_LEVEL: Root log level (default: INFO)
    DOCRAG_LOG_JSON: Emit JSON log lines (default: false)
    DOCRAG_LOG_FILE: Optional rotating log file
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not set
        required: If True, raises ValueError when not set

    Returns:
        Environment variable value or default

    Raises:
        ValueError: If required=True and variable is not set
    """
    value = os.getenv(key, default)
    if required and value is None:
        raise ValueError(f"Required environment variable '{key}' is not set")
    return value


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


DEFAULT_LEARNING_PATH = str(Path.home() / ".docrag" / "learning.json")


@dataclass
class EmbeddingConfig:
    """OpenAI embedding configuration."""

    # Optional here: only the embedder itself insists on a key
    api_key: Optional[str] = field(default_factory=lambda: get_env("OPENAI_API_KEY"))
    model: str = field(default_factory=lambda: get_env("DOCRAG_EMBEDDING_MODEL", "text-embedding-ada-002"))
    timeout: int = field(default_factory=lambda: get_env_int("DOCRAG_EMBEDDING_TIMEOUT", 30))
    batch_size: int = field(default_factory=lambda: get_env_int("DOCRAG_EMBEDDING_BATCH_SIZE", 100))

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")


@dataclass
class StorageConfig:
    """Chunk store and learning store locations."""

    store_path: str = field(default_factory=lambda: get_env("DOCRAG_STORE_PATH", "embeddings.json"))
    learning_path: str = field(default_factory=lambda: get_env("DOCRAG_LEARNING_PATH", DEFAULT_LEARNING_PATH))


@dataclass
class IngestionConfig:
    """Documentation ingestion configuration."""

    docs_dir: str = field(default_factory=lambda: get_env("DOCRAG_DOCS_DIR", "docs"))
    min_chunk_lines: int = field(default_factory=lambda: get_env_int("DOCRAG_MIN_CHUNK_LINES", 3))

    def __post_init__(self):
        """Validate configuration."""
        if self.min_chunk_lines < 1:
            raise ValueError("min_chunk_lines must be at least 1")


@dataclass
class SearchConfig:
    """Search defaults."""

    limit: int = field(default_factory=lambda: get_env_int("DOCRAG_SEARCH_LIMIT", 5))

    def __post_init__(self):
        if self.limit <= 0:
            raise ValueError("search limit must be positive")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("DOCRAG_LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("DOCRAG_LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("DOCRAG_LOG_JSON", False))


@dataclass
class Settings:
    """Main application settings container."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Application metadata
    app_name: str = "docrag"
    app_version: str = "0.1.0"


def load_settings() -> Settings:
    """
    Load and validate all application settings.

    Returns:
        Fully configured Settings instance

    Raises:
        ValueError: If configuration is invalid
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
