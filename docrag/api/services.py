"""
docrag API Services
===================

Owns the chunk store and learning store used by the HTTP routes.
"""

import logging
import threading
from typing import Optional

from ..config import Settings, get_settings
from ..learning import LearningStore
from ..rag import ChunkStore, OpenAIEmbedder

logger = logging.getLogger(__name__)


class DocsService:
    """Search and feedback over one local chunk store and learning store."""

    def __init__(
        self,
        store: ChunkStore,
        learning: LearningStore,
        default_limit: int = 5,
    ):
        self.store = store
        self.learning = learning
        self.default_limit = default_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocsService":
        """Build the service from configuration, loading both stores from disk."""
        store = ChunkStore(OpenAIEmbedder(settings.embedding))
        store.load(settings.storage.store_path)
        learning = LearningStore(settings.storage.learning_path)
        logger.info(
            f"Docs service ready: {len(store)} chunks from {settings.storage.store_path}"
        )
        return cls(store, learning, default_limit=settings.search.limit)


_service: Optional[DocsService] = None
_service_lock = threading.Lock()


def get_service() -> DocsService:
    """FastAPI dependency: the process-wide service, built on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = DocsService.from_settings(get_settings())
        return _service
