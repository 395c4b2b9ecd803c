"""
RAG Ingestion Pipeline
======================

Builds the chunk store from a directory of markdown docs.

Flow:
1. Walk the docs directory (sorted, recursive, *.md)
2. Chunk each file
3. Generate one embedding per chunk
4. Append to the store; save once at the end

The walk is fail-fast: the first file that cannot be read or embedded
aborts the run with an IngestionError naming that file, and nothing is
saved.
"""

import logging
import os
import time
from typing import Dict, List, Optional

from .chunker import MarkdownChunker, command_from_source
from .embedder import EmbeddingError, EmbeddingGenerator
from .models import ChunkMetadata, SectionType
from .store import ChunkStore

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Ingestion of a documentation file failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)


class DocsIngestion:
    """
    Ingestion pipeline for command documentation.

    Handles:
    - Directory walk
    - Chunking
    - Embedding generation
    - Store append and final save
    """

    def __init__(
        self,
        generator: EmbeddingGenerator,
        chunker: Optional[MarkdownChunker] = None,
        store: Optional[ChunkStore] = None,
    ):
        self.generator = generator
        self.chunker = chunker or MarkdownChunker()
        self.store = store if store is not None else ChunkStore(generator)

        self._files_processed = 0
        self._chunks_stored = 0

    @staticmethod
    def find_documents(docs_dir: str) -> List[str]:
        """Markdown files under ``docs_dir`` in a stable order."""
        paths = []
        for root, dirs, files in os.walk(docs_dir):
            dirs.sort()
            for name in sorted(files):
                if name.lower().endswith(".md"):
                    paths.append(os.path.join(root, name))
        return paths

    def ingest_file(self, path: str, docs_dir: str) -> int:
        """
        Chunk, embed and store a single file.

        Returns:
            Number of chunks stored

        Raises:
            IngestionError: If the file cannot be read or a chunk cannot be embedded
        """
        source = os.path.relpath(path, docs_dir).replace(os.sep, "/")

        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise IngestionError(f"failed to read ({e})", path=path) from e

        metadata = ChunkMetadata(
            source=source,
            command=command_from_source(source),
            type=SectionType.OVERVIEW,
        )
        chunks = self.chunker.process(content, metadata)

        for chunk in chunks:
            try:
                chunk.embedding = self.generator.generate(chunk.content)
            except Exception as e:
                reason = e.message if isinstance(e, EmbeddingError) else str(e)
                raise IngestionError(
                    f"failed to generate embedding for chunk {chunk.chunk_id} ({reason})",
                    path=path,
                ) from e
            self.store.store(chunk)

        self._files_processed += 1
        self._chunks_stored += len(chunks)
        logger.info(f"Ingested {source}: {len(chunks)} chunks", extra={"source": source})
        return len(chunks)

    def ingest_directory(self, docs_dir: str) -> Dict[str, int]:
        """
        Ingest every markdown file under ``docs_dir``.

        Stops at the first failing file.
        """
        if not os.path.isdir(docs_dir):
            raise IngestionError("invalid docs directory", path=docs_dir)

        start = time.monotonic()
        for path in self.find_documents(docs_dir):
            self.ingest_file(path, docs_dir)

        logger.info(
            f"Ingestion complete: {self._files_processed} files, {self._chunks_stored} chunks",
            extra={"duration": round(time.monotonic() - start, 2)},
        )
        return self.stats

    def run(self, docs_dir: str, out_path: str) -> Dict[str, int]:
        """Ingest ``docs_dir`` and save the store to ``out_path`` once."""
        stats = self.ingest_directory(docs_dir)
        self.store.save(out_path)
        return stats

    @property
    def stats(self) -> Dict[str, int]:
        """Get ingestion statistics."""
        return {
            "files_processed": self._files_processed,
            "chunks_stored": self._chunks_stored,
        }
