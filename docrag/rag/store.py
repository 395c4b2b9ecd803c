"""
RAG Chunk Store
===============

File-backed collection of embedded chunks with similarity search.

Search pipeline:
1. Embed the query
2. Detect a target command and target section types from the query text
3. Cosine similarity, boosted by command / section-type matches
4. Drop low scores, sort, then compose a result with one chunk per section type

The store does not consult learned chunk scores unless the caller passes
a ``score_adjuster``.
"""

import json
import logging
import math
import threading
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..jsonfile import atomic_write_json
from .embedder import EmbeddingError, EmbeddingGenerator, QueryEmbeddingError
from .models import Chunk, ScoredChunk, SectionType

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Chunks scoring at or below this are never returned
SCORE_THRESHOLD = 0.1
COMMAND_BOOST = 2.0
TYPE_BOOST_BASE = 1.5
TYPE_BOOST_STEP = 0.1

# Phrase in the lower-cased query -> command name; first match wins
COMMAND_PHRASES: Tuple[Tuple[str, str], ...] = (
    ("logs command", "logs"),
    ("pod command", "pods"),
    ("deployment command", "deployments"),
)

DEFAULT_HOW_TYPES = [SectionType.USAGE, SectionType.EXAMPLE, SectionType.FLAGS]


class StoreError(Exception):
    """Chunk store file is corrupt or has an unsupported format."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(self.message)


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    Normalized dot product of two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm.
    """
    if a is None or b is None or len(a) != len(b):
        return 0.0

    dot = norm_a = norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def detect_target_command(query: str) -> Optional[str]:
    """Command the query explicitly names, e.g. "the logs command" -> "logs"."""
    lower = query.lower()
    for phrase, command in COMMAND_PHRASES:
        if phrase in lower:
            return command
    return None


def detect_target_types(query: str) -> List[SectionType]:
    """Section types the query asks for, in priority order."""
    lower = query.lower()
    if "usage" in lower or "how to use" in lower:
        return [SectionType.USAGE, SectionType.EXAMPLE]
    if "example" in lower:
        return [SectionType.EXAMPLE]
    if "flag" in lower or "option" in lower:
        return [SectionType.FLAGS]
    if "how" in lower:
        return list(DEFAULT_HOW_TYPES)
    return []


class ChunkStore:
    """
    In-memory chunk collection persisted as a single JSON file.

    Writes (store/load/save) are serialized by a lock; search works on a
    snapshot of the collection taken under the same lock.
    """

    def __init__(self, generator: Optional[EmbeddingGenerator] = None):
        self.generator = generator
        self._chunks: List[Chunk] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)

    @property
    def chunks(self) -> List[Chunk]:
        """Snapshot of the stored chunks in insertion order."""
        with self._lock:
            return list(self._chunks)

    # =========================================================================
    # Writes
    # =========================================================================

    def store(self, chunk: Chunk) -> None:
        """Append a chunk. Re-storing the same content creates a duplicate."""
        with self._lock:
            if self._chunks and chunk.embedding is not None:
                expected = self._chunks[0].embedding
                if expected is not None and len(expected) != len(chunk.embedding):
                    logger.warning(
                        f"Chunk {chunk.chunk_id} has {len(chunk.embedding)} dimensions, "
                        f"store has {len(expected)}; it will never match a query",
                        extra={"chunk_id": chunk.chunk_id},
                    )
            self._chunks.append(chunk)

    def load(self, path: str) -> None:
        """
        Replace the collection with the contents of ``path``.

        A missing file leaves the store empty. A corrupt file raises StoreError.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info(f"No chunk store at {path}, starting empty")
            with self._lock:
                self._chunks = []
            return
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreError(f"corrupt chunk store file: {e}", path=path) from e

        chunks = self._decode(data, path)

        with self._lock:
            self._chunks = chunks

        logger.info(f"Loaded {len(chunks)} chunks from {path}")

    def save(self, path: str) -> None:
        """Persist the whole collection. OSError propagates to the caller."""
        with self._lock:
            payload = {
                "version": SCHEMA_VERSION,
                "chunks": [c.to_dict() for c in self._chunks],
            }
            atomic_write_json(path, payload)

        logger.info(f"Saved {len(payload['chunks'])} chunks to {path}")

    @staticmethod
    def _decode(data, path: str) -> List[Chunk]:
        decode = Chunk.from_dict
        if isinstance(data, list):
            # Unversioned file: a bare list of chunk records
            records = data
            decode = Chunk.from_legacy_dict
        elif isinstance(data, dict):
            version = data.get("version")
            if not isinstance(version, int):
                raise StoreError("chunk store file has no schema version", path=path)
            if version > SCHEMA_VERSION:
                raise StoreError(
                    f"chunk store schema version {version} is newer than supported ({SCHEMA_VERSION})",
                    path=path,
                )
            records = data.get("chunks")
            if not isinstance(records, list):
                raise StoreError("chunk store file has no chunk list", path=path)
        else:
            raise StoreError("unrecognized chunk store file", path=path)

        try:
            return [decode(record) for record in records]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StoreError(f"invalid chunk record: {e}", path=path) from e

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        query: str,
        limit: int = 5,
        score_adjuster: Optional[Callable[[str], float]] = None,
    ) -> List[Chunk]:
        """
        Find the most relevant chunks for a query.

        Args:
            query: Natural-language question
            limit: Maximum number of chunks returned
            score_adjuster: Optional chunk_id -> multiplier (e.g. learned scores)

        Returns:
            Ranked chunks, at most one per section type

        Raises:
            QueryEmbeddingError: If the query could not be embedded
        """
        return [s.chunk for s in self.search_scored(query, limit, score_adjuster)]

    def search_scored(
        self,
        query: str,
        limit: int = 5,
        score_adjuster: Optional[Callable[[str], float]] = None,
    ) -> List[ScoredChunk]:
        """Same as ``search`` but keeps the boosted score with each chunk."""
        if self.generator is None:
            raise ValueError("ChunkStore needs an embedding generator to search")

        try:
            query_embedding = self.generator.generate(query)
        except Exception as e:
            raise QueryEmbeddingError(f"failed to generate query embedding: {_reason(e)}") from e

        target_command = detect_target_command(query)
        target_types = detect_target_types(query)

        candidates = self._rank(query_embedding, target_command, target_types, score_adjuster)
        results = self._compose(candidates, target_command, target_types, limit)

        logger.info(
            f"Search returned {len(results)} of {len(candidates)} candidates "
            f"(command={target_command}, types={[t.value for t in target_types]})",
            extra={"query": query[:80]},
        )
        return results

    def _rank(
        self,
        query_embedding: Sequence[float],
        target_command: Optional[str],
        target_types: List[SectionType],
        score_adjuster: Optional[Callable[[str], float]],
    ) -> List[ScoredChunk]:
        snapshot = self.chunks
        candidates: List[ScoredChunk] = []

        for position, chunk in enumerate(snapshot):
            similarity = cosine_similarity(query_embedding, chunk.embedding)
            score = similarity

            if target_command and chunk.metadata.command == target_command:
                score *= COMMAND_BOOST

            for i, target_type in enumerate(target_types):
                if chunk.metadata.type == target_type:
                    score *= TYPE_BOOST_BASE - TYPE_BOOST_STEP * i
                    break

            if score_adjuster is not None:
                score *= score_adjuster(chunk.chunk_id)

            if score > SCORE_THRESHOLD:
                candidates.append(ScoredChunk(chunk=chunk, score=score, similarity=similarity, position=position))

        # Python's sort is stable, so ties keep insertion order
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates

    @staticmethod
    def _compose(
        candidates: List[ScoredChunk],
        target_command: Optional[str],
        target_types: List[SectionType],
        limit: int,
    ) -> List[ScoredChunk]:
        results: List[ScoredChunk] = []
        seen_types = set()

        # Target command's sections first, in the order the query asked for them
        if target_command:
            for target_type in target_types:
                if len(results) >= limit:
                    break
                for candidate in candidates:
                    meta = candidate.chunk.metadata
                    if meta.command == target_command and meta.type == target_type:
                        results.append(candidate)
                        seen_types.add(target_type)
                        break

        # Then the best remaining chunk of each section type not yet covered
        for candidate in candidates:
            if len(results) >= limit:
                break
            section_type = candidate.chunk.metadata.type
            if section_type not in seen_types:
                results.append(candidate)
                seen_types.add(section_type)

        return results

    # =========================================================================
    # Stats
    # =========================================================================

    def stats(self) -> Dict[str, Dict[str, int]]:
        """Chunk counts by command and by section type."""
        by_command: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for chunk in self.chunks:
            by_command[chunk.metadata.command] = by_command.get(chunk.metadata.command, 0) + 1
            by_type[chunk.metadata.type.value] = by_type.get(chunk.metadata.type.value, 0) + 1
        return {"by_command": by_command, "by_type": by_type}


def format_context(chunks: List[Chunk], max_tokens: int = 2000) -> str:
    """
    Format search results as context for an LLM prompt.

    Args:
        chunks: Search results to format
        max_tokens: Approximate max tokens for context

    Returns:
        Formatted context string
    """
    if not chunks:
        return ""

    context_parts = []
    estimated_tokens = 0
    chars_per_token = 4

    for i, chunk in enumerate(chunks, 1):
        meta = chunk.metadata
        part = f"""
[Source {i}] ({meta.command or 'general'}/{meta.type.value}) {meta.topic}
{meta.source}:{meta.start_line}-{meta.end_line}
---
{chunk.content}
"""
        part_tokens = len(part) // chars_per_token

        if estimated_tokens + part_tokens > max_tokens:
            break

        context_parts.append(part)
        estimated_tokens += part_tokens

    return "\n".join(context_parts)


def _reason(error: Exception) -> str:
    if isinstance(error, EmbeddingError):
        return error.message
    return str(error)

