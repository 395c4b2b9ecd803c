"""
docrag Learning Store
=====================

Persists the agent's feedback history and per-chunk learned scores.

Every recorded interaction nudges the score of each cited chunk with an
exponential moving average:

    new = old * 0.9 + multiplier * 0.1

where ``old`` starts at 1.0 and ``multiplier`` is 1.1 for a successful
answer and 0.9 otherwise. The whole store is written to disk before
``record_interaction`` returns.

State file format: JSON at DOCRAG_LEARNING_PATH

Usage:
    from docrag.learning import LearningStore, Interaction

    store = LearningStore("~/.docrag/learning.json")
    store.record_interaction(Interaction(
        query="how do I tail logs",
        response="...",
        chunks_used=["logs.md:0-12"],
        successful=True,
    ))
    store.get_chunk_score("logs.md:0-12")  # 1.01
"""

import json
import logging
import os
import threading
from typing import Dict, List, Optional, Any

from ..jsonfile import atomic_write_json
from .models import Interaction

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

DEFAULT_SCORE = 1.0
EMA_DECAY = 0.9
EMA_WEIGHT = 0.1
SUCCESS_MULTIPLIER = 1.1
FAILURE_MULTIPLIER = 0.9

# Unversioned file key -> current key
LEGACY_STORE_KEYS = {
    "interactions": "interactions",
    "chunkScores": "chunkScores",
    "chunk_scores": "chunkScores",
    "queryPatterns": "queryPatterns",
    "query_patterns": "queryPatterns",
    "commandAliases": "commandAliases",
    "command_aliases": "commandAliases",
}
LEGACY_INTERACTION_KEYS = {
    "chunks_used": "chunksUsed",
    "feedback_applied": "feedbackApplied",
}


class LearningStoreError(Exception):
    """Learning data could not be read or parsed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(self.message)


class LearningStore:
    """
    Feedback history and learned chunk scores, backed by one JSON file.

    A missing file means no history yet. Any other read or parse failure
    raises LearningStoreError from the constructor.
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._lock = threading.RLock()

        self.interactions: List[Interaction] = []
        self.chunk_scores: Dict[str, float] = {}
        self.query_patterns: Dict[str, List[str]] = {}
        self.command_aliases: Dict[str, List[str]] = {}

        self._load()

    # =========================================================================
    # Recording
    # =========================================================================

    def record_interaction(self, interaction: Interaction) -> Dict[str, float]:
        """
        Append an interaction and update the score of every chunk it used.

        Returns:
            chunk_id -> new score (also stored on ``interaction.feedback_applied``)
        """
        multiplier = SUCCESS_MULTIPLIER if interaction.successful else FAILURE_MULTIPLIER

        with self._lock:
            applied: Dict[str, float] = {}
            for chunk_id in interaction.chunks_used:
                current = self.chunk_scores.get(chunk_id, DEFAULT_SCORE)
                updated = current * EMA_DECAY + multiplier * EMA_WEIGHT
                self.chunk_scores[chunk_id] = updated
                applied[chunk_id] = updated

            interaction.feedback_applied = applied
            self.interactions.append(interaction)
            self.save()

        logger.info(
            f"Recorded {'successful' if interaction.successful else 'unsuccessful'} interaction "
            f"touching {len(applied)} chunks",
            extra={"query": interaction.query[:80]},
        )
        return dict(applied)

    def get_chunk_score(self, chunk_id: str) -> float:
        """Learned relevance multiplier for a chunk (1.0 if never scored)."""
        with self._lock:
            return self.chunk_scores.get(chunk_id, DEFAULT_SCORE)

    def add_query_pattern(self, canonical_form: str, variation: str) -> bool:
        """
        Record a new way of asking about something.

        Returns:
            True if the variation was new (and the store was saved)
        """
        return self._add_variant(self.query_patterns, canonical_form, variation)

    def add_command_alias(self, command: str, alias: str) -> bool:
        """Record an alternative name users type for a command."""
        return self._add_variant(self.command_aliases, command, alias)

    def get_query_variations(self, canonical_form: str) -> List[str]:
        with self._lock:
            return list(self.query_patterns.get(canonical_form, []))

    def resolve_command(self, name: str) -> Optional[str]:
        """Command a name refers to, either directly or through a known alias."""
        with self._lock:
            if name in self.command_aliases:
                return name
            for command, aliases in self.command_aliases.items():
                if name in aliases:
                    return command
        return None

    def _add_variant(self, mapping: Dict[str, List[str]], key: str, value: str) -> bool:
        with self._lock:
            variants = mapping.setdefault(key, [])
            if value in variants:
                return False
            variants.append(value)
            self.save()
        return True

    # =========================================================================
    # Persistence
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": SCHEMA_VERSION,
                "interactions": [i.to_dict() for i in self.interactions],
                "chunkScores": dict(self.chunk_scores),
                "queryPatterns": {k: list(v) for k, v in self.query_patterns.items()},
                "commandAliases": {k: list(v) for k, v in self.command_aliases.items()},
            }

    def save(self):
        """Persist the whole store. OSError propagates to the caller."""
        with self._lock:
            atomic_write_json(self.path, self.to_dict(), indent=2)

    def _load(self):
        """Load state from disk; a missing file leaves the store empty."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info(f"No learning data at {self.path}, starting fresh")
            return
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LearningStoreError(f"corrupt learning data: {e}", path=self.path) from e
        except OSError as e:
            raise LearningStoreError(f"failed to read learning data: {e}", path=self.path) from e

        if not isinstance(data, dict):
            raise LearningStoreError("learning data must be a JSON object", path=self.path)

        version = data.get("version", 0)
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            raise LearningStoreError(
                f"unsupported learning data version: {version!r}", path=self.path
            )
        if version == 0:
            data = self._upgrade_unversioned(data)

        try:
            self.interactions = [Interaction.from_dict(i) for i in data.get("interactions") or []]
            self.chunk_scores = {k: float(v) for k, v in (data.get("chunkScores") or {}).items()}
            self.query_patterns = {k: list(v) for k, v in (data.get("queryPatterns") or {}).items()}
            self.command_aliases = {k: list(v) for k, v in (data.get("commandAliases") or {}).items()}
        except (TypeError, ValueError, AttributeError) as e:
            raise LearningStoreError(f"invalid learning data: {e}", path=self.path) from e

        logger.info(
            f"Loaded learning data (v{version}) from {self.path}: "
            f"{len(self.interactions)} interactions, {len(self.chunk_scores)} scored chunks"
        )

    def _upgrade_unversioned(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map an unversioned file onto current keys.

        Those files use snake_case (``chunk_scores``, ``chunks_used`` ...) or
        camelCase. A file with none of the known keys is rejected, never
        read as an empty store.
        """
        if not any(key in data for key in LEGACY_STORE_KEYS):
            raise LearningStoreError(
                "unversioned learning data has none of the expected keys", path=self.path
            )

        upgraded = {}
        for key, value in data.items():
            new_key = LEGACY_STORE_KEYS.get(key, key)
            if new_key in upgraded and key != new_key:
                continue
            upgraded[new_key] = value

        interactions = upgraded.get("interactions")
        if isinstance(interactions, list):
            upgraded["interactions"] = [
                {LEGACY_INTERACTION_KEYS.get(k, k): v for k, v in record.items()}
                if isinstance(record, dict) else record
                for record in interactions
            ]
        return upgraded

    # =========================================================================
    # Reporting
    # =========================================================================

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            successes = sum(1 for i in self.interactions if i.successful)
            scores = list(self.chunk_scores.values())
            return {
                "interactions": len(self.interactions),
                "successful": successes,
                "scored_chunks": len(scores),
                "min_score": min(scores) if scores else None,
                "max_score": max(scores) if scores else None,
                "query_patterns": len(self.query_patterns),
                "command_aliases": len(self.command_aliases),
            }
