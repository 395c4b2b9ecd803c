"""
RAG Data Models
===============

Dataclasses for documentation chunks and their metadata.

Wire format (chunk store file) uses camelCase keys:
    {"content": ..., "embedding": [...], "metadata": {"source": ..., "startLine": ...}}

Unversioned files (bare list of records) spell keys in PascalCase
("Content", "StartLine", "TableCols", ...); ``Chunk.from_legacy_dict`` reads those.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any

# Unversioned record key -> current key
LEGACY_CHUNK_KEYS = {
    "Content": "content",
    "Embedding": "embedding",
    "Metadata": "metadata",
}
LEGACY_METADATA_KEYS = {
    "Source": "source",
    "StartLine": "startLine",
    "EndLine": "endLine",
    "Command": "command",
    "Topic": "topic",
    "Type": "type",
    "IsTable": "isTable",
    "IsCode": "isCode",
    "TableCols": "tableColumns",
}


def _rename_keys(data: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    """Copy of ``data`` with legacy keys renamed; current spellings win on conflict."""
    renamed = {}
    for key, value in data.items():
        new_key = mapping.get(key, key)
        if new_key in renamed and key != new_key:
            continue
        renamed[new_key] = value
    return renamed


class SectionType(str, Enum):
    """Coarse classification of a chunk, derived from its heading."""
    USAGE = "usage"
    EXAMPLE = "example"
    FLAGS = "flags"
    COMMAND = "command"
    OVERVIEW = "overview"

    @classmethod
    def from_topic(cls, topic: str) -> "SectionType":
        """Classify a heading by case-insensitive substring, first match wins."""
        lower = topic.lower()
        if "usage" in lower:
            return cls.USAGE
        if "example" in lower:
            return cls.EXAMPLE
        if "flag" in lower:
            return cls.FLAGS
        if "command" in lower:
            return cls.COMMAND
        return cls.OVERVIEW


@dataclass
class ChunkMetadata:
    """Where a chunk came from and what kind of section it is."""
    source: str = ""
    start_line: int = 0
    end_line: int = 0
    command: str = ""
    topic: str = ""
    type: SectionType = SectionType.OVERVIEW
    is_table: bool = False
    is_code: bool = False
    table_columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(self.type, SectionType):
            self.type = SectionType(self.type) if self.type else SectionType.OVERVIEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "command": self.command,
            "topic": self.topic,
            "type": self.type.value,
            "isTable": self.is_table,
            "isCode": self.is_code,
            "tableColumns": list(self.table_columns),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkMetadata":
        return cls(
            source=data.get("source", ""),
            start_line=int(data.get("startLine", 0)),
            end_line=int(data.get("endLine", 0)),
            command=data.get("command", ""),
            topic=data.get("topic", ""),
            type=data.get("type") or SectionType.OVERVIEW,
            is_table=bool(data.get("isTable", False)),
            is_code=bool(data.get("isCode", False)),
            table_columns=list(data.get("tableColumns") or []),
        )


@dataclass
class Chunk:
    """A retrievable span of a document with its embedding."""
    content: str
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)
    embedding: Optional[List[float]] = None

    @property
    def chunk_id(self) -> str:
        """Stable identifier used when reporting which chunks were cited."""
        m = self.metadata
        return f"{m.source}:{m.start_line}-{m.end_line}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        embedding = data.get("embedding")
        return cls(
            content=data["content"],
            metadata=ChunkMetadata.from_dict(data.get("metadata") or {}),
            embedding=[float(x) for x in embedding] if embedding is not None else None,
        )

    @classmethod
    def from_legacy_dict(cls, data: Dict[str, Any]) -> "Chunk":
        """Read a record from an unversioned file (PascalCase or camelCase keys)."""
        record = _rename_keys(data, LEGACY_CHUNK_KEYS)
        metadata = record.get("metadata")
        if isinstance(metadata, dict):
            record["metadata"] = _rename_keys(metadata, LEGACY_METADATA_KEYS)
        return cls.from_dict(record)


@dataclass
class ScoredChunk:
    """A search candidate: the chunk plus its boosted score."""
    chunk: Chunk
    score: float
    similarity: float
    position: int = 0  # insertion order, used as tiebreak
