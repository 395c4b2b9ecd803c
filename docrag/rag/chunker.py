"""
RAG Chunker
===========

Splits markdown command documentation into section chunks.

Rules:
- One chunk per heading, from the heading up to the next heading
- Headings inside fenced code blocks or tables never split a chunk
- Chunks shorter than ``min_lines`` are dropped
- Stable chunking (same input = same chunks)
"""

import copy
import logging
import posixpath
from dataclasses import dataclass, field
from typing import List, Optional

from .models import Chunk, ChunkMetadata, SectionType

logger = logging.getLogger(__name__)

CODE_FENCE = "```"


@dataclass
class ChunkConfig:
    """Chunking configuration."""
    min_lines: int = 3


def command_from_source(source: str) -> str:
    """Command name a doc file describes, e.g. ``docs/commands/logs.md`` -> ``logs``."""
    filename = posixpath.basename(source.replace("\\", "/"))
    if filename.endswith(".md"):
        return filename[: -len(".md")]
    return filename


@dataclass
class _OpenChunk:
    """Section being accumulated during the scan."""
    start_line: int = 0
    topic: str = ""
    type: SectionType = SectionType.OVERVIEW
    lines: List[str] = field(default_factory=list)
    has_code: bool = False
    has_table: bool = False
    table_columns: List[str] = field(default_factory=list)


class MarkdownChunker:
    """
    Splits a markdown document into heading-delimited chunks.

    Tracks two pieces of scan state:
    1. Inside a fenced code block (lines kept verbatim, no boundaries)
    2. Inside a table (first row gives the column headers; a blank line ends it)
    """

    def __init__(self, config: Optional[ChunkConfig] = None):
        self.config = config or ChunkConfig()

    def process(self, content: str, base_metadata: Optional[ChunkMetadata] = None) -> List[Chunk]:
        """
        Split a document into chunks.

        Args:
            content: Markdown text
            base_metadata: Metadata inherited by every chunk (source etc.)

        Returns:
            List of Chunk objects (without embeddings), in document order
        """
        base_metadata = base_metadata or ChunkMetadata()
        command = command_from_source(base_metadata.source) if base_metadata.source else base_metadata.command

        chunks: List[Chunk] = []
        current = _OpenChunk()
        in_code = False
        in_table = False
        table_headers: List[str] = []

        for i, line in enumerate(content.split("\n")):
            stripped = line.strip()

            if stripped.startswith(CODE_FENCE):
                in_code = not in_code
                current.has_code = True
                current.lines.append(line)
                continue

            if not in_code:
                if stripped.startswith("|"):
                    if not in_table:
                        in_table = True
                        table_headers = self._parse_table_row(stripped)
                        if not current.has_table:
                            current.table_columns = list(table_headers)
                    current.has_table = True
                    current.lines.append(line)
                    continue
                elif in_table and stripped == "":
                    in_table = False
                    table_headers = []

            if not in_code and not in_table and stripped.startswith("#"):
                self._emit(current, base_metadata, command, chunks)
                topic = stripped.lstrip("#").strip()
                current = _OpenChunk(
                    start_line=i,
                    topic=topic,
                    type=SectionType.from_topic(topic),
                )

            current.lines.append(line)

        self._emit(current, base_metadata, command, chunks)

        logger.debug(
            f"Chunked '{base_metadata.source or '<text>'}' into {len(chunks)} chunks",
            extra={"source": base_metadata.source},
        )
        return chunks

    def _emit(
        self,
        section: _OpenChunk,
        base_metadata: ChunkMetadata,
        command: str,
        chunks: List[Chunk],
    ) -> None:
        """Append ``section`` as a chunk if it is long enough; short sections are dropped."""
        if not section.lines or len(section.lines) < self.config.min_lines:
            if section.lines:
                logger.debug(
                    f"Dropped {len(section.lines)}-line section '{section.topic}' "
                    f"(min {self.config.min_lines})"
                )
            return

        metadata = copy.deepcopy(base_metadata)
        metadata.start_line = section.start_line
        metadata.end_line = section.start_line + len(section.lines)
        metadata.command = command
        metadata.topic = section.topic
        metadata.type = section.type
        metadata.is_code = section.has_code
        metadata.is_table = section.has_table
        metadata.table_columns = list(section.table_columns) if section.has_table else []

        text = "\n".join(section.lines).strip()
        if not text:
            # Nothing to embed
            return

        chunks.append(Chunk(content=text, metadata=metadata))

    @staticmethod
    def _parse_table_row(row: str) -> List[str]:
        return [cell.strip() for cell in row.split("|") if cell.strip()]
