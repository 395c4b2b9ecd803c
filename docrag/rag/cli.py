"""
docrag CLI
==========

Command-line interface for building and querying the documentation store.

Usage:
    python -m docrag.rag.cli ingest --docs-dir docs --out embeddings.json
    python -m docrag.rag.cli search "how do I use the logs command" -k 3
    python -m docrag.rag.cli feedback --query "..." --response "..." --chunk logs.md:0-12
    python -m docrag.rag.cli stats
"""

import argparse
import logging
import sys
from typing import List, Optional

from ..config import Settings, load_settings
from ..learning import Interaction, LearningStore, LearningStoreError
from ..logging_config import setup_logging_from_settings
from .chunker import ChunkConfig, MarkdownChunker
from .embedder import EmbeddingError, OpenAIEmbedder
from .ingestion import DocsIngestion, IngestionError
from .store import ChunkStore, StoreError, format_context

logger = logging.getLogger(__name__)


def cmd_ingest(args, settings: Settings) -> bool:
    """Build the chunk store from a docs directory."""
    docs_dir = args.docs_dir or settings.ingestion.docs_dir
    out_path = args.out or settings.storage.store_path

    try:
        embedder = OpenAIEmbedder(settings.embedding)
        chunker = MarkdownChunker(ChunkConfig(min_lines=settings.ingestion.min_chunk_lines))
        ingestion = DocsIngestion(embedder, chunker=chunker)
        stats = ingestion.run(docs_dir, out_path)
    except (ValueError, IngestionError, OSError) as e:
        logger.error(f"Ingestion failed: {e}")
        return False

    print(f"Successfully generated embeddings and saved to {out_path}")
    print(f"- Files: {stats['files_processed']}")
    print(f"- Chunks: {stats['chunks_stored']}")
    print(f"- Embedding requests: {embedder.total_requests} ({embedder.total_tokens} tokens)")
    return True


def cmd_search(args, settings: Settings) -> bool:
    """Run a query against the store and print the ranked chunks."""
    store_path = args.store or settings.storage.store_path
    limit = args.k or settings.search.limit

    try:
        store = ChunkStore(OpenAIEmbedder(settings.embedding))
        store.load(store_path)
        results = store.search_scored(args.query, limit)
    except (ValueError, StoreError, EmbeddingError) as e:
        logger.error(f"Search failed: {e}")
        return False

    print(f"\n{'='*60}")
    print(f"Query: {args.query}")
    print(f"Results: {len(results)}")
    print('='*60)

    for i, r in enumerate(results, 1):
        meta = r.chunk.metadata
        print(f"\n[{i}] Score: {r.score:.3f} (similarity {r.similarity:.3f})")
        print(f"    Chunk: {r.chunk.chunk_id}")
        print(f"    Command: {meta.command or '-'}  Type: {meta.type.value}  Topic: {meta.topic}")
        print(f"    Content: {r.chunk.content[:200]}...")

    if args.context:
        print(f"\n{'='*60}")
        print("FORMATTED CONTEXT FOR LLM:")
        print('='*60)
        print(format_context([r.chunk for r in results]))

    return True


def cmd_feedback(args, settings: Settings) -> bool:
    """Record the outcome of an answer in the learning store."""
    learning_path = args.learning or settings.storage.learning_path

    try:
        learning = LearningStore(learning_path)
        interaction = Interaction(
            query=args.query,
            response=args.response,
            chunks_used=args.chunk or [],
            successful=not args.failed,
        )
        applied = learning.record_interaction(interaction)
    except (LearningStoreError, OSError) as e:
        logger.error(f"Recording feedback failed: {e}")
        return False

    for chunk_id, score in applied.items():
        print(f"{chunk_id}: {score:.4f}")
    return True


def cmd_stats(args, settings: Settings) -> bool:
    """Show store and learning statistics."""
    store_path = args.store or settings.storage.store_path
    learning_path = args.learning or settings.storage.learning_path

    try:
        store = ChunkStore()
        store.load(store_path)
        learning = LearningStore(learning_path)
    except (StoreError, LearningStoreError) as e:
        logger.error(f"Stats failed: {e}")
        return False

    chunk_stats = store.stats()
    learning_stats = learning.stats()

    print(f"\n{'='*60}")
    print("DOCRAG STATISTICS")
    print('='*60)
    print(f"\nChunks: {len(store)} ({store_path})")

    print("\nChunks by command:")
    for command, count in sorted(chunk_stats["by_command"].items()):
        print(f"  {command or '-'}: {count}")

    print("\nChunks by section type:")
    for section_type, count in sorted(chunk_stats["by_type"].items()):
        print(f"  {section_type}: {count}")

    print(f"\nInteractions recorded: {learning_stats['interactions']} "
          f"({learning_stats['successful']} successful)")
    print(f"Scored chunks: {learning_stats['scored_chunks']}")
    if learning_stats["scored_chunks"]:
        print(f"Score range: {learning_stats['min_score']:.4f} - {learning_stats['max_score']:.4f}")

    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Documentation retrieval CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    ingest_parser = subparsers.add_parser("ingest", help="Generate embeddings from documentation")
    ingest_parser.add_argument("--docs-dir", help="Path to documentation directory")
    ingest_parser.add_argument("--out", help="Output file for embeddings")

    search_parser = subparsers.add_parser("search", help="Search the documentation")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("-k", type=int, default=None, help="Number of results")
    search_parser.add_argument("--store", help="Chunk store file")
    search_parser.add_argument("--context", action="store_true", help="Print formatted LLM context")

    feedback_parser = subparsers.add_parser("feedback", help="Record an answer outcome")
    feedback_parser.add_argument("--query", required=True, help="Question that was asked")
    feedback_parser.add_argument("--response", default="", help="Answer that was given")
    feedback_parser.add_argument("--chunk", action="append", help="Chunk id used (repeatable)")
    feedback_parser.add_argument("--failed", action="store_true", help="Mark the answer unhelpful")
    feedback_parser.add_argument("--learning", help="Learning store file")

    stats_parser = subparsers.add_parser("stats", help="Show statistics")
    stats_parser.add_argument("--store", help="Chunk store file")
    stats_parser.add_argument("--learning", help="Learning store file")

    return parser


COMMANDS = {
    "ingest": cmd_ingest,
    "search": cmd_search,
    "feedback": cmd_feedback,
    "stats": cmd_stats,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    settings = load_settings()
    setup_logging_from_settings(settings, verbose=args.verbose)

    success = COMMANDS[args.command](args, settings)
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
