"""Command-line entry point: optional ingestion, then the interactive chat."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from docchat.config import Config, config
from docchat.console import ChatConsole
from docchat.conversation import ChatOrchestrator
from docchat.document_processing import TextChunker
from docchat.errors import DocChatError
from docchat.llm import ChatModelService
from docchat.memory import Session
from docchat.pipeline import IngestionPipeline, VectorIndex, build_vector_index
from docchat.retriever import Retriever
from docchat.vector_store import VECTOR_BACKENDS

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Ask questions about a PDF document from the terminal.",
    )
    parser.add_argument(
        "--fill-vector-store",
        action="store_true",
        help="Ingest the document into the vector store before chatting.",
    )
    parser.add_argument(
        "--document",
        type=Path,
        default=config.DOCUMENT_PATH,
        help=f"Document to ingest (default: {config.DOCUMENT_PATH}).",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=config.CHUNK_SIZE,
        help=f"Passage size in characters (default: {config.CHUNK_SIZE}).",
    )
    parser.add_argument(
        "--chunk-overlap",
        type=int,
        default=config.CHUNK_OVERLAP,
        help=f"Characters shared by adjacent passages (default: {config.CHUNK_OVERLAP}).",
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=config.RETRIEVAL_TOP_K,
        help=f"Passages retrieved per question (default: {config.RETRIEVAL_TOP_K}).",
    )
    parser.add_argument(
        "--memory-turns",
        type=int,
        default=config.MEMORY_MAX_TURNS,
        help=f"Messages kept in conversation memory (default: {config.MEMORY_MAX_TURNS}).",
    )
    parser.add_argument(
        "--backend",
        choices=VECTOR_BACKENDS,
        default=config.VECTOR_BACKEND,
        help=f"Vector store backend (default: {config.VECTOR_BACKEND}).",
    )
    parser.add_argument(
        "--system-prompt",
        default=config.SYSTEM_PROMPT,
        help="System prompt sent with every question.",
    )
    return parser.parse_args(argv)


def apply_overrides(args: argparse.Namespace) -> None:
    """Copy command-line values onto the configuration."""
    Config.CHUNK_SIZE = args.chunk_size
    Config.CHUNK_OVERLAP = args.chunk_overlap
    Config.RETRIEVAL_TOP_K = args.top_k
    Config.MEMORY_MAX_TURNS = args.memory_turns


def fill_vector_store(
    index: VectorIndex,
    document: Path,
    logger: Logger,
) -> bool:
    """Ingest ``document``; report failures without raising.

    Returns:
        True if ingestion succeeded.
    """
    print("Filling vector store...")
    pipeline = IngestionPipeline(
        index,
        chunker=TextChunker(chunk_size=config.CHUNK_SIZE, overlap=config.CHUNK_OVERLAP),
    )
    try:
        count = pipeline.ingest(document)
    except (DocChatError, ValueError) as exc:
        logger.info("Ingestion failed: %s", exc)
        print(f"Could not fill vector store: {exc}", file=sys.stderr)
        return False
    print(f"Stored {count} passages from {document}.")
    return True


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration, optionally ingest, then run the chat loop."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)
    apply_overrides(args)

    try:
        config.validate()
        index = build_vector_index(vector_backend=args.backend)
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.fill_vector_store:
        fill_vector_store(index, args.document, logger)
    else:
        print("Skipping vector store filling.")

    orchestrator = ChatOrchestrator(
        chat_model=ChatModelService(),
        retriever=Retriever(index, top_k=config.RETRIEVAL_TOP_K),
        system_prompt=args.system_prompt,
    )
    console = ChatConsole(orchestrator, Session.new(config.MEMORY_MAX_TURNS))
    try:
        return console.run()
    except KeyboardInterrupt:
        logger.info("docchat stopped by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
