"""Command-line interface for the regulation corpus and Q&A.

Usage::

    python -m regulation_rag.cli ingest
    python -m regulation_rag.cli ingest --file 운영지침.pdf --file 대여규정.md
    python -m regulation_rag.cli ask "보조기기 대여 기간은 얼마나 되나요?"
    python -m regulation_rag.cli files
    python -m regulation_rag.cli stats
    python -m regulation_rag.cli purge --yes

``stats`` and ``purge`` only open the corpus database.  ``ingest``, ``ask``
and ``files`` assemble the same components as the web app.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any

from regulation_rag.config.settings import Settings


def _build_components(app_settings: Settings) -> dict[str, Any]:
    # Deferred: importing main builds provider SDK clients.
    from regulation_rag.config.loader import load_config
    from regulation_rag.main import build_components

    return build_components(app_settings, load_config(app_settings.config_path, app_settings))


def _build_store(app_settings: Settings):  # noqa: ANN202
    from regulation_rag.providers.corpus.sqlite_corpus_store import SQLiteCorpusStore

    return SQLiteCorpusStore(app_settings.corpus_db_path, corpus_id=app_settings.corpus_id)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, app_settings: Settings) -> int:
    """Rebuild the corpus; Ctrl-C cancels the run and keeps the previous corpus."""
    from regulation_rag.utils.concurrency import CancellationToken

    components = _build_components(app_settings)
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        handles_sigint = True
    except NotImplementedError:
        handles_sigint = False  # Windows event loops have no signal handlers

    registry = components["provider_registry"]
    print(f"Embedding: {registry['embedding_provider']}")
    try:
        await components["store"].initialize()
        result = await components["assistant"].ingest_regulations(
            args.files or None, cancel_token=token
        )
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)
        await components["http_client"].aclose()

    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print("\nIngestion complete:")
    print(f"  Documents:        {result.documents_seen} ({result.documents_skipped} skipped)")
    print(f"  Chunks stored:    {result.chunks_stored}")
    print(f"  Chunks failed:    {result.chunks_failed}")
    print(f"  Embedding source: {result.embedding_source.value if result.embedding_source else '-'}")
    print(f"  Generation:       {result.generation_id}")
    return 0


async def _handle_ask(args: argparse.Namespace, app_settings: Settings) -> int:
    components = _build_components(app_settings)
    try:
        await components["store"].initialize()
        result = await components["assistant"].answer_question(args.question)
    finally:
        await components["http_client"].aclose()

    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print(result.answer)
    print(f"\nConfidence: {result.confidence:.3f}")
    print("Sources:")
    for n, scored in enumerate(result.sources, start=1):
        chunk = scored.chunk
        where = f" > {chunk.section}" if chunk.section else ""
        print(f"  [{n}] {chunk.source_file}{where} ({scored.score:.3f})")
    return 0


async def _handle_files(app_settings: Settings) -> int:
    from regulation_rag.utils.errors import BlobSourceError

    components = _build_components(app_settings)
    try:
        files = await components["assistant"].list_regulation_files()
    except BlobSourceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components["http_client"].aclose()

    if not files:
        print("No regulation documents found.")
        return 0
    for name in files:
        print(name)
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    """Display statistics of the active corpus generation."""
    store = _build_store(app_settings)
    await store.initialize()
    stats = await store.get_stats()

    if stats.active_generation is None:
        print("Corpus is empty. Run `ingest` first.")
        return 0

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Generation:       {stats.active_generation}")
    print(f"  Total chunks:     {stats.total_chunks}")
    print(f"  Total sources:    {stats.total_sources}")
    print(f"  Embedding source: {stats.embedding_source.value if stats.embedding_source else '-'}")
    print(f"  Embedding model:  {stats.embedding_model}")
    print(f"  Dimension:        {stats.dimension}")

    if stats.chunks_by_category:
        print("\n  Chunks by category:")
        for category, count in sorted(stats.chunks_by_category.items()):
            print(f"    {category:<20} {count}")
    return 0


async def _handle_purge(args: argparse.Namespace, app_settings: Settings) -> int:
    """Delete every chunk of the corpus.  Asks for confirmation unless --yes is passed."""
    store = _build_store(app_settings)
    await store.initialize()
    stats = await store.get_stats()
    if stats.total_chunks == 0:
        print("Corpus is already empty. Nothing to purge.")
        return 0

    if not args.yes:
        confirm = input(f"  Delete all {stats.total_chunks} chunks? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    deleted = await store.delete_all()
    print(f"\n  Deleted {deleted} chunks.")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the regulation CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m regulation_rag.cli",
        description="Manage the regulation corpus and ask questions about it.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Rebuild the corpus from regulation documents")
    ingest_parser.add_argument(
        "--file",
        dest="files",
        action="append",
        default=[],
        help="Document name to ingest (repeatable; default: every listed document)",
    )

    ask_parser = subparsers.add_parser("ask", help="Ask a question about the regulations")
    ask_parser.add_argument("question", help="The question, in any language")

    subparsers.add_parser("files", help="List regulation documents")
    subparsers.add_parser("stats", help="Show corpus statistics")

    purge_parser = subparsers.add_parser("purge", help="Delete every chunk of the corpus")
    purge_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse the subcommand and dispatch to its handler."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()

    if args.command == "ingest":
        exit_code = asyncio.run(_handle_ingest(args, app_settings))
    elif args.command == "ask":
        exit_code = asyncio.run(_handle_ask(args, app_settings))
    elif args.command == "files":
        exit_code = asyncio.run(_handle_files(app_settings))
    elif args.command == "stats":
        exit_code = asyncio.run(_handle_stats(app_settings))
    elif args.command == "purge":
        exit_code = asyncio.run(_handle_purge(args, app_settings))
    else:
        parser.print_help()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
