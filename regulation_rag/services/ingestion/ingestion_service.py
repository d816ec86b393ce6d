"""Orchestrator for full-corpus regulation ingestion.

Pipeline stages: **extract -> chunk -> classify -> embed -> stage -> swap**.

One call to :meth:`IngestionService.ingest` rebuilds the whole corpus:

    1. Take the corpus advisory lock (one run at a time per corpus).
    2. Extract each document; unreadable documents are logged and skipped.
    3. Chunk and classify; every chunk gets its run-wide ``chunk_index``
       here, before any concurrent work is dispatched.
    4. Embed chunks concurrently, bounded by a semaphore.
    5. If any chunk came back from the fallback embedder, re-embed the
       whole run with the fallback so the corpus holds one provenance.
    6. Stage the chunks under a fresh generation id.
    7. Activate the generation (the previous one is dropped in the same
       transaction), or discard it if nothing was stored.

Readers keep seeing the previous generation until step 7 commits.  A
cancelled or failed run discards its staged rows and leaves the active
corpus untouched.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from regulation_rag.models.regulation import (
    ChunkDraft,
    DocumentFormat,
    EmbeddingIntent,
    EmbeddingSource,
    EmbedResult,
    IngestionReport,
    RegulationChunk,
    SourceDocument,
)
from regulation_rag.services.ingestion.classifier import (
    DEFAULT_CATEGORY_RULES,
    CategoryRule,
    classify_category,
)
from regulation_rag.services.ingestion.extractor import extract_document
from regulation_rag.utils.concurrency import CancellationToken, throttled_gather
from regulation_rag.utils.errors import (
    ExtractionError,
    IngestionCancelledError,
    IngestionInProgressError,
    PersistenceError,
    UnsupportedFormatError,
)

if TYPE_CHECKING:
    from regulation_rag.interfaces.cache_provider import ICacheProvider
    from regulation_rag.interfaces.corpus_store import ICorpusStore
    from regulation_rag.services.embedding_service import ResilientEmbedder
    from regulation_rag.services.ingestion.chunker import RegulationChunker

logger = structlog.get_logger(logger_name=__name__)


class _PendingChunk:
    """A classified draft with its run-wide index, waiting for a vector."""

    __slots__ = ("category", "chunk_index", "draft", "source_file")

    def __init__(self, draft: ChunkDraft, category: str, chunk_index: int, source_file: str) -> None:
        self.draft = draft
        self.category = category
        self.chunk_index = chunk_index
        self.source_file = source_file


class IngestionService:
    """Rebuilds the regulation corpus from a set of source documents.

    Parameters
    ----------
    chunker:
        Splits extracted text into drafts.
    embedder:
        Primary/fallback embedder; returns vectors tagged with their source.
    store:
        Corpus persistence with generation staging and the ingestion lock.
    rules:
        Ordered classifier rules.
    concurrency:
        Maximum embedding calls in flight.
    lock_ttl_seconds:
        Age after which a held ingestion lock is treated as abandoned.
    cache:
        Optional answer cache, cleared after a new generation is activated.
    """

    def __init__(
        self,
        chunker: RegulationChunker,
        embedder: ResilientEmbedder,
        store: ICorpusStore,
        rules: Sequence[CategoryRule] = DEFAULT_CATEGORY_RULES,
        concurrency: int = 4,
        lock_ttl_seconds: int = 1800,
        cache: ICacheProvider | None = None,
    ) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._store = store
        self._rules = tuple(rules)
        self._concurrency = max(1, concurrency)
        self._lock_ttl_seconds = lock_ttl_seconds
        self._cache = cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(
        self,
        documents: Iterable[SourceDocument],
        cancel_token: CancellationToken | None = None,
    ) -> IngestionReport:
        """Replace the corpus with chunks built from *documents*.

        Raises
        ------
        IngestionInProgressError
            If another run holds the corpus lock.
        IngestionCancelledError
            If *cancel_token* fires before the new generation is activated.
        PersistenceError
            If staging or activation fails as a whole.
        """
        start = time.monotonic()
        generation_id = str(uuid.uuid4())
        token = cancel_token or CancellationToken()

        if not await self._store.acquire_ingestion_lock(generation_id, self._lock_ttl_seconds):
            raise IngestionInProgressError(provider_name=self._store.get_provider_name())

        logger.info("ingestion_started", generation_id=generation_id)
        try:
            report = await self._run(documents, generation_id, token, start)
        finally:
            await self._store.release_ingestion_lock(generation_id)

        logger.info(
            "ingestion_complete",
            generation_id=generation_id,
            documents=report.documents_seen,
            skipped=report.documents_skipped,
            stored=report.chunks_stored,
            failed=report.chunks_failed,
            embedding_source=report.embedding_source.value if report.embedding_source else None,
            activated=report.activated,
            elapsed_s=report.elapsed_seconds,
        )
        return report

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    async def _run(
        self,
        documents: Iterable[SourceDocument],
        generation_id: str,
        token: CancellationToken,
        start: float,
    ) -> IngestionReport:
        pending, seen, skipped = self._collect_chunks(documents, token)

        staged = False
        try:
            results, embed_failures = await self._embed_chunks(pending, token)
            results, source = await self._homogenize(pending, results)

            chunks = [
                RegulationChunk(
                    chunk_id=str(uuid.uuid4()),
                    title=p.draft.title,
                    content=p.draft.content,
                    section=p.draft.section,
                    category=p.category,
                    embedding=result.vector,
                    embedding_source=result.source,
                    embedding_model=result.provider_name,
                    chunk_index=p.chunk_index,
                    source_file=p.source_file,
                )
                for p, result in zip(pending, results)
                if result is not None
            ]

            self._check_cancelled(token, generation_id)
            staged = True
            stored = await self._store.insert_many(chunks, generation_id)
            self._check_cancelled(token, generation_id)

            activated = False
            if stored > 0:
                await self._store.activate_generation(
                    generation_id,
                    embedding_source=source,
                    embedding_model=chunks[0].embedding_model,
                    dimension=len(chunks[0].embedding),
                )
                activated = True
                if self._cache is not None:
                    await self._cache.clear()
            else:
                logger.warning("ingestion_nothing_stored", generation_id=generation_id)
                await self._store.discard_generation(generation_id)
        except BaseException:
            if staged:
                await self._discard_quietly(generation_id)
            raise

        return IngestionReport(
            generation_id=generation_id,
            documents_seen=seen,
            documents_skipped=skipped,
            chunks_stored=stored,
            chunks_failed=embed_failures + (len(chunks) - stored),
            embedding_source=source if stored > 0 else None,
            activated=activated,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )

    def _collect_chunks(
        self,
        documents: Iterable[SourceDocument],
        token: CancellationToken,
    ) -> tuple[list[_PendingChunk], int, int]:
        """Extract, chunk and classify; returns ``(pending, seen, skipped)``."""
        pending: list[_PendingChunk] = []
        seen = 0
        skipped = 0
        next_index = 0

        for document in documents:
            self._check_cancelled(token, None)
            seen += 1
            try:
                fmt = DocumentFormat.from_filename(document.filename)
                extracted = extract_document(document.data, fmt, document.filename)
            except (UnsupportedFormatError, ExtractionError) as exc:
                skipped += 1
                logger.warning(
                    "document_skipped", filename=document.filename, error=str(exc)
                )
                continue

            produced = 0
            for draft in self._chunker.chunk(extracted.text, extracted.title):
                content = draft.content.strip()
                if not content:
                    continue
                if content != draft.content:
                    draft = draft.model_copy(update={"content": content})
                category = classify_category(draft.title, content, self._rules)
                pending.append(_PendingChunk(draft, category, next_index, document.filename))
                next_index += 1
                produced += 1

            logger.info("document_chunked", filename=document.filename, chunks=produced)

        return pending, seen, skipped

    async def _embed_chunks(
        self,
        pending: list[_PendingChunk],
        token: CancellationToken,
    ) -> tuple[list[EmbedResult | None], int]:
        """Embed every pending chunk; returns per-chunk results and the failure count."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _embed_one(item: _PendingChunk) -> EmbedResult:
            self._check_cancelled(token, None)
            return await self._embedder.embed(item.draft.content, EmbeddingIntent.DOCUMENT)

        outcomes = await throttled_gather(
            [_embed_one(item) for item in pending], semaphore, return_exceptions=True
        )

        results: list[EmbedResult | None] = []
        failures = 0
        for item, outcome in zip(pending, outcomes):
            if isinstance(outcome, IngestionCancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures += 1
                results.append(None)
                logger.warning(
                    "chunk_embedding_failed",
                    chunk_index=item.chunk_index,
                    source_file=item.source_file,
                    error=str(outcome),
                )
                continue
            results.append(outcome)
        return results, failures

    async def _homogenize(
        self,
        pending: list[_PendingChunk],
        results: list[EmbedResult | None],
    ) -> tuple[list[EmbedResult | None], EmbeddingSource]:
        """Make every vector of the run come from one provider."""
        sources = {r.source for r in results if r is not None}
        if EmbeddingSource.FALLBACK not in sources:
            return results, EmbeddingSource.PRIMARY
        if EmbeddingSource.PRIMARY not in sources:
            return results, EmbeddingSource.FALLBACK

        primary_count = sum(1 for r in results if r is not None and r.source is EmbeddingSource.PRIMARY)
        logger.warning(
            "ingestion_mixed_provenance_reembedding",
            primary_chunks=primary_count,
            total_chunks=len(results),
        )
        texts = [p.draft.content for p in pending]
        redone = await self._embedder.embed_all_with_fallback(texts, EmbeddingIntent.DOCUMENT)
        homogenized: list[EmbedResult | None] = [
            new if old is not None else None for old, new in zip(results, redone)
        ]
        return homogenized, EmbeddingSource.FALLBACK

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_cancelled(token: CancellationToken, generation_id: str | None) -> None:
        if token.cancelled:
            logger.warning("ingestion_cancelled", generation_id=generation_id)
            raise IngestionCancelledError()

    async def _discard_quietly(self, generation_id: str) -> None:
        try:
            await self._store.discard_generation(generation_id)
        except PersistenceError as exc:
            logger.error(
                "generation_discard_failed", generation_id=generation_id, error=str(exc)
            )
