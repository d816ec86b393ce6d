"""Integration tests for full-corpus ingestion against a real SQLite store."""

from __future__ import annotations

import pytest

from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.models.regulation import EmbeddingIntent, EmbeddingSource, SourceDocument
from regulation_rag.providers.cache.memory_cache import MemoryCacheProvider
from regulation_rag.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from regulation_rag.services.answer_synthesizer import AnswerSynthesizer
from regulation_rag.services.embedding_service import ResilientEmbedder
from regulation_rag.services.ingestion import IngestionService, RegulationChunker
from regulation_rag.services.ranker import SimilarityRanker
from regulation_rag.utils.concurrency import CancellationToken
from regulation_rag.utils.errors import (
    EmbeddingModelMismatchError,
    EmbeddingProviderError,
    IngestionCancelledError,
    IngestionInProgressError,
)

_RENTAL_DOC = "# 대여 기간\n보조기기 대여 기간은 최대 12개월로 한다.\n".encode()
_REPAIR_DOC = "# 수리 비용\n수리 비용 한도는 1회 10만원이다.\n".encode()

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class SelectiveEmbeddingProvider(IEmbeddingProvider):
    """Delegates to *inner* but raises *error* for texts containing *trigger*."""

    def __init__(self, inner: IEmbeddingProvider, trigger: str, error: Exception) -> None:
        self._inner = inner
        self._trigger = trigger
        self._error = error

    async def embed(self, texts, intent=EmbeddingIntent.DOCUMENT):
        if any(self._trigger in t for t in texts):
            raise self._error
        return await self._inner.embed(texts, intent)

    def get_dimension(self) -> int:
        return self._inner.get_dimension()

    def get_provider_name(self) -> str:
        return self._inner.get_provider_name()

    def is_available(self) -> bool:
        return True


class CancellingEmbeddingProvider(IEmbeddingProvider):
    """Cancels *token* the first time it is called, then embeds normally."""

    def __init__(self, inner: IEmbeddingProvider, token: CancellationToken) -> None:
        self._inner = inner
        self._token = token

    async def embed(self, texts, intent=EmbeddingIntent.DOCUMENT):
        self._token.cancel()
        return await self._inner.embed(texts, intent)

    def get_dimension(self) -> int:
        return self._inner.get_dimension()

    def get_provider_name(self) -> str:
        return "cancelling"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _service(store, primary, cache=None, **kwargs) -> IngestionService:
    embedder = ResilientEmbedder(primary, HashEmbeddingProvider(dimension=32))
    return IngestionService(
        chunker=RegulationChunker(min_size=20, max_size=200),
        embedder=embedder,
        store=store,
        cache=cache,
        **kwargs,
    )


def _docs(**files: bytes) -> list[SourceDocument]:
    return [SourceDocument(filename=name, data=data) for name, data in files.items()]


def _regulation_docs() -> list[SourceDocument]:
    return [
        SourceDocument(filename="rental.md", data=_RENTAL_DOC),
        SourceDocument(filename="repair.md", data=_REPAIR_DOC),
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestSuccessfulIngestion:
    @pytest.mark.asyncio
    async def test_ingest_then_answer(self, corpus_store, keyword_embedder, mock_llm_provider) -> None:
        report = await _service(corpus_store, keyword_embedder).ingest(_regulation_docs())

        assert report.activated is True
        assert report.chunks_stored == 2
        assert report.chunks_failed == 0
        assert report.documents_seen == 2
        assert report.embedding_source is EmbeddingSource.PRIMARY

        synthesizer = AnswerSynthesizer(
            embedder=ResilientEmbedder(keyword_embedder, HashEmbeddingProvider(dimension=32)),
            ranker=SimilarityRanker(corpus_store),
            store=corpus_store,
            llm=mock_llm_provider,
        )
        answer = await synthesizer.answer("Rental device period?")

        assert answer.sources[0].chunk.source_file == "rental.md"
        assert answer.sources[0].score > answer.sources[1].score

    @pytest.mark.asyncio
    async def test_rental_question_ranks_rental_rule_first(
        self, corpus_store, keyword_embedder, mock_llm_provider
    ) -> None:
        docs = _docs(
            **{
                "rental.txt": b"Rental period is 12 months.",
                "repair.txt": b"Repair cost cap is 100,000 won.",
            }
        )
        await _service(corpus_store, keyword_embedder).ingest(docs)
        synthesizer = AnswerSynthesizer(
            embedder=ResilientEmbedder(keyword_embedder, HashEmbeddingProvider(dimension=32)),
            ranker=SimilarityRanker(corpus_store),
            store=corpus_store,
            llm=mock_llm_provider,
        )

        answer = await synthesizer.answer("How long can I rent a device?")

        assert answer.sources[0].chunk.content == "Rental period is 12 months."
        assert answer.sources[0].score == pytest.approx(0.5)
        assert answer.sources[1].chunk.content == "Repair cost cap is 100,000 won."
        assert answer.sources[1].score == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_query_with_switched_model_is_refused(
        self, corpus_store, keyword_embedder, keyword_embedder_factory, mock_llm_provider
    ) -> None:
        await _service(corpus_store, keyword_embedder).ingest(_regulation_docs())
        switched = keyword_embedder_factory("keyword_embedding_v2")
        synthesizer = AnswerSynthesizer(
            embedder=ResilientEmbedder(switched, HashEmbeddingProvider(dimension=32)),
            ranker=SimilarityRanker(corpus_store),
            store=corpus_store,
            llm=mock_llm_provider,
        )

        with pytest.raises(EmbeddingModelMismatchError, match="keyword_embedding"):
            await synthesizer.answer("Rental device period?")

        assert switched.calls == []
        mock_llm_provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_chunks_are_classified_and_indexed(self, corpus_store, keyword_embedder) -> None:
        await _service(corpus_store, keyword_embedder).ingest(_regulation_docs())

        rows = await corpus_store.select_all()

        assert [r.chunk_index for r in rows] == [0, 1]
        assert [r.category for r in rows] == ["rental", "repair"]
        assert [r.section for r in rows] == ["대여 기간", "수리 비용"]
        assert all(r.embedding_model == "keyword_embedding" for r in rows)
        assert all(r.content == r.content.strip() for r in rows)

    @pytest.mark.asyncio
    async def test_document_without_headings(self, corpus_store, keyword_embedder) -> None:
        docs = _docs(**{"notes.txt": b"Rentals may last up to 12 months."})

        report = await _service(corpus_store, keyword_embedder).ingest(docs)

        rows = await corpus_store.select_all()
        assert report.chunks_stored == 1
        assert rows[0].chunk_index == 0
        assert rows[0].title == "notes"
        assert rows[0].section is None

    @pytest.mark.asyncio
    async def test_unsupported_and_corrupt_documents_are_skipped(
        self, corpus_store, keyword_embedder
    ) -> None:
        docs = _regulation_docs() + _docs(**{"form.docx": b"PK", "scan.pdf": b"garbage", "bad.txt": b"\xff\xfe\xfa"})

        report = await _service(corpus_store, keyword_embedder).ingest(docs)

        assert report.documents_seen == 5
        assert report.documents_skipped == 3
        assert report.chunks_stored == 2

    @pytest.mark.asyncio
    async def test_cache_is_cleared_on_activation(self, corpus_store, keyword_embedder) -> None:
        cache = MemoryCacheProvider(ttl=60)
        await cache.set("rag:stale", "{}")

        await _service(corpus_store, keyword_embedder, cache=cache).ingest(_regulation_docs())

        assert len(cache) == 0


class TestFallbackProvenance:
    @pytest.mark.asyncio
    async def test_primary_down_uses_fallback(self, corpus_store, failing_embedder) -> None:
        report = await _service(corpus_store, failing_embedder).ingest(_regulation_docs())

        assert report.activated is True
        assert report.embedding_source is EmbeddingSource.FALLBACK
        rows = await corpus_store.select_all()
        assert {r.embedding_source for r in rows} == {EmbeddingSource.FALLBACK}
        assert all(len(r.embedding) == 32 for r in rows)
        stats = await corpus_store.get_stats()
        assert stats.embedding_source is EmbeddingSource.FALLBACK
        assert stats.dimension == 32

    @pytest.mark.asyncio
    async def test_mixed_run_is_reembedded_with_fallback(self, corpus_store, keyword_embedder) -> None:
        primary = SelectiveEmbeddingProvider(
            keyword_embedder, "수리", EmbeddingProviderError("quota exceeded")
        )

        report = await _service(corpus_store, primary).ingest(_regulation_docs())

        rows = await corpus_store.select_all()
        assert report.embedding_source is EmbeddingSource.FALLBACK
        assert {r.embedding_source for r in rows} == {EmbeddingSource.FALLBACK}
        assert {r.embedding_model for r in rows} == {"hash_embedding"}

    @pytest.mark.asyncio
    async def test_unexpected_embedding_error_drops_only_that_chunk(
        self, corpus_store, keyword_embedder
    ) -> None:
        primary = SelectiveEmbeddingProvider(keyword_embedder, "수리", RuntimeError("bug"))

        report = await _service(corpus_store, primary).ingest(_regulation_docs())

        rows = await corpus_store.select_all()
        assert report.chunks_stored == 1
        assert report.chunks_failed == 1
        assert [r.source_file for r in rows] == ["rental.md"]
        assert rows[0].embedding_source is EmbeddingSource.PRIMARY


class TestGenerationLifecycle:
    @pytest.mark.asyncio
    async def test_reingest_replaces_corpus(self, corpus_store, keyword_embedder) -> None:
        service = _service(corpus_store, keyword_embedder)
        first = await service.ingest(_regulation_docs())
        second = await service.ingest(_docs(**{"rental.md": _RENTAL_DOC}))

        rows = await corpus_store.select_all()
        assert first.generation_id != second.generation_id
        assert await corpus_store.active_generation() == second.generation_id
        assert [r.source_file for r in rows] == ["rental.md"]

    @pytest.mark.asyncio
    async def test_empty_run_keeps_previous_corpus(self, corpus_store, keyword_embedder) -> None:
        service = _service(corpus_store, keyword_embedder)
        first = await service.ingest(_regulation_docs())

        report = await service.ingest(_docs(**{"empty.md": b"   \n"}))

        assert report.activated is False
        assert report.chunks_stored == 0
        assert report.embedding_source is None
        assert await corpus_store.active_generation() == first.generation_id
        assert len(await corpus_store.select_all()) == 2


class TestCancellationAndLocking:
    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, corpus_store, keyword_embedder) -> None:
        service = _service(corpus_store, keyword_embedder)
        token = CancellationToken()
        token.cancel()

        with pytest.raises(IngestionCancelledError):
            await service.ingest(_regulation_docs(), cancel_token=token)

        assert await corpus_store.active_generation() is None
        # Lock was released: a new run proceeds.
        assert (await service.ingest(_regulation_docs())).activated is True

    @pytest.mark.asyncio
    async def test_cancelled_during_embedding_keeps_previous_corpus(
        self, corpus_store, keyword_embedder
    ) -> None:
        first = await _service(corpus_store, keyword_embedder).ingest(_regulation_docs())
        token = CancellationToken()
        service = _service(
            corpus_store, CancellingEmbeddingProvider(keyword_embedder, token), concurrency=1
        )

        with pytest.raises(IngestionCancelledError):
            await service.ingest(_docs(**{"rental.md": _RENTAL_DOC}), cancel_token=token)

        assert await corpus_store.active_generation() == first.generation_id
        assert len(await corpus_store.select_all()) == 2

    @pytest.mark.asyncio
    async def test_concurrent_run_is_refused(self, corpus_store, keyword_embedder) -> None:
        assert await corpus_store.acquire_ingestion_lock("other-run", ttl_seconds=600)

        with pytest.raises(IngestionInProgressError):
            await _service(corpus_store, keyword_embedder).ingest(_regulation_docs())

        await corpus_store.release_ingestion_lock("other-run")
        assert (await _service(corpus_store, keyword_embedder).ingest(_regulation_docs())).activated
