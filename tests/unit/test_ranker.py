"""Unit tests for cosine similarity and the linear-scan ranker."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from regulation_rag.interfaces.corpus_store import ICorpusStore
from regulation_rag.models.regulation import EmbeddingSource
from regulation_rag.services.ranker import SimilarityRanker, cosine_similarity
from regulation_rag.utils.errors import DimensionMismatchError, NoDataError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_store(chunks: list) -> MagicMock:
    store = MagicMock(spec=ICorpusStore)
    store.select_all = AsyncMock(return_value=chunks)
    store.get_provider_name.return_value = "mock_corpus"
    return store


# ---------------------------------------------------------------------------
# cosine_similarity
# ---------------------------------------------------------------------------


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_opposite_vectors(self) -> None:
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_symmetric(self) -> None:
        a, b = [1.0, 2.0, 3.0], [3.0, -1.0, 0.5]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_scale_invariant(self) -> None:
        assert cosine_similarity([1.0, 1.0], [10.0, 10.0]) == pytest.approx(1.0)

    def test_zero_vector_scores_zero(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_result_is_bounded(self) -> None:
        v = [1e-8, 3e-8, 7e-8]
        assert -1.0 <= cosine_similarity(v, v) <= 1.0

    def test_dimension_mismatch(self) -> None:
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


# ---------------------------------------------------------------------------
# SimilarityRanker
# ---------------------------------------------------------------------------


class TestSimilarityRanker:
    @pytest.mark.asyncio
    async def test_returns_best_first(self, chunk_factory) -> None:
        chunks = [
            chunk_factory("repair", [0.0, 1.0], chunk_index=0),
            chunk_factory("rental", [1.0, 0.0], chunk_index=1),
            chunk_factory("both", [1.0, 1.0], chunk_index=2),
        ]
        ranker = SimilarityRanker(_mock_store(chunks))

        results = await ranker.search([1.0, 0.0], k=3)

        assert [r.chunk.content for r in results] == ["rental", "both", "repair"]
        assert results[0].score == pytest.approx(1.0)
        assert results[-1].score == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_k_limits_results(self, chunk_factory) -> None:
        chunks = [chunk_factory(f"c{i}", [1.0, float(i)], chunk_index=i) for i in range(5)]
        ranker = SimilarityRanker(_mock_store(chunks))

        assert len(await ranker.search([1.0, 0.0], k=2)) == 2
        assert len(await ranker.search([1.0, 0.0], k=10)) == 5

    @pytest.mark.asyncio
    async def test_ties_keep_reading_order(self, chunk_factory) -> None:
        chunks = [chunk_factory(f"c{i}", [1.0, 0.0], chunk_index=i) for i in range(3)]
        ranker = SimilarityRanker(_mock_store(chunks))

        results = await ranker.search([2.0, 0.0], k=3)

        assert [r.chunk.chunk_index for r in results] == [0, 1, 2]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [0, -1])
    async def test_non_positive_k(self, k: int) -> None:
        ranker = SimilarityRanker(_mock_store([]))
        with pytest.raises(ValueError, match="k must be positive"):
            await ranker.search([1.0], k=k)

    @pytest.mark.asyncio
    async def test_empty_corpus(self) -> None:
        ranker = SimilarityRanker(_mock_store([]))
        with pytest.raises(NoDataError):
            await ranker.search([1.0, 0.0], k=3)

    @pytest.mark.asyncio
    async def test_dimension_mismatch_propagates(self, chunk_factory) -> None:
        ranker = SimilarityRanker(_mock_store([chunk_factory("x", [1.0, 0.0, 0.0])]))
        with pytest.raises(DimensionMismatchError):
            await ranker.search([1.0, 0.0], k=1)

    @pytest.mark.asyncio
    async def test_source_filter_is_forwarded(self, chunk_factory) -> None:
        store = _mock_store([chunk_factory("x", [1.0])])
        ranker = SimilarityRanker(store)

        await ranker.search([1.0], k=1, source=EmbeddingSource.FALLBACK)

        store.select_all.assert_awaited_once_with(EmbeddingSource.FALLBACK)
