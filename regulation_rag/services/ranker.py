"""Linear-scan cosine similarity ranking over the active corpus.

Every stored vector is compared with the query.  This is fine for the few
thousand chunks a regulation corpus holds; a larger corpus would put an
approximate nearest-neighbour index behind the same ``search`` signature.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import structlog

from regulation_rag.interfaces.corpus_store import ICorpusStore
from regulation_rag.models.regulation import EmbeddingSource, ScoredChunk
from regulation_rag.utils.errors import DimensionMismatchError, NoDataError

logger = structlog.get_logger(logger_name=__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or ``0.0`` if either norm is zero.

    Raises
    ------
    DimensionMismatchError
        If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Cannot compare vectors of dimension {len(a)} and {len(b)}"
        )
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = float(np.dot(va, vb)) / (norm_a * norm_b)
    # Rounding can push identical vectors a hair past 1.
    return max(-1.0, min(1.0, score))


class SimilarityRanker:
    """Scores a query vector against every chunk of the active generation."""

    def __init__(self, store: ICorpusStore) -> None:
        self._store = store

    async def search(
        self,
        query_vector: Sequence[float],
        k: int,
        source: EmbeddingSource | None = None,
    ) -> list[ScoredChunk]:
        """Return at most *k* chunks, best match first.

        Parameters
        ----------
        query_vector:
            Embedding of the query.
        k:
            Number of results wanted; must be positive.
        source:
            Rank only chunks embedded by this provider.

        Raises
        ------
        ValueError
            If *k* is not positive.
        NoDataError
            If the corpus (or the requested provenance) holds no chunks.
        DimensionMismatchError
            If a stored vector differs in length from *query_vector*.
        """
        if k <= 0:
            msg = f"k must be positive, got {k}"
            raise ValueError(msg)

        chunks = await self._store.select_all(source)
        if not chunks:
            raise NoDataError(provider_name=self._store.get_provider_name())

        scored = [
            ScoredChunk(chunk=chunk, score=cosine_similarity(query_vector, chunk.embedding))
            for chunk in chunks
        ]
        # Stable sort keeps reading order among equal scores.
        scored.sort(key=lambda s: s.score, reverse=True)
        top = scored[:k]
        logger.debug(
            "similarity_search",
            candidates=len(chunks),
            returned=len(top),
            best=round(top[0].score, 4) if top else None,
        )
        return top
