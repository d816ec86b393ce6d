"""Abstract base class for the regulation corpus store.

The store keeps chunks grouped by *generation*.  Exactly one generation is
active at a time; reads only ever see the active one.  An ingestion run
stages its chunks under a fresh generation id and then calls
:meth:`ICorpusStore.activate_generation`, which swaps the pointer and drops
the previous generation in one transaction.  Readers therefore see either
the old corpus or the new one, never a half-written mix.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from regulation_rag.models.regulation import CorpusStats, EmbeddingSource, RegulationChunk


# Concrete implementation: SQLiteCorpusStore (regulation_rag/providers/corpus/)
class ICorpusStore(ABC):
    """Contract for persisting and scanning regulation chunks."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if needed.  Safe to call repeatedly."""

    @abstractmethod
    async def delete_all(self) -> int:
        """Remove every chunk of every generation and clear the active pointer.

        Returns
        -------
        int
            Number of rows deleted.
        """

    @abstractmethod
    async def insert_many(self, chunks: list[RegulationChunk], generation_id: str) -> int:
        """Stage *chunks* under *generation_id*.

        Rows that the backend rejects are logged and skipped.

        Returns
        -------
        int
            Number of chunks actually stored.
        """

    @abstractmethod
    async def select_all(self, source: EmbeddingSource | None = None) -> list[RegulationChunk]:
        """Return every chunk of the active generation, in ``chunk_index`` order.

        Parameters
        ----------
        source:
            When given, only chunks embedded by that source are returned.
        """

    @abstractmethod
    async def activate_generation(
        self,
        generation_id: str,
        embedding_source: EmbeddingSource,
        embedding_model: str,
        dimension: int,
    ) -> None:
        """Atomically make *generation_id* the active corpus and drop all others.

        Raises
        ------
        regulation_rag.utils.errors.PersistenceError
            If the swap cannot be committed; the previous generation stays active.
        """

    @abstractmethod
    async def discard_generation(self, generation_id: str) -> int:
        """Delete a staged generation that will never be activated."""

    @abstractmethod
    async def active_generation(self) -> str | None:
        """Return the active generation id, or ``None`` for an empty corpus."""

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Return counts and provenance of the active generation."""

    @abstractmethod
    async def acquire_ingestion_lock(self, owner: str, ttl_seconds: int) -> bool:
        """Take the advisory ingestion lock for this corpus.

        A lock older than *ttl_seconds* is considered abandoned and is taken
        over.

        Returns
        -------
        bool
            ``True`` if *owner* now holds the lock.
        """

    @abstractmethod
    async def release_ingestion_lock(self, owner: str) -> None:
        """Release the lock if *owner* holds it."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
