"""Abstract base class for text-embedding providers.

Implementations wrap a remote OpenAI-compatible endpoint, Nomic via Ollama,
or the deterministic local hash embedder used as the fallback.  Providers
raise; the decision to fall back belongs to
:class:`~regulation_rag.services.embedding_service.ResilientEmbedder`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from regulation_rag.models.regulation import EmbeddingIntent


# Concrete implementations (regulation_rag/providers/embedding/):
#   OpenAIEmbeddingProvider  -- OpenAI / Gemini-compatible / TogetherAI endpoints
#   NomicEmbeddingProvider   -- nomic-embed-text via Ollama
#   HashEmbeddingProvider    -- deterministic local fallback, never fails
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and search."""

    @abstractmethod
    async def embed(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Text strings to embed.  Batching against per-call limits is the
            implementation's job.
        intent:
            ``DOCUMENT`` while ingesting, ``QUERY`` while searching.

        Returns
        -------
        list[list[float]]
            One vector per input text, each of length :meth:`get_dimension`.

        Raises
        ------
        regulation_rag.utils.errors.EmbeddingProviderError
            If the backend call fails.
        regulation_rag.utils.errors.ProviderAuthError
            If the backend rejects the credentials.
        """

    async def embed_single(
        self,
        text: str,
        intent: EmbeddingIntent = EmbeddingIntent.QUERY,
    ) -> list[float]:
        """Embed one text.  Defaults to query intent, the common single-text case."""
        result = await self.embed([text], intent)
        return result[0]

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the vector length; constant for the provider's lifetime."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, recorded on every stored chunk."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials/URL present)."""
