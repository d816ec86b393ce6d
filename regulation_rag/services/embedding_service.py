"""Primary/fallback embedding with explicit provenance.

:class:`ResilientEmbedder` wraps a remote primary provider and the local
deterministic fallback.  ``embed`` never raises on a remote failure: it
returns an :class:`EmbedResult` whose ``source`` says which provider
produced the vector, and callers branch on that value.

``embed_with`` pins one source and does raise.  It is used at query time,
where the query must be embedded by the same provider as the corpus; a
vector from the other provider would be compared against an unrelated
encoding.
"""

from __future__ import annotations

import structlog

from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.models.regulation import EmbeddingIntent, EmbeddingSource, EmbedResult
from regulation_rag.utils.errors import EmbeddingProviderError, ProviderAuthError

logger = structlog.get_logger(logger_name=__name__)


class ResilientEmbedder:
    """Embeds with the primary provider and degrades to the fallback.

    Parameters
    ----------
    primary:
        Remote provider, or ``None`` when no remote embedding is configured
        (every vector then comes from the fallback).
    fallback:
        Deterministic local provider; must not raise.
    """

    def __init__(
        self,
        primary: IEmbeddingProvider | None,
        fallback: IEmbeddingProvider,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        # Checked once; some providers probe the network in is_available().
        self._primary_ready = primary is not None and primary.is_available()

    @property
    def primary_provider(self) -> IEmbeddingProvider | None:
        return self._primary

    @property
    def fallback_provider(self) -> IEmbeddingProvider:
        return self._fallback

    def provider_for(self, source: EmbeddingSource) -> IEmbeddingProvider:
        """Return the provider behind *source*.

        Raises
        ------
        EmbeddingProviderError
            If *source* is ``PRIMARY`` and no primary provider is configured.
        """
        if source is EmbeddingSource.FALLBACK:
            return self._fallback
        if self._primary is None or not self._primary_ready:
            raise EmbeddingProviderError(
                "The corpus was embedded by the primary provider, "
                "but no primary embedding provider is configured"
            )
        return self._primary

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(
        self,
        text: str,
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> EmbedResult:
        """Embed one text, falling back locally if the primary fails."""
        results = await self.embed_many([text], intent)
        return results[0]

    async def embed_many(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[EmbedResult]:
        """Embed a batch; the whole batch shares one source."""
        if not texts:
            return []
        primary = self._primary
        if primary is not None and self._primary_ready:
            try:
                vectors = await primary.embed(texts, intent)
                return [
                    EmbedResult(
                        vector=v,
                        source=EmbeddingSource.PRIMARY,
                        provider_name=primary.get_provider_name(),
                    )
                    for v in vectors
                ]
            except ProviderAuthError as exc:
                logger.warning(
                    "embedding_auth_failed_using_fallback",
                    provider=primary.get_provider_name(),
                    error=str(exc),
                )
            except EmbeddingProviderError as exc:
                logger.warning(
                    "embedding_failed_using_fallback",
                    provider=primary.get_provider_name(),
                    texts=len(texts),
                    error=str(exc),
                )
        return await self._embed_fallback(texts, intent)

    async def embed_with(
        self,
        source: EmbeddingSource,
        text: str,
        intent: EmbeddingIntent = EmbeddingIntent.QUERY,
    ) -> EmbedResult:
        """Embed with exactly the provider behind *source*; errors propagate."""
        provider = self.provider_for(source)
        vector = await provider.embed_single(text, intent)
        return EmbedResult(
            vector=vector, source=source, provider_name=provider.get_provider_name()
        )

    async def embed_all_with_fallback(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[EmbedResult]:
        """Embed every text with the fallback provider."""
        return await self._embed_fallback(texts, intent)

    async def _embed_fallback(
        self, texts: list[str], intent: EmbeddingIntent
    ) -> list[EmbedResult]:
        vectors = await self._fallback.embed(texts, intent)
        name = self._fallback.get_provider_name()
        return [
            EmbedResult(vector=v, source=EmbeddingSource.FALLBACK, provider_name=name)
            for v in vectors
        ]
