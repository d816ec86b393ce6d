"""Nomic embedding provider adapter (local, via Ollama).

Talks to Ollama's OpenAI-compatible ``/v1`` endpoint and serves
``nomic-embed-text`` (768 dimensions).  Nomic expects task prefixes:
``search_document: `` for passages and ``search_query: `` for questions.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from regulation_rag.config.settings import Settings
from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.models.regulation import EmbeddingIntent
from regulation_rag.utils.errors import EmbeddingProviderError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 256

_TASK_PREFIXES = {
    EmbeddingIntent.DOCUMENT: "search_document: ",
    EmbeddingIntent.QUERY: "search_query: ",
}


class NomicEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",  # Ollama ignores the key but the SDK requires one
        )
        self._model = "nomic-embed-text"
        self._dimension = 768

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[list[float]]:
        if not texts:
            return []

        prefix = _TASK_PREFIXES[intent]
        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OLLAMA_BATCH_LIMIT):
                batch = [f"{prefix}{t}" for t in texts[start : start + _OLLAMA_BATCH_LIMIT]]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.debug("nomic_embedding_batch", model=self._model, batch_size=len(batch))
            return all_embeddings
        except openai.APIError as exc:
            raise EmbeddingProviderError(
                message=f"Nomic/Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_dimension(self) -> int:
        """Return 768 (nomic-embed-text dimension)."""
        return self._dimension

    def get_provider_name(self) -> str:
        return f"nomic_embedding:{self._model}"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server answers ``/api/tags``."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
