"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Besides OpenAI itself this covers every service that speaks the
``/embeddings`` protocol: Gemini's compatibility endpoint
(``text-embedding-004``), TogetherAI, Fireworks.  Point ``OPENAI_BASE_URL``
at the service and set ``OPENAI_EMBEDDING_MODEL``.
"""

from __future__ import annotations

import openai
import structlog

from regulation_rag.config.settings import Settings
from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.models.regulation import EmbeddingIntent
from regulation_rag.utils.errors import EmbeddingProviderError, ProviderAuthError

logger = structlog.get_logger(logger_name=__name__)

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "text-embedding-004": 768,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-m3": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}

# E5 models were trained with role prefixes and lose accuracy without them.
_INTENT_PREFIXES: dict[str, dict[EmbeddingIntent, str]] = {
    "intfloat/multilingual-e5-large-instruct": {
        EmbeddingIntent.QUERY: "query: ",
        EmbeddingIntent.DOCUMENT: "passage: ",
    },
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` unless ``openai_embedding_model`` is set.
    Splits large inputs into ``embedding_batch_size`` requests.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or "text-embedding-3-small"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, settings.embedding_dimension)
        self._batch_size = max(1, settings.embedding_batch_size)
        self._prefixes = _INTENT_PREFIXES.get(self._model, {})
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[list[float]]:
        """Generate embedding vectors, one request per batch."""
        if not texts:
            return []

        prefix = self._prefixes.get(intent, "")
        inputs = [f"{prefix}{t}" for t in texts] if prefix else list(texts)

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(inputs), self._batch_size):
                batch = inputs[start : start + self._batch_size]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.debug(
                    "openai_embedding_batch",
                    model=self._model,
                    provider=self._provider_label,
                    intent=intent.value,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
            return all_embeddings
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise ProviderAuthError(
                message=f"{self._provider_label} rejected the API key: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingProviderError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        """Return the endpoint label and model, e.g. ``openai_embedding:text-embedding-3-small``.

        The corpus records this name; queries against a corpus built with another
        model are refused.
        """
        return f"{self._provider_label}:{self._model}"

    @property
    def model(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
