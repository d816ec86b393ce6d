"""Unit tests for embedding provider adapters: OpenAI-compatible, Nomic, hash fallback."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from regulation_rag.config.settings import Settings
from regulation_rag.models.regulation import EmbeddingIntent
from regulation_rag.utils.errors import EmbeddingProviderError, ProviderAuthError

_OPENAI_CLIENT = "regulation_rag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
_NOMIC_CLIENT = "regulation_rag.providers.embedding.nomic_embedding_provider.openai.AsyncOpenAI"


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "ollama_base_url": "http://localhost:11434",
        "embedding_batch_size": 64,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _response(*vectors: list[float]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=12)
    return response


def _status_error(cls, status: int):
    request = httpx.Request("POST", "https://api.example.com/v1/embeddings")
    return cls("denied", response=httpx.Response(status, request=request), body=None)


# ======================================================================
# OpenAI-compatible embedding provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_defaults(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider = OpenAIEmbeddingProvider(_settings())
        assert provider.model == "text-embedding-3-small"
        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding:text-embedding-3-small"
        assert provider.is_available() is True

    def test_compatible_endpoint(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider = OpenAIEmbeddingProvider(
            _settings(
                openai_base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
                openai_embedding_model="text-embedding-004",
            )
        )
        assert provider.get_dimension() == 768
        assert provider.get_provider_name() == "openai-compatible_embedding:text-embedding-004"

    def test_unknown_model_uses_configured_dimension(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider = OpenAIEmbeddingProvider(
            _settings(openai_embedding_model="custom-model", embedding_dimension=384)
        )
        assert provider.get_dimension() == 384

    def test_not_available_without_key(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_embed_batches(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=[_response([0.1, 0.2], [0.3, 0.4]), _response([0.5, 0.6])]
        )

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings(embedding_batch_size=2))
            result = await provider.embed(["a", "b", "c"])

        assert result == [[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]]
        assert mock_client.embeddings.create.await_count == 2
        first_call = mock_client.embeddings.create.await_args_list[0].kwargs
        assert first_call["input"] == ["a", "b"]
        assert first_call["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_request(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        mock_client = AsyncMock()
        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            assert await provider.embed([]) == []
        mock_client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_e5_models_get_intent_prefixes(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([1.0]))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(
                _settings(openai_embedding_model="intfloat/multilingual-e5-large-instruct")
            )
            await provider.embed(["대여 기간"], EmbeddingIntent.QUERY)

        assert mock_client.embeddings.create.await_args.kwargs["input"] == ["query: 대여 기간"]

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="Rate limit", request=MagicMock(), body=None)
        )

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(EmbeddingProviderError) as exc_info:
                await provider.embed(["hello"])

        assert not isinstance(exc_info.value, ProviderAuthError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error_cls", "status"),
        [(openai.AuthenticationError, 401), (openai.PermissionDeniedError, 403)],
    )
    async def test_rejected_key(self, error_cls, status: int) -> None:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(side_effect=_status_error(error_cls, status))

        with patch(_OPENAI_CLIENT, return_value=mock_client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(ProviderAuthError) as exc_info:
                await provider.embed(["hello"])

        assert exc_info.value.provider_name == "openai_embedding:text-embedding-3-small"


# ======================================================================
# Nomic (Ollama) embedding provider
# ======================================================================


class TestNomicEmbeddingProvider:
    def test_metadata(self) -> None:
        from regulation_rag.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        provider = NomicEmbeddingProvider(_settings())
        assert provider.get_dimension() == 768
        assert provider.get_provider_name() == "nomic_embedding:nomic-embed-text"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("intent", "prefix"),
        [(EmbeddingIntent.DOCUMENT, "search_document: "), (EmbeddingIntent.QUERY, "search_query: ")],
    )
    async def test_task_prefixes(self, intent: EmbeddingIntent, prefix: str) -> None:
        from regulation_rag.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_response([0.1] * 768))

        with patch(_NOMIC_CLIENT, return_value=mock_client):
            provider = NomicEmbeddingProvider(_settings())
            result = await provider.embed(["수리 비용"], intent)

        assert len(result[0]) == 768
        assert mock_client.embeddings.create.await_args.kwargs["input"] == [f"{prefix}수리 비용"]

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        from regulation_rag.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="model not found", request=MagicMock(), body=None)
        )

        with patch(_NOMIC_CLIENT, return_value=mock_client):
            provider = NomicEmbeddingProvider(_settings())
            with pytest.raises(EmbeddingProviderError):
                await provider.embed(["x"])

    def test_available_when_server_answers(self) -> None:
        from regulation_rag.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        with patch(
            "regulation_rag.providers.embedding.nomic_embedding_provider.httpx.get",
            return_value=MagicMock(status_code=200),
        ) as mock_get:
            assert NomicEmbeddingProvider(_settings()).is_available() is True
        mock_get.assert_called_once_with("http://localhost:11434/api/tags", timeout=3.0)

    def test_unavailable_when_server_is_down(self) -> None:
        from regulation_rag.providers.embedding.nomic_embedding_provider import (
            NomicEmbeddingProvider,
        )

        with patch(
            "regulation_rag.providers.embedding.nomic_embedding_provider.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            assert NomicEmbeddingProvider(_settings()).is_available() is False
