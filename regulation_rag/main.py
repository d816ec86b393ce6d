"""Regulation Q&A FastAPI application entry point.

Wires together providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.  ``build_components`` is shared with the CLI so both
entry points assemble the same pipeline.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from regulation_rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from regulation_rag.api.routes import router as api_router
from regulation_rag.config.loader import classifier_rules_from_config, load_config
from regulation_rag.config.settings import Settings
from regulation_rag.interfaces.blob_source import IBlobSource
from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.interfaces.llm_provider import ILLMProvider
from regulation_rag.providers.blob.composite_blob_source import CompositeBlobSource
from regulation_rag.providers.blob.local_blob_source import LocalBlobSource
from regulation_rag.providers.blob.supabase_blob_source import SupabaseStorageBlobSource
from regulation_rag.providers.cache.memory_cache import MemoryCacheProvider
from regulation_rag.providers.corpus.sqlite_corpus_store import SQLiteCorpusStore
from regulation_rag.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from regulation_rag.providers.llm.anthropic_provider import AnthropicLLMProvider
from regulation_rag.providers.llm.ollama_provider import OllamaLLMProvider
from regulation_rag.providers.llm.openai_provider import OpenAILLMProvider
from regulation_rag.services.answer_synthesizer import AnswerSynthesizer
from regulation_rag.services.embedding_service import ResilientEmbedder
from regulation_rag.services.ingestion.chunker import RegulationChunker
from regulation_rag.services.ingestion.classifier import DEFAULT_CATEGORY_RULES
from regulation_rag.services.ingestion.ingestion_service import IngestionService
from regulation_rag.services.ranker import SimilarityRanker
from regulation_rag.services.regulation_assistant import RegulationAssistant
from regulation_rag.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings.config_path, settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first available LLM provider based on configured API keys.

    Priority order: Anthropic -> OpenAI-compatible -> Ollama.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """Select the primary embedding provider.

    Priority: OpenAI-compatible (if an API key is set) -> Nomic/Ollama (if
    reachable).  Returns ``None`` when neither is usable; every vector then
    comes from the local hash fallback.
    """
    if app_settings.openai_api_key:
        from regulation_rag.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    from regulation_rag.providers.embedding.nomic_embedding_provider import (
        NomicEmbeddingProvider,
    )

    provider = NomicEmbeddingProvider(settings=app_settings)
    if provider.is_available():
        return provider

    return None


def _build_blob_source(app_settings: Settings, http_client: httpx.AsyncClient) -> IBlobSource:
    """Local directories first, then Supabase Storage; later sources win on name clashes."""
    sources: list[IBlobSource] = [
        LocalBlobSource(directory, max_bytes=app_settings.max_document_bytes)
        for directory in app_settings.regulation_dirs
    ]
    if app_settings.supabase_configured():
        sources.append(
            SupabaseStorageBlobSource(
                http_client,
                base_url=app_settings.supabase_url,
                service_key=app_settings.supabase_service_key,
                bucket=app_settings.supabase_bucket,
                folder=app_settings.supabase_prefix,
                max_bytes=app_settings.max_document_bytes,
            )
        )
    return CompositeBlobSource(sources)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(
    app_settings: Settings,
    app_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components; the web app stores them on
    ``app.state`` and the CLI uses them directly.
    """
    app_config = app_config or {}

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)
    cache = MemoryCacheProvider(ttl=app_settings.answer_cache_ttl)

    # -- Providers --
    llm = _build_llm_provider(app_settings)
    primary_embedding = _build_embedding_provider(app_settings)
    fallback_embedding = HashEmbeddingProvider(dimension=app_settings.embedding_dimension)
    embedder = ResilientEmbedder(primary_embedding, fallback_embedding)
    store = SQLiteCorpusStore(app_settings.corpus_db_path, corpus_id=app_settings.corpus_id)
    blob_source = _build_blob_source(app_settings, http_client)

    # -- Services --
    rules = classifier_rules_from_config(app_config) or DEFAULT_CATEGORY_RULES
    ingestion = IngestionService(
        chunker=RegulationChunker(app_settings.chunk_min_size, app_settings.chunk_max_size),
        embedder=embedder,
        store=store,
        rules=rules,
        concurrency=app_settings.ingestion_concurrency,
        lock_ttl_seconds=app_settings.ingestion_lock_ttl_seconds,
        cache=cache,
    )
    synthesizer = AnswerSynthesizer(
        embedder=embedder,
        ranker=SimilarityRanker(store),
        store=store,
        llm=llm,
        cache=cache,
        top_k=app_settings.rag_top_k,
        max_context_chars=app_settings.max_context_chars,
        language=app_settings.answer_language,
        temperature=app_settings.answer_temperature,
        max_tokens=app_settings.answer_max_tokens,
        cache_ttl=app_settings.answer_cache_ttl,
    )
    assistant = RegulationAssistant(
        blob_source=blob_source,
        ingestion=ingestion,
        synthesizer=synthesizer,
        store=store,
    )

    provider_registry: dict[str, Any] = {
        "llm": llm.is_available(),
        "llm_provider": llm.get_provider_name(),
        "embedding": primary_embedding is not None,
        "embedding_provider": (
            primary_embedding.get_provider_name()
            if primary_embedding is not None
            else fallback_embedding.get_provider_name()
        ),
        "supabase": app_settings.supabase_configured(),
    }

    return {
        "http_client": http_client,
        "cache": cache,
        "llm": llm,
        "embedder": embedder,
        "store": store,
        "blob_source": blob_source,
        "assistant": assistant,
        "provider_registry": provider_registry,
        "version": _VERSION,
    }


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = build_components(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["store"].initialize()

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        llm=components["provider_registry"]["llm_provider"],
        embedding=components["provider_registry"]["embedding_provider"],
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Regulation Q&A API",
        version=_VERSION,
        description=(
            "Ingest the organization's regulation documents and answer questions "
            "about them with retrieval-augmented generation."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "regulation_rag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
