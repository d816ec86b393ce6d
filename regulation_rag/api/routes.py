"""FastAPI routes for the regulation Q&A service.

Services are resolved from ``app.state`` (populated in ``main._lifespan``)
through ``Annotated[..., Depends(...)]`` aliases.

    Endpoint                          Method  Description
    ---------------------------------------------------------------------
    /api/v1/regulations/ingest        POST    Rebuild the corpus
    /api/v1/regulations/ask           POST    Answer a question (RAG)
    /api/v1/regulations/files         GET     List regulation documents
    /api/v1/corpus/stats              GET     Active corpus statistics
    /api/v1/health                    GET     Health check + provider status
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request

from regulation_rag.api.schemas import (
    AskRequest,
    AskResponse,
    CorpusStatsResponse,
    FilesResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    SourcePassage,
)
from regulation_rag.models.regulation import ScoredChunk
from regulation_rag.services.regulation_assistant import RegulationAssistant
from regulation_rag.utils.errors import PersistenceError
from regulation_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_EXCERPT_CHARS = 300


def _get_assistant(request: Request) -> RegulationAssistant:
    return request.app.state.assistant


AssistantDep = Annotated[RegulationAssistant, Depends(_get_assistant)]


def _to_passage(scored: ScoredChunk) -> SourcePassage:
    chunk = scored.chunk
    return SourcePassage(
        title=chunk.title,
        section=chunk.section,
        category=chunk.category,
        source_file=chunk.source_file,
        chunk_index=chunk.chunk_index,
        similarity=round(scored.score, 4),
        excerpt=chunk.content[:_EXCERPT_CHARS],
    )


# ---------------------------------------------------------------------------
# Regulations
# ---------------------------------------------------------------------------


@router.post(
    "/regulations/ingest",
    response_model=IngestResponse,
    summary="Rebuild the regulation corpus",
)
async def ingest_regulations(
    assistant: AssistantDep,
    body: IngestRequest | None = None,
) -> IngestResponse:
    """Extract, chunk, embed and store regulation documents.

    The previous corpus stays searchable until the new one is complete.
    """
    files = body.files if body is not None else None
    result = await assistant.ingest_regulations(files)
    _logger.info(
        "api_ingest",
        success=result.success,
        chunks_stored=result.chunks_stored,
        requested=len(files) if files else None,
    )
    return IngestResponse(
        success=result.success,
        chunks_stored=result.chunks_stored,
        chunks_failed=result.chunks_failed,
        documents_seen=result.documents_seen,
        documents_skipped=result.documents_skipped,
        generation_id=result.generation_id,
        embedding_source=result.embedding_source.value if result.embedding_source else None,
        error=result.error,
    )


@router.post(
    "/regulations/ask",
    response_model=AskResponse,
    summary="Ask a question about the regulations",
)
async def ask_question(body: AskRequest, assistant: AssistantDep) -> AskResponse:
    result = await assistant.answer_question(body.question)
    return AskResponse(
        success=result.success,
        answer=result.answer,
        sources=[_to_passage(s) for s in result.sources],
        confidence=round(result.confidence, 4) if result.confidence is not None else None,
        error=result.error,
    )


@router.get(
    "/regulations/files",
    response_model=FilesResponse,
    summary="List regulation documents available for ingestion",
)
async def list_files(assistant: AssistantDep) -> FilesResponse:
    return FilesResponse(files=await assistant.list_regulation_files())


# ---------------------------------------------------------------------------
# Corpus / health
# ---------------------------------------------------------------------------


@router.get(
    "/corpus/stats",
    response_model=CorpusStatsResponse,
    summary="Statistics of the active corpus generation",
)
async def corpus_stats(assistant: AssistantDep) -> CorpusStatsResponse:
    stats = await assistant.corpus_stats()
    return CorpusStatsResponse(
        total_chunks=stats.total_chunks,
        total_sources=stats.total_sources,
        chunks_by_category=stats.chunks_by_category,
        active_generation=stats.active_generation,
        embedding_source=stats.embedding_source.value if stats.embedding_source else None,
        embedding_model=stats.embedding_model,
        dimension=stats.dimension,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``healthy`` needs an LLM provider and a non-empty corpus; with an LLM
    but no corpus the service is ``degraded``.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    assistant = getattr(request.app.state, "assistant", None)
    if assistant is not None:
        try:
            stats = await assistant.corpus_stats()
            providers["corpus"] = stats.total_chunks > 0
            providers["corpus_chunks"] = stats.total_chunks
        except PersistenceError as exc:
            _logger.warning("health_corpus_unavailable", error=str(exc))
            providers["corpus"] = False
            providers["corpus_chunks"] = 0

    if providers.get("llm") and providers.get("corpus"):
        status = "healthy"
    elif providers.get("llm"):
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=getattr(request.app.state, "version", "0.1.0"),
        providers=providers,
    )
