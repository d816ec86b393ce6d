"""Pydantic request/response schemas for the regulation Q&A API.

Request schemas end with ``Request`` and response schemas with
``Response``.  The ingest and ask responses mirror the structured results
of :class:`~regulation_rag.services.regulation_assistant.RegulationAssistant`:
a failed operation is still HTTP 200 with ``success: false`` and ``error``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    """Optional subset of documents to ingest; omit to ingest everything listed."""

    files: list[str] | None = Field(default=None, description="Document names as listed by /regulations/files.")


class IngestResponse(BaseModel):
    success: bool
    chunks_stored: int = 0
    chunks_failed: int = 0
    documents_seen: int = 0
    documents_skipped: int = 0
    generation_id: str | None = None
    embedding_source: str | None = None
    error: str | None = None


class AskRequest(BaseModel):
    """A natural-language question about the regulations."""

    question: str = Field(..., min_length=1, max_length=1000)


class SourcePassage(BaseModel):
    """One retrieved passage that grounded the answer."""

    title: str
    section: str | None = None
    category: str
    source_file: str
    chunk_index: int
    similarity: float
    excerpt: str = Field(default="", description="First 300 characters of the passage.")


class AskResponse(BaseModel):
    success: bool
    answer: str | None = None
    sources: list[SourcePassage] = Field(default_factory=list)
    confidence: float | None = None
    error: str | None = None


class FilesResponse(BaseModel):
    files: list[str] = Field(default_factory=list)


class CorpusStatsResponse(BaseModel):
    """Counts and provenance of the active corpus generation."""

    total_chunks: int = 0
    total_sources: int = 0
    chunks_by_category: dict[str, int] = Field(default_factory=dict)
    active_generation: str | None = None
    embedding_source: str | None = None
    embedding_model: str | None = None
    dimension: int | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
