"""Domain models, re-exported so callers can ``from regulation_rag.models import ...``."""

from __future__ import annotations

from regulation_rag.models.regulation import (
    ALLOWED_EXTENSIONS,
    AnswerQuestionResult,
    ChunkDraft,
    CorpusStats,
    DocumentFormat,
    EmbeddingIntent,
    EmbeddingSource,
    EmbedResult,
    ExtractedDocument,
    IngestionReport,
    IngestRegulationsResult,
    RAGAnswer,
    RegulationChunk,
    ScoredChunk,
    SourceDocument,
)

__all__ = [
    "ALLOWED_EXTENSIONS",
    "AnswerQuestionResult",
    "ChunkDraft",
    "CorpusStats",
    "DocumentFormat",
    "EmbedResult",
    "EmbeddingIntent",
    "EmbeddingSource",
    "ExtractedDocument",
    "IngestRegulationsResult",
    "IngestionReport",
    "RAGAnswer",
    "RegulationChunk",
    "ScoredChunk",
    "SourceDocument",
]
