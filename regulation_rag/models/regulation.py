"""Data models for the regulation knowledge base.

Pydantic v2 models for everything that flows through ingestion and
question answering.  All models are frozen; stages produce new instances
(``model_copy(update=...)``) instead of mutating the ones they receive.

Flow for one ingestion run::

    SourceDocument -> ExtractedDocument -> ChunkDraft -> RegulationChunk
                                                           (+ EmbedResult)

and for one question::

    query -> EmbedResult -> [ScoredChunk] -> RAGAnswer
"""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field

from regulation_rag.utils.errors import UnsupportedFormatError


class DocumentFormat(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Document formats the extractor understands."""

    PDF = "pdf"
    MARKDOWN = "markdown"
    TEXT = "text"

    @classmethod
    def from_filename(cls, filename: str) -> DocumentFormat:
        """Map a file extension to a format.

        Raises
        ------
        UnsupportedFormatError
            For any extension other than ``.pdf``, ``.md``, ``.markdown``
            or ``.txt``.
        """
        suffix = PurePosixPath(filename).suffix.lower()
        try:
            return _SUFFIX_FORMATS[suffix]
        except KeyError:
            raise UnsupportedFormatError(
                f"Unsupported document type '{suffix or filename}' ({filename})"
            ) from None


_SUFFIX_FORMATS: dict[str, DocumentFormat] = {
    ".pdf": DocumentFormat.PDF,
    ".md": DocumentFormat.MARKDOWN,
    ".markdown": DocumentFormat.MARKDOWN,
    ".txt": DocumentFormat.TEXT,
}

# Extensions listed by blob sources.
ALLOWED_EXTENSIONS: frozenset[str] = frozenset({".pdf", ".md", ".txt"})


class EmbeddingIntent(str, Enum):  # noqa: UP042
    """Why a text is embedded.  Some models encode documents and queries differently."""

    DOCUMENT = "document"
    QUERY = "query"


class EmbeddingSource(str, Enum):  # noqa: UP042
    """Which provider produced a vector."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


# ---------------------------------------------------------------------------
# Ingestion inputs
# ---------------------------------------------------------------------------
class SourceDocument(BaseModel):
    """Raw bytes of one regulation file as read from a blob source."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(description="File name including extension.")
    data: bytes = Field(repr=False, description="Raw file contents.")


class ExtractedDocument(BaseModel):
    """Plain text pulled out of a :class:`SourceDocument`."""

    model_config = ConfigDict(frozen=True)

    text: str
    title: str
    source_file: str = ""


class ChunkDraft(BaseModel):
    """A chunk as produced by the chunker, before classification and embedding."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str
    section: str | None = None


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------
class EmbedResult(BaseModel):
    """A vector together with the provider that produced it."""

    model_config = ConfigDict(frozen=True)

    vector: list[float]
    source: EmbeddingSource
    provider_name: str = ""

    @property
    def dimension(self) -> int:
        return len(self.vector)


# ---------------------------------------------------------------------------
# RegulationChunk: the unit stored in the corpus.
# ---------------------------------------------------------------------------
class RegulationChunk(BaseModel):
    """A classified, embedded passage of a regulation document."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(default="", description="UUID assigned when staged.")
    title: str = Field(description="Section heading or document title.")
    content: str = Field(min_length=1, description="Trimmed chunk text.")
    section: str | None = Field(
        default=None,
        description='Heading path, e.g. "제3장 대여 > 대여 기간".',
    )
    category: str = Field(default="uncategorized")
    embedding: list[float] = Field(default_factory=list, repr=False)
    embedding_source: EmbeddingSource = EmbeddingSource.PRIMARY
    embedding_model: str = Field(default="", description="Provider that produced the vector.")
    chunk_index: int = Field(default=0, ge=0, description="Run-wide position in reading order.")
    source_file: str = ""

    @property
    def chunk_size(self) -> int:
        return len(self.content)


class ScoredChunk(BaseModel):
    """A stored chunk paired with its cosine similarity to a query."""

    model_config = ConfigDict(frozen=True)

    chunk: RegulationChunk
    score: float = Field(ge=-1.0, le=1.0)


class RAGAnswer(BaseModel):
    """Synthesized answer plus the passages it was grounded on."""

    model_config = ConfigDict(frozen=True)

    text: str
    sources: list[ScoredChunk] = Field(default_factory=list)
    confidence: float = 0.0


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------
class IngestionReport(BaseModel):
    """Summary of one full-corpus ingestion run."""

    model_config = ConfigDict(frozen=True)

    generation_id: str
    documents_seen: int = Field(default=0, ge=0)
    documents_skipped: int = Field(default=0, ge=0)
    chunks_stored: int = Field(default=0, ge=0)
    chunks_failed: int = Field(default=0, ge=0)
    embedding_source: EmbeddingSource | None = None
    activated: bool = False
    elapsed_seconds: float = Field(default=0.0, ge=0.0)


class CorpusStats(BaseModel):
    """Snapshot of the active corpus generation."""

    model_config = ConfigDict(frozen=True)

    total_chunks: int = Field(default=0, ge=0)
    total_sources: int = Field(default=0, ge=0)
    chunks_by_category: dict[str, int] = Field(default_factory=dict)
    active_generation: str | None = None
    embedding_source: EmbeddingSource | None = None
    embedding_model: str | None = None
    dimension: int | None = None


# ---------------------------------------------------------------------------
# Public operation results.  These never carry exceptions; failures are
# reported through ``success=False`` and ``error``.
# ---------------------------------------------------------------------------
class IngestRegulationsResult(BaseModel):
    """Outcome of :meth:`RegulationAssistant.ingest_regulations`."""

    model_config = ConfigDict(frozen=True)

    success: bool
    chunks_stored: int = 0
    chunks_failed: int = 0
    documents_seen: int = 0
    documents_skipped: int = 0
    generation_id: str | None = None
    embedding_source: EmbeddingSource | None = None
    error: str | None = None


class AnswerQuestionResult(BaseModel):
    """Outcome of :meth:`RegulationAssistant.answer_question`."""

    model_config = ConfigDict(frozen=True)

    success: bool
    answer: str | None = None
    sources: list[ScoredChunk] = Field(default_factory=list)
    confidence: float | None = None
    error: str | None = None
