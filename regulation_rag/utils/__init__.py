"""Utility modules for the regulation Q&A service.

- **errors** -- exception hierarchy rooted at RegulationRAGError.
- **concurrency** -- semaphore-bounded gather and the cancellation token
  used by ingestion.
- **logging** -- structlog setup (console in development, JSON in
  production).
"""

# -- Domain exception hierarchy --------------------------------------------
from regulation_rag.utils.errors import (
    BlobSourceError,
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingModelMismatchError,
    EmbeddingProviderError,
    ExtractionError,
    IngestionCancelledError,
    IngestionInProgressError,
    LLMError,
    NoDataError,
    NoRelevantContextError,
    PersistenceError,
    ProviderAuthError,
    RegulationRAGError,
    UnsupportedFormatError,
)

# -- Async concurrency helpers ---------------------------------------------
from regulation_rag.utils.concurrency import CancellationToken, throttled_gather

# -- Structured logging setup ----------------------------------------------
from regulation_rag.utils.logging import configure_logging, get_logger

__all__ = [
    "BlobSourceError",
    "CancellationToken",
    "ConfigurationError",
    "DimensionMismatchError",
    "EmbeddingModelMismatchError",
    "EmbeddingProviderError",
    "ExtractionError",
    "IngestionCancelledError",
    "IngestionInProgressError",
    "LLMError",
    "NoDataError",
    "NoRelevantContextError",
    "PersistenceError",
    "ProviderAuthError",
    "RegulationRAGError",
    "UnsupportedFormatError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
