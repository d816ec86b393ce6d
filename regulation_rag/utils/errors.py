"""Exception hierarchy for the regulation Q&A pipeline.

Every error carries a ``message`` and an optional ``provider_name`` naming
the external service involved ("openai", "sqlite", "supabase", ...).

    RegulationRAGError
    +-- UnsupportedFormatError     (extraction: unknown document format)
    +-- ExtractionError            (extraction: parser failure)
    +-- EmbeddingProviderError     (remote embedding call failed)
    |   +-- ProviderAuthError      (credentials rejected)
    +-- LLMError                   (answer generation failed)
    +-- PersistenceError           (corpus store write/read failed)
    +-- DimensionMismatchError     (vectors of different length compared)
    +-- EmbeddingModelMismatchError (query model differs from the corpus model)
    +-- NoDataError                (corpus is empty)
    +-- NoRelevantContextError     (ranking produced nothing usable)
    +-- IngestionInProgressError   (another run holds the corpus lock)
    +-- IngestionCancelledError    (run aborted by its cancellation token)
    +-- BlobSourceError            (listing or reading a document failed)
    +-- ConfigurationError         (startup / missing config)

``ProviderAuthError`` subclasses ``EmbeddingProviderError`` so that the
ingestion fallback path treats a bad key like any other embedding outage.
LLM adapters raise it too; the public operations single it out to tell the
operator to fix their credentials.
"""


class RegulationRAGError(Exception):
    """Base exception for every error raised by this package.

    ``__str__`` prefixes the provider name in brackets, e.g.
    ``[openai] Embedding request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class UnsupportedFormatError(RegulationRAGError):
    """Raised when a document is neither PDF, markdown nor plain text."""

    def __init__(
        self,
        message: str = "Unsupported document format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(RegulationRAGError):
    """Raised when a document cannot be parsed or decoded."""

    def __init__(
        self,
        message: str = "Document text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Remote providers
# ---------------------------------------------------------------------------

class EmbeddingProviderError(RegulationRAGError):
    """Raised when the remote embedding service fails (network, quota, API)."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderAuthError(EmbeddingProviderError):
    """Raised when a remote provider rejects the configured credentials."""

    def __init__(
        self,
        message: str = "Provider rejected the configured API key",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(RegulationRAGError):
    """Raised when the answer-generation call fails or returns nothing."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BlobSourceError(RegulationRAGError):
    """Raised when a document listing or download fails."""

    def __init__(
        self,
        message: str = "Document source is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Corpus / retrieval
# ---------------------------------------------------------------------------

class PersistenceError(RegulationRAGError):
    """Raised when the corpus store rejects a read or write."""

    def __init__(
        self,
        message: str = "Corpus store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DimensionMismatchError(RegulationRAGError):
    """Raised when two vectors of different length are compared."""

    def __init__(
        self,
        message: str = "Embedding dimensions do not match",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingModelMismatchError(RegulationRAGError):
    """Raised when the query would be embedded by a different model than the corpus."""

    def __init__(
        self,
        message: str = "The corpus was built with a different embedding model; re-run ingestion",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoDataError(RegulationRAGError):
    """Raised when a search runs against an empty corpus."""

    def __init__(
        self,
        message: str = "No regulations are stored yet; run ingestion first",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NoRelevantContextError(RegulationRAGError):
    """Raised when ranking returns no chunk to answer from."""

    def __init__(
        self,
        message: str = "No relevant regulation passages were found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion lifecycle / configuration
# ---------------------------------------------------------------------------

class IngestionInProgressError(RegulationRAGError):
    """Raised when another ingestion run holds the corpus lock."""

    def __init__(
        self,
        message: str = "Another ingestion run is already in progress",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionCancelledError(RegulationRAGError):
    """Raised when an ingestion run is cancelled before activation."""

    def __init__(
        self,
        message: str = "Ingestion was cancelled; the previous corpus is unchanged",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(RegulationRAGError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
