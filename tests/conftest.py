"""Shared pytest fixtures for the regulation Q&A test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from regulation_rag.interfaces.blob_source import IBlobSource
from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.interfaces.llm_provider import ILLMProvider
from regulation_rag.models.regulation import EmbeddingIntent, EmbeddingSource, RegulationChunk
from regulation_rag.providers.corpus.sqlite_corpus_store import SQLiteCorpusStore
from regulation_rag.utils.errors import BlobSourceError, EmbeddingProviderError

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------

# Each group is one vector component; a text scores 1 on a component when it
# contains any of the group's stems.
_KEYWORD_GROUPS: tuple[tuple[str, ...], ...] = (
    ("rent", "대여"),
    ("repair", "수리"),
    ("month", "period", "기간"),
    ("cost", "won", "비용"),
    ("device", "기기"),
    ("budget", "예산"),
)


class KeywordEmbeddingProvider(IEmbeddingProvider):
    """Tiny topical embedder: one dimension per keyword group."""

    def __init__(self, name: str = "keyword_embedding") -> None:
        self._name = name
        self.calls: list[tuple[list[str], EmbeddingIntent]] = []

    async def embed(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[list[float]]:
        self.calls.append((list(texts), intent))
        vectors = []
        for text in texts:
            lowered = text.lower()
            vectors.append(
                [1.0 if any(stem in lowered for stem in group) else 0.0 for group in _KEYWORD_GROUPS]
            )
        return vectors

    def get_dimension(self) -> int:
        return len(_KEYWORD_GROUPS)

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return True


class FailingEmbeddingProvider(IEmbeddingProvider):
    """Primary provider that is always down."""

    def __init__(self, error: Exception | None = None) -> None:
        self._error = error or EmbeddingProviderError("service unavailable", provider_name="remote")
        self.calls = 0

    async def embed(
        self,
        texts: list[str],
        intent: EmbeddingIntent = EmbeddingIntent.DOCUMENT,
    ) -> list[list[float]]:
        self.calls += 1
        raise self._error

    def get_dimension(self) -> int:
        return 768

    def get_provider_name(self) -> str:
        return "remote_embedding"

    def is_available(self) -> bool:
        return True


class InMemoryBlobSource(IBlobSource):
    """Blob source over a ``{filename: bytes}`` dict."""

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files = dict(files or {})

    async def list(self, prefix: str = "") -> list[str]:
        return sorted(name for name in self.files if name.startswith(prefix))

    async def read(self, filename: str) -> bytes:
        try:
            return self.files[filename]
        except KeyError:
            raise BlobSourceError(f"No such document: {filename}") from None

    def get_provider_name(self) -> str:
        return "memory"


def make_chunk(
    content: str,
    embedding: list[float],
    chunk_index: int = 0,
    title: str = "규정",
    source_file: str = "rules.md",
    category: str = "uncategorized",
    section: str | None = None,
    embedding_source: EmbeddingSource = EmbeddingSource.PRIMARY,
) -> RegulationChunk:
    return RegulationChunk(
        title=title,
        content=content,
        section=section,
        category=category,
        embedding=embedding,
        embedding_source=embedding_source,
        embedding_model="keyword_embedding",
        chunk_index=chunk_index,
        source_file=source_file,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def keyword_embedder() -> KeywordEmbeddingProvider:
    return KeywordEmbeddingProvider()


@pytest.fixture
def failing_embedder() -> FailingEmbeddingProvider:
    return FailingEmbeddingProvider()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider; override ``complete.return_value`` / ``side_effect`` per test."""
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="대여 기간은 최대 12개월입니다.")
    return mock


@pytest.fixture
async def corpus_store(tmp_path: Path) -> SQLiteCorpusStore:
    """An initialized SQLite corpus store in a temporary directory."""
    store = SQLiteCorpusStore(tmp_path / "corpus.db", corpus_id="test")
    await store.initialize()
    return store


@pytest.fixture
def chunk_factory():
    """Return :func:`make_chunk` for building stored chunks."""
    return make_chunk


@pytest.fixture
def blob_source_factory():
    """Return the in-memory blob source class."""
    return InMemoryBlobSource


@pytest.fixture
def failing_embedder_factory():
    """Return the always-failing provider class; pass the error to raise."""
    return FailingEmbeddingProvider


@pytest.fixture
def keyword_embedder_factory():
    """Return the keyword provider class; pass a name to simulate another model."""
    return KeywordEmbeddingProvider
