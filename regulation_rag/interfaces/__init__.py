"""Interfaces for every external service the regulation pipeline touches.

Business logic depends only on these ABCs; concrete adapters live in
``regulation_rag/providers/`` and are wired together in
``regulation_rag/main.py`` (HTTP) or ``regulation_rag/cli/ingest.py`` (CLI).

    Interface            ->  Concrete implementations
    ---------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider, NomicEmbeddingProvider,
                             HashEmbeddingProvider
    ILLMProvider         ->  OpenAILLMProvider, AnthropicLLMProvider,
                             OllamaLLMProvider
    ICorpusStore         ->  SQLiteCorpusStore
    IBlobSource          ->  LocalBlobSource, SupabaseStorageBlobSource,
                             CompositeBlobSource
    ICacheProvider       ->  MemoryCacheProvider
"""

from regulation_rag.interfaces.blob_source import IBlobSource
from regulation_rag.interfaces.cache_provider import ICacheProvider
from regulation_rag.interfaces.corpus_store import ICorpusStore
from regulation_rag.interfaces.embedding_provider import IEmbeddingProvider
from regulation_rag.interfaces.llm_provider import ILLMProvider

__all__ = [
    "IBlobSource",
    "ICacheProvider",
    "ICorpusStore",
    "IEmbeddingProvider",
    "ILLMProvider",
]
