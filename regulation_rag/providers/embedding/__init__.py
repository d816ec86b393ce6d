"""Embedding provider implementations.

    1. OpenAIEmbeddingProvider -- any OpenAI-compatible /embeddings endpoint
       (OpenAI, Gemini's compatibility layer, TogetherAI).  Needs a key.
    2. NomicEmbeddingProvider  -- nomic-embed-text via a local Ollama server.
    3. HashEmbeddingProvider   -- deterministic feature hashing; the fallback
       that keeps ingestion and search working when 1 or 2 are down.
"""

from regulation_rag.providers.embedding.hash_embedding_provider import HashEmbeddingProvider
from regulation_rag.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from regulation_rag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["HashEmbeddingProvider", "NomicEmbeddingProvider", "OpenAIEmbeddingProvider"]
