"""Cache providers.

MemoryCacheProvider keeps synthesized answers in-process.  It is keyed by
corpus generation, so a fresh ingestion run never serves stale answers.
"""

from regulation_rag.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
