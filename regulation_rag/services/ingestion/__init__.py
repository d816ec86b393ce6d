"""Regulation ingestion pipeline.

Stages: **extract -> chunk -> classify -> embed -> stage -> swap**.

1. **Extract** (extractor.py) -- PDF, markdown and plain text bytes become
   plain text plus a title derived from the file name.

2. **Chunk** (chunker.py / RegulationChunker) -- heading-aware splitting
   with a greedy size-based strategy for unstructured text.

3. **Classify** (classifier.py) -- first-match keyword rules assign each
   chunk a category.

4. **Embed, stage and swap** (ingestion_service.py / IngestionService) --
   vectors come from the resilient embedder, chunks are staged under a new
   generation and the generation is activated atomically.
"""

from regulation_rag.services.ingestion.chunker import RegulationChunker
from regulation_rag.services.ingestion.classifier import DEFAULT_CATEGORY_RULES, classify_category
from regulation_rag.services.ingestion.extractor import extract_document
from regulation_rag.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "DEFAULT_CATEGORY_RULES",
    "IngestionService",
    "RegulationChunker",
    "classify_category",
    "extract_document",
]
