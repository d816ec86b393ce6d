"""Corpus store implementations."""

from regulation_rag.providers.corpus.sqlite_corpus_store import SQLiteCorpusStore

__all__ = ["SQLiteCorpusStore"]
