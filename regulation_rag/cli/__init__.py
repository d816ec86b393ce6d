"""Command-line tools for the regulation Q&A service.

- ``python -m regulation_rag.cli ingest`` -- rebuild the corpus
- ``python -m regulation_rag.cli ask "..."`` -- answer a question
- ``python -m regulation_rag.cli files | stats | purge`` -- inspect or reset
"""
