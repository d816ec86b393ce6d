"""Allow ``python -m regulation_rag.cli`` execution."""

from regulation_rag.cli.ingest import main

main()
