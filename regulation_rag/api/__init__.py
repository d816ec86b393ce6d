"""Regulation Q&A HTTP layer: routes, schemas, and middleware."""

from regulation_rag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from regulation_rag.api.routes import router
from regulation_rag.api.schemas import (
    AskRequest,
    AskResponse,
    CorpusStatsResponse,
    ErrorResponse,
    FilesResponse,
    HealthResponse,
    IngestRequest,
    IngestResponse,
    SourcePassage,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "AskRequest",
    "AskResponse",
    "CorpusStatsResponse",
    "ErrorResponse",
    "FilesResponse",
    "HealthResponse",
    "IngestRequest",
    "IngestResponse",
    "SourcePassage",
]
