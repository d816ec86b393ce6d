"""API middleware: CORS, request logging, and error handling.

Starlette runs middleware last-added-first, so ``main.create_app`` adds
``ErrorHandlingMiddleware`` before ``RequestLoggingMiddleware``; the
logger is then outermost and records the final status code, including
errors the handler converted to JSON.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from regulation_rag.api.schemas import ErrorResponse
from regulation_rag.utils.errors import (
    BlobSourceError,
    IngestionInProgressError,
    NoDataError,
    RegulationRAGError,
)
from regulation_rag.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Errors that describe the request's situation rather than a server fault.
_STATUS_BY_ERROR: dict[type[RegulationRAGError], int] = {
    NoDataError: 404,
    IngestionInProgressError: 409,
    BlobSourceError: 502,
}


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; every origin is allowed unless *allowed_origins* is given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn escaping ``RegulationRAGError``s into JSON :class:`ErrorResponse` bodies.

    Details stay in the server log; the client gets the error class name and
    message only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except RegulationRAGError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            status_code = next(
                (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
                500,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
