"""Public regulation Q&A operations.

:class:`RegulationAssistant` is what the HTTP routes and the CLI call.  Its
two main operations never raise: every failure becomes a result with
``success=False`` and a human-readable ``error``.  A rejected API key gets
its own message so the operator knows to fix credentials rather than retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from regulation_rag.models.regulation import (
    AnswerQuestionResult,
    CorpusStats,
    IngestRegulationsResult,
    SourceDocument,
)
from regulation_rag.utils.errors import (
    BlobSourceError,
    ProviderAuthError,
    RegulationRAGError,
)

if TYPE_CHECKING:
    from regulation_rag.interfaces.blob_source import IBlobSource
    from regulation_rag.interfaces.corpus_store import ICorpusStore
    from regulation_rag.services.answer_synthesizer import AnswerSynthesizer
    from regulation_rag.services.ingestion.ingestion_service import IngestionService
    from regulation_rag.utils.concurrency import CancellationToken

logger = structlog.get_logger(logger_name=__name__)


def _auth_message(exc: ProviderAuthError) -> str:
    provider = exc.provider_name or "AI"
    return (
        f"The {provider} provider rejected the configured API key. "
        "Check the key in the environment or .env file and try again."
    )


class RegulationAssistant:
    """Facade over ingestion and question answering.

    Parameters
    ----------
    blob_source:
        Where regulation documents are listed and read from.
    ingestion:
        Corpus rebuild pipeline.
    synthesizer:
        Retrieval and answer generation.
    store:
        Corpus store, used for statistics and purging.
    """

    def __init__(
        self,
        blob_source: IBlobSource,
        ingestion: IngestionService,
        synthesizer: AnswerSynthesizer,
        store: ICorpusStore,
    ) -> None:
        self._blob_source = blob_source
        self._ingestion = ingestion
        self._synthesizer = synthesizer
        self._store = store

    async def list_regulation_files(self) -> list[str]:
        """Return every regulation document name the blob source knows about."""
        return await self._blob_source.list()

    async def ingest_regulations(
        self,
        file_list: list[str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> IngestRegulationsResult:
        """Rebuild the corpus from *file_list*, or from every listed document."""
        try:
            names = list(file_list) if file_list else await self._blob_source.list()
            if not names:
                return IngestRegulationsResult(
                    success=False, error="No regulation documents were found to ingest"
                )

            documents, unreadable = await self._read_documents(names)
            report = await self._ingestion.ingest(documents, cancel_token=cancel_token)
        except ProviderAuthError as exc:
            logger.error("ingest_regulations_auth_failed", error=str(exc))
            return IngestRegulationsResult(success=False, error=_auth_message(exc))
        except RegulationRAGError as exc:
            logger.error("ingest_regulations_failed", error=str(exc), error_type=type(exc).__name__)
            return IngestRegulationsResult(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("ingest_regulations_unexpected_error", error=str(exc))
            return IngestRegulationsResult(success=False, error=f"Ingestion failed: {exc}")

        result = IngestRegulationsResult(
            success=report.activated,
            chunks_stored=report.chunks_stored,
            chunks_failed=report.chunks_failed,
            documents_seen=report.documents_seen + unreadable,
            documents_skipped=report.documents_skipped + unreadable,
            generation_id=report.generation_id if report.activated else None,
            embedding_source=report.embedding_source,
            error=None if report.activated else "No chunks could be stored; the previous corpus was kept",
        )
        return result

    async def answer_question(self, query: str) -> AnswerQuestionResult:
        """Answer *query* from the active corpus."""
        if not query or not query.strip():
            return AnswerQuestionResult(success=False, error="Question must not be empty")

        try:
            answer = await self._synthesizer.answer(query)
        except ProviderAuthError as exc:
            logger.error("answer_question_auth_failed", error=str(exc))
            return AnswerQuestionResult(success=False, error=_auth_message(exc))
        except RegulationRAGError as exc:
            logger.warning(
                "answer_question_failed", error=str(exc), error_type=type(exc).__name__
            )
            return AnswerQuestionResult(success=False, error=exc.message)
        except Exception as exc:
            logger.exception("answer_question_unexpected_error", error=str(exc))
            return AnswerQuestionResult(success=False, error=f"Answering failed: {exc}")

        return AnswerQuestionResult(
            success=True,
            answer=answer.text,
            sources=answer.sources,
            confidence=answer.confidence,
        )

    async def corpus_stats(self) -> CorpusStats:
        return await self._store.get_stats()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _read_documents(self, names: list[str]) -> tuple[list[SourceDocument], int]:
        """Read each document; unreadable ones are logged and counted, not fatal."""
        documents: list[SourceDocument] = []
        unreadable = 0
        for name in names:
            try:
                data = await self._blob_source.read(name)
            except BlobSourceError as exc:
                unreadable += 1
                logger.warning("document_read_failed", filename=name, error=str(exc))
                continue
            documents.append(SourceDocument(filename=name, data=data))
        return documents, unreadable
