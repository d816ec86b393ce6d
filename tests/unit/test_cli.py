"""Unit tests for the regulation CLI: regulation_rag.cli.ingest."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from regulation_rag.cli.ingest import (
    _build_parser,
    _handle_ask,
    _handle_files,
    _handle_ingest,
    _handle_purge,
    _handle_stats,
    main,
)
from regulation_rag.config.settings import Settings
from regulation_rag.models.regulation import (
    AnswerQuestionResult,
    EmbeddingSource,
    IngestRegulationsResult,
    ScoredChunk,
)
from regulation_rag.utils.concurrency import CancellationToken
from regulation_rag.utils.errors import BlobSourceError

# ======================================================================
# Shared helpers
# ======================================================================


def _settings(tmp_path: Path, **overrides) -> Settings:
    defaults = {
        "openai_api_key": "",
        "anthropic_api_key": "",
        "ollama_base_url": "http://localhost:11434",
        "corpus_db_path": str(tmp_path / "corpus.db"),
        "corpus_id": "cli-test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _components(assistant: MagicMock) -> dict:
    store = MagicMock()
    store.initialize = AsyncMock()
    http_client = MagicMock()
    http_client.aclose = AsyncMock()
    return {
        "assistant": assistant,
        "store": store,
        "http_client": http_client,
        "provider_registry": {"embedding_provider": "hash_embedding"},
    }


async def _seed(app_settings: Settings, chunk_factory, count: int = 2) -> None:
    from regulation_rag.providers.corpus.sqlite_corpus_store import SQLiteCorpusStore

    store = SQLiteCorpusStore(app_settings.corpus_db_path, corpus_id=app_settings.corpus_id)
    await store.initialize()
    chunks = [
        chunk_factory(f"chunk {i}", [1.0, 0.0], chunk_index=i, category="rental")
        for i in range(count)
    ]
    await store.insert_many(chunks, "gen-cli")
    await store.activate_generation("gen-cli", EmbeddingSource.FALLBACK, "hash_embedding", 2)


# ======================================================================
# Parser
# ======================================================================


class TestParser:
    def test_ingest_files_are_repeatable(self) -> None:
        args = _build_parser().parse_args(["ingest", "--file", "a.pdf", "--file", "b.md"])
        assert args.command == "ingest"
        assert args.files == ["a.pdf", "b.md"]

    def test_ingest_defaults_to_all(self) -> None:
        assert _build_parser().parse_args(["ingest"]).files == []

    def test_ask(self) -> None:
        args = _build_parser().parse_args(["ask", "대여 기간은?"])
        assert args.question == "대여 기간은?"

    def test_purge_yes_flag(self) -> None:
        assert _build_parser().parse_args(["purge", "-y"]).yes is True
        assert _build_parser().parse_args(["purge"]).yes is False

    def test_no_command_exits(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1


# ======================================================================
# Handlers
# ======================================================================


class TestIngestCommand:
    @pytest.mark.asyncio
    async def test_success(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assistant = MagicMock()
        assistant.ingest_regulations = AsyncMock(
            return_value=IngestRegulationsResult(
                success=True,
                chunks_stored=7,
                documents_seen=2,
                generation_id="gen-9",
                embedding_source=EmbeddingSource.PRIMARY,
            )
        )
        components = _components(assistant)

        with patch("regulation_rag.cli.ingest._build_components", return_value=components):
            code = await _handle_ingest(Namespace(files=["a.md"]), _settings(tmp_path))

        assert code == 0
        out = capsys.readouterr().out
        assert "Chunks stored:    7" in out
        assert "Embedding source: primary" in out
        args, kwargs = assistant.ingest_regulations.call_args
        assert args == (["a.md"],)
        assert isinstance(kwargs["cancel_token"], CancellationToken)
        components["http_client"].aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assistant = MagicMock()
        assistant.ingest_regulations = AsyncMock(
            return_value=IngestRegulationsResult(success=False, error="No regulation documents were found to ingest")
        )

        with patch("regulation_rag.cli.ingest._build_components", return_value=_components(assistant)):
            code = await _handle_ingest(Namespace(files=[]), _settings(tmp_path))

        assert code == 1
        assert "No regulation documents" in capsys.readouterr().err
        assert assistant.ingest_regulations.call_args.args == (None,)


class TestAskCommand:
    @pytest.mark.asyncio
    async def test_prints_answer_and_sources(
        self, tmp_path: Path, chunk_factory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        chunk = chunk_factory("대여 기간은 최대 12개월", [1.0], section="제3장 대여 > 기간", source_file="rules.md")
        assistant = MagicMock()
        assistant.answer_question = AsyncMock(
            return_value=AnswerQuestionResult(
                success=True,
                answer="최대 12개월입니다.",
                sources=[ScoredChunk(chunk=chunk, score=0.91)],
                confidence=0.91,
            )
        )

        with patch("regulation_rag.cli.ingest._build_components", return_value=_components(assistant)):
            code = await _handle_ask(Namespace(question="대여 기간은?"), _settings(tmp_path))

        out = capsys.readouterr().out
        assert code == 0
        assert "최대 12개월입니다." in out
        assert "Confidence: 0.910" in out
        assert "[1] rules.md > 제3장 대여 > 기간 (0.910)" in out

    @pytest.mark.asyncio
    async def test_error(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assistant = MagicMock()
        assistant.answer_question = AsyncMock(
            return_value=AnswerQuestionResult(success=False, error="No regulations are stored yet")
        )

        with patch("regulation_rag.cli.ingest._build_components", return_value=_components(assistant)):
            code = await _handle_ask(Namespace(question="q"), _settings(tmp_path))

        assert code == 1
        assert "No regulations are stored yet" in capsys.readouterr().err


class TestFilesCommand:
    @pytest.mark.asyncio
    async def test_lists_files(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assistant = MagicMock()
        assistant.list_regulation_files = AsyncMock(return_value=["a.md", "b.pdf"])

        with patch("regulation_rag.cli.ingest._build_components", return_value=_components(assistant)):
            code = await _handle_files(_settings(tmp_path))

        assert code == 0
        assert capsys.readouterr().out.splitlines() == ["a.md", "b.pdf"]

    @pytest.mark.asyncio
    async def test_source_error(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assistant = MagicMock()
        assistant.list_regulation_files = AsyncMock(side_effect=BlobSourceError("bucket missing"))

        with patch("regulation_rag.cli.ingest._build_components", return_value=_components(assistant)):
            code = await _handle_files(_settings(tmp_path))

        assert code == 1
        assert "bucket missing" in capsys.readouterr().err


class TestStatsCommand:
    @pytest.mark.asyncio
    async def test_empty_corpus(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = await _handle_stats(_settings(tmp_path))

        assert code == 0
        assert "Corpus is empty" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_populated_corpus(
        self, tmp_path: Path, chunk_factory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        app_settings = _settings(tmp_path)
        await _seed(app_settings, chunk_factory, count=3)

        code = await _handle_stats(app_settings)

        out = capsys.readouterr().out
        assert code == 0
        assert "Total chunks:     3" in out
        assert "Embedding source: fallback" in out
        assert "rental" in out


class TestPurgeCommand:
    @pytest.mark.asyncio
    async def test_purge_with_yes(
        self, tmp_path: Path, chunk_factory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        app_settings = _settings(tmp_path)
        await _seed(app_settings, chunk_factory)

        code = await _handle_purge(Namespace(yes=True), app_settings)

        assert code == 0
        assert "Deleted 2 chunks" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_purge_aborted(
        self, tmp_path: Path, chunk_factory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        app_settings = _settings(tmp_path)
        await _seed(app_settings, chunk_factory)

        with patch("builtins.input", return_value="n"):
            code = await _handle_purge(Namespace(yes=False), app_settings)

        assert code == 0
        assert "Aborted" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_purge_empty(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = await _handle_purge(Namespace(yes=True), _settings(tmp_path))

        assert code == 0
        assert "already empty" in capsys.readouterr().out


class TestMain:
    def test_dispatches_stats(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("regulation_rag.cli.ingest.Settings", return_value=_settings(tmp_path)):
            with pytest.raises(SystemExit) as exc_info:
                main(["stats"])

        assert exc_info.value.code == 0
        assert "Corpus is empty" in capsys.readouterr().out
