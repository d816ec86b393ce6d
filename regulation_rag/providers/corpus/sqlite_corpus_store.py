"""SQLite-backed regulation corpus store.

Persists chunks, the active-generation pointer and the ingestion lock in a
single SQLite file (``data/regulations.db`` by default) via ``aiosqlite``.
Vectors are stored as raw float64 blobs, so a round trip is lossless.

Every table is keyed by ``corpus_id``; one database file can hold several
independent corpora.
"""

from __future__ import annotations

import time
import uuid
from pathlib import Path

import aiosqlite
import numpy as np
import structlog

from regulation_rag.interfaces.corpus_store import ICorpusStore
from regulation_rag.models.regulation import CorpusStats, EmbeddingSource, RegulationChunk
from regulation_rag.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/regulations.db")

_CREATE_CHUNKS_SQL = """\
CREATE TABLE IF NOT EXISTS regulation_chunks (
    id                TEXT    PRIMARY KEY,
    corpus_id         TEXT    NOT NULL,
    generation_id     TEXT    NOT NULL,
    title             TEXT    NOT NULL,
    content           TEXT    NOT NULL,
    section           TEXT,
    category          TEXT    NOT NULL,
    embedding         BLOB    NOT NULL,
    embedding_source  TEXT    NOT NULL,
    embedding_model   TEXT    NOT NULL,
    chunk_index       INTEGER NOT NULL,
    chunk_size        INTEGER NOT NULL,
    source_file       TEXT    NOT NULL,
    created_at        TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(corpus_id, generation_id, chunk_index)
);
"""

_CREATE_STATE_SQL = """\
CREATE TABLE IF NOT EXISTS corpus_state (
    corpus_id          TEXT PRIMARY KEY,
    active_generation  TEXT,
    embedding_source   TEXT,
    embedding_model    TEXT,
    dimension          INTEGER,
    activated_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_LOCKS_SQL = """\
CREATE TABLE IF NOT EXISTS ingestion_locks (
    corpus_id    TEXT PRIMARY KEY,
    owner        TEXT NOT NULL,
    acquired_at  REAL NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_generation "
    "ON regulation_chunks(corpus_id, generation_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_category ON regulation_chunks(category);",
]

_INSERT_CHUNK_SQL = """\
INSERT INTO regulation_chunks (
    id, corpus_id, generation_id, title, content, section, category,
    embedding, embedding_source, embedding_model, chunk_index, chunk_size, source_file
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_ACTIVE_SQL = """\
SELECT id, title, content, section, category, embedding, embedding_source,
       embedding_model, chunk_index, source_file
FROM regulation_chunks
WHERE corpus_id = ?
  AND generation_id = (SELECT active_generation FROM corpus_state WHERE corpus_id = ?)
"""

_UPSERT_STATE_SQL = """\
INSERT INTO corpus_state (corpus_id, active_generation, embedding_source, embedding_model, dimension)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(corpus_id)
DO UPDATE SET active_generation = excluded.active_generation,
              embedding_source  = excluded.embedding_source,
              embedding_model   = excluded.embedding_model,
              dimension         = excluded.dimension,
              activated_at      = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

# Takes the lock when it is free, already ours, or older than the TTL.
_ACQUIRE_LOCK_SQL = """\
INSERT INTO ingestion_locks (corpus_id, owner, acquired_at)
VALUES (?, ?, ?)
ON CONFLICT(corpus_id)
DO UPDATE SET owner = excluded.owner, acquired_at = excluded.acquired_at
WHERE ingestion_locks.owner = excluded.owner OR ingestion_locks.acquired_at < ?;
"""


def _encode_vector(vector: list[float]) -> bytes:
    return np.asarray(vector, dtype=np.float64).tobytes()


def _decode_vector(blob: bytes) -> list[float]:
    return np.frombuffer(blob, dtype=np.float64).tolist()


class SQLiteCorpusStore(ICorpusStore):
    """SQLite-backed corpus persistence with generation swap and advisory lock."""

    def __init__(
        self,
        db_path: str | Path = _DEFAULT_DB_PATH,
        corpus_id: str = "regulations",
    ) -> None:
        self._db_path = Path(db_path)
        self._corpus_id = corpus_id

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("PRAGMA journal_mode=WAL;")
                await db.execute(_CREATE_CHUNKS_SQL)
                await db.execute(_CREATE_STATE_SQL)
                await db.execute(_CREATE_LOCKS_SQL)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot initialize corpus database at {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("corpus_db_initialized", path=str(self._db_path), corpus_id=self._corpus_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def delete_all(self) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "DELETE FROM regulation_chunks WHERE corpus_id = ?", (self._corpus_id,)
                )
                deleted = cursor.rowcount
                await db.execute("DELETE FROM corpus_state WHERE corpus_id = ?", (self._corpus_id,))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot purge corpus: {exc}", provider_name=self.get_provider_name()
            ) from exc
        logger.info("corpus_purged", corpus_id=self._corpus_id, deleted=deleted)
        return deleted

    async def insert_many(self, chunks: list[RegulationChunk], generation_id: str) -> int:
        """Stage chunks one row at a time; rejected rows are logged and skipped."""
        if not chunks:
            return 0

        stored = 0
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                for chunk in chunks:
                    try:
                        await db.execute(
                            _INSERT_CHUNK_SQL,
                            (
                                chunk.chunk_id or str(uuid.uuid4()),
                                self._corpus_id,
                                generation_id,
                                chunk.title,
                                chunk.content,
                                chunk.section,
                                chunk.category,
                                _encode_vector(chunk.embedding),
                                chunk.embedding_source.value,
                                chunk.embedding_model,
                                chunk.chunk_index,
                                chunk.chunk_size,
                                chunk.source_file,
                            ),
                        )
                    except aiosqlite.Error as exc:
                        logger.warning(
                            "chunk_insert_failed",
                            chunk_index=chunk.chunk_index,
                            source_file=chunk.source_file,
                            error=str(exc),
                        )
                        continue
                    stored += 1
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot stage generation {generation_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "generation_staged",
            generation_id=generation_id,
            stored=stored,
            rejected=len(chunks) - stored,
        )
        return stored

    async def activate_generation(
        self,
        generation_id: str,
        embedding_source: EmbeddingSource,
        embedding_model: str,
        dimension: int,
    ) -> None:
        """Point the corpus at *generation_id* and drop every other generation.

        Both statements run in one transaction; a failure rolls back to the
        previous active generation.
        """
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                try:
                    await db.execute(
                        _UPSERT_STATE_SQL,
                        (
                            self._corpus_id,
                            generation_id,
                            embedding_source.value,
                            embedding_model,
                            dimension,
                        ),
                    )
                    cursor = await db.execute(
                        "DELETE FROM regulation_chunks WHERE corpus_id = ? AND generation_id != ?",
                        (self._corpus_id, generation_id),
                    )
                    dropped = cursor.rowcount
                    await db.commit()
                except aiosqlite.Error:
                    await db.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot activate generation {generation_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "generation_activated",
            generation_id=generation_id,
            embedding_source=embedding_source.value,
            dropped_rows=dropped,
        )

    async def discard_generation(self, generation_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "DELETE FROM regulation_chunks WHERE corpus_id = ? AND generation_id = ? "
                    "AND generation_id IS NOT "
                    "(SELECT active_generation FROM corpus_state WHERE corpus_id = ?)",
                    (self._corpus_id, generation_id, self._corpus_id),
                )
                discarded = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot discard generation {generation_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("generation_discarded", generation_id=generation_id, rows=discarded)
        return discarded

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def select_all(self, source: EmbeddingSource | None = None) -> list[RegulationChunk]:
        sql = _SELECT_ACTIVE_SQL
        params: tuple = (self._corpus_id, self._corpus_id)
        if source is not None:
            sql += "  AND embedding_source = ?\n"
            params += (source.value,)
        sql += "ORDER BY chunk_index"

        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot read corpus: {exc}", provider_name=self.get_provider_name()
            ) from exc

        return [
            RegulationChunk(
                chunk_id=row["id"],
                title=row["title"],
                content=row["content"],
                section=row["section"],
                category=row["category"],
                embedding=_decode_vector(row["embedding"]),
                embedding_source=EmbeddingSource(row["embedding_source"]),
                embedding_model=row["embedding_model"],
                chunk_index=row["chunk_index"],
                source_file=row["source_file"],
            )
            for row in rows
        ]

    async def active_generation(self) -> str | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT active_generation FROM corpus_state WHERE corpus_id = ?",
                    (self._corpus_id,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot read corpus state: {exc}", provider_name=self.get_provider_name()
            ) from exc
        return row[0] if row else None

    async def get_stats(self) -> CorpusStats:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT active_generation, embedding_source, embedding_model, dimension "
                    "FROM corpus_state WHERE corpus_id = ?",
                    (self._corpus_id,),
                )
                state = await cursor.fetchone()
                if state is None or state["active_generation"] is None:
                    return CorpusStats()

                params = (self._corpus_id, state["active_generation"])
                cursor = await db.execute(
                    "SELECT COUNT(*) AS total, COUNT(DISTINCT source_file) AS sources "
                    "FROM regulation_chunks WHERE corpus_id = ? AND generation_id = ?",
                    params,
                )
                totals = await cursor.fetchone()
                cursor = await db.execute(
                    "SELECT category, COUNT(*) AS n FROM regulation_chunks "
                    "WHERE corpus_id = ? AND generation_id = ? GROUP BY category",
                    params,
                )
                by_category = {row["category"]: row["n"] for row in await cursor.fetchall()}
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot read corpus statistics: {exc}", provider_name=self.get_provider_name()
            ) from exc

        return CorpusStats(
            total_chunks=totals["total"],
            total_sources=totals["sources"],
            chunks_by_category=by_category,
            active_generation=state["active_generation"],
            embedding_source=(
                EmbeddingSource(state["embedding_source"]) if state["embedding_source"] else None
            ),
            embedding_model=state["embedding_model"],
            dimension=state["dimension"],
        )

    # ------------------------------------------------------------------
    # Advisory ingestion lock
    # ------------------------------------------------------------------

    async def acquire_ingestion_lock(self, owner: str, ttl_seconds: int) -> bool:
        now = time.time()
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _ACQUIRE_LOCK_SQL, (self._corpus_id, owner, now, now - ttl_seconds)
                )
                await db.commit()
                cursor = await db.execute(
                    "SELECT owner FROM ingestion_locks WHERE corpus_id = ?", (self._corpus_id,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot acquire ingestion lock: {exc}", provider_name=self.get_provider_name()
            ) from exc

        acquired = row is not None and row[0] == owner
        logger.info("ingestion_lock", owner=owner, acquired=acquired)
        return acquired

    async def release_ingestion_lock(self, owner: str) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    "DELETE FROM ingestion_locks WHERE corpus_id = ? AND owner = ?",
                    (self._corpus_id, owner),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                f"Cannot release ingestion lock: {exc}", provider_name=self.get_provider_name()
            ) from exc

    def get_provider_name(self) -> str:
        return "sqlite_corpus"
