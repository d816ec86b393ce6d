"""Context-bounded answer synthesis over the regulation corpus.

Data flow for one question:

  1. CORPUS CHECK -- read the active generation and its embedding source.
     An empty corpus raises ``NoDataError`` before anything else happens.
  2. CACHE CHECK  -- answers are cached per (generation, question), so a
     re-ingestion naturally invalidates them.
  3. EMBED        -- the question is embedded with QUERY intent by the same
     provider and model that embedded the corpus.  A model switch since the
     last ingestion raises ``EmbeddingModelMismatchError``.
  4. RANK         -- top-K chunks by cosine similarity.
  5. CONTEXT      -- ``[Reference n] title`` blocks in rank order, capped at
     ``max_context_chars``.
  6. GENERATE     -- exactly one LLM call.  Failures propagate; there is no
     silent fallback answer.
  7. CONFIDENCE   -- arithmetic mean of the top-K scores.  ``sources`` lists
     every ranked chunk, including any the context budget cut.
"""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import structlog

from regulation_rag.models.regulation import (
    EmbeddingIntent,
    EmbeddingSource,
    RAGAnswer,
    ScoredChunk,
)
from regulation_rag.utils.errors import (
    EmbeddingModelMismatchError,
    NoDataError,
    NoRelevantContextError,
)

if TYPE_CHECKING:
    from regulation_rag.interfaces.cache_provider import ICacheProvider
    from regulation_rag.interfaces.corpus_store import ICorpusStore
    from regulation_rag.interfaces.llm_provider import ILLMProvider
    from regulation_rag.services.embedding_service import ResilientEmbedder
    from regulation_rag.services.ranker import SimilarityRanker

logger = structlog.get_logger(logger_name=__name__)

_NOT_STATED = {
    "korean": "규정 문서에 명시되지 않았습니다",
    "english": "This is not stated in the regulations",
}


def not_stated_phrase(language: str) -> str:
    """Return the fixed reply the model must give when the context is silent."""
    key = language.strip().lower()
    if key in ("ko", "kr", "한국어"):
        key = "korean"
    return _NOT_STATED.get(key, _NOT_STATED["english"])


class AnswerSynthesizer:
    """Answers questions from the top-ranked regulation passages.

    Parameters
    ----------
    embedder:
        Embeds the question with the corpus's provider.
    ranker:
        Linear-scan similarity ranker.
    store:
        Corpus store, read for the active generation and its provenance.
    llm:
        Generation provider; called once per question.
    cache:
        Optional answer cache.
    top_k:
        Number of passages retrieved (default 5).
    max_context_chars:
        Upper bound on the reference block sent to the model.
    language:
        Language the answer must be written in.
    """

    def __init__(
        self,
        embedder: ResilientEmbedder,
        ranker: SimilarityRanker,
        store: ICorpusStore,
        llm: ILLMProvider,
        cache: ICacheProvider | None = None,
        top_k: int = 5,
        max_context_chars: int = 6000,
        language: str = "Korean",
        temperature: float = 0.2,
        max_tokens: int = 1500,
        cache_ttl: int | None = None,
    ) -> None:
        self._embedder = embedder
        self._ranker = ranker
        self._store = store
        self._llm = llm
        self._cache = cache
        self._top_k = top_k
        self._max_context_chars = max_context_chars
        self._language = language
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._cache_ttl = cache_ttl

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def answer(self, query: str) -> RAGAnswer:
        """Answer *query* from the regulation corpus.

        Raises
        ------
        ValueError
            If *query* is blank.
        NoDataError
            If no corpus generation is active.
        EmbeddingModelMismatchError
            If the configured provider or model differs from the one that
            built the corpus.
        NoRelevantContextError
            If ranking returns nothing usable.
        regulation_rag.utils.errors.LLMError
            If generation fails.
        regulation_rag.utils.errors.ProviderAuthError
            If the embedding or generation provider rejects its key.
        """
        query = query.strip()
        if not query:
            msg = "query must not be empty"
            raise ValueError(msg)

        stats = await self._store.get_stats()
        if stats.active_generation is None or stats.total_chunks == 0:
            raise NoDataError(provider_name=self._store.get_provider_name())

        cache_key = self._cache_key(stats.active_generation, query)
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached:
                logger.debug("rag_cache_hit", question=query[:50])
                return RAGAnswer.model_validate_json(cached)

        source = stats.embedding_source or EmbeddingSource.PRIMARY
        query_model = self._embedder.provider_for(source).get_provider_name()
        if stats.embedding_model and query_model != stats.embedding_model:
            raise EmbeddingModelMismatchError(
                f"The corpus was embedded with {stats.embedding_model} but queries would use "
                f"{query_model}; re-run ingestion",
                provider_name=query_model,
            )
        query_embedding = await self._embedder.embed_with(source, query, EmbeddingIntent.QUERY)

        try:
            ranked = await self._ranker.search(query_embedding.vector, self._top_k, source=source)
        except NoDataError as exc:
            raise NoRelevantContextError() from exc

        context, used = self._build_context(ranked)
        if not ranked:
            raise NoRelevantContextError()

        text = await self._llm.complete(
            system_prompt=self._system_prompt(),
            user_prompt=self._user_prompt(context, query),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        confidence = sum(s.score for s in ranked) / len(ranked)
        answer = RAGAnswer(text=text.strip(), sources=ranked, confidence=confidence)

        if self._cache is not None:
            await self._cache.set(cache_key, answer.model_dump_json(), ttl=self._cache_ttl)

        logger.info(
            "rag_answered",
            question=query[:80],
            sources=len(ranked),
            context_passages=len(used),
            confidence=round(confidence, 4),
            embedding_source=source.value,
            llm=self._llm.get_provider_name(),
        )
        return answer

    # ------------------------------------------------------------------
    # Prompt building
    # ------------------------------------------------------------------

    def _build_context(self, ranked: list[ScoredChunk]) -> tuple[str, list[ScoredChunk]]:
        """Join reference blocks in rank order until the character budget runs out.

        The best passage is always included, truncated if it alone is over
        budget.
        """
        blocks: list[str] = []
        used: list[ScoredChunk] = []
        total = 0
        for n, scored in enumerate(ranked, start=1):
            block = f"[Reference {n}] {scored.chunk.title}\n{scored.chunk.content}"
            extra = len(block) + (2 if blocks else 0)
            if total + extra > self._max_context_chars:
                if not blocks:
                    blocks.append(block[: self._max_context_chars])
                    used.append(scored)
                break
            blocks.append(block)
            used.append(scored)
            total += extra
        return "\n\n".join(blocks), used

    def _system_prompt(self) -> str:
        phrase = not_stated_phrase(self._language)
        return (
            "You are an expert on this organization's operating regulations. "
            "Answer the user's question using only the regulation passages provided.\n\n"
            "Rules:\n"
            "1. Quote or paraphrase the provided passages accurately; do not use outside knowledge.\n"
            "2. If the passages do not answer the question, do not guess. "
            f'Reply exactly: "{phrase}".\n'
            f"3. Write the answer in {self._language}, clearly and naturally.\n"
            "4. Mention the relevant section or reference number where it helps."
        )

    @staticmethod
    def _user_prompt(context: str, query: str) -> str:
        return f"Regulation passages:\n{context}\n\nQuestion: {query}\n\nAnswer:"

    @staticmethod
    def _cache_key(generation_id: str, query: str) -> str:
        digest = hashlib.sha256(f"{generation_id}|{query}".encode()).hexdigest()
        return f"rag:{digest}"
