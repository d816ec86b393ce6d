"""Ollama LLM provider adapter.

Ollama serves an OpenAI-compatible ``/v1`` API, so this adapter reuses the
``openai`` client pointed at the local server.  It lets the assistant answer
questions fully offline once a model has been pulled
(``ollama pull llama3.1``).
"""

from __future__ import annotations

import openai
import structlog

from regulation_rag.config.settings import Settings
from regulation_rag.interfaces.llm_provider import ILLMProvider
from regulation_rag.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",
        )
        self._text_model = settings.ollama_text_model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=self._text_model)
        return content

    def is_available(self) -> bool:
        return bool(self._base_url)

    def get_provider_name(self) -> str:
        return "ollama"
