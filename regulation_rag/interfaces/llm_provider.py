"""Abstract base class for LLM providers.

The answer synthesizer makes exactly one :meth:`ILLMProvider.complete` call
per question.  Implementations wrap Anthropic, any OpenAI-compatible API
(OpenAI, Gemini's compatibility endpoint, TogetherAI) or a local Ollama
server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: regulation_rag/providers/llm/
class ILLMProvider(ABC):
    """Contract for text-completion services."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            Instruction message that sets the model's behaviour.
        user_prompt:
            The context block and the question.
        temperature:
            Sampling temperature.
        max_tokens:
            Upper bound on response tokens.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        regulation_rag.utils.errors.LLMError
            If the API call fails or returns an empty response.
        regulation_rag.utils.errors.ProviderAuthError
            If the API rejects the configured key.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"anthropic"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured; makes no network call."""
