"""LLM provider adapters.

Three concrete implementations of ILLMProvider:
    - AnthropicLLMProvider -- Claude via the Messages API
    - OpenAILLMProvider    -- OpenAI or any OpenAI-compatible API (Gemini, TogetherAI)
    - OllamaLLMProvider    -- local models via an Ollama server

main.py picks the first one with credentials configured, in that order.
"""

from regulation_rag.providers.llm.anthropic_provider import AnthropicLLMProvider
from regulation_rag.providers.llm.ollama_provider import OllamaLLMProvider
from regulation_rag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
