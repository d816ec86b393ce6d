"""Application settings loaded from environment variables via pydantic-settings.

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY`` and so on.  Values
from the process environment beat values from ``.env``; both beat the
defaults below.  Empty strings mean "not configured".
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Regulation Q&A settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding / LLM providers ===
    # Any OpenAI-compatible endpoint works here, including Gemini's
    # https://generativelanguage.googleapis.com/v1beta/openai/ endpoint.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_text_model: str = ""
    openai_embedding_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = "http://localhost:11434"
    ollama_text_model: str = "llama3.1"

    # === Embeddings ===
    # Dimension of the local hash fallback.  768 keeps it the same shape as
    # text-embedding-004 / nomic-embed-text vectors.
    embedding_dimension: int = 768
    embedding_batch_size: int = 64

    # === Chunking ===
    chunk_min_size: int = 200
    chunk_max_size: int = 1000

    # === Retrieval / answering ===
    rag_top_k: int = 5
    max_context_chars: int = 6000
    answer_language: str = "Korean"
    answer_temperature: float = 0.2
    answer_max_tokens: int = 1500
    answer_cache_ttl: int = 600

    # === Corpus store ===
    corpus_db_path: str = "data/regulations.db"
    corpus_id: str = "regulations"
    ingestion_concurrency: int = 4
    ingestion_lock_ttl_seconds: int = 1800

    # === Document sources ===
    # Local directories are searched in order; a file in a later directory
    # replaces one with the same name in an earlier directory.
    regulation_dirs: list[str] = ["docs/regulations", "docs"]
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_bucket: str = "regulations"
    supabase_prefix: str = "regulations"
    max_document_bytes: int = 20 * 1024 * 1024

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    config_path: str = "config/config.yaml"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have credentials or a URL configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers

    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)
