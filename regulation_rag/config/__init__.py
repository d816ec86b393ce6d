"""Configuration module: exports Settings, load_config, and a module-level singleton."""

from regulation_rag.config.loader import classifier_rules_from_config, load_config
from regulation_rag.config.settings import Settings

settings = Settings()

__all__ = ["Settings", "classifier_rules_from_config", "load_config", "settings"]
