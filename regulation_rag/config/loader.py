"""YAML configuration loader with environment variable overrides.

Layers, later wins:

    1. config/config.yaml  -- defaults checked into the repo (classifier
                              rules, chunk sizes, retrieval knobs)
    2. .env / environment  -- read through :class:`Settings`

Only the keys that :class:`Settings` owns are overlaid; structured data
such as the classifier rule table lives in YAML alone.
"""

from pathlib import Path
from typing import Any

import yaml

from regulation_rag.config.settings import Settings
from regulation_rag.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge the environment-based Settings on top.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
              an error; the built-in defaults apply.
        settings: Pre-built settings; a fresh ``Settings()`` is read otherwise.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the YAML cannot be parsed or is not a mapping.
    """
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse {config_path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides: dict[str, Any] = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "available_providers": settings.get_available_llm_providers(),
        },
        "chunking": {
            "min_size": settings.chunk_min_size,
            "max_size": settings.chunk_max_size,
        },
        "retrieval": {
            "top_k": settings.rag_top_k,
            "max_context_chars": settings.max_context_chars,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def classifier_rules_from_config(config: dict) -> list[tuple[str, tuple[str, ...]]] | None:
    """Return the ordered ``(category, keywords)`` rules from *config*, if any.

    The YAML shape is a list of ``{category: str, keywords: [str, ...]}``
    entries under ``classifier.rules``.
    """
    raw = config.get("classifier", {}).get("rules")
    if not raw:
        return None
    rules: list[tuple[str, tuple[str, ...]]] = []
    for entry in raw:
        try:
            category = str(entry["category"])
            keywords = tuple(str(k) for k in entry["keywords"])
        except (KeyError, TypeError) as exc:
            raise ConfigurationError(f"Malformed classifier rule: {entry!r}") from exc
        rules.append((category, keywords))
    return rules


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge *overrides* into *base* in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
