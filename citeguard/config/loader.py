"""YAML and env loader with fail-fast validation."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv

from citeguard.errors import ConfigurationError
from citeguard.models import SettingsConfig


# Map model string prefixes to the env var that must be set for that provider.
_PREFIX_TO_ENV: dict[str, str] = {
    "google-gla:": "GEMINI_API_KEY",
    "google-vertex:": "GEMINI_API_KEY",
    "anthropic:": "ANTHROPIC_API_KEY",
    "openai:": "OPENAI_API_KEY",
    "openrouter:": "OPENROUTER_API_KEY",
    "groq:": "GROQ_API_KEY",
    "mistral:": "MISTRAL_API_KEY",
}

SEARCH_ENV_KEY = "EXA_API_KEY"


def _read_yaml(path: str) -> dict:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with resolved.open("r", encoding="utf-8") as file_obj:
        loaded = yaml.safe_load(file_obj) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return loaded


def load_settings(settings_path: str | None = "config/settings.yaml") -> SettingsConfig:
    """Load settings from YAML, or defaults when *settings_path* is None.

    Raises ConfigurationError when the file is missing or fails validation,
    so misconfiguration surfaces before any page is touched.
    """
    load_dotenv()
    if settings_path is None:
        return SettingsConfig()
    try:
        return SettingsConfig.model_validate(_read_yaml(settings_path))
    except (FileNotFoundError, ValueError) as exc:
        raise ConfigurationError(str(exc)) from exc


def get_required_env_keys(settings: SettingsConfig, require_search: bool = False) -> list[str]:
    """Derive which API key env vars are required from the configured model prefixes."""
    required: set[str] = set()
    for agent_cfg in settings.agents.values():
        for prefix, env_key in _PREFIX_TO_ENV.items():
            if agent_cfg.model.startswith(prefix):
                required.add(env_key)
    if require_search:
        required.add(SEARCH_ENV_KEY)
    return sorted(required)


def validate_secret_env(settings: SettingsConfig, require_search: bool = False) -> list[str]:
    """Return list of missing required env var names."""
    load_dotenv()
    return [key for key in get_required_env_keys(settings, require_search) if not os.getenv(key)]


def ensure_secret_env(settings: SettingsConfig, require_search: bool = False) -> None:
    """Raise ConfigurationError listing every missing credential."""
    missing = validate_secret_env(settings, require_search)
    if missing:
        raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")
