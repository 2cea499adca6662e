from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

_PROVIDER_ALIASES = {"google": "gemini", "googleai": "gemini", "google-genai": "gemini", "genai": "gemini"}


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str

    data_path: str
    metadata_max_age_seconds: int

    llm_provider: str
    llm_model: str
    analysis_model: str
    llm_temperature: float

    fetch_retries: int
    fetch_timeout_seconds: int


def _section_value(cfg: Dict[str, Any], dotted: str, default: Any = None) -> Any:
    node: Any = cfg
    for key in dotted.split("."):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def _lookup(cfg: Dict[str, Any], env_key: str, dotted: str, default: Any) -> Any:
    """Environment wins over config.yaml; blank env values are ignored."""
    raw = (os.getenv(env_key) or "").strip()
    if raw:
        return raw
    return _section_value(cfg, dotted, default)


def normalize_provider(name: Any) -> str:
    p = str(name or "").strip().lower()
    return _PROVIDER_ALIASES.get(p, p)


def load_settings(config_path: str = "config.yaml") -> Settings:
    """
    Build Settings from config.yaml, with .env / environment overrides.
    A missing config file just means every value falls back to its default.
    """
    load_dotenv()

    cfg: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

    return Settings(
        env=str(_lookup(cfg, "APP_ENV", "app.env", "dev")),
        log_level=str(_lookup(cfg, "LOG_LEVEL", "app.log_level", "INFO")),
        data_path=str(_lookup(cfg, "DIVITRACK_DATA_PATH", "storage.data_path", "data/divitrack.db")),
        metadata_max_age_seconds=int(
            _lookup(cfg, "METADATA_MAX_AGE_SECONDS", "storage.metadata_max_age_seconds", 7 * 24 * 3600)
        ),
        llm_provider=normalize_provider(_lookup(cfg, "LLM_PROVIDER", "llm.provider", "gemini")),
        llm_model=str(_lookup(cfg, "LLM_MODEL", "llm.model", "gemini-3-flash-preview")),
        analysis_model=str(_lookup(cfg, "ANALYSIS_MODEL", "llm.analysis_model", "gemini-3-pro-preview")),
        llm_temperature=float(_lookup(cfg, "LLM_TEMPERATURE", "llm.temperature", 0.2)),
        fetch_retries=int(_lookup(cfg, "FETCH_RETRIES", "metadata_fetch.retries", 3)),
        fetch_timeout_seconds=int(_lookup(cfg, "FETCH_TIMEOUT_SECONDS", "metadata_fetch.timeout_seconds", 60)),
    )


SETTINGS = load_settings()
