from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Optional

from divitrack.core.config import SETTINGS


def _env(key: str) -> Optional[str]:
    v = os.getenv(key)
    return v.strip() if isinstance(v, str) and v.strip() else None


@lru_cache(maxsize=4)
def get_chat_model(*, model: Optional[str] = None, temperature: Optional[float] = None) -> Any:
    """Return a LangChain chat model instance for free-form analysis.

    Provider is selected using SETTINGS.llm_provider (from config.yaml / env).
    The structured metadata fetch does not go through here; it needs the
    Gemini SDK directly for search grounding.
    """
    provider = (SETTINGS.llm_provider or "").strip().lower()
    model_name = (model or SETTINGS.analysis_model or "").strip()
    temp = SETTINGS.llm_temperature if temperature is None else float(temperature)

    if provider in ("gemini", "google", "googleai", "google-genai", "genai"):
        from langchain_google_genai import ChatGoogleGenerativeAI

        api_key = _env("GEMINI_API_KEY") or _env("GOOGLE_API_KEY")
        return ChatGoogleGenerativeAI(model=model_name, temperature=temp, google_api_key=api_key)

    if provider in ("openai",):
        try:
            from langchain_openai import ChatOpenAI
        except ImportError as e:
            raise ImportError(
                "Missing dependency for OpenAI chat models. Install: divitrack[openai]"
            ) from e
        return ChatOpenAI(model=model_name, temperature=temp)

    raise ValueError(f"Unsupported llm.provider={provider!r}. Use gemini|openai.")
