from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from divitrack.core.langchain_factory import get_chat_model


@dataclass
class LLMResponse:
    text: str


class LLMClient:
    """Thin wrapper so agents only ever see `generate(prompt) -> LLMResponse`."""

    def __init__(self, *, model: Optional[str] = None, temperature: Optional[float] = None) -> None:
        self._model: Any = get_chat_model(model=model, temperature=temperature)

    def generate(self, prompt: str) -> LLMResponse:
        msg = self._model.invoke(prompt)
        text = getattr(msg, "content", None)
        if text is None:
            text = str(msg)
        # Some chat models return content as a list of parts
        if isinstance(text, list):
            text = "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in text)
        return LLMResponse(text=str(text).strip())
