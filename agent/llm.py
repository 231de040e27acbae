"""Gemini text-generation service.

Wraps ``ChatGoogleGenerativeAI`` behind a single ``generate`` call and
translates provider failures into the companion's error taxonomy:
content-policy rejections become ``ModerationBlocked``, everything else
becomes ``GenerationError``.
"""

from typing import Any, Dict, Mapping, Optional, Protocol

from langchain_google_genai import (
    ChatGoogleGenerativeAI,
    HarmBlockThreshold,
    HarmCategory,
)

from agent import config
from agent.errors import GenerationError, ModerationBlocked
from agent.guardrails import is_moderation_signal

SafetySettings = Mapping[HarmCategory, HarmBlockThreshold]

# Used for roast-mood and preference-aware replies, which trip the default
# thresholds on harmless teasing.
RELAXED_SAFETY_SETTINGS: SafetySettings = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_ONLY_HIGH,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_ONLY_HIGH,
}


class Generator(Protocol):
    def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        safety_settings: Optional[SafetySettings] = None,
    ) -> str: ...


def _message_text(content: Any) -> str:
    """Flatten message content, which may be a string or a list of parts."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class GeminiGenerator:
    """Generation service backed by Google Gemini."""

    def __init__(
        self,
        model_name: str = config.MODEL_NAME,
        temperature: float = config.TEMPERATURE,
        api_key: str = config.GOOGLE_API_KEY,
    ) -> None:
        self._model_name = model_name
        self._temperature = temperature
        self._api_key = api_key or None
        # Lazily built clients, one per (max_tokens, safety settings) combination.
        self._models: Dict[tuple, ChatGoogleGenerativeAI] = {}

    def _get_model(
        self, max_tokens: Optional[int], safety_settings: Optional[SafetySettings]
    ) -> ChatGoogleGenerativeAI:
        key = (max_tokens, frozenset((safety_settings or {}).items()))
        if key not in self._models:
            kwargs: Dict[str, Any] = {
                "model": self._model_name,
                "temperature": self._temperature,
                "google_api_key": self._api_key,
            }
            if max_tokens is not None:
                kwargs["max_output_tokens"] = max_tokens
            if safety_settings:
                kwargs["safety_settings"] = dict(safety_settings)
            self._models[key] = ChatGoogleGenerativeAI(**kwargs)
        return self._models[key]

    def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        safety_settings: Optional[SafetySettings] = None,
    ) -> str:
        """Generate a reply for *prompt*.

        Raises:
            ModerationBlocked: If Gemini refused the prompt or the answer.
            GenerationError: On any other provider failure.
        """
        model = self._get_model(max_tokens, safety_settings)
        try:
            response = model.invoke(prompt)
        except Exception as exc:
            if is_moderation_signal(str(exc)):
                raise ModerationBlocked(str(exc)) from exc
            raise GenerationError(str(exc)) from exc

        metadata = getattr(response, "response_metadata", None) or {}
        finish_reason = str(metadata.get("finish_reason") or "")
        text = _message_text(response.content)
        if is_moderation_signal(finish_reason):
            raise ModerationBlocked(f"Candidate was blocked due to {finish_reason}")
        if not text.strip():
            raise GenerationError(f"Empty response (finish_reason={finish_reason or 'unknown'})")
        return text
