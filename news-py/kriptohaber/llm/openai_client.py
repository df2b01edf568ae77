from __future__ import annotations

import logging
import os

try:
    from openai import OpenAI
    _OPENAI_IMPORT_ERROR: Exception | None = None
except Exception as exc:
    OpenAI = None  # type: ignore[assignment]
    _OPENAI_IMPORT_ERROR = exc


logger = logging.getLogger("openai_client")

DEFAULT_MODEL = "gpt-4o-mini"


class LLMUnavailable(RuntimeError):
    pass


def llm_enabled() -> bool:
    return OpenAI is not None and bool(os.getenv("OPENAI_API_KEY"))


def _disabled_reason() -> str:
    if OpenAI is None:
        return f"openai_client_unavailable: {_OPENAI_IMPORT_ERROR}"
    return "openai_key_missing"


def chat_complete(
    system_prompt: str,
    user_content: str,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float = 30.0,
) -> str:
    """Single chat completion; returns the first choice's text ("" when empty).

    Raises ``LLMUnavailable`` when the SDK or API key is missing and lets SDK
    errors propagate so callers can retry.
    """
    if not llm_enabled():
        raise LLMUnavailable(_disabled_reason())
    client = OpenAI(api_key=os.getenv("OPENAI_API_KEY"), timeout=timeout)
    kwargs = {
        "model": os.getenv("OPENAI_MODEL") or DEFAULT_MODEL,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ],
    }
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    response = client.chat.completions.create(**kwargs)
    choices = getattr(response, "choices", None) or []
    if not choices:
        logger.warning("openai returned no choices model=%s", kwargs["model"])
        return ""
    return (choices[0].message.content or "").strip()
