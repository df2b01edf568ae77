from __future__ import annotations

import logging
import os

import httpx


logger = logging.getLogger("deepl_client")

DEEPL_URL = "https://api-free.deepl.com/v2/translate"


def translate_with_deepl(text: str, api_key: str | None = None, timeout: float = 20.0) -> str | None:
    """EN -> TR through DeepL; None when the key is missing or the call fails."""
    api_key = api_key or os.getenv("DEEPL_API_KEY")
    if not api_key:
        logger.info("deepl disabled: missing DEEPL_API_KEY")
        return None
    headers = {"Authorization": f"DeepL-Auth-Key {api_key}"}
    data = {"text": text, "target_lang": "TR", "source_lang": "EN"}
    try:
        with httpx.Client(timeout=timeout) as client:
            res = client.post(DEEPL_URL, data=data, headers=headers)
            res.raise_for_status()
            payload = res.json()
    except Exception as exc:
        logger.warning("deepl translate failed error=%s", exc)
        return None
    translations = payload.get("translations") if isinstance(payload, dict) else None
    if not translations:
        return None
    return (translations[0] or {}).get("text") or None
