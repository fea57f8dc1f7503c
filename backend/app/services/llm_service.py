r"""backend/app/services/llm_service.py

Optional integration with Google's Gemini API.

The dataset service asks Gemini for realistic JSON records (order
recommendations, spoilage logs, notifications, ...).  If the
``GEMINI_API_KEY`` environment variable is not set, or the call fails, the
functions here return ``None`` and callers fall back to the local generator.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import google.generativeai as genai

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"

_client: Optional[Any] = None
_configured_key: Optional[str] = None


def is_enabled() -> bool:
    return bool(os.getenv("GEMINI_API_KEY"))


def _get_client() -> Optional[Any]:
    """Return the configured Gemini module if credentials are available."""

    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        return None

    global _client, _configured_key
    if _client is None or _configured_key != api_key:
        # Module-level configure; the module itself is the "client".
        genai.configure(api_key=api_key)
        _client = genai
        _configured_key = api_key
    return _client


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def generate_json(prompt: str) -> Optional[Any]:
    """Ask Gemini for a JSON document and return it decoded.

    Returns ``None`` when the LLM is disabled, the request fails or the reply
    is not valid JSON.
    """

    client = _get_client()
    if client is None:
        return None

    model_name = os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
    try:
        model = client.GenerativeModel(
            model_name,
            generation_config={"response_mime_type": "application/json"},
        )
        resp = model.generate_content(prompt)
        text = getattr(resp, "text", None)
    except Exception:
        LOGGER.exception("Gemini request failed (model=%s)", model_name)
        return None

    if not isinstance(text, str) or not text.strip():
        LOGGER.warning("Gemini returned an empty response (model=%s)", model_name)
        return None
    try:
        return json.loads(_strip_fences(text))
    except json.JSONDecodeError:
        LOGGER.warning("Gemini returned non-JSON output (model=%s)", model_name)
        return None
