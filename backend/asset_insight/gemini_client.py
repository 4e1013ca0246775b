# backend/asset_insight/gemini_client.py

import asyncio
import json
import re
from typing import Any, Dict, Optional, Type, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from .config import get_settings
from .errors import (
    AssetInsightError,
    RemoteServiceError,
    ResponseFormatError,
    categorize_remote_error,
)
from .logging_config import log

ModelT = TypeVar("ModelT", bound=BaseModel)

_clients: Dict[str, genai.Client] = {}


# --- Setup ---

def get_client() -> genai.Client:
    """Return the shared client for the configured API key (created lazily)."""
    key = get_settings().gemini_api_key
    if not key:
        raise RemoteServiceError(
            "Missing GOOGLE_API_KEY or GEMINI_API_KEY environment variable.",
            category="auth",
        )
    if key not in _clients:
        _clients[key] = genai.Client(api_key=key)
        log.info("Gemini client initialized (key …%s)", key[-4:])
    return _clients[key]


# --- Helpers ---

def _extract_json(text: str) -> Any:
    """
    Parse Gemini text output as JSON.
    Falls back to the outermost {...} block when the model wrapped it in prose
    or a code fence.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    match = re.search(r"(\{[\s\S]*\})", text)
    if not match:
        raise ResponseFormatError("Gemini returned unstructured text", raw_text=text)
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Gemini returned malformed JSON: {e}", raw_text=text) from e


def parse_structured(text: Optional[str], schema: Type[ModelT]) -> ModelT:
    """Validate a Gemini JSON response against *schema*."""
    if not text or not text.strip():
        raise ResponseFormatError("Empty Gemini response", raw_text=text)
    data = _extract_json(text)
    if not isinstance(data, dict):
        raise ResponseFormatError(
            f"Expected a JSON object, got {type(data).__name__}", raw_text=text
        )
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ResponseFormatError(
            f"Response does not match {schema.__name__}: {e.error_count()} error(s)",
            raw_text=text,
        ) from e


# --- Structured Gemini call ---

def _generate_sync(model: str, contents: Any, response_schema: Dict[str, Any]) -> Optional[str]:
    config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=response_schema,
    )
    resp = get_client().models.generate_content(
        model=model,
        contents=contents,
        config=config,
    )
    return getattr(resp, "text", None)


async def generate_json(
    contents: Any,
    *,
    model: str,
    response_schema: Dict[str, Any],
    timeout: float,
) -> Optional[str]:
    """
    Send *contents* to Gemini asking for JSON shaped like *response_schema*.

    The SDK call is blocking, so it runs in a worker thread and the event loop
    enforces *timeout*. Any transport or service failure surfaces as
    RemoteServiceError; no retry is attempted.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_generate_sync, model, contents, response_schema),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise RemoteServiceError(
            f"Gemini ({model}) did not answer within {timeout:.0f}s", category="timeout"
        ) from e
    except AssetInsightError:
        raise
    except Exception as e:
        raise RemoteServiceError(
            f"Gemini ({model}) request failed: {e}", category=categorize_remote_error(e)
        ) from e


async def generate_structured(
    contents: Any,
    *,
    schema: Type[ModelT],
    response_schema: Dict[str, Any],
    model: str,
    timeout: float,
) -> ModelT:
    text = await generate_json(
        contents, model=model, response_schema=response_schema, timeout=timeout
    )
    return parse_structured(text, schema)
