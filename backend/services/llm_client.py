"""
LLM client backing the primary analyzer strategies.

Talks to a messages-style completion endpoint over httpx and expects a JSON
object in the reply. Every failure mode (no key configured, HTTP error,
network error, empty reply, invalid JSON) raises LLMError so the analyzer
layer can substitute its fallback.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from config import settings
from core.exceptions import LLMError
from utils.text_metrics import truncate

logger = logging.getLogger(__name__)

_RE_CODE_FENCE = re.compile(r'^```(?:json)?\s*|\s*```$', re.IGNORECASE)


def _grammar_prompt(text: str) -> str:
    return (
        "You are a writing teacher reviewing a student's story. Review grammar, spelling "
        "and punctuation holistically.\n"
        "Return ONLY a JSON object with keys: errors (array of objects with original, "
        "correction, explanation), score (integer 0-100), summary (string), "
        "correctedText (string).\n\n"
        f"Student writing:\n{text}"
    )


def _characters_prompt(text: str) -> str:
    return (
        "You are a creative writing coach. Identify the characters in the student's story.\n"
        "Return ONLY a JSON object with keys: characters (array of objects with name, role, "
        "traits, consistency), score (integer 0-100 for characterization quality), "
        "suggestions (string).\n\n"
        f"Student writing:\n{text}"
    )


def _ai_detection_prompt(text: str) -> str:
    return (
        "Estimate how likely it is that the following student writing was produced by an AI "
        "model rather than written by the student.\n"
        "Return ONLY a JSON object with keys: score (integer 0-100, higher means more likely "
        "AI-generated), reasoning (string), confidence (number 0-1).\n\n"
        f"Text:\n{text}"
    )


def parse_json_reply(raw: str) -> Dict[str, Any]:
    """Extract the JSON object from a model reply, tolerating code fences."""
    cleaned = _RE_CODE_FENCE.sub("", (raw or "").strip())
    if not cleaned:
        raise LLMError("Empty LLM reply")
    try:
        data = json.loads(cleaned)
    except ValueError:
        # Replies sometimes wrap the object in prose; take the outermost braces.
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise LLMError("LLM reply contained no JSON object")
        try:
            data = json.loads(cleaned[start:end + 1])
        except ValueError as err:
            raise LLMError(f"Invalid JSON in LLM reply: {err}") from err
    if not isinstance(data, dict):
        raise LLMError("LLM reply JSON is not an object")
    return data


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.base_url = base_url or settings.LLM_API_URL
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        self.max_input_chars = settings.LLM_MAX_INPUT_CHARS
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def complete_json(self, prompt: str) -> Dict[str, Any]:
        if not self.enabled:
            raise LLMError("LLM_API_KEY is not configured")

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": settings.LLM_API_VERSION,
            "content-type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": settings.LLM_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        # One client per call: background jobs each run on their own event loop.
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                r = await client.post(self.base_url, headers=headers, json=payload)
                r.raise_for_status()
            except httpx.HTTPStatusError as http_err:
                raise LLMError(f"LLM HTTP {http_err.response.status_code}") from http_err
            except httpx.RequestError as net_err:
                raise LLMError(f"LLM request failed: {net_err}") from net_err

        try:
            data = r.json()
            text = "".join(
                block.get("text", "")
                for block in data.get("content", [])
                if block.get("type") == "text"
            )
        except (ValueError, AttributeError, TypeError) as err:
            raise LLMError(f"Unexpected LLM response: {r.text[:200]}") from err
        return parse_json_reply(text)

    # ── Capabilities ──

    async def analyze_grammar(self, text: str) -> Dict[str, Any]:
        return await self.complete_json(_grammar_prompt(truncate(text, self.max_input_chars)))

    async def analyze_characters(self, text: str) -> Dict[str, Any]:
        return await self.complete_json(_characters_prompt(truncate(text, self.max_input_chars)))

    async def detect_ai_content(self, text: str) -> Dict[str, Any]:
        return await self.complete_json(_ai_detection_prompt(truncate(text, self.max_input_chars)))
