from __future__ import annotations

import json
import logging
import os
import re
import time
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from llm import prompts
from llm.providers.base import LLMConfigurationError, LLMProvider

logger = logging.getLogger(__name__)

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq").strip().lower()
LLM_MAX_RETRIES = int(os.getenv("LLM_MAX_RETRIES", "2"))
LLM_BACKOFF_S = float(os.getenv("LLM_BACKOFF_S", "1.0"))

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def get_provider(name: Optional[str] = None) -> LLMProvider:
    """Build the configured provider. Raises LLMConfigurationError when it cannot be used."""
    name = (name or LLM_PROVIDER).strip().lower()
    if name == "groq":
        from llm.providers.groq_provider import GroqProvider

        return GroqProvider()
    if name == "ollama":
        from llm.providers.ollama_provider import OllamaProvider

        return OllamaProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        return MockProvider()
    raise LLMConfigurationError(f"Unknown LLM_PROVIDER: {name}")


def extract_json(text: str) -> Any:
    """Parse the first JSON value found in a model response.

    Tolerates markdown fences and prose around the payload. Returns None when
    nothing parseable is present.
    """
    if not text:
        return None
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for i, ch in enumerate(cleaned):
        if ch not in "[{":
            continue
        try:
            value, _ = decoder.raw_decode(cleaned[i:])
            return value
        except json.JSONDecodeError:
            continue
    return None


def coerce_event_list(data: Any) -> list[dict[str, Any]]:
    """Accept an array, an object wrapping an array, or a single event object."""
    if isinstance(data, list):
        return [d for d in data if isinstance(d, dict)]
    if isinstance(data, dict):
        if isinstance(data.get("events"), list):
            return [d for d in data["events"] if isinstance(d, dict)]
        if "event_title" in data:
            return [data]
        for value in data.values():
            if isinstance(value, list) and all(isinstance(v, dict) for v in value):
                return value
    return []


class LLMClient:
    """Thin JSON-oriented client over a pluggable provider.

    Retries HTTP 429 with exponential backoff; every other failure propagates to
    the caller, which decides how to degrade.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        max_retries: int = LLM_MAX_RETRIES,
        backoff_s: float = LLM_BACKOFF_S,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._provider = provider
        self.max_retries = max_retries
        self.backoff_s = backoff_s
        self._sleep = sleep

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_provider()
        return self._provider

    def generate(self, *, system: str, user: str) -> str:
        attempt = 0
        while True:
            try:
                return self.provider.generate(system=system, user=user)
            except httpx.HTTPStatusError as e:
                if e.response.status_code != 429 or attempt >= self.max_retries:
                    raise
                delay = self.backoff_s * (2 ** attempt)
                attempt += 1
                logger.warning(f"LLM rate limited, retrying in {delay:.1f}s (attempt {attempt})")
                self._sleep(delay)

    def complete(self, prompt: str, system: str = prompts.JSON_ONLY_SYSTEM) -> str:
        """Return the JSON payload of a completion as text, or '[]' if none was found."""
        raw = self.generate(system=system, user=prompt)
        data = extract_json(raw)
        if data is None:
            logger.error(f"Failed to parse LLM response: {raw[:200]!r}")
            return "[]"
        return json.dumps(data)

    def extract_events(
        self,
        text: str,
        reference_date: Optional[datetime] = None,
        schema_version: str = "announcement-v2",
    ) -> list[dict[str, Any]]:
        ref = reference_date or datetime.now()
        out = self.complete(prompts.announcement_prompt(text, ref, schema_version))
        return coerce_event_list(json.loads(out))

    def extract_exam_event(
        self, text: str, reference_date: Optional[datetime] = None
    ) -> Optional[dict[str, Any]]:
        ref = reference_date or datetime.now()
        raw = self.generate(system=prompts.exam_system_prompt(ref), user=text)
        data = extract_json(raw)
        return data if isinstance(data, dict) else None

    def classify_chat_intent(self, message: str) -> dict[str, Any]:
        raw = self.generate(system=prompts.CHAT_INTENT_SYSTEM_PROMPT, user=message)
        data = extract_json(raw)
        return data if isinstance(data, dict) else {}


__all__ = ["LLMClient", "LLMConfigurationError", "coerce_event_list", "extract_json", "get_provider"]
