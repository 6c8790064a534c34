from __future__ import annotations
import os
import httpx
from .base import LLMConfigurationError, LLMProvider

LLM_TIMEOUT_S = float(os.getenv("LLM_TIMEOUT_S", "30"))


class GroqProvider(LLMProvider):
    """OpenAI-compatible chat completions on Groq."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout_s: float = LLM_TIMEOUT_S,
    ):
        self.api_key = (api_key or os.getenv("GROQ_API_KEY", "")).strip()
        self.model = (model or os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")).strip()
        self.base_url = (
            base_url or os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")
        ).strip()
        self.timeout_s = timeout_s

        if not self.api_key:
            raise LLMConfigurationError("GROQ_API_KEY is missing")

    def generate(self, *, system: str, user: str) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": 0,
            "response_format": {"type": "json_object"},
        }

        with httpx.Client(timeout=self.timeout_s) as client:
            r = client.post(url, headers=headers, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["choices"][0]["message"]["content"] or ""
