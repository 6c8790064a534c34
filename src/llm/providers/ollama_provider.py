from __future__ import annotations
import os
import httpx
from .base import LLMProvider

LLM_TIMEOUT_S = float(os.getenv("LLM_TIMEOUT_S", "30"))


class OllamaProvider(LLMProvider):
    def __init__(self, model: str | None = None, base_url: str | None = None):
        self.model = (model or os.getenv("OLLAMA_MODEL", "llama3.1")).strip()
        self.base_url = (base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")).strip()

    def generate(self, *, system: str, user: str) -> str:
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": self.model,
            "stream": False,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "options": {"temperature": 0},
            "format": "json",
        }

        with httpx.Client(timeout=max(LLM_TIMEOUT_S, 60.0)) as client:
            r = client.post(url, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["message"]["content"]
