import json

import httpx
import pytest

from llm.llm_client import LLMClient
from llm.providers.groq_provider import GroqProvider
from llm.providers.ollama_provider import OllamaProvider


@pytest.fixture
def transport(monkeypatch):
    """Route every httpx.Client through a MockTransport; returns the captured requests."""
    captured = []
    replies = {}
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        status, body = replies["next"]
        return httpx.Response(status, json=body)

    def make_client(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "Client", make_client)
    return captured, replies


def test_groq_request_shape(transport):
    captured, replies = transport
    replies["next"] = (200, {"choices": [{"message": {"content": '{"events": []}'}}]})

    provider = GroqProvider(api_key="gsk_test", model="llama-test", base_url="https://groq.test/v1")
    out = provider.generate(system="sys", user="hello")

    assert out == '{"events": []}'
    request = captured[0]
    assert str(request.url) == "https://groq.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer gsk_test"
    body = json.loads(request.content)
    assert body["model"] == "llama-test"
    assert body["temperature"] == 0
    assert body["response_format"] == {"type": "json_object"}


def test_groq_rate_limit_is_retried_by_client(transport):
    captured, replies = transport
    replies["next"] = (429, {"error": "slow down"})

    client = LLMClient(
        provider=GroqProvider(api_key="gsk_test", base_url="https://groq.test/v1"),
        max_retries=1,
        sleep=lambda s: None,
    )
    with pytest.raises(httpx.HTTPStatusError):
        client.complete("anything")
    assert len(captured) == 2


def test_ollama_asks_for_json(transport):
    captured, replies = transport
    replies["next"] = (200, {"message": {"content": "[]"}})

    out = OllamaProvider(model="llama3.1", base_url="http://ollama.test").generate(system="s", user="u")

    assert out == "[]"
    body = json.loads(captured[0].content)
    assert body["format"] == "json"
    assert body["stream"] is False
