import json

import httpx
import pytest

from llm.llm_client import LLMClient, coerce_event_list, extract_json, get_provider
from llm.providers.base import LLMConfigurationError
from llm.providers.mock_provider import MockProvider


class FlakyProvider:
    def __init__(self, failures, response_text="[]", status_code=429):
        self.failures = failures
        self.status_code = status_code
        self.response_text = response_text
        self.calls = 0

    def generate(self, *, system, user):
        self.calls += 1
        if self.calls <= self.failures:
            request = httpx.Request("POST", "https://api.example.com")
            raise httpx.HTTPStatusError(
                str(self.status_code), request=request, response=httpx.Response(self.status_code, request=request)
            )
        return self.response_text


def test_extract_json_tolerates_fences_and_prose():
    text = 'Sure! Here you go:\n```json\n{"events": [{"event_title": "Quiz"}]}\n```\nGood luck.'
    assert extract_json(text) == {"events": [{"event_title": "Quiz"}]}


def test_extract_json_returns_none_for_garbage():
    assert extract_json("no json here") is None
    assert extract_json("") is None


def test_coerce_event_list_shapes():
    assert coerce_event_list([{"event_title": "a"}, 3]) == [{"event_title": "a"}]
    assert coerce_event_list({"events": [{"event_title": "a"}]}) == [{"event_title": "a"}]
    assert coerce_event_list({"event_title": "a"}) == [{"event_title": "a"}]
    assert coerce_event_list({"items": [{"event_title": "b"}]}) == [{"event_title": "b"}]
    assert coerce_event_list("nope") == []


def test_complete_returns_empty_array_when_nothing_parses(fake_provider_factory):
    client = LLMClient(provider=fake_provider_factory("I cannot help with that."))
    assert client.complete("anything") == "[]"


def test_extract_events_includes_reference_date(fake_provider_factory):
    from datetime import datetime

    provider = fake_provider_factory(json.dumps({"events": [{"event_title": "Unit Test"}]}))
    client = LLMClient(provider=provider)

    events = client.extract_events("Unit test next Friday", reference_date=datetime(2025, 11, 1))

    assert events == [{"event_title": "Unit Test"}]
    assert "2025-11-01" in provider.calls[0]["user"]
    assert "Unit test next Friday" in provider.calls[0]["user"]


def test_rate_limit_is_retried_with_backoff():
    sleeps = []
    provider = FlakyProvider(failures=2, response_text='{"events": []}')
    client = LLMClient(provider=provider, max_retries=2, backoff_s=0.5, sleep=sleeps.append)

    assert client.extract_events("text") == []
    assert provider.calls == 3
    assert sleeps == [0.5, 1.0]


def test_rate_limit_gives_up_after_max_retries():
    provider = FlakyProvider(failures=5)
    client = LLMClient(provider=provider, max_retries=1, sleep=lambda s: None)

    with pytest.raises(httpx.HTTPStatusError):
        client.complete("text")
    assert provider.calls == 2


def test_other_http_errors_are_not_retried():
    provider = FlakyProvider(failures=1, status_code=500)
    client = LLMClient(provider=provider, sleep=lambda s: None)

    with pytest.raises(httpx.HTTPStatusError):
        client.complete("text")
    assert provider.calls == 1


def test_unknown_provider_is_a_configuration_error():
    with pytest.raises(LLMConfigurationError):
        get_provider("nonexistent")


def test_groq_without_key_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    with pytest.raises(LLMConfigurationError):
        get_provider("groq")


def test_mock_provider_is_selectable():
    assert isinstance(get_provider("mock"), MockProvider)
