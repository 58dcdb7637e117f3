import pytest
import requests

from slangbridge.core.utils import llm
from slangbridge.core.utils.llm import (
    GeminiQuotaError,
    LLMProvider,
    UpstreamError,
    call_chat_completions,
    is_quota_error,
    strip_think_tags,
)


class FakeResponse:
    def __init__(self, status_code=200, content="hello", payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {
            "choices": [{"message": {"content": content}}]
        }
        self.text = str(self._payload)

    def json(self):
        return self._payload


class NonJSONResponse(FakeResponse):
    """A 200 whose body is not JSON, e.g. a gateway HTML page."""

    def __init__(self):
        super().__init__()
        self.text = "<html>502 Bad Gateway</html>"

    def json(self):
        raise requests.exceptions.JSONDecodeError("Expecting value", self.text, 0)


@pytest.fixture
def posts(monkeypatch):
    """Queue of responses returned by requests.post; records each request."""
    queue = []
    sent = []

    def fake_post(url, headers=None, json=None, timeout=None):
        sent.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(llm.requests, "post", fake_post)
    return queue, sent


def test_strip_think_tags():
    assert strip_think_tags("<think>plan\nmore</think> answer ") == "answer"


def test_is_quota_error():
    assert is_quota_error(Exception("429 Resource exhausted"))
    assert not is_quota_error(Exception("bad request"))


def test_call_chat_completions_sends_system_and_user(posts):
    queue, sent = posts
    queue.append(FakeResponse(content="<think>x</think>yo"))

    result = call_chat_completions(llm.OPENAI_API_URL, "hello", "sk-test", "gpt-4o",
                                   system_prompt="translate", temperature=0.8, max_tokens=300)

    assert result == "yo"
    body = sent[0]["json"]
    assert body["messages"] == [
        {"role": "system", "content": "translate"},
        {"role": "user", "content": "hello"},
    ]
    assert body["temperature"] == 0.8
    assert body["max_tokens"] == 300
    assert sent[0]["headers"]["Authorization"] == "Bearer sk-test"


def test_call_chat_completions_requires_key(posts):
    with pytest.raises(UpstreamError):
        call_chat_completions(llm.OPENAI_API_URL, "hello", "", "gpt-4o")


@pytest.mark.parametrize("response", [
    FakeResponse(status_code=429),
    FakeResponse(status_code=500),
    FakeResponse(payload={"choices": []}),
    NonJSONResponse(),
    requests.ConnectionError("connection refused"),
])
def test_call_chat_completions_errors(posts, response):
    queue, _ = posts
    queue.append(response)
    with pytest.raises(UpstreamError):
        call_chat_completions(llm.OPENAI_API_URL, "hello", "sk-test", "gpt-4o")


def test_provider_retries_then_succeeds(posts):
    queue, sent = posts
    queue.extend([FakeResponse(status_code=500), FakeResponse(content=""), FakeResponse(content="done")])
    provider = LLMProvider(engine="openai", openai_api_key="sk-test", max_retries=3, backoff_base=0)

    assert provider.complete("instruction", "text") == "done"
    assert len(sent) == 3


def test_provider_raises_after_exhausting_retries(posts):
    queue, sent = posts
    queue.extend([FakeResponse(status_code=500)] * 2)
    provider = LLMProvider(engine="groq", groq_api_key="gsk-test", max_retries=2, backoff_base=0)

    with pytest.raises(UpstreamError):
        provider.complete("instruction", "text")
    assert all(s["url"] == llm.GROQ_API_URL for s in sent)


def test_gemini_quota_falls_back_to_groq(posts, monkeypatch):
    queue, sent = posts
    queue.append(FakeResponse(content="from groq"))

    def quota(*args, **kwargs):
        raise GeminiQuotaError("429 quota")

    monkeypatch.setattr(llm, "call_gemini", quota)
    provider = LLMProvider(engine="gemini", gemini_api_key="g", groq_api_key="gsk", backoff_base=0)

    assert provider.complete("instruction", "text") == "from groq"
    assert sent[0]["url"] == llm.GROQ_API_URL


def test_gemini_quota_without_groq_key_raises(monkeypatch):
    def quota(*args, **kwargs):
        raise GeminiQuotaError("429 quota")

    monkeypatch.setattr(llm, "call_gemini", quota)
    provider = LLMProvider(engine="gemini", gemini_api_key="g", backoff_base=0)

    with pytest.raises(GeminiQuotaError):
        provider.complete("instruction", "text")


def test_unknown_engine_rejected():
    with pytest.raises(ValueError):
        LLMProvider(engine="local")


def test_status_reports_configured_keys():
    status = LLMProvider(engine="openai", openai_api_key="sk").status()
    assert status == {"engine": "openai", "openai": "configured", "groq": "missing", "gemini": "missing"}


def test_gemini_quota_fallback_does_not_use_up_an_attempt(posts, monkeypatch):
    queue, sent = posts
    queue.append(FakeResponse(content="from groq"))

    def quota(*args, **kwargs):
        raise GeminiQuotaError("429 quota")

    monkeypatch.setattr(llm, "call_gemini", quota)
    provider = LLMProvider(engine="gemini", gemini_api_key="g", groq_api_key="gsk",
                           max_retries=1, backoff_base=0)

    assert provider.complete("instruction", "text") == "from groq"
    assert len(sent) == 1


def test_provider_wraps_non_json_body(posts):
    queue, _ = posts
    queue.append(NonJSONResponse())
    provider = LLMProvider(engine="openai", openai_api_key="sk-test", max_retries=1, backoff_base=0)

    with pytest.raises(UpstreamError, match="non-JSON"):
        provider.complete("instruction", "text")
