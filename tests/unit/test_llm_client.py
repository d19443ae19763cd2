import pytest
import requests

from compliance_agent.services.models import LLMClient, ensure_chat_endpoint


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def capture_post(monkeypatch, response):
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr("compliance_agent.services.models.requests.post", fake_post)
    return captured


MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def test_openai_request_shape(monkeypatch):
    captured = capture_post(
        monkeypatch,
        FakeResponse({"choices": [{"message": {"content": "[]"}}]}),
    )
    client = LLMClient(endpoint="https://llm.example.com/v1/chat/completions", auth_token="sk-1")
    response = client.chat("gpt-4", MESSAGES, temperature=0.3, max_tokens=1000, timeout=30)

    assert response.text == "[]"
    assert captured["url"] == "https://llm.example.com/v1/chat/completions"
    assert captured["json"] == {"model": "gpt-4", "messages": MESSAGES, "temperature": 0.3, "max_tokens": 1000}
    assert captured["headers"]["Authorization"] == "Bearer sk-1"
    assert captured["timeout"] == 30


def test_ollama_chat_request_shape(monkeypatch):
    captured = capture_post(monkeypatch, FakeResponse({"message": {"content": "ok"}}))
    client = LLMClient(endpoint="http://localhost:11434", api_mode="ollama_chat")
    response = client.chat("llama3", MESSAGES, temperature=0.4, max_tokens=800)

    assert response.text == "ok"
    assert captured["url"] == "http://localhost:11434/api/chat"
    assert captured["json"]["options"] == {"temperature": 0.4, "num_predict": 800}
    assert captured["json"]["stream"] is False
    assert "Authorization" not in captured["headers"]


def test_empty_choices_yield_empty_text(monkeypatch):
    capture_post(monkeypatch, FakeResponse({"choices": []}))
    assert LLMClient(auth_token="k").chat("gpt-4", MESSAGES).text == ""


def test_http_error_is_wrapped(monkeypatch):
    capture_post(monkeypatch, FakeResponse(status_code=429, text="rate limited"))
    with pytest.raises(RuntimeError, match="LLM HTTP 429.*rate limited"):
        LLMClient(auth_token="k").chat("gpt-4", MESSAGES)


def test_timeout_is_wrapped(monkeypatch):
    capture_post(monkeypatch, requests.Timeout("read timed out"))
    with pytest.raises(RuntimeError, match="read timed out"):
        LLMClient(auth_token="k").chat("gpt-4", MESSAGES)


def test_non_json_body_is_wrapped(monkeypatch):
    capture_post(monkeypatch, FakeResponse(payload=None, text="<html>"))
    with pytest.raises(RuntimeError, match="non-JSON"):
        LLMClient(auth_token="k").chat("gpt-4", MESSAGES)


def test_unsupported_mode_rejected():
    with pytest.raises(ValueError):
        LLMClient(api_mode="grpc")


def test_ensure_chat_endpoint_keeps_custom_paths():
    assert ensure_chat_endpoint("http://proxy:8080/", "v1/chat/completions") == "http://proxy:8080/v1/chat/completions"
    assert ensure_chat_endpoint("http://proxy:8080/custom/chat", "v1/chat/completions") == "http://proxy:8080/custom/chat"


def test_content_parts_are_flattened(monkeypatch):
    capture_post(
        monkeypatch,
        FakeResponse({"choices": [{"message": {"content": [{"type": "text", "text": "[]"}, {"type": "image"}]}}]}),
    )
    assert LLMClient(auth_token="k").chat("gpt-4", MESSAGES).text == "[]"
