"""
Chat-completion invocation utilities for the compliance advisor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse, urlunparse

import requests

from compliance_agent.config.settings import DEFAULT_ENDPOINT

ChatMessage = Dict[str, str]


def ensure_chat_endpoint(endpoint: str, default_path: str) -> str:
    """
    Normalise a user-supplied chat endpoint.

    Accepts bare hosts (e.g. http://localhost:11434) and appends the
    default path; custom paths (e.g. proxies) are preserved as-is.
    """
    if not endpoint:
        return endpoint

    parsed = urlparse(endpoint.strip())
    path = (parsed.path or "").rstrip("/")
    new_path = path or "/" + default_path.strip("/")
    return urlunparse(parsed._replace(path=new_path)).rstrip("/")


def _post_json(
    *,
    endpoint: str,
    payload: Dict[str, object],
    headers: Dict[str, str],
    timeout: int,
    model: str,
) -> Dict[str, object]:
    try:
        response = requests.post(endpoint, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise RuntimeError(f"LLM request failed for model '{model}' at {endpoint}: {exc}") from exc

    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        body = (response.text or "").strip()
        preview = body[:1000]
        if len(body) > len(preview):
            preview += "…"
        raise RuntimeError(
            f"LLM HTTP {response.status_code} for model '{model}' at {endpoint}: {preview}"
        ) from exc

    try:
        return response.json()
    except ValueError as exc:
        body = (response.text or "").strip()
        preview = body[:500]
        if len(body) > len(preview):
            preview += "…"
        raise RuntimeError(
            f"LLM returned non-JSON payload for model '{model}' at {endpoint}: {preview}"
        ) from exc


def _content_text(content: object) -> str:
    """Flatten chat message content, which some servers send as a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return str(content)


@dataclass(slots=True)
class LLMResponse:
    """Container for raw LLM output and metadata."""

    text: str
    model: str
    temperature: float
    max_tokens: Optional[int]


class LLMClient:
    """Thin wrapper around OpenAI-compatible or Ollama chat APIs."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        auth_token: Optional[str] = None,
        api_mode: str = "openai",
    ):
        self.api_mode = (api_mode or "openai").lower()
        if self.api_mode not in {"openai", "ollama_chat"}:
            raise ValueError(
                f"Unsupported LLM api mode '{self.api_mode}'. Expected 'openai' or 'ollama_chat'."
            )

        if self.api_mode == "openai":
            self.endpoint = ensure_chat_endpoint(endpoint or DEFAULT_ENDPOINT, "v1/chat/completions")
        else:
            self.endpoint = ensure_chat_endpoint(endpoint or "http://localhost:11434/api/chat", "api/chat")
        self.auth_token = auth_token

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def chat(
        self,
        model: str,
        messages: List[ChatMessage],
        *,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        timeout: int = 30,
    ) -> LLMResponse:
        if self.api_mode == "ollama_chat":
            text = self._call_ollama_chat(model, messages, temperature, max_tokens, timeout)
        else:
            text = self._call_openai(model, messages, temperature, max_tokens, timeout)
        return LLMResponse(text=text, model=model, temperature=temperature, max_tokens=max_tokens)

    def _call_ollama_chat(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: Optional[int],
        timeout: int,
    ) -> str:
        options: Dict[str, int | float] = {"temperature": temperature}
        if max_tokens is not None:
            options["num_predict"] = int(max_tokens)

        payload = _post_json(
            endpoint=self.endpoint,
            payload={"model": model, "messages": messages, "stream": False, "options": options},
            headers=self._headers(),
            timeout=timeout,
            model=model,
        )
        message = payload.get("message") or {}
        return _content_text(message.get("content"))

    def _call_openai(
        self,
        model: str,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: Optional[int],
        timeout: int,
    ) -> str:
        body: Dict[str, object] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            body["max_tokens"] = int(max_tokens)

        data = _post_json(
            endpoint=self.endpoint,
            payload=body,
            headers=self._headers(),
            timeout=timeout,
            model=model,
        )
        choices = data.get("choices") or []
        if not choices:
            return ""
        choice = choices[0]
        message = choice.get("message") or {}
        return _content_text(message.get("content")) or _content_text(choice.get("text"))


__all__ = ["LLMClient", "LLMResponse", "ensure_chat_endpoint"]
