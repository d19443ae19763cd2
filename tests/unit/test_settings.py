from pathlib import Path

import pytest

from compliance_agent.config.settings import (
    DEFAULT_ENDPOINT,
    resolve_advisor_config,
    resolve_assessment_log_path,
)

ENV_VARS = (
    "COMPLIANCE_LLM_API_KEY",
    "OPENAI_API_KEY",
    "COMPLIANCE_LLM_ENDPOINT",
    "OPENAI_ENDPOINT",
    "COMPLIANCE_LLM_MODEL",
    "COMPLIANCE_LLM_API_MODE",
    "COMPLIANCE_LLM_TIMEOUT",
    "COMPLIANCE_ASSESSMENT_LOG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_leave_advisor_unconfigured():
    config = resolve_advisor_config()
    assert config.api_key is None
    assert not config.configured
    assert config.endpoint == DEFAULT_ENDPOINT
    assert config.model == "gpt-4"
    assert config.timeout == 30


def test_openai_key_used_as_fallback(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-fallback")
    assert resolve_advisor_config().api_key == "sk-fallback"
    monkeypatch.setenv("COMPLIANCE_LLM_API_KEY", "sk-primary")
    assert resolve_advisor_config().api_key == "sk-primary"


def test_overrides_from_environment(monkeypatch):
    monkeypatch.setenv("COMPLIANCE_LLM_ENDPOINT", "http://localhost:11434/api/chat")
    monkeypatch.setenv("COMPLIANCE_LLM_MODEL", "llama3")
    monkeypatch.setenv("COMPLIANCE_LLM_API_MODE", "OLLAMA_CHAT")
    monkeypatch.setenv("COMPLIANCE_LLM_TIMEOUT", "45")
    config = resolve_advisor_config()
    assert config.endpoint == "http://localhost:11434/api/chat"
    assert config.model == "llama3"
    assert config.api_mode == "ollama_chat"
    assert config.timeout == 45


def test_invalid_timeout_falls_back(monkeypatch, caplog):
    monkeypatch.setenv("COMPLIANCE_LLM_TIMEOUT", "soon")
    assert resolve_advisor_config().timeout == 30
    assert "COMPLIANCE_LLM_TIMEOUT" in caplog.text


def test_assessment_log_path(monkeypatch, tmp_path):
    assert resolve_assessment_log_path() == Path("data/risk_assessments.jsonl")
    monkeypatch.setenv("COMPLIANCE_ASSESSMENT_LOG", str(tmp_path / "log.jsonl"))
    assert resolve_assessment_log_path() == tmp_path / "log.jsonl"
