"""
Advisor and service settings for the compliance agent.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4"
DEFAULT_TIMEOUT = 30
DEFAULT_ASSESSMENT_LOG = Path("data/risk_assessments.jsonl")


@dataclass(slots=True)
class AdvisorConfig:
    """Connection and sampling settings for the chat-completion advisor."""

    api_key: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    api_mode: str = "openai"
    timeout: int = DEFAULT_TIMEOUT
    anomaly_temperature: float = 0.3
    anomaly_max_tokens: int = 1000
    recommendation_temperature: float = 0.4
    recommendation_max_tokens: int = 800
    assistant_temperature: float = 0.5
    assistant_max_tokens: int = 500

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


def _int_from_env(*names: str, default: int) -> int:
    for name in names:
        raw = os.getenv(name)
        if not raw:
            continue
        try:
            return int(raw)
        except ValueError:
            logger.warning("Invalid integer for %s: %r. Using %s.", name, raw, default)
    return default


def resolve_advisor_config() -> AdvisorConfig:
    """Derive advisor connection details from environment variables."""

    def fallback_or_empty(value: Optional[str]) -> str:
        return (value or "").strip()

    api_key = (
        fallback_or_empty(os.getenv("COMPLIANCE_LLM_API_KEY"))
        or fallback_or_empty(os.getenv("OPENAI_API_KEY"))
        or None
    )
    endpoint = (
        fallback_or_empty(os.getenv("COMPLIANCE_LLM_ENDPOINT"))
        or fallback_or_empty(os.getenv("OPENAI_ENDPOINT"))
        or DEFAULT_ENDPOINT
    )
    model = fallback_or_empty(os.getenv("COMPLIANCE_LLM_MODEL")) or DEFAULT_MODEL
    api_mode = (fallback_or_empty(os.getenv("COMPLIANCE_LLM_API_MODE")) or "openai").lower()
    timeout = _int_from_env("COMPLIANCE_LLM_TIMEOUT", default=DEFAULT_TIMEOUT)

    return AdvisorConfig(
        api_key=api_key,
        endpoint=endpoint,
        model=model,
        api_mode=api_mode,
        timeout=timeout,
    )


def resolve_assessment_log_path() -> Path:
    """Location of the JSONL risk assessment log."""
    return Path(os.getenv("COMPLIANCE_ASSESSMENT_LOG", str(DEFAULT_ASSESSMENT_LOG)))


@dataclass(slots=True)
class ServerConfig:
    """Bind address and reload flag for the API server."""

    host: str = "127.0.0.1"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"


def resolve_server_config() -> ServerConfig:
    reload_raw = (os.getenv("COMPLIANCE_API_RELOAD") or "").strip().lower()
    return ServerConfig(
        host=(os.getenv("COMPLIANCE_API_HOST") or "").strip() or "127.0.0.1",
        port=_int_from_env("COMPLIANCE_API_PORT", default=8000),
        reload=reload_raw in {"1", "true", "yes", "on"},
        log_level=(os.getenv("COMPLIANCE_API_LOG_LEVEL") or "info").strip().lower(),
    )


__all__ = [
    "AdvisorConfig",
    "ServerConfig",
    "resolve_advisor_config",
    "resolve_assessment_log_path",
    "resolve_server_config",
]
