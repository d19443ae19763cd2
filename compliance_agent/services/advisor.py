"""
LLM-backed anomaly detection and remediation recommendations.

The advisor never raises to its caller: missing credentials, transport
failures and unparseable model output all degrade to an empty list.
"""

from __future__ import annotations

import json
import logging
import re
import textwrap
from typing import Any, Callable, List, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from compliance_agent.config.settings import AdvisorConfig
from compliance_agent.services.models import LLMClient
from compliance_agent.services.types import (
    SEVERITIES,
    AnalysisResult,
    Anomaly,
    FinancialSnapshot,
    Recommendation,
)

logger = logging.getLogger(__name__)

ANOMALY_SYSTEM_PROMPT = (
    "You are a financial compliance expert. Analyze data and identify potential issues."
)
RECOMMENDATION_SYSTEM_PROMPT = (
    "You are a compliance consultant. Provide practical recommendations to resolve compliance issues."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

T = TypeVar("T")


class AnomalyPayload(BaseModel):
    """Shape expected for each anomaly returned by the model."""

    type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    severity: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, value: Any) -> str:
        severity = str(value).strip().lower()
        if severity not in SEVERITIES:
            raise ValueError(f"unknown severity '{value}'")
        return severity

    def to_anomaly(self) -> Anomaly:
        return Anomaly(
            type=self.type,
            description=self.description,
            severity=self.severity,
            confidence=self.confidence,
        )


class RecommendationPayload(BaseModel):
    """Shape expected for each recommendation returned by the model."""

    priority: Union[str, int]
    action: str = Field(min_length=1)
    description: str = ""
    timeline: str = ""

    def to_recommendation(self) -> Recommendation:
        return Recommendation(
            priority=str(self.priority).strip().lower(),
            action=self.action,
            description=self.description,
            timeline=self.timeline,
        )


def parse_json_array(text: str) -> Optional[List[Any]]:
    """Extract a JSON array from free-form model output, or None."""
    text = _FENCE_RE.sub("", (text or "").strip())
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        # Attempt to extract the outermost array
        start = text.find("[")
        end = text.rfind("]")
        if start == -1 or end <= start:
            return None
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, list) else None


def _validated(items: Sequence[Any], model: type[BaseModel], convert: Callable[[Any], T]) -> List[T]:
    results: List[T] = []
    for item in items:
        try:
            payload = model.model_validate(item)
        except ValidationError as exc:
            logger.debug("Discarding malformed %s entry %r: %s", model.__name__, item, exc)
            continue
        results.append(convert(payload))
    return results


class AnomalyAdvisor:
    """Delegates anomaly detection and recommendations to a chat-completion model."""

    def __init__(self, config: AdvisorConfig, llm_client: Optional[LLMClient] = None):
        self.config = config
        self.client = llm_client
        if self.client is None and config.configured:
            self.client = LLMClient(
                endpoint=config.endpoint,
                auth_token=config.api_key,
                api_mode=config.api_mode,
            )

    @property
    def configured(self) -> bool:
        return self.config.configured and self.client is not None

    def detect_anomalies(self, snapshot: FinancialSnapshot) -> List[Anomaly]:
        if not self.configured:
            logger.warning("LLM API key not configured, skipping AI anomaly detection")
            return []

        prompt = textwrap.dedent(
            """
            Analyze the following financial data for anomalies and compliance risks:

            {data}

            Look for:
            1. Unusual spending patterns
            2. Revenue inconsistencies
            3. Missing documentation
            4. Potential compliance violations

            Return a JSON array of anomalies with: type, description, severity, confidence.
            Severity must be one of low, medium, high, critical; confidence is between 0 and 1.
            Only return JSON.
            """
        ).strip().format(data=json.dumps(snapshot.to_dict(), indent=2, default=str))

        items = self._ask(
            ANOMALY_SYSTEM_PROMPT,
            prompt,
            temperature=self.config.anomaly_temperature,
            max_tokens=self.config.anomaly_max_tokens,
            purpose="anomaly",
        )
        return _validated(items, AnomalyPayload, lambda payload: payload.to_anomaly())

    def generate_recommendations(self, result: AnalysisResult) -> List[Recommendation]:
        if not result.violations:
            return []
        if not self.configured:
            logger.warning("LLM API key not configured, skipping AI recommendations")
            return []

        violations = json.dumps([violation.to_dict() for violation in result.violations], indent=2)
        prompt = textwrap.dedent(
            """
            Based on the following compliance analysis, provide actionable recommendations:

            Violations: {violations}
            Risk Score: {risk_score}

            Provide 3-5 specific, actionable recommendations to address these issues.
            Format as JSON array with: priority, action, description, timeline
            Only return JSON.
            """
        ).strip().format(violations=violations, risk_score=result.risk_score)

        items = self._ask(
            RECOMMENDATION_SYSTEM_PROMPT,
            prompt,
            temperature=self.config.recommendation_temperature,
            max_tokens=self.config.recommendation_max_tokens,
            purpose="recommendation",
        )
        return _validated(items, RecommendationPayload, lambda payload: payload.to_recommendation())

    def _ask(
        self,
        system_prompt: str,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        purpose: str,
    ) -> List[Any]:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        try:
            response = self.client.chat(
                self.config.model,
                messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=self.config.timeout,
            )
        except Exception as exc:
            logger.warning("AI %s request failed: %s (model=%s)", purpose, exc, self.config.model)
            return []

        try:
            items = parse_json_array(response.text)
        except Exception as exc:
            logger.warning("AI %s response could not be read: %s", purpose, exc)
            return []
        if items is None:
            logger.warning("Failed to parse AI %s response as a JSON array", purpose)
            return []
        return items


__all__ = [
    "AnomalyAdvisor",
    "AnomalyPayload",
    "RecommendationPayload",
    "parse_json_array",
]
