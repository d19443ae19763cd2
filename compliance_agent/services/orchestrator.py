"""
End-to-end compliance analysis for a single company snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union

from compliance_agent.compliance.rules import ComplianceRule, evaluate_rules
from compliance_agent.compliance.scoring import risk_level, score
from compliance_agent.config.settings import AdvisorConfig, resolve_advisor_config
from compliance_agent.services.advisor import AnomalyAdvisor
from compliance_agent.services.types import AnalysisResult, FinancialSnapshot

logger = logging.getLogger(__name__)

SnapshotInput = Union[FinancialSnapshot, Mapping[str, Any]]
RuleInput = Union[ComplianceRule, Mapping[str, Any]]


class AnalysisError(RuntimeError):
    """Raised when an analysis cannot be completed at all."""


def coerce_snapshot(snapshot: SnapshotInput) -> FinancialSnapshot:
    if isinstance(snapshot, FinancialSnapshot):
        return snapshot
    return FinancialSnapshot.from_dict(snapshot)


def coerce_rules(rules: Iterable[RuleInput]) -> List[ComplianceRule]:
    return [rule if isinstance(rule, ComplianceRule) else ComplianceRule.from_dict(rule) for rule in rules]


@dataclass(slots=True)
class ComplianceOrchestrator:
    """Runs rules, consults the advisor and scores the outcome."""

    advisor: AnomalyAdvisor = field(default_factory=lambda: AnomalyAdvisor(AdvisorConfig()))

    @classmethod
    def from_env(cls) -> "ComplianceOrchestrator":
        return cls(advisor=AnomalyAdvisor(resolve_advisor_config()))

    def analyze(
        self,
        snapshot: SnapshotInput,
        rules: Iterable[RuleInput],
        *,
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """
        Analyze one company's snapshot against its rules.

        Advisor failures degrade to empty anomalies and recommendations;
        anything else surfaces as `AnalysisError`.
        """
        try:
            return self._analyze(snapshot, rules, now)
        except Exception as exc:
            logger.exception("Compliance analysis failed")
            raise AnalysisError("Failed to analyze compliance data") from exc

    def _analyze(
        self,
        snapshot: SnapshotInput,
        rules: Iterable[RuleInput],
        now: Optional[datetime],
    ) -> AnalysisResult:
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)

        data = coerce_snapshot(snapshot)
        active_rules = [rule for rule in coerce_rules(rules) if rule.is_active]

        violations = evaluate_rules(active_rules, data, now=current)
        anomalies = self.advisor.detect_anomalies(data)
        risk_score = score(violations, anomalies)

        result = AnalysisResult(
            violations=violations,
            anomalies=anomalies,
            risk_score=risk_score,
            risk_level=risk_level(risk_score),
            company_id=data.company_id,
            analyzed_at=current,
        )
        if violations and self.advisor.configured:
            result.recommendations = self.advisor.generate_recommendations(result)

        logger.info(
            "Compliance analysis completed for company %s. Risk score: %d (%d violations, %d anomalies)",
            data.company_id or "<unknown>",
            risk_score,
            len(violations),
            len(anomalies),
        )
        return result


__all__ = ["ComplianceOrchestrator", "AnalysisError", "coerce_snapshot", "coerce_rules"]
