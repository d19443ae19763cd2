"""
Risk scoring over rule violations and advisor anomalies.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable

from compliance_agent.services.types import Anomaly, Violation

VIOLATION_POINTS: Dict[str, int] = {"critical": 25, "high": 15, "medium": 10, "low": 5}
ANOMALY_POINTS: Dict[str, int] = {"critical": 20, "high": 12, "medium": 8, "low": 3}
DEFAULT_ANOMALY_CONFIDENCE = 0.5
MAX_RISK_SCORE = 100


def score(violations: Iterable[Violation], anomalies: Iterable[Anomaly]) -> int:
    """Aggregate severities into an integer risk score in [0, 100]."""
    total = 0.0
    for violation in violations:
        total += VIOLATION_POINTS.get(violation.severity, 0)
    for anomaly in anomalies:
        confidence = anomaly.confidence if anomaly.confidence is not None else DEFAULT_ANOMALY_CONFIDENCE
        total += ANOMALY_POINTS.get(anomaly.severity, 0) * confidence
    # half-up rounding, so 2.5 scores 3
    rounded = int(math.floor(total + 0.5))
    return max(0, min(rounded, MAX_RISK_SCORE))


def risk_level(risk_score: int) -> str:
    """Map a risk score onto the company risk level vocabulary."""
    if risk_score >= 75:
        return "critical"
    if risk_score >= 50:
        return "high"
    if risk_score >= 25:
        return "medium"
    return "low"


__all__ = ["score", "risk_level", "VIOLATION_POINTS", "ANOMALY_POINTS"]
