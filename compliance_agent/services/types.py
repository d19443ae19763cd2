"""
Dataclasses describing compliance analysis inputs and outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

SEVERITIES: Tuple[str, ...] = ("low", "medium", "high", "critical")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO 8601 strings or date objects into timezone-aware UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported date value: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass(slots=True)
class RevenueEntry:
    """One month of reported revenue."""

    amount: float
    month: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "RevenueEntry":
        if isinstance(raw, RevenueEntry):
            return raw
        if isinstance(raw, Mapping):
            return cls(amount=float(raw["amount"]), month=raw.get("month"))
        return cls(amount=float(raw))

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.month, "amount": self.amount}


_SNAPSHOT_KEYS = {
    "company_id": ("company_id", "companyId"),
    "last_submission_date": ("last_submission_date", "lastSubmissionDate"),
    "monthly_revenue": ("monthly_revenue", "monthlyRevenue"),
    "submitted_documents": ("submitted_documents", "submittedDocuments"),
    "business_trips": ("business_trips", "businessTrips"),
}


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, RevenueEntry):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


@dataclass(slots=True)
class FinancialSnapshot:
    """
    Per-company data bag evaluated by the rule engine.

    `last_submission_date` and `monthly_revenue` keep the values they were
    given (ISO strings, datetimes, numbers, mappings or `RevenueEntry`).
    They are parsed by `submission_date()` and `revenue_entries()` when a
    rule needs them, so a malformed value only fails the rules that read it.
    """

    company_id: Optional[str] = None
    last_submission_date: Any = None
    monthly_revenue: List[Any] = field(default_factory=list)
    submitted_documents: List[str] = field(default_factory=list)
    business_trips: List[Dict[str, Any]] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinancialSnapshot":
        """Build a snapshot from camelCase or snake_case keys."""
        known = {alias for aliases in _SNAPSHOT_KEYS.values() for alias in aliases}
        company_id = _pick(data, *_SNAPSHOT_KEYS["company_id"])
        revenue = _pick(data, *_SNAPSHOT_KEYS["monthly_revenue"]) or []
        documents = _pick(data, *_SNAPSHOT_KEYS["submitted_documents"]) or []
        trips = _pick(data, *_SNAPSHOT_KEYS["business_trips"]) or []
        return cls(
            company_id=str(company_id) if company_id is not None else None,
            last_submission_date=_pick(data, *_SNAPSHOT_KEYS["last_submission_date"]),
            monthly_revenue=list(revenue),
            submitted_documents=[str(doc) for doc in documents],
            business_trips=[dict(trip) for trip in trips],
            extra={key: value for key, value in data.items() if key not in known},
        )

    def submission_date(self) -> Optional[datetime]:
        """Last submission as an aware UTC datetime; raises ValueError if malformed."""
        return parse_datetime(self.last_submission_date)

    def revenue_entries(self) -> List[RevenueEntry]:
        """Revenue history as `RevenueEntry` items; raises on malformed entries."""
        return [RevenueEntry.from_raw(item) for item in self.monthly_revenue]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe rendering used for prompts and logs."""
        payload: Dict[str, Any] = _json_safe(self.extra)
        payload.update(
            {
                "company_id": self.company_id,
                "last_submission_date": _json_safe(self.last_submission_date),
                "monthly_revenue": [_json_safe(entry) for entry in self.monthly_revenue],
                "submitted_documents": list(self.submitted_documents),
                "business_trips": [_json_safe(trip) for trip in self.business_trips],
            }
        )
        return payload


@dataclass(frozen=True, slots=True)
class Violation:
    """Concrete failure of one rule at one point in time."""

    rule_id: str
    violation_type: str
    severity: str
    description: str
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "violation_type": self.violation_type,
            "severity": self.severity,
            "description": self.description,
            "detected_at": self.detected_at.isoformat(),
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class Anomaly:
    """Pattern flagged by the advisor outside the deterministic rule set."""

    type: str
    description: str
    severity: str
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class Recommendation:
    """Remediation step suggested by the advisor."""

    priority: str
    action: str
    description: str
    timeline: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority,
            "action": self.action,
            "description": self.description,
            "timeline": self.timeline,
        }


@dataclass(slots=True)
class AnalysisResult:
    """Outcome of one compliance analysis call."""

    violations: List[Violation] = field(default_factory=list)
    anomalies: List[Anomaly] = field(default_factory=list)
    risk_score: int = 0
    risk_level: str = "low"
    recommendations: List[Recommendation] = field(default_factory=list)
    company_id: Optional[str] = None
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def insights(self) -> List[Anomaly]:
        return self.anomalies

    def to_dict(self) -> Dict[str, Any]:
        anomalies = [anomaly.to_dict() for anomaly in self.anomalies]
        return {
            "company_id": self.company_id,
            "analyzed_at": self.analyzed_at.isoformat(),
            "violations": [violation.to_dict() for violation in self.violations],
            "anomalies": anomalies,
            "insights": list(anomalies),
            "risk_score": self.risk_score,
            "risk_level": self.risk_level,
            "recommendations": [rec.to_dict() for rec in self.recommendations],
        }


__all__ = [
    "SEVERITIES",
    "parse_datetime",
    "RevenueEntry",
    "FinancialSnapshot",
    "Violation",
    "Anomaly",
    "Recommendation",
    "AnalysisResult",
]
