"""
Rule definitions and the deterministic compliance evaluator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from compliance_agent.services.types import SEVERITIES, FinancialSnapshot, Violation, parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_REVENUE_THRESHOLD = 10000.0
REVENUE_WINDOW = 3
LOW_REVENUE_CONFIDENCE = 0.85


@dataclass(frozen=True, slots=True)
class ReportSubmissionDefinition:
    """Periodic report that must be filed within the rule deadline."""

    format: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RevenueTrackingDefinition:
    """Recent average monthly revenue must stay above a threshold."""

    threshold: Optional[float] = None

    @property
    def effective_threshold(self) -> float:
        return self.threshold if self.threshold is not None else DEFAULT_REVENUE_THRESHOLD


@dataclass(frozen=True, slots=True)
class TaxComplianceDefinition:
    """Tax filing documents that must be on record."""

    documents: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TripDocumentationDefinition:
    """Fields every finished business trip must document."""

    required_fields: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class UnsupportedDefinition:
    """Definition with a type tag this engine does not evaluate."""

    rule_type: str
    params: Dict[str, Any] = field(default_factory=dict)


RuleDefinition = Union[
    ReportSubmissionDefinition,
    RevenueTrackingDefinition,
    TaxComplianceDefinition,
    TripDocumentationDefinition,
    UnsupportedDefinition,
]

_DEFINITION_TYPES = {
    ReportSubmissionDefinition: "report_submission",
    RevenueTrackingDefinition: "revenue_tracking",
    TaxComplianceDefinition: "tax_compliance",
    TripDocumentationDefinition: "trip_documentation",
}


def parse_rule_definition(raw: Mapping[str, Any]) -> RuleDefinition:
    """Turn a stored `rule_definition` JSON object into a typed definition."""
    params = dict(raw)
    rule_type = str(params.pop("type", "") or "")

    if rule_type == "report_submission":
        return ReportSubmissionDefinition(format=params.get("format"))
    if rule_type == "revenue_tracking":
        threshold = params.get("threshold")
        # zero or missing means the default threshold
        return RevenueTrackingDefinition(threshold=float(threshold) if threshold else None)
    if rule_type == "tax_compliance":
        return TaxComplianceDefinition(documents=tuple(str(doc) for doc in params.get("documents") or ()))
    if rule_type == "trip_documentation":
        return TripDocumentationDefinition(
            required_fields=tuple(str(name) for name in params.get("required_fields") or ())
        )
    return UnsupportedDefinition(rule_type=rule_type, params=params)


def definition_to_dict(definition: RuleDefinition) -> Dict[str, Any]:
    if isinstance(definition, UnsupportedDefinition):
        return {"type": definition.rule_type, **definition.params}
    payload: Dict[str, Any] = {"type": _DEFINITION_TYPES[type(definition)]}
    if isinstance(definition, ReportSubmissionDefinition) and definition.format:
        payload["format"] = definition.format
    elif isinstance(definition, RevenueTrackingDefinition) and definition.threshold is not None:
        payload["threshold"] = definition.threshold
    elif isinstance(definition, TaxComplianceDefinition):
        payload["documents"] = list(definition.documents)
    elif isinstance(definition, TripDocumentationDefinition):
        payload["required_fields"] = list(definition.required_fields)
    return payload


@dataclass(frozen=True, slots=True)
class ComplianceRule:
    """Declarative policy checked against a company's data."""

    rule_id: str
    name: str
    category: str
    severity: str
    frequency: str
    definition: RuleDefinition
    deadline_days: int = 30
    description: str = ""
    is_active: bool = True

    @classmethod
    def from_dict(
        cls,
        raw: Mapping[str, Any],
        custom_parameters: Optional[Mapping[str, Any]] = None,
    ) -> "ComplianceRule":
        """
        Build a rule from a `compliance_rules` row.

        `custom_parameters` (per-company overrides) are merged over the
        stored rule definition.
        """
        severity = str(raw.get("severity") or "medium").lower()
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity '{severity}' for rule {raw.get('id') or raw.get('rule_id')}")

        definition_raw = dict(raw.get("rule_definition") or raw.get("ruleDefinition") or {})
        if custom_parameters:
            definition_raw.update(custom_parameters)

        deadline = raw.get("deadline_days", raw.get("deadlineDays"))
        return cls(
            rule_id=str(raw.get("id") or raw.get("rule_id") or raw.get("ruleId") or ""),
            name=str(raw.get("name") or ""),
            category=str(raw.get("category") or ""),
            severity=severity,
            frequency=str(raw.get("frequency") or ""),
            definition=parse_rule_definition(definition_raw),
            deadline_days=int(deadline) if deadline is not None else 30,
            description=str(raw.get("description") or ""),
            is_active=bool(raw.get("is_active", raw.get("isActive", True))),
        )

    @property
    def rule_type(self) -> str:
        if isinstance(self.definition, UnsupportedDefinition):
            return self.definition.rule_type
        return _DEFINITION_TYPES[type(self.definition)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.rule_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "severity": self.severity,
            "frequency": self.frequency,
            "deadline_days": self.deadline_days,
            "rule_definition": definition_to_dict(self.definition),
            "is_active": self.is_active,
        }


# Seed rules shipped with the IT Park schema.
DEFAULT_RULES: Tuple[ComplianceRule, ...] = (
    ComplianceRule(
        rule_id="quarterly_financial_report",
        name="Quarterly Financial Report",
        description="Submit quarterly financial statements to IT Park",
        category="financial",
        severity="high",
        frequency="quarterly",
        deadline_days=30,
        definition=ReportSubmissionDefinition(format="quarterly_pack"),
    ),
    ComplianceRule(
        rule_id="annual_tax_report",
        name="Annual Tax Report",
        description="Submit annual tax compliance report",
        category="legal",
        severity="critical",
        frequency="annually",
        deadline_days=45,
        definition=TaxComplianceDefinition(documents=("tax_return", "audit_report")),
    ),
    ComplianceRule(
        rule_id="monthly_revenue_tracking",
        name="Monthly Revenue Tracking",
        description="Track and report monthly revenue figures",
        category="financial",
        severity="medium",
        frequency="monthly",
        deadline_days=15,
        definition=RevenueTrackingDefinition(threshold=10000.0),
    ),
    ComplianceRule(
        rule_id="business_trip_documentation",
        name="Business Trip Documentation",
        description="Document all business trips with proper receipts",
        category="operational",
        severity="medium",
        frequency="monthly",
        deadline_days=7,
        definition=TripDocumentationDefinition(required_fields=("purpose", "expenses", "receipts")),
    ),
)


def _violation(rule: ComplianceRule, violation_type: str, description: str, now: datetime, **overrides: Any) -> Violation:
    return Violation(
        rule_id=rule.rule_id,
        violation_type=violation_type,
        severity=overrides.get("severity", rule.severity),
        description=description,
        detected_at=now,
        confidence=overrides.get("confidence", 1.0),
    )


def _check_report_submission(rule: ComplianceRule, snapshot: FinancialSnapshot, now: datetime) -> Optional[Violation]:
    last_submission = snapshot.submission_date()
    if last_submission is None:
        return _violation(rule, "missing_submission", f"No {rule.name} found", now)

    days_since = (now - last_submission).days
    if days_since > rule.deadline_days:
        overdue = days_since - rule.deadline_days
        return _violation(rule, "overdue_submission", f"{rule.name} is {overdue} days overdue", now)
    return None


def _check_revenue_tracking(
    rule: ComplianceRule,
    definition: RevenueTrackingDefinition,
    snapshot: FinancialSnapshot,
    now: datetime,
) -> Optional[Violation]:
    entries = snapshot.revenue_entries()
    if not entries:
        return _violation(rule, "missing_revenue_data", "Monthly revenue data is missing", now)

    recent = entries[-REVENUE_WINDOW:]
    average = sum(entry.amount for entry in recent) / len(recent)
    threshold = definition.effective_threshold
    if average < threshold:
        return _violation(
            rule,
            "low_revenue",
            f"Average monthly revenue ({average:.2f}) below threshold ({threshold:.2f})",
            now,
            severity="medium",
            confidence=LOW_REVENUE_CONFIDENCE,
        )
    return None


def _check_tax_compliance(
    rule: ComplianceRule,
    definition: TaxComplianceDefinition,
    snapshot: FinancialSnapshot,
    now: datetime,
) -> Optional[Violation]:
    submitted = set(snapshot.submitted_documents)
    missing = [doc for doc in definition.documents if doc not in submitted]
    if not missing:
        return None
    return _violation(
        rule,
        "missing_tax_documents",
        f"{rule.name} is missing required documents: {', '.join(missing)}",
        now,
    )


def trip_is_due(trip: Mapping[str, Any], deadline_days: int, now: datetime) -> bool:
    """True once the documentation window after a trip's end date has passed."""
    end_date = parse_datetime(trip.get("end_date") or trip.get("endDate"))
    if end_date is None:
        return False
    return (now - end_date).days > deadline_days


def missing_trip_fields(trip: Mapping[str, Any], required_fields: Iterable[str]) -> List[str]:
    return [name for name in required_fields if not trip.get(name)]


def _trip_label(trip: Mapping[str, Any], index: int) -> str:
    return str(trip.get("id") or trip.get("trip_title") or trip.get("tripTitle") or f"trip #{index + 1}")


def _check_trip_documentation(
    rule: ComplianceRule,
    definition: TripDocumentationDefinition,
    snapshot: FinancialSnapshot,
    now: datetime,
) -> Optional[Violation]:
    incomplete: List[str] = []
    for index, trip in enumerate(snapshot.business_trips):
        try:
            due = trip_is_due(trip, rule.deadline_days, now)
        except ValueError:
            logger.debug("Skipping trip with unparseable end date: %r", trip)
            continue
        if not due:
            continue
        missing = missing_trip_fields(trip, definition.required_fields)
        if missing:
            incomplete.append(f"{_trip_label(trip, index)} ({', '.join(missing)})")

    if not incomplete:
        return None
    return _violation(
        rule,
        "incomplete_trip_documentation",
        f"{len(incomplete)} business trip(s) lack required documentation: {'; '.join(incomplete)}",
        now,
    )


def _dispatch(rule: ComplianceRule, snapshot: FinancialSnapshot, now: datetime) -> Optional[Violation]:
    definition = rule.definition
    if isinstance(definition, ReportSubmissionDefinition):
        return _check_report_submission(rule, snapshot, now)
    if isinstance(definition, RevenueTrackingDefinition):
        return _check_revenue_tracking(rule, definition, snapshot, now)
    if isinstance(definition, TaxComplianceDefinition):
        return _check_tax_compliance(rule, definition, snapshot, now)
    if isinstance(definition, TripDocumentationDefinition):
        return _check_trip_documentation(rule, definition, snapshot, now)
    if isinstance(definition, UnsupportedDefinition):
        logger.debug("Rule %s has unsupported type '%s'; skipping", rule.rule_id, definition.rule_type)
        return None
    raise TypeError(f"Unhandled rule definition {type(definition).__name__}")


def _resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def evaluate_rule(
    rule: ComplianceRule,
    snapshot: FinancialSnapshot,
    *,
    now: Optional[datetime] = None,
) -> Optional[Violation]:
    """Check one rule against a snapshot; failures count as no violation."""
    current = _resolve_now(now)
    try:
        return _dispatch(rule, snapshot, current)
    except Exception:
        logger.exception("Rule check failed for rule %s", rule.rule_id)
        return None


def evaluate_rules(
    rules: Iterable[ComplianceRule],
    snapshot: FinancialSnapshot,
    *,
    now: Optional[datetime] = None,
) -> List[Violation]:
    """Run every rule in order and collect the violations."""
    current = _resolve_now(now)
    violations: List[Violation] = []
    for rule in rules:
        violation = evaluate_rule(rule, snapshot, now=current)
        if violation is not None:
            violations.append(violation)
    return violations


__all__ = [
    "ComplianceRule",
    "DEFAULT_RULES",
    "RuleDefinition",
    "ReportSubmissionDefinition",
    "RevenueTrackingDefinition",
    "TaxComplianceDefinition",
    "TripDocumentationDefinition",
    "UnsupportedDefinition",
    "parse_rule_definition",
    "evaluate_rule",
    "evaluate_rules",
]
