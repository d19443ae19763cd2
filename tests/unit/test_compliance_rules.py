from datetime import datetime, timedelta, timezone

import pytest

from compliance_agent.compliance.rules import (
    DEFAULT_RULES,
    ComplianceRule,
    ReportSubmissionDefinition,
    RevenueTrackingDefinition,
    TaxComplianceDefinition,
    TripDocumentationDefinition,
    UnsupportedDefinition,
    evaluate_rule,
    evaluate_rules,
    parse_rule_definition,
)
from compliance_agent.services.types import FinancialSnapshot, RevenueEntry

NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)


def make_rule(definition, **overrides) -> ComplianceRule:
    values = dict(
        rule_id="r1",
        name="Quarterly Financial Report",
        category="financial",
        severity="high",
        frequency="quarterly",
        deadline_days=30,
        definition=definition,
    )
    values.update(overrides)
    return ComplianceRule(**values)


def revenue(*amounts: float) -> list[RevenueEntry]:
    return [RevenueEntry(amount=amount) for amount in amounts]


def test_missing_submission_when_no_date():
    violation = evaluate_rule(make_rule(ReportSubmissionDefinition()), FinancialSnapshot(), now=NOW)
    assert violation is not None
    assert violation.violation_type == "missing_submission"
    assert violation.confidence == 1.0
    assert violation.severity == "high"
    assert violation.description == "No Quarterly Financial Report found"


def test_overdue_submission_reports_overage():
    snapshot = FinancialSnapshot(last_submission_date=NOW - timedelta(days=40))
    violation = evaluate_rule(make_rule(ReportSubmissionDefinition()), snapshot, now=NOW)
    assert violation.violation_type == "overdue_submission"
    assert "10 days overdue" in violation.description
    assert violation.confidence == 1.0


def test_submission_within_deadline_passes():
    snapshot = FinancialSnapshot(last_submission_date=NOW - timedelta(days=30, hours=23))
    assert evaluate_rule(make_rule(ReportSubmissionDefinition()), snapshot, now=NOW) is None


def test_missing_revenue_data():
    violation = evaluate_rule(make_rule(RevenueTrackingDefinition()), FinancialSnapshot(), now=NOW)
    assert violation.violation_type == "missing_revenue_data"
    assert violation.confidence == 1.0


def test_low_revenue_forces_medium_severity():
    rule = make_rule(RevenueTrackingDefinition(threshold=10000), severity="critical")
    snapshot = FinancialSnapshot(monthly_revenue=revenue(50000, 7000, 8000, 9000))
    violation = evaluate_rule(rule, snapshot, now=NOW)
    assert violation.violation_type == "low_revenue"
    assert violation.severity == "medium"
    assert violation.confidence == 0.85
    assert "8000.00" in violation.description


def test_revenue_above_default_threshold_passes():
    snapshot = FinancialSnapshot(monthly_revenue=revenue(12000, 11000, 10000))
    assert evaluate_rule(make_rule(RevenueTrackingDefinition()), snapshot, now=NOW) is None


def test_tax_compliance_lists_missing_documents():
    rule = make_rule(TaxComplianceDefinition(documents=("tax_return", "audit_report")), severity="critical")
    snapshot = FinancialSnapshot(submitted_documents=["tax_return"])
    violation = evaluate_rule(rule, snapshot, now=NOW)
    assert violation.violation_type == "missing_tax_documents"
    assert violation.severity == "critical"
    assert "audit_report" in violation.description
    assert "tax_return" not in violation.description


def test_tax_compliance_without_required_documents_passes():
    assert evaluate_rule(make_rule(TaxComplianceDefinition()), FinancialSnapshot(), now=NOW) is None


def test_trip_documentation_flags_only_due_trips():
    rule = make_rule(
        TripDocumentationDefinition(required_fields=("purpose", "expenses", "receipts")),
        deadline_days=7,
        severity="medium",
    )
    trips = [
        {"id": "old-trip", "end_date": "2025-06-01", "purpose": "Conference", "expenses": [120]},
        {"id": "recent-trip", "end_date": "2025-06-28", "purpose": "Client visit"},
        {"id": "done-trip", "end_date": "2025-05-01", "purpose": "Audit", "expenses": [1], "receipts": ["r.pdf"]},
        {"id": "no-date", "purpose": ""},
    ]
    violation = evaluate_rule(rule, FinancialSnapshot(business_trips=trips), now=NOW)
    assert violation.violation_type == "incomplete_trip_documentation"
    assert "old-trip (receipts)" in violation.description
    assert "recent-trip" not in violation.description
    assert "done-trip" not in violation.description


def test_unsupported_definition_yields_nothing():
    rule = make_rule(UnsupportedDefinition(rule_type="esg_disclosure"))
    assert evaluate_rule(rule, FinancialSnapshot(), now=NOW) is None


def test_rule_failure_is_contained(caplog):
    broken = FinancialSnapshot(monthly_revenue=["not-an-entry"])
    rules = [
        make_rule(RevenueTrackingDefinition(), rule_id="broken"),
        make_rule(ReportSubmissionDefinition(), rule_id="report"),
    ]
    violations = evaluate_rules(rules, broken, now=NOW)
    assert [violation.rule_id for violation in violations] == ["report"]
    assert "Rule check failed for rule broken" in caplog.text


def test_malformed_snapshot_fields_fail_only_their_rules(caplog):
    snapshot = FinancialSnapshot.from_dict(
        {"lastSubmissionDate": "not a date", "monthlyRevenue": [100, 100, 100]}
    )
    rules = [
        make_rule(ReportSubmissionDefinition(), rule_id="report"),
        make_rule(RevenueTrackingDefinition(), rule_id="revenue"),
    ]
    violations = evaluate_rules(rules, snapshot, now=NOW)
    assert [violation.rule_id for violation in violations] == ["revenue"]
    assert "Rule check failed for rule report" in caplog.text


def test_revenue_entry_without_amount_leaves_other_rules_running():
    snapshot = FinancialSnapshot.from_dict({"monthlyRevenue": [{"month": "2025-05"}]})
    rules = [
        make_rule(RevenueTrackingDefinition(), rule_id="revenue"),
        make_rule(ReportSubmissionDefinition(), rule_id="report"),
    ]
    violations = evaluate_rules(rules, snapshot, now=NOW)
    assert [(v.rule_id, v.violation_type) for v in violations] == [("report", "missing_submission")]


def test_naive_submission_datetime_is_treated_as_utc():
    snapshot = FinancialSnapshot(last_submission_date=datetime(2025, 1, 1))
    violation = evaluate_rule(make_rule(ReportSubmissionDefinition()), snapshot, now=NOW)
    assert violation is not None
    assert violation.violation_type == "overdue_submission"


def test_naive_trip_end_date_is_treated_as_utc():
    rule = make_rule(TripDocumentationDefinition(required_fields=("receipts",)), deadline_days=7)
    snapshot = FinancialSnapshot(business_trips=[{"id": "t1", "end_date": datetime(2025, 6, 1)}])
    violation = evaluate_rule(rule, snapshot, now=NOW)
    assert violation is not None
    assert "t1 (receipts)" in violation.description


def test_snapshot_keeps_raw_values_json_safe():
    snapshot = FinancialSnapshot(
        last_submission_date=datetime(2025, 5, 1, tzinfo=timezone.utc),
        monthly_revenue=[RevenueEntry(amount=5.0, month="2025-04"), 7, {"amount": 9}],
    )
    payload = snapshot.to_dict()
    assert payload["last_submission_date"] == "2025-05-01T00:00:00+00:00"
    assert payload["monthly_revenue"] == [{"month": "2025-04", "amount": 5.0}, 7, {"amount": 9}]
    assert [entry.amount for entry in snapshot.revenue_entries()] == [5.0, 7.0, 9.0]


def test_evaluate_rules_preserves_input_order():
    rules = [
        make_rule(RevenueTrackingDefinition(), rule_id="revenue"),
        make_rule(ReportSubmissionDefinition(), rule_id="report"),
        make_rule(TaxComplianceDefinition(documents=("tax_return",)), rule_id="tax"),
    ]
    violations = evaluate_rules(rules, FinancialSnapshot(), now=NOW)
    assert [violation.rule_id for violation in violations] == ["revenue", "report", "tax"]


def test_parse_rule_definition_variants():
    assert parse_rule_definition({"type": "report_submission", "format": "quarterly_pack"}) == ReportSubmissionDefinition(
        format="quarterly_pack"
    )
    assert parse_rule_definition({"type": "revenue_tracking"}).effective_threshold == 10000
    assert parse_rule_definition({"type": "revenue_tracking", "threshold": 0}).effective_threshold == 10000
    assert parse_rule_definition({"type": "revenue_tracking", "threshold": 500}).effective_threshold == 500
    unknown = parse_rule_definition({"type": "esg_disclosure", "level": 2})
    assert isinstance(unknown, UnsupportedDefinition)
    assert unknown.params == {"level": 2}


def test_rule_from_row_merges_custom_parameters():
    row = {
        "id": "abc",
        "name": "Monthly Revenue Tracking",
        "category": "financial",
        "severity": "MEDIUM",
        "frequency": "monthly",
        "deadline_days": 15,
        "rule_definition": {"type": "revenue_tracking", "threshold": 10000},
    }
    rule = ComplianceRule.from_dict(row, custom_parameters={"threshold": 2500})
    assert rule.rule_id == "abc"
    assert rule.severity == "medium"
    assert rule.rule_type == "revenue_tracking"
    assert rule.definition.effective_threshold == 2500
    assert rule.to_dict()["rule_definition"] == {"type": "revenue_tracking", "threshold": 2500.0}


def test_rule_from_row_rejects_unknown_severity():
    with pytest.raises(ValueError):
        ComplianceRule.from_dict({"id": "x", "severity": "urgent", "rule_definition": {"type": "tax_compliance"}})


def test_default_rules_cover_every_rule_type():
    assert {rule.rule_type for rule in DEFAULT_RULES} == {
        "report_submission",
        "revenue_tracking",
        "tax_compliance",
        "trip_documentation",
    }
