#!/usr/bin/env python3
"""
Run a compliance analysis for one company snapshot stored as JSON.

Usage:
    python -m compliance_agent.scripts.analyze_snapshot --snapshot snapshot.json \
        [--rules rules.json] [--company-id ACME] [--json_out result.json]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from compliance_agent.compliance.deadlines import upcoming_deadlines
from compliance_agent.compliance.rules import DEFAULT_RULES
from compliance_agent.services.orchestrator import (
    AnalysisError,
    ComplianceOrchestrator,
    coerce_rules,
    coerce_snapshot,
)
from compliance_agent.storage.audit import JsonlAssessmentLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze a company snapshot against compliance rules")
    parser.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON object")
    parser.add_argument("--rules", type=Path, default=None, help="JSON array of rules (default: seed rules)")
    parser.add_argument("--company-id", default=None, help="Override the snapshot company id")
    parser.add_argument("--json_out", type=Path, default=None, help="Write the analysis result here")
    parser.add_argument("--assessment_log", type=Path, default=None, help="Append the result to this JSONL log")
    parser.add_argument("--deadline-window", type=int, default=7, help="Days ahead to list reminders for")
    return parser


def print_step(message: str) -> None:
    print(f"[analyze] {message}")


def _load_json(parser: argparse.ArgumentParser, path: Path, expected: type, label: str) -> Any:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        parser.error(f"cannot read {label} file {path}: {exc}")
    if not isinstance(data, expected):
        kind = "object" if expected is dict else "array"
        parser.error(f"{label} file {path} must hold a JSON {kind}")
    return data


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    snapshot_raw = _load_json(parser, args.snapshot, dict, "snapshot")
    if args.company_id:
        snapshot_raw["company_id"] = args.company_id
    rules_raw = _load_json(parser, args.rules, list, "rules") if args.rules else list(DEFAULT_RULES)

    orchestrator = ComplianceOrchestrator.from_env()
    if not orchestrator.advisor.configured:
        print_step("LLM advisor not configured; scoring rule violations only")

    try:
        result = orchestrator.analyze(snapshot_raw, rules_raw)
    except AnalysisError as exc:
        print_step(f"Analysis failed: {exc}")
        return 1

    print_step(f"Risk score: {result.risk_score} ({result.risk_level})")
    for violation in result.violations:
        print_step(f"  [{violation.severity}] {violation.violation_type}: {violation.description}")
    for anomaly in result.anomalies:
        print_step(f"  anomaly [{anomaly.severity}] {anomaly.type}: {anomaly.description}")

    reminders = upcoming_deadlines(
        coerce_snapshot(snapshot_raw),
        coerce_rules(rules_raw),
        within_days=args.deadline_window,
    )
    for reminder in reminders:
        print_step(f"  reminder: {reminder.message}")

    if args.assessment_log:
        JsonlAssessmentLogger(args.assessment_log).log(result)
        print_step(f"Assessment appended to {args.assessment_log}")

    if args.json_out:
        args.json_out.parent.mkdir(parents=True, exist_ok=True)
        args.json_out.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        print_step(f"Result written to {args.json_out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
