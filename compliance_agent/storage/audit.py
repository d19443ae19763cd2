"""
Append-only JSONL store of risk assessments.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from compliance_agent.services.types import AnalysisResult

logger = logging.getLogger(__name__)

ASSESSMENT_TYPE = "compliance_analysis"


@dataclass(slots=True)
class AssessmentRecord:
    """Structured log entry mirroring a `risk_assessments` row."""

    company_id: Optional[str]
    assessment_type: str
    risk_score: int
    risk_level: str
    risk_factors: Dict[str, List[Dict[str, Any]]]
    recommendations: List[Dict[str, Any]]
    assessed_at: str
    valid_until: Optional[str] = None


class JsonlAssessmentLogger:
    """Append-only JSONL logger for compliance analyses."""

    def __init__(self, path: Path, validity_days: Optional[int] = 30):
        self.path = path
        self.validity_days = validity_days
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, result: AnalysisResult, *, company_id: Optional[str] = None) -> AssessmentRecord:
        assessed_at = result.analyzed_at.astimezone(timezone.utc)
        valid_until = None
        if self.validity_days:
            valid_until = (assessed_at + timedelta(days=self.validity_days)).isoformat()

        record = AssessmentRecord(
            company_id=company_id or result.company_id,
            assessment_type=ASSESSMENT_TYPE,
            risk_score=result.risk_score,
            risk_level=result.risk_level,
            risk_factors={
                "violations": [violation.to_dict() for violation in result.violations],
                "anomalies": [anomaly.to_dict() for anomaly in result.anomalies],
            },
            recommendations=[rec.to_dict() for rec in result.recommendations],
            assessed_at=assessed_at.isoformat(),
            valid_until=valid_until,
        )
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(record), ensure_ascii=False) + "\n")
        return record

    def iter_records(self) -> Iterator[Dict[str, Any]]:
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping malformed assessment line in %s", self.path)

    def latest(self, company_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent assessments for a company, newest first."""
        records = [record for record in self.iter_records() if record.get("company_id") == company_id]
        records.sort(key=lambda record: _parse_assessed_at(record.get("assessed_at")), reverse=True)
        return records[:limit]


def _parse_assessed_at(value: Optional[str]) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["AssessmentRecord", "JsonlAssessmentLogger"]
