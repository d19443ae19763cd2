"""
Upcoming compliance deadlines used for reminder notifications.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from compliance_agent.compliance.rules import (
    ComplianceRule,
    ReportSubmissionDefinition,
    TripDocumentationDefinition,
    missing_trip_fields,
)
from compliance_agent.services.types import FinancialSnapshot, parse_datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeadlineReminder:
    """A rule deadline falling inside the reminder window."""

    rule_id: str
    rule_name: str
    due_date: datetime
    days_remaining: int
    subject: Optional[str] = None

    @property
    def overdue(self) -> bool:
        return self.days_remaining < 0

    @property
    def message(self) -> str:
        label = f"{self.rule_name} ({self.subject})" if self.subject else self.rule_name
        due = self.due_date.date().isoformat()
        if self.overdue:
            return f"Your {label} was due on {due} and is {-self.days_remaining} days overdue."
        return f"Your {label} is due on {due}. Please ensure timely submission."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "subject": self.subject,
            "due_date": self.due_date.date().isoformat(),
            "days_remaining": self.days_remaining,
            "overdue": self.overdue,
            "message": self.message,
        }


def _reminder(rule: ComplianceRule, due: datetime, now: datetime, subject: Optional[str] = None) -> DeadlineReminder:
    days_remaining = (due.date() - now.date()).days
    return DeadlineReminder(
        rule_id=rule.rule_id,
        rule_name=rule.name,
        due_date=due,
        days_remaining=days_remaining,
        subject=subject,
    )


def _trip_reminders(
    rule: ComplianceRule,
    definition: TripDocumentationDefinition,
    snapshot: FinancialSnapshot,
    now: datetime,
) -> List[DeadlineReminder]:
    reminders: List[DeadlineReminder] = []
    for trip in snapshot.business_trips:
        try:
            end_date = parse_datetime(trip.get("end_date") or trip.get("endDate"))
        except ValueError:
            continue
        if end_date is None or not missing_trip_fields(trip, definition.required_fields):
            continue
        subject = str(trip.get("trip_title") or trip.get("tripTitle") or trip.get("id") or "business trip")
        reminders.append(_reminder(rule, end_date + timedelta(days=rule.deadline_days), now, subject))
    return reminders


def upcoming_deadlines(
    snapshot: FinancialSnapshot,
    rules: Iterable[ComplianceRule],
    *,
    now: Optional[datetime] = None,
    within_days: int = 7,
) -> List[DeadlineReminder]:
    """
    Collect reminders for deadlines due within `within_days`.

    Overdue deadlines are included with a negative `days_remaining`.
    """
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    candidates: List[DeadlineReminder] = []
    for rule in rules:
        if not rule.is_active:
            continue
        definition = rule.definition
        if isinstance(definition, ReportSubmissionDefinition):
            try:
                last_submission = snapshot.submission_date()
            except ValueError:
                logger.warning("Skipping reminder for rule %s: unparseable submission date", rule.rule_id)
                continue
            if last_submission is not None:
                due = last_submission + timedelta(days=rule.deadline_days)
                candidates.append(_reminder(rule, due, current))
        elif isinstance(definition, TripDocumentationDefinition):
            candidates.extend(_trip_reminders(rule, definition, snapshot, current))

    reminders = [item for item in candidates if item.days_remaining <= within_days]
    reminders.sort(key=lambda item: item.due_date)
    logger.debug("Found %d reminder(s) within %d days", len(reminders), within_days)
    return reminders


__all__ = ["DeadlineReminder", "upcoming_deadlines"]
