"""
Persistence helpers for analysis outcomes.
"""

from .audit import AssessmentRecord, JsonlAssessmentLogger

__all__ = ["AssessmentRecord", "JsonlAssessmentLogger"]
