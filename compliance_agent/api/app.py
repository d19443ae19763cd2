"""
FastAPI application exposing compliance analysis endpoints.

The service is stateless apart from the JSONL assessment log: callers post a
company snapshot together with the company's active rules and receive the
analysis result, which is also recorded for later retrieval.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

load_dotenv()

logger = logging.getLogger("compliance_agent.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

from compliance_agent import get_version
from compliance_agent.compliance.deadlines import upcoming_deadlines
from compliance_agent.compliance.rules import DEFAULT_RULES
from compliance_agent.config.settings import resolve_advisor_config, resolve_assessment_log_path
from compliance_agent.services.assistant import ComplianceAssistant
from compliance_agent.services.orchestrator import (
    AnalysisError,
    ComplianceOrchestrator,
    coerce_rules,
    coerce_snapshot,
)
from compliance_agent.storage.audit import JsonlAssessmentLogger


class AnalysisRequest(BaseModel):
    snapshot: Dict[str, Any] = Field(default_factory=dict)
    rules: Optional[List[Dict[str, Any]]] = None


class DeadlineRequest(AnalysisRequest):
    within_days: int = Field(7, ge=0, le=365)


class AssistantQuery(BaseModel):
    query: str = Field(min_length=1, max_length=2000)
    context: Dict[str, Any] = Field(default_factory=dict)


def _rules_or_defaults(payload: AnalysisRequest) -> List[Any]:
    if payload.rules is None:
        return list(DEFAULT_RULES)
    return payload.rules


def create_app(
    orchestrator: ComplianceOrchestrator | None = None,
    assessment_log: JsonlAssessmentLogger | None = None,
    assistant: ComplianceAssistant | None = None,
) -> FastAPI:
    """
    Build a FastAPI app exposing analysis, history and deadline routes.

    Args:
        orchestrator: Optional pre-configured orchestrator (useful for tests).
        assessment_log: Optional assessment logger (useful for tests).
        assistant: Optional question-answering assistant (useful for tests).

    Returns:
        FastAPI instance with routes registered.
    """

    orchestrator_instance = orchestrator or ComplianceOrchestrator.from_env()
    log_instance = assessment_log or JsonlAssessmentLogger(resolve_assessment_log_path())
    assistant_instance = assistant or ComplianceAssistant(resolve_advisor_config())

    app = FastAPI(title="Compliance Agent API", version=get_version())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("COMPLIANCE_CORS_ORIGINS", "*").split(","),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_orchestrator() -> ComplianceOrchestrator:
        return orchestrator_instance

    def get_assessment_log() -> JsonlAssessmentLogger:
        return log_instance

    def get_assistant() -> ComplianceAssistant:
        return assistant_instance

    @app.get("/")
    def root(orchestrator_dep: ComplianceOrchestrator = Depends(get_orchestrator)) -> dict:
        """Health endpoint for quick status checks."""

        return {
            "status": "ok",
            "version": get_version(),
            "advisor_configured": orchestrator_dep.advisor.configured,
        }

    @app.get("/rules/defaults")
    def default_rules() -> List[dict]:
        return [rule.to_dict() for rule in DEFAULT_RULES]

    @app.post("/companies/{company_id}/analysis")
    def analyze_company(
        company_id: str,
        payload: AnalysisRequest,
        orchestrator_dep: ComplianceOrchestrator = Depends(get_orchestrator),
        log_dep: JsonlAssessmentLogger = Depends(get_assessment_log),
    ) -> dict:
        snapshot = dict(payload.snapshot)
        snapshot.setdefault("company_id", company_id)
        try:
            result = orchestrator_dep.analyze(snapshot, _rules_or_defaults(payload))
        except AnalysisError as exc:
            logger.error("Analysis failed for company %s: %s", company_id, exc)
            raise HTTPException(status_code=500, detail="Compliance analysis failed") from exc

        log_dep.log(result, company_id=company_id)
        return result.to_dict()

    @app.get("/companies/{company_id}/assessments")
    def list_assessments(
        company_id: str,
        limit: int = Query(20, ge=1, le=200),
        log_dep: JsonlAssessmentLogger = Depends(get_assessment_log),
    ) -> List[dict]:
        records = log_dep.latest(company_id, limit=limit)
        if not records:
            raise HTTPException(status_code=404, detail=f"No assessments for company '{company_id}'")
        return records

    @app.post("/companies/{company_id}/deadlines")
    def list_deadlines(company_id: str, payload: DeadlineRequest) -> List[dict]:
        try:
            snapshot = coerce_snapshot(payload.snapshot)
            rules = coerce_rules(_rules_or_defaults(payload))
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail=f"Invalid snapshot or rules: {exc}") from exc

        reminders = upcoming_deadlines(snapshot, rules, within_days=payload.within_days)
        return [reminder.to_dict() for reminder in reminders]

    @app.post("/assistant/query")
    def assistant_query(
        payload: AssistantQuery,
        assistant_dep: ComplianceAssistant = Depends(get_assistant),
    ) -> dict:
        return assistant_dep.answer(payload.query, payload.context).to_dict()

    return app


__all__ = ["create_app", "AnalysisRequest", "AssistantQuery", "DeadlineRequest"]
