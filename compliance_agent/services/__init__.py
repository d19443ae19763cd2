"""
Service layer modules responsible for orchestrating compliance analysis.

This package exposes the primary classes via lazy imports to avoid circular
dependencies (e.g., compliance rules importing
`compliance_agent.services.types`).
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict

__all__ = [
    "ComplianceOrchestrator",
    "AnalysisError",
    "AnomalyAdvisor",
    "ComplianceAssistant",
    "AssistantReply",
    "LLMClient",
    "LLMResponse",
    "FinancialSnapshot",
    "RevenueEntry",
    "Violation",
    "Anomaly",
    "Recommendation",
    "AnalysisResult",
]

_MODULE_ATTRS: Dict[str, str] = {
    "ComplianceOrchestrator": "compliance_agent.services.orchestrator",
    "AnalysisError": "compliance_agent.services.orchestrator",
    "AnomalyAdvisor": "compliance_agent.services.advisor",
    "ComplianceAssistant": "compliance_agent.services.assistant",
    "AssistantReply": "compliance_agent.services.assistant",
    "LLMClient": "compliance_agent.services.models",
    "LLMResponse": "compliance_agent.services.models",
    "FinancialSnapshot": "compliance_agent.services.types",
    "RevenueEntry": "compliance_agent.services.types",
    "Violation": "compliance_agent.services.types",
    "Anomaly": "compliance_agent.services.types",
    "Recommendation": "compliance_agent.services.types",
    "AnalysisResult": "compliance_agent.services.types",
}


def __getattr__(name: str) -> Any:
    module_path = _MODULE_ATTRS.get(name)
    if not module_path:
        raise AttributeError(f"module 'compliance_agent.services' has no attribute '{name}'")  # pragma: no cover
    module = import_module(module_path)
    return getattr(module, name)


def __dir__() -> list[str]:  # pragma: no cover - convenience helper
    return sorted(__all__)
