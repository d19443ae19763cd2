"""
Question answering for IT Park residents.

Questions are matched against a small built-in knowledge base first; anything
it does not cover goes to the chat-completion model. Like the advisor, the
assistant never raises: failures produce an apology reply with source "error".
"""

from __future__ import annotations

import json
import logging
import textwrap
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Dict, List, Mapping, Optional, Tuple

from compliance_agent.config.settings import AdvisorConfig
from compliance_agent.services.models import LLMClient

logger = logging.getLogger(__name__)

ASSISTANT_SYSTEM_PROMPT = (
    "You are a compliance assistant for IT Park resident companies. "
    "Answer questions about reporting deadlines, required documents, business trips and taxes "
    "concisely. If you are unsure, say so and suggest contacting IT Park support."
)

KNOWLEDGE_BASE_CONFIDENCE = 0.9
AI_CONFIDENCE = 0.7
SIMILARITY_THRESHOLD = 0.7
MAX_SUGGESTIONS = 3

ERROR_ANSWER = (
    "I'm sorry, I'm having trouble processing your request right now. "
    "Please try again later or contact support."
)
ERROR_SUGGESTIONS: Tuple[str, ...] = (
    "Contact support",
    "Try rephrasing your question",
    "Check the help documentation",
)


@dataclass(frozen=True, slots=True)
class ReportingGuide:
    deadline: str
    required_documents: Tuple[str, ...]
    submission_method: str

    def describe(self, label: str) -> str:
        return (
            f"{label} reports are due {self.deadline}. "
            f"Required documents: {', '.join(self.required_documents)}. {self.submission_method}."
        )


QUARTERLY_REPORTING = ReportingGuide(
    deadline="30 days after quarter end",
    required_documents=("Trial Balance", "General Ledger", "Balance Sheet", "Income Statement"),
    submission_method="Electronic submission via IT Park portal",
)
ANNUAL_REPORTING = ReportingGuide(
    deadline="45 days after year end",
    required_documents=("Annual Financial Statements", "Tax Returns", "Audit Report"),
    submission_method="Electronic submission with e-signature",
)

BUSINESS_TRIP_ANSWER = (
    "Business trip requirements: All business trips must be documented with receipts and purpose. "
    "Manager approval required for trips over $1000. Reports due 7 days after trip completion."
)
TAX_ANSWER = (
    "Tax compliance requirements: Monthly VAT returns due by 20th of following month. "
    "Annual income tax return due by March 31st. "
    "Monthly social security contributions due by 25th."
)

COMMON_QUESTIONS: Dict[str, str] = {
    "when to submit quarterly report": (
        "Quarterly reports must be submitted within 30 days after the end of each quarter "
        "(Q1: April 30, Q2: July 31, Q3: October 31, Q4: January 31)."
    ),
    "business trip documentation": (
        "Business trips require: 1) Pre-approval for trips over $1000, 2) Receipts for all expenses, "
        "3) Trip report within 7 days of return, 4) Electronic signature on expense report."
    ),
    "compliance deadlines": (
        "Key deadlines: Quarterly reports (30 days), Annual reports (45 days), "
        "VAT returns (20th of month), Business trip reports (7 days)."
    ),
    "e-signature requirements": (
        "E-signatures are required for: Annual reports, Business trip expense reports, "
        "Tax submissions, and any document over $5000 value."
    ),
}

TOPIC_SUGGESTIONS: Dict[str, Tuple[str, ...]] = {
    "quarterly": ("Check your upcoming deadlines", "Prepare the trial balance and general ledger"),
    "annual": ("Schedule your annual audit", "Make sure your e-signature is set up"),
    "trip": ("Upload receipts for recent business trips", "Request approval for trips over $1000"),
    "tax": ("Review this month's VAT return", "Confirm social contribution payments"),
}
DEFAULT_SUGGESTIONS: Tuple[str, ...] = (
    "Check your compliance deadlines",
    "Run a compliance analysis",
    "Ask about business trip documentation",
)


@dataclass(frozen=True, slots=True)
class AssistantReply:
    """Answer returned to a user question."""

    answer: str
    source: str
    confidence: float
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "source": self.source,
            "confidence": self.confidence,
            "suggestions": list(self.suggestions),
        }


def similarity(left: str, right: str) -> float:
    return SequenceMatcher(None, left, right).ratio()


def _topics(query: str) -> List[str]:
    topics: List[str] = []
    if "quarterly" in query and "report" in query:
        topics.append("quarterly")
    if "annual" in query and "report" in query:
        topics.append("annual")
    if "business trip" in query or "travel" in query:
        topics.append("trip")
    if "tax" in query or "vat" in query:
        topics.append("tax")
    return topics


_TOPIC_ANSWERS = {
    "quarterly": QUARTERLY_REPORTING.describe("Quarterly"),
    "annual": ANNUAL_REPORTING.describe("Annual"),
    "trip": BUSINESS_TRIP_ANSWER,
    "tax": TAX_ANSWER,
}


def search_knowledge_base(query: str) -> Optional[str]:
    """Return a canned answer for `query`, or None when nothing matches."""
    normalized = " ".join(query.lower().split())
    for question, answer in COMMON_QUESTIONS.items():
        if question in normalized or similarity(normalized, question) > SIMILARITY_THRESHOLD:
            return answer

    topics = _topics(normalized)
    if topics:
        return _TOPIC_ANSWERS[topics[0]]
    return None


def suggestions_for(query: str) -> List[str]:
    suggestions: List[str] = []
    for topic in _topics(" ".join(query.lower().split())):
        for suggestion in TOPIC_SUGGESTIONS[topic]:
            if suggestion not in suggestions:
                suggestions.append(suggestion)
    return (suggestions or list(DEFAULT_SUGGESTIONS))[:MAX_SUGGESTIONS]


def _error_reply() -> AssistantReply:
    return AssistantReply(answer=ERROR_ANSWER, source="error", confidence=0.0, suggestions=list(ERROR_SUGGESTIONS))


class ComplianceAssistant:
    """Answers compliance questions from the knowledge base, then the model."""

    def __init__(self, config: AdvisorConfig, llm_client: Optional[LLMClient] = None):
        self.config = config
        self.client = llm_client
        if self.client is None and config.configured:
            self.client = LLMClient(
                endpoint=config.endpoint,
                auth_token=config.api_key,
                api_mode=config.api_mode,
            )

    @property
    def configured(self) -> bool:
        return self.config.configured and self.client is not None

    def answer(self, query: str, context: Optional[Mapping[str, Any]] = None) -> AssistantReply:
        logger.info("Processing assistant query: %s", query)
        try:
            known = search_knowledge_base(query)
            if known is not None:
                return AssistantReply(
                    answer=known,
                    source="knowledge_base",
                    confidence=KNOWLEDGE_BASE_CONFIDENCE,
                    suggestions=suggestions_for(query),
                )
            text = self._ask_model(query, context or {})
        except Exception:
            logger.exception("Assistant query processing failed")
            return _error_reply()

        if not text:
            return _error_reply()
        return AssistantReply(
            answer=text,
            source="ai",
            confidence=AI_CONFIDENCE,
            suggestions=suggestions_for(query),
        )

    def _ask_model(self, query: str, context: Mapping[str, Any]) -> str:
        if not self.configured:
            logger.warning("LLM API key not configured, cannot answer assistant query")
            return ""

        prompt = textwrap.dedent(
            """
            Question: {query}

            User context:
            {context}

            Answer in at most a few sentences.
            """
        ).strip().format(query=query, context=json.dumps(dict(context), indent=2, default=str))

        response = self.client.chat(
            self.config.model,
            [
                {"role": "system", "content": ASSISTANT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.config.assistant_temperature,
            max_tokens=self.config.assistant_max_tokens,
            timeout=self.config.timeout,
        )
        text = response.text if isinstance(response.text, str) else ""
        return text.strip()


__all__ = [
    "AssistantReply",
    "ComplianceAssistant",
    "search_knowledge_base",
    "suggestions_for",
]
