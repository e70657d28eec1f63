"""Answer patient questions about a report."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Tuple

from ...services.llm_service import llm_service
from ...utils.config import ModelConfig
from ...utils.logging import get_logger
from ..models.assistant import AIResponse, ConversationTurn, Reference
from ..models.report import ReportType

logger = get_logger(__name__)

REFERENCES_SECTION = re.compile(r"References:(.*?)(?=Follow-up Questions:|$)", re.S)
FOLLOW_UP_SECTION = re.compile(r"Follow-up Questions:(.*?)$", re.S)
LIST_MARKER = re.compile(r"^[\d\-\*\.\s]+")


def parse_references(text: str) -> Tuple[List[Reference], str]:
    """Split ``location: text`` lines out of a References section."""

    match = REFERENCES_SECTION.search(text)
    if not match:
        return [], text

    references = []
    for line in match.group(1).strip().splitlines():
        location, sep, body = line.partition(":")
        if sep and line.strip():
            references.append(Reference(location=location.strip(), text=body.strip()))
    return references, REFERENCES_SECTION.sub("", text, count=1)


def parse_follow_ups(text: str) -> Tuple[List[str], str]:
    match = FOLLOW_UP_SECTION.search(text)
    if not match:
        return [], text

    questions = []
    for line in match.group(1).strip().splitlines():
        cleaned = LIST_MARKER.sub("", line).strip()
        if cleaned:
            questions.append(cleaned)
    return questions, FOLLOW_UP_SECTION.sub("", text, count=1)


class QuestionAnswerer:
    def __init__(self, llm_client=llm_service):
        self._llm_client = llm_client

    async def answer_question(
        self,
        question: str,
        report: Dict[str, Any],
        history: Optional[List[ConversationTurn]] = None,
        patient_context: Optional[Dict[str, Any]] = None,
        detailed: bool = False,
        include_references: bool = False,
        user_id: Optional[str] = None,
    ) -> AIResponse:
        """Ask the LLM and split its reply into answer, references and follow-ups.

        LLM failures are not caught here.
        """

        prompt = self._build_prompt(
            question, report, history or [], patient_context, detailed, include_references
        )
        response = await self._llm_client.generate_text(prompt, user_id=user_id)
        text = response.get("content", "")

        references: List[Reference] = []
        if include_references:
            references, text = parse_references(text)
        follow_ups, text = parse_follow_ups(text)

        logger.info(
            "Answered report question",
            extra={
                "extra_fields": {
                    "references": len(references),
                    "follow_ups": len(follow_ups),
                    "provider": response.get("provider"),
                }
            },
        )
        return AIResponse(
            answer=text.strip(),
            references=references,
            suggested_follow_ups=follow_ups,
            confidence=0.95,
        )

    def _build_prompt(
        self,
        question: str,
        report: Dict[str, Any],
        history: List[ConversationTurn],
        patient_context: Optional[Dict[str, Any]],
        detailed: bool,
        include_references: bool,
    ) -> str:
        report_type = ReportType.from_text(report.get("reportType") or report.get("type"))
        prompt = (
            "You are a medical AI assistant helping to interpret medical reports. "
            f"Answer the following question about a {report_type.label} report:\n\n"
            f"Question: {question}\n\n"
            "Report Information:\n"
        )

        for key, label in (
            ("parameters", "Test Parameters"),
            ("testResults", "Test Results"),
            ("results", "Standardized Data"),
        ):
            data = report.get(key)
            if isinstance(data, list) and data:
                prompt += f"{label}: {json.dumps(data, indent=2, default=str)}\n\n"
                break
        else:
            text = report.get("text") or ""
            prompt += f"Raw Report Text: {text[: ModelConfig.RAW_TEXT_LIMIT]}\n\n"

        if history:
            prompt += "Conversation History:\n"
            for index, turn in enumerate(history, start=1):
                prompt += f"Q{index}: {turn.question}\nA{index}: {turn.answer}\n"
            prompt += "\n"

        if patient_context:
            prompt += f"Patient Context: {json.dumps(patient_context, indent=2, default=str)}\n\n"

        prompt += "\nProvide a clear, accurate, and helpful answer to the question. "
        if detailed:
            prompt += "Include detailed explanations of medical terms and concepts. "
        else:
            prompt += "Explain medical terms in simple language that a patient can understand. "

        if include_references:
            prompt += (
                '\n\nAfter your answer, include a section titled "References" that lists '
                "specific parts of the report that support your answer, with their "
                "locations in the report, one per line as location: text."
            )

        prompt += (
            '\n\nFinally, under a heading "Follow-up Questions:", suggest 2-3 '
            "follow-up questions the patient might want to ask."
        )
        return prompt


question_answerer = QuestionAnswerer()
