"""LLM analysis of a standardized report with a deterministic fallback."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ...services.llm_service import llm_service
from ...utils.config import ModelConfig
from ...utils.logging import get_logger
from ..models.report import ReportAnalysis, ReportType
from .recommendation_engine import RecommendationEngine, recommendation_engine

logger = get_logger(__name__)

ANALYSIS_INSTRUCTIONS = (
    "Provide a comprehensive analysis including:\n"
    "1. A summary of the report\n"
    "2. Key findings (both normal and abnormal)\n"
    "3. Recommendations based on the findings\n"
    "4. Any possible conditions suggested by the results\n"
    "5. Whether follow-up is recommended and in what timeframe\n\n"
)

ANALYSIS_SCHEMA = (
    'Format the response as JSON with the following structure: {"summary": "...", '
    '"findings": ["...", "..."], "recommendations": ["...", "..."], '
    '"possibleConditions": [{"name": "...", "probability": X.X, "description": "..."}], '
    '"followUpRecommended": true/false, "followUpTimeframe": "...", "aiConfidenceScore": X.X}'
)


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def repair_json(raw: str) -> Dict[str, Any]:
    """Parse JSON that an LLM produced with common syntax slips.

    Single quotes become double quotes, trailing commas are dropped and
    bare keys are quoted. Raises ``json.JSONDecodeError`` when it still
    does not parse.
    """

    cleaned = raw.replace("'", '"')
    cleaned = re.sub(r",\s*}", "}", cleaned)
    cleaned = re.sub(r",\s*]", "]", cleaned)
    cleaned = re.sub(r"([{,])\s*(\w+)\s*:", r'\1"\2":', cleaned)
    return json.loads(cleaned)


def is_valid_analysis(result: Any) -> bool:
    return (
        isinstance(result, dict)
        and isinstance(result.get("summary"), str)
        and isinstance(result.get("findings"), list)
        and isinstance(result.get("recommendations"), list)
    )


class ReportAnalyzer:
    """Ask the LLM for a structured analysis and post-process it."""

    def __init__(
        self,
        llm_client=llm_service,
        recommendations: RecommendationEngine = recommendation_engine,
    ):
        self._llm_client = llm_client
        self._recommendations = recommendations

    async def analyze_report(
        self,
        report_data: Optional[Dict[str, Any]],
        report_type: ReportType,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Return a ReportAnalysis-shaped dict for the report.

        LLM errors propagate so the caller can mark the report; an answer
        that cannot be parsed into the expected shape yields the fallback.
        """

        if not report_data:
            logger.warning("No report data provided for analysis")
            return self.fallback_analysis(report_type)

        prompt = self._build_prompt(report_data, report_type)
        response = await self._llm_client.generate_text(prompt, user_id=user_id)

        analysis = self._parse_response(response.get("content", ""))
        if not is_valid_analysis(analysis):
            logger.warning("Invalid analysis structure from LLM, using fallback")
            return self.fallback_analysis(report_type, report_data)

        analysis["reportType"] = report_type.value
        analysis["personalizedRecommendations"] = self._personalized(report_data, report_type)
        try:
            return ReportAnalysis.model_validate(analysis).to_wire()
        except ValidationError as exc:
            logger.warning("LLM analysis failed validation, using fallback: %s", exc)
            return self.fallback_analysis(report_type, report_data)

    def _build_prompt(self, report_data: Dict[str, Any], report_type: ReportType) -> str:
        prompt = f"Analyze the following medical {report_type.label} report:\n\n"

        if _non_empty_list(report_data.get("parameters")):
            prompt += f"Standardized Data: {json.dumps(report_data['parameters'], indent=2, default=str)}\n\n"
        elif _non_empty_list(report_data.get("results")):
            prompt += f"Test Results: {json.dumps(report_data['results'], indent=2, default=str)}\n\n"
        else:
            text = report_data.get("text") or ""
            prompt += f"Raw Report Text: {text[: ModelConfig.RAW_TEXT_LIMIT]}\n\n"

        return prompt + ANALYSIS_INSTRUCTIONS + ANALYSIS_SCHEMA

    def _parse_response(self, content: str) -> Optional[Dict[str, Any]]:
        json_start = content.find("{")
        json_end = content.rfind("}")
        if json_start == -1 or json_end == -1:
            logger.error("LLM analysis missing JSON body")
            return None

        body = content[json_start : json_end + 1]
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            logger.warning("Failed to decode analysis JSON, attempting repair: %s", exc)

        try:
            return repair_json(body)
        except json.JSONDecodeError as exc:
            logger.error("Analysis JSON repair failed: %s", exc)
            return None

    def _personalized(self, report_data: Dict[str, Any], report_type: ReportType) -> Dict[str, Any]:
        return self._recommendations.personalized({**report_data, "type": report_type.value})

    def fallback_analysis(
        self, report_type: ReportType, report_data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        analysis: Dict[str, Any] = {
            "summary": f"Analysis of {report_type.label} report completed.",
            "findings": [
                f"Report type: {report_type.value}",
                "Analysis performed with limited AI capabilities",
            ],
            "recommendations": [
                "Please consult with your healthcare provider for a complete interpretation of these results",
                "Consider scheduling a follow-up appointment to discuss these findings",
            ],
            "possibleConditions": [],
            "followUpRecommended": True,
            "followUpTimeframe": "As advised by your healthcare provider",
            "aiConfidenceScore": 0.7,
            "reportType": report_type.value,
        }

        if report_data:
            for key in ("parameters", "results"):
                if _non_empty_list(report_data.get(key)):
                    analysis["testResults"] = report_data[key]
                    break
            analysis["personalizedRecommendations"] = self._personalized(report_data, report_type)
        else:
            analysis["personalizedRecommendations"] = self._personalized({}, report_type)

        return analysis


report_analyzer = ReportAnalyzer()
