"""
Tests for LLM report analysis and the report Q&A assistant.
"""

import json

import pytest

from labsync.app.models.assistant import ConversationTurn
from labsync.app.models.report import ReportType
from labsync.app.services.question_answerer import (
    QuestionAnswerer,
    parse_follow_ups,
    parse_references,
)
from labsync.app.services.recommendation_engine import RecommendationEngine
from labsync.app.services.report_analyzer import ReportAnalyzer, repair_json
from labsync.utils.errors import LLMUnavailableError

ANALYSIS = {
    "summary": "Cholesterol is elevated.",
    "findings": ["Total cholesterol 240 mg/dL is high"],
    "recommendations": ["Reduce saturated fat"],
    "possibleConditions": [
        {"name": "Hypercholesterolemia", "probability": 0.7, "description": "High cholesterol"}
    ],
    "followUpRecommended": True,
    "followUpTimeframe": "3 months",
    "aiConfidenceScore": 0.85,
}


@pytest.fixture
def analyzer(fake_llm):
    return ReportAnalyzer(llm_client=fake_llm, recommendations=RecommendationEngine(llm_client=fake_llm))


class TestRepairJson:
    def test_repairs_quotes_commas_and_keys(self):
        raw = "{summary: 'ok', findings: ['a', 'b',], recommendations: [],}"
        assert repair_json(raw) == {"summary": "ok", "findings": ["a", "b"], "recommendations": []}

    def test_unrepairable_raises(self):
        with pytest.raises(json.JSONDecodeError):
            repair_json("{summary: ")


class TestReportAnalyzer:
    @pytest.mark.asyncio
    async def test_analyze_report_parses_llm_json(self, analyzer, fake_llm, lipid_results):
        fake_llm.reply("Here is the analysis:\n" + json.dumps(ANALYSIS) + "\nHope this helps.")

        result = await analyzer.analyze_report({"results": lipid_results}, ReportType.LIPID_PANEL)

        assert result["summary"] == "Cholesterol is elevated."
        assert result["reportType"] == "LIPID_PANEL"
        assert result["possibleConditions"][0]["name"] == "Hypercholesterolemia"
        personalized = result["personalizedRecommendations"]
        assert set(personalized) == {"dietary", "exercise", "lifestyle"}
        assert any("omega-3" in item for item in personalized["dietary"])

    @pytest.mark.asyncio
    async def test_prompt_prefers_parameters_over_text(self, analyzer, fake_llm):
        fake_llm.reply(json.dumps(ANALYSIS))
        parameters = [{"name": "Glucose", "value": 130, "status": "high"}]

        await analyzer.analyze_report(
            {"parameters": parameters, "text": "raw text"}, ReportType.METABOLIC_PANEL
        )

        prompt = fake_llm.generate_text.call_args.args[0]
        assert prompt.startswith("Analyze the following medical metabolic panel report:")
        assert "Standardized Data:" in prompt
        assert "Raw Report Text" not in prompt
        assert '"followUpRecommended": true/false' in prompt

    @pytest.mark.asyncio
    async def test_raw_text_is_truncated(self, analyzer, fake_llm):
        fake_llm.reply(json.dumps(ANALYSIS))

        await analyzer.analyze_report({"text": "x" * 5000}, ReportType.OTHER)

        prompt = fake_llm.generate_text.call_args.args[0]
        assert "x" * 1500 in prompt
        assert "x" * 1501 not in prompt

    @pytest.mark.asyncio
    async def test_lenient_json_is_repaired(self, analyzer, fake_llm):
        fake_llm.reply("{summary: 'Looks fine', findings: ['normal values',], recommendations: [],}")

        result = await analyzer.analyze_report({"text": "Glucose 90"}, ReportType.METABOLIC_PANEL)

        assert result["summary"] == "Looks fine"
        assert result["findings"] == ["normal values"]

    @pytest.mark.asyncio
    async def test_invalid_structure_uses_fallback(self, analyzer, fake_llm, lipid_results):
        fake_llm.reply('{"summary": 42}')

        result = await analyzer.analyze_report({"results": lipid_results}, ReportType.LIPID_PANEL)

        assert result["summary"] == "Analysis of lipid panel report completed."
        assert result["aiConfidenceScore"] == 0.7
        assert result["testResults"] == lipid_results
        assert "personalizedRecommendations" in result

    @pytest.mark.asyncio
    async def test_reply_without_json_uses_fallback(self, analyzer, fake_llm):
        fake_llm.reply("I cannot analyze this report.")

        result = await analyzer.analyze_report({"text": "CBC"}, ReportType.CBC)

        assert result["findings"][0] == "Report type: CBC"

    @pytest.mark.asyncio
    async def test_no_data_returns_fallback_without_llm(self, analyzer, fake_llm):
        result = await analyzer.analyze_report({}, ReportType.IMAGING)

        assert result["reportType"] == "IMAGING"
        fake_llm.generate_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_llm_failure_propagates(self, analyzer, fake_llm):
        fake_llm.generate_text.side_effect = LLMUnavailableError("down")

        with pytest.raises(LLMUnavailableError):
            await analyzer.analyze_report({"text": "CBC"}, ReportType.CBC)


class TestAnswerParsing:
    def test_parse_references(self):
        text = (
            "Your LDL is high.\n\nReferences:\nLipid table: LDL 160 mg/dL\n"
            "Summary: elevated cholesterol\n\nFollow-up Questions:\n1. What diet helps?"
        )
        references, remaining = parse_references(text)

        assert [(r.location, r.text) for r in references] == [
            ("Lipid table", "LDL 160 mg/dL"),
            ("Summary", "elevated cholesterol"),
        ]
        assert "References:" not in remaining
        assert "Follow-up Questions:" in remaining

    def test_parse_follow_ups_strips_markers(self):
        text = "Answer.\nFollow-up Questions:\n1. What diet helps?\n- Should I retest?\n* Is it genetic?"
        questions, remaining = parse_follow_ups(text)

        assert questions == ["What diet helps?", "Should I retest?", "Is it genetic?"]
        assert remaining.strip() == "Answer."


class TestQuestionAnswerer:
    @pytest.mark.asyncio
    async def test_answer_question(self, fake_llm, lipid_results):
        fake_llm.reply(
            "LDL is the 'bad' cholesterol.\n\nReferences:\nResults: LDL 160 mg/dL\n\n"
            "Follow-up Questions:\n1. How can I lower LDL?\n2. When should I retest?"
        )
        answerer = QuestionAnswerer(llm_client=fake_llm)

        response = await answerer.answer_question(
            "What is LDL?",
            {"type": "LIPID_PANEL", "results": lipid_results},
            history=[ConversationTurn(question="Is my HDL ok?", answer="Yes.")],
            patient_context={"age": 52},
            include_references=True,
        )

        assert response.answer == "LDL is the 'bad' cholesterol."
        assert response.references[0].location == "Results"
        assert response.suggested_follow_ups == ["How can I lower LDL?", "When should I retest?"]
        assert response.confidence == 0.95

        prompt = fake_llm.generate_text.call_args.args[0]
        assert "Q1: Is my HDL ok?\nA1: Yes." in prompt
        assert "Standardized Data:" in prompt
        assert '"age": 52' in prompt
        assert "simple language" in prompt

    @pytest.mark.asyncio
    async def test_detailed_answers_without_references(self, fake_llm):
        fake_llm.reply("Details.\nReferences:\nA: b")
        answerer = QuestionAnswerer(llm_client=fake_llm)

        response = await answerer.answer_question(
            "Explain", {"text": "Hemoglobin 11"}, detailed=True
        )

        assert response.references == []
        assert "References:" in response.answer
        prompt = fake_llm.generate_text.call_args.args[0]
        assert "detailed explanations" in prompt
        assert "Raw Report Text: Hemoglobin 11" in prompt

    @pytest.mark.asyncio
    async def test_llm_failure_propagates(self, fake_llm):
        fake_llm.generate_text.side_effect = LLMUnavailableError("down")

        with pytest.raises(LLMUnavailableError):
            await QuestionAnswerer(llm_client=fake_llm).answer_question("Q", {"text": "t"})
