"""
Tests for rule-based recommendations and health plans.
"""

from datetime import date

import pytest

from labsync.app.models.report import ReportType
from labsync.app.services.recommendation_engine import (
    DEFAULT_SUMMARY,
    FALLBACK_RECOMMENDATIONS,
    FOLLOW_UP_CLOSING,
    RecommendationEngine,
    abnormal_results,
    calculate_age,
    dietary_recommendations,
    exercise_recommendations,
    follow_up_schedule,
    health_goals,
    lifestyle_modifications,
    medication_notes,
)
from labsync.utils.errors import LLMUnavailableError


class TestHelpers:
    def test_calculate_age(self):
        today = date(2024, 6, 15)
        assert calculate_age("1980-06-15", today) == 44
        assert calculate_age("1980-06-16", today) == 43
        assert calculate_age("1980-06-16T00:00:00Z", today) == 43

    def test_calculate_age_invalid(self):
        assert calculate_age(None) is None
        assert calculate_age("not a date") is None

    def test_abnormal_results_filters_high_and_low(self, lipid_results):
        flagged = abnormal_results(lipid_results + [{"value": 3, "status": "high"}, "junk"])
        assert [r["name"] for r in flagged] == ["Total Cholesterol", "LDL Cholesterol"]


class TestGenerators:
    def test_lipid_dietary_advice(self, lipid_results):
        advice = dietary_recommendations(ReportType.LIPID_PANEL, abnormal_results(lipid_results))

        assert advice[0].startswith("Maintain a balanced diet")
        assert any("egg yolks" in item for item in advice)
        assert len(advice) == len(set(advice))

    def test_vegan_preference_adds_protein_advice(self):
        advice = dietary_recommendations(
            ReportType.OTHER, [], {"preferences": {"dietaryPreferences": "Vegan"}}
        )
        assert any("vitamin B12" in item for item in advice)

    def test_exercise_for_older_patients(self):
        advice = exercise_recommendations(ReportType.CBC, [], {"age": 70})
        assert "Include balance exercises like tai chi or yoga to prevent falls" in advice

    def test_exercise_for_high_glucose(self):
        abnormal = [{"name": "Fasting Glucose", "status": "high"}]
        advice = exercise_recommendations(ReportType.METABOLIC_PANEL, abnormal, {"age": "45"})

        assert any("insulin sensitivity" in item for item in advice)
        assert any("flexibility exercises" in item for item in advice)
        assert any("Monitor blood glucose before and after exercise" in item for item in advice)

    def test_lifestyle_reflects_smoking_and_stress(self):
        advice = lifestyle_modifications(
            ReportType.OTHER, [], {"lifestyle": {"smoking": "Yes", "alcohol": "none", "stress": "High"}}
        )

        assert any("smoking cessation" in item for item in advice)
        assert not any("alcohol" in item for item in advice)
        assert any("stress-reduction" in item for item in advice)

    def test_medication_notes_for_high_ldl(self, lipid_results):
        notes = medication_notes(
            ReportType.LIPID_PANEL, abnormal_results(lipid_results), {"medications": ["Atorvastatin"]}
        )

        assert any("cholesterol-lowering medications" in note for note in notes)
        assert any("over-the-counter" in note for note in notes)

    def test_follow_up_schedule(self, lipid_results):
        flagged = follow_up_schedule(ReportType.LIPID_PANEL, abnormal_results(lipid_results))
        clean = follow_up_schedule(ReportType.LIPID_PANEL, [])

        assert flagged == "Schedule a follow-up lipid panel in 3 months to assess progress. " + FOLLOW_UP_CLOSING
        assert clean.startswith("Schedule your next lipid panel in 12 months")

    def test_goals_split_by_timeframe(self, lipid_results):
        goals = health_goals(
            ReportType.LIPID_PANEL, abnormal_results(lipid_results), {"lifestyle": {"smoking": "yes"}}
        )

        short_term = [g["description"] for g in goals["shortTerm"]]
        long_term = [g["description"] for g in goals["longTerm"]]
        assert "Reduce LDL cholesterol by 10-15% through diet and exercise" in short_term
        assert "Reduce smoking by 50% as a step toward quitting" in short_term
        assert "Quit smoking completely" in long_term
        assert all(g["timeframe"] == "long-term" for g in goals["longTerm"])


class TestRecommendationEngine:
    @pytest.mark.asyncio
    async def test_generate_recommendations(self, fake_llm, lipid_results):
        fake_llm.reply("  Lower your LDL with diet and exercise.  ")
        engine = RecommendationEngine(llm_client=fake_llm)

        result = await engine.generate_recommendations(
            {"type": "LIPID_PANEL", "results": lipid_results},
            {"age": 52, "conditions": ["Hypertension"], "medications": []},
        )

        assert result["summary"] == "Lower your LDL with diet and exercise."
        assert set(result) == set(FALLBACK_RECOMMENDATIONS)
        assert result["followUpSchedule"].startswith("Schedule a follow-up lipid panel in 3 months")

        prompt = fake_llm.generate_text.call_args.args[0]
        assert "- Total Cholesterol: 240 mg/dL (Status: high)" in prompt
        assert "- Medical Conditions: Hypertension" in prompt
        assert "- Medications: None specified" in prompt
        assert fake_llm.generate_text.call_args.kwargs["max_tokens"] == 512

    @pytest.mark.asyncio
    async def test_summary_defaults_when_llm_fails(self, fake_llm, lipid_results):
        fake_llm.generate_text.side_effect = LLMUnavailableError("down")
        engine = RecommendationEngine(llm_client=fake_llm)

        result = await engine.generate_recommendations({"type": "LIPID_PANEL", "results": lipid_results})

        assert result["summary"] == DEFAULT_SUMMARY
        assert result["dietaryRecommendations"]

    @pytest.mark.asyncio
    async def test_missing_report_uses_fallback(self, fake_llm):
        engine = RecommendationEngine(llm_client=fake_llm)

        result = await engine.generate_recommendations(None)

        assert result == FALLBACK_RECOMMENDATIONS
        assert result is not FALLBACK_RECOMMENDATIONS
        fake_llm.generate_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_health_plan_uses_patient_data(self, fake_llm, lipid_results):
        fake_llm.reply("Focus on heart health.")
        engine = RecommendationEngine(llm_client=fake_llm)

        plan = await engine.generate_health_plan(
            {"id": "rep_1", "type": "LIPID_PANEL", "results": lipid_results},
            {"age": 68, "gender": "female", "weight": 70, "allergies": ["Penicillin"]},
        )

        assert plan["summary"] == "Focus on heart health."
        assert "Include balance exercises like tai chi or yoga to prevent falls" in plan["exerciseRecommendations"]
        prompt = fake_llm.generate_text.call_args.args[0]
        assert "Age: 68" in prompt
        assert "Weight: 70 kg" in prompt
        assert "Allergies:\n- Penicillin" in prompt
