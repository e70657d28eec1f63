"""
API tests for the LabSync AI FastAPI application.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from labsync.api.main import app
from labsync.app.services.question_answerer import question_answerer
from labsync.app.services.recommendation_engine import RecommendationEngine, recommendation_engine
from labsync.app.services.report_pipeline import report_pipeline
from labsync.app.services.sms_notifier import sms_notifier
from labsync.services.storage_service import InMemoryRepository, storage_service
from labsync.services.stt_service import stt_service
from labsync.services.tts_service import tts_service

LIPID_UPLOAD = b"Total Cholesterol: 240 mg/dL (125-200)\nLDL Cholesterol: 160 mg/dL (0-100)\n"


@pytest.fixture
def client():
    with patch.object(storage_service, "repository", InMemoryRepository()):
        yield TestClient(app)


@pytest.fixture
def offline_ai(fake_llm):
    """Route every LLM call made through the app singletons to ``fake_llm``."""
    analyzer = MagicMock()
    analyzer.analyze_report = AsyncMock(
        return_value={"summary": "Cholesterol is elevated.", "findings": [], "recommendations": []}
    )
    with patch.object(report_pipeline, "_analyzer", analyzer), patch.object(
        report_pipeline, "_recommendations", RecommendationEngine(llm_client=fake_llm)
    ), patch.object(recommendation_engine, "_llm_client", fake_llm), patch.object(
        question_answerer, "_llm_client", fake_llm
    ):
        yield fake_llm


def _upload(client, user_id="user-1"):
    return client.post(
        "/api/reports",
        files={"file": ("lipid_panel.txt", LIPID_UPLOAD, "text/plain")},
        data={"patientName": "Asha Rao", "provider": "City Labs"},
        headers={"X-User-Id": user_id},
    )


class TestHealth:
    def test_health_degraded_when_a_service_fails(self, client):
        healthy = MagicMock()
        healthy.health_check = AsyncMock(return_value={"status": "healthy"})
        broken = MagicMock()
        broken.health_check = AsyncMock(side_effect=RuntimeError("model missing"))

        with patch.dict(
            "labsync.api.main.HEALTH_CHECKS", {"storage": healthy, "stt": broken}, clear=True
        ):
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["services"]["stt"] == {"status": "unhealthy", "error": "model missing"}
        assert body["version"] == "1.0.0"


class TestReportsApi:
    def test_upload_requires_file(self, client):
        response = client.post("/api/reports", data={"patientName": "Asha Rao"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "No file provided"
        assert body["status_code"] == 400

    def test_report_lifecycle(self, client, offline_ai):
        offline_ai.reply("Eat more fiber.")

        uploaded = _upload(client)
        assert uploaded.status_code == 200
        report = uploaded.json()["data"]
        assert report["userId"] == "user-1"
        assert report["provider"] == "City Labs"
        assert report["status"] == "completed"

        listing = client.get("/api/reports", params={"type": "LIPID_PANEL", "search": "lipid"})
        assert listing.json()["pagination"]["total"] == 1

        fetched = client.get(f"/api/reports/{report['id']}")
        assert fetched.json()["data"]["id"] == report["id"]

        deleted = client.delete(f"/api/reports/{report['id']}")
        assert deleted.json() == {"success": True, "message": "Report deleted successfully"}

        missing = client.get(f"/api/reports/{report['id']}")
        assert missing.status_code == 404
        assert missing.json()["message"] == "Report not found"

    def test_saved_preferences_shape_fetched_report(self, client, offline_ai):
        offline_ai.reply("Eat more fiber.")
        report = _upload(client).json()["data"]
        client.put(
            "/api/preferences",
            json={
                "language": {"language": "en", "region": "North India"},
                "compression": {"enabled": True, "compressReports": True},
            },
            headers={"X-User-Id": "user-1"},
        )

        mine = client.get(f"/api/reports/{report['id']}", headers={"X-User-Id": "user-1"}).json()["data"]
        other = client.get(f"/api/reports/{report['id']}", headers={"X-User-Id": "user-2"}).json()["data"]
        listed = client.get("/api/reports", headers={"X-User-Id": "user-1"}).json()["data"]

        ldl = next(r for r in mine["results"] if r["name"] == "LDL Cholesterol")
        assert ldl["referenceRange"]["text"] == "0-100 mg/dL"
        assert ldl["status"] == "critical-high"
        assert "fileSize" not in mine
        assert other["fileSize"] == len(LIPID_UPLOAD)
        assert listed[0] == mine


class TestRequestValidation:
    def test_oversized_page_is_a_bad_request(self, client):
        response = client.get("/api/reports", params={"limit": 500})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["status_code"] == 400
        assert body["message"].startswith("Invalid request: limit:")
        assert "timestamp" in body

    def test_null_options_on_question(self, client):
        response = client.post(
            "/api/ai", json={"question": "q?", "report": {"title": "CBC"}, "options": None}
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid request: options:")

    def test_null_conditions_on_recommendations(self, client):
        response = client.post(
            "/api/recommendations",
            json={"reportId": "rep_1", "results": [], "previousConditions": None},
        )

        assert response.status_code == 400
        assert "previousConditions" in response.json()["message"]

    def test_non_object_sms_body(self, client):
        response = client.post("/api/sms-test", json=["x"])

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestClassifyApi:
    def test_classify_json(self, client):
        response = client.post("/api/classify", json={"content": "Hemoglobin 13.5 g/dL, WBC 7.2"})

        assert response.json()["data"] == {
            "reportType": "CBC",
            "confidence": 0.85,
            "possibleAlternatives": [],
        }

    def test_classify_requires_content(self, client):
        response = client.post("/api/classify", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Content is required"

    def test_standardize_upload(self, client):
        response = client.post(
            "/api/standardize",
            files={"file": ("lipids.txt", LIPID_UPLOAD, "text/plain")},
        )

        data = response.json()["data"]
        assert data["reportType"] == "LIPID_PANEL"
        assert data["originalFileName"] == "lipids.txt"
        names = [r["name"] for r in data["standardizedData"]["results"]]
        assert "LDL Cholesterol" in names

    def test_standardize_upload_requires_file(self, client):
        response = client.post("/api/standardize", files={"other": ("a.txt", b"x", "text/plain")})

        assert response.status_code == 400
        assert response.json()["message"] == "File is required"


class TestAssistantApi:
    def test_question_required(self, client):
        response = client.post("/api/ai", json={"report": {"text": "CBC"}})

        assert response.status_code == 400
        assert response.json()["message"] == "Question is required"

    def test_report_required(self, client):
        response = client.post("/api/ai", json={"question": "What is LDL?"})

        assert response.status_code == 400
        assert response.json()["message"] == "Report data is required"

    def test_answer(self, client, offline_ai):
        offline_ai.reply("LDL is low-density lipoprotein.\nFollow-up Questions:\n1. Is mine high?")

        response = client.post(
            "/api/ai",
            json={"question": "What is LDL?", "report": {"text": "LDL 160"}, "options": {"detailed": True}},
        )

        data = response.json()["data"]
        assert data["answer"] == "LDL is low-density lipoprotein."
        assert data["suggestedFollowUps"] == ["Is mine high?"]

    def test_llm_failure_is_500(self, client, offline_ai):
        offline_ai.generate_text.side_effect = RuntimeError("provider down")

        response = client.post("/api/ai", json={"question": "Q?", "report": {"text": "t"}})

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to process your question"


class TestVoiceApi:
    def test_synthesis_requires_text(self, client):
        response = client.post("/api/voice", json={"voiceOptions": {"speed": 1.2}})

        assert response.status_code == 400
        assert response.json()["message"] == "Text is required"

    def test_synthesis(self, client):
        audio = {"audioContent": "SUQz", "voice": "en-US-JennyNeural"}
        with patch.object(tts_service, "synthesize", AsyncMock(return_value=audio)) as mock_synth:
            response = client.post(
                "/api/voice", json={"text": "Hello", "voiceOptions": {"languageCode": "en-IN"}}
            )

        assert response.json() == {
            "success": True,
            "data": audio,
            "message": "Voice response generated successfully",
        }
        assert mock_synth.call_args.kwargs["language_code"] == "en-IN"

    def test_synthesis_with_null_voice_options(self, client):
        audio = {"audioContent": "SUQz", "voice": "en-US-JennyNeural"}
        with patch.object(tts_service, "synthesize", AsyncMock(return_value=audio)) as mock_synth:
            response = client.post("/api/voice", json={"text": "hi", "voiceOptions": None})

        assert response.status_code == 200
        assert mock_synth.call_args.kwargs == {
            "language_code": "en-US",
            "gender": "female",
            "speed": 1.0,
            "pitch": 1.0,
        }

    def test_transcription(self, client):
        result = {"text": "What is my LDL?", "confidence": 0.9, "model": "whisper", "provider": "together"}
        with patch.object(stt_service, "transcribe_audio", AsyncMock(return_value=result)) as mock_stt:
            response = client.post(
                "/api/voice",
                files={"audio": ("q.wav", b"\x00" * 2048, "audio/wav")},
                data={"language": "hi"},
                headers={"X-User-Id": "user-7"},
            )

        assert response.json()["data"]["text"] == "What is my LDL?"
        assert mock_stt.call_args.kwargs == {"language": "hi", "user_id": "user-7"}

    def test_transcription_requires_audio(self, client):
        response = client.post("/api/voice", files={"document": ("a.txt", b"x", "text/plain")})

        assert response.status_code == 400
        assert response.json()["message"] == "Audio file is required"


class TestSmsAndTrendsApi:
    def test_sms_requires_fields(self, client):
        response = client.post("/api/sms-test", json={"phoneNumber": "9876543210"})

        assert response.status_code == 400
        assert response.json()["message"] == "Missing required fields"

    def test_sms_dry_run(self, client):
        with patch.object(sms_notifier, "api_key", ""):
            response = client.post(
                "/api/sms-test",
                json={"phoneNumber": "9876543210", "language": "en", "messageType": "report"},
            )

        body = response.json()
        assert body["status"] == "success"
        assert body["details"]["messageType"] == "report"

    def test_sms_built_from_stored_report(self, client, offline_ai):
        offline_ai.reply("Eat more fiber.")
        report = _upload(client).json()["data"]

        with patch.object(sms_notifier, "api_key", ""):
            response = client.post(
                "/api/sms-test",
                json={
                    "phoneNumber": "9876543210",
                    "language": "en",
                    "messageType": "abnormal",
                    "reportId": report["id"],
                },
            )

        details = response.json()["details"]
        assert details["reportId"] == report["id"]
        assert details["content"].startswith("ALERT: ")
        assert "'lipid_panel'" in details["content"]

    def test_sms_delivery_failure_is_a_server_error(self, client):
        with patch.object(sms_notifier, "api_key", "sms-key"):
            response = client.post(
                "/api/sms-test",
                json={"phoneNumber": "12345", "language": "en", "messageType": "report"},
            )

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Invalid phone number"}

    def test_trends_require_names(self, client):
        response = client.get("/api/trends", params={"patientName": "Asha"})

        assert response.status_code == 400
        assert response.json()["message"] == "Patient name and test name are required"

    def test_trends_from_uploads(self, client, offline_ai):
        _upload(client)
        _upload(client)

        response = client.get("/api/trends", params={"patientName": "asha rao", "testName": "Total Cholesterol"})

        data = response.json()["data"]
        assert [p["value"] for p in data["trendData"]] == [240.0, 240.0]
        assert data["statistics"]["direction"] == "stable"


class TestPlansApi:
    def test_health_plan_requires_report_id(self, client):
        response = client.get("/api/health-plan")

        assert response.status_code == 400
        assert response.json()["message"] == "Report ID is required"

    def test_health_plan_for_unknown_report(self, client):
        response = client.get("/api/health-plan", params={"reportId": "rep_missing"})

        assert response.status_code == 404

    def test_health_plan_is_stored(self, client, offline_ai, lipid_results):
        offline_ai.reply("Walk daily.")

        created = client.post(
            "/api/health-plan",
            json={"report": {"id": "rep_1", "type": "LIPID_PANEL", "results": lipid_results}},
        ).json()["data"]
        fetched = client.get("/api/health-plan", params={"reportId": "rep_1"}).json()["data"]

        assert created["healthPlan"]["summary"] == "Walk daily."
        assert fetched["id"] == created["id"]
        assert fetched["healthPlan"] == created["healthPlan"]

    def test_health_plan_generated_from_stored_report(self, client, offline_ai):
        offline_ai.reply("Plan summary.")
        report_id = _upload(client).json()["data"]["id"]

        first = client.get("/api/health-plan", params={"reportId": report_id}).json()["data"]
        second = client.get("/api/health-plan", params={"reportId": report_id}).json()["data"]

        assert first["healthPlan"]["summary"] == "Plan summary."
        assert second["id"] == first["id"]

    def test_recommendations_require_type_and_results(self, client):
        response = client.post("/api/recommendations", json={"reportType": "LIPID_PANEL"})

        assert response.status_code == 400
        assert response.json()["message"] == "Report type and results array are required"

    def test_recommendations_round_trip(self, client, offline_ai, lipid_results):
        offline_ai.reply("Cut saturated fat.")

        created = client.post(
            "/api/recommendations",
            json={
                "reportId": "rep_9",
                "reportType": "LIPID_PANEL",
                "results": lipid_results,
                "patientDOB": "1950-01-01",
                "lifestyle": {"smoking": "yes"},
            },
        ).json()["data"]
        fetched = client.get("/api/recommendations", params={"reportId": "rep_9"}).json()["data"]

        recommendations = created["recommendations"]
        assert recommendations["summary"] == "Cut saturated fat."
        assert "Include balance exercises like tai chi or yoga to prevent falls" in (
            recommendations["exerciseRecommendations"]
        )
        assert fetched["id"] == created["id"]

    def test_recommendations_for_unknown_report(self, client):
        response = client.get("/api/recommendations", params={"reportId": "rep_missing"})

        assert response.status_code == 404


class TestPreferencesApi:
    def test_defaults_for_new_user(self, client):
        data = client.get("/api/preferences", headers={"X-User-Id": "user-3"}).json()["data"]

        assert data["userId"] == "user-3"
        assert data["language"] == {"language": "en", "region": "All India"}
        assert data["compression"]["syncFrequency"] == "when-connected"

    def test_update_and_read_back(self, client):
        body = {
            "language": {"language": "hi", "region": "South India"},
            "compression": {"enabled": True, "compressReports": True, "imageQuality": "low"},
        }

        updated = client.put("/api/preferences", json=body, headers={"X-User-Id": "user-3"})
        fetched = client.get("/api/preferences", headers={"X-User-Id": "user-3"}).json()["data"]

        assert updated.status_code == 200
        assert fetched["language"]["language"] == "hi"
        assert fetched["compression"]["imageQuality"] == "low"
        assert fetched["userId"] == "user-3"

    def test_unsupported_language_rejected(self, client):
        response = client.put("/api/preferences", json={"language": {"language": "fr"}})

        assert response.status_code == 400
