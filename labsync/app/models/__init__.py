"""Model modules for LabSync AI."""

from labsync.app.models.assistant import AIResponse, AskOptions, AskRequest, Reference
from labsync.app.models.health_plan import (
    Goal,
    Goals,
    HealthPlanRequest,
    HealthRecommendations,
    RecommendationsRequest,
)
from labsync.app.models.preferences import (
    CompressionSettings,
    LanguagePreference,
    UserPreferences,
)
from labsync.app.models.report import (
    MedicalReport,
    ReportAnalysis,
    ReportStatus,
    ReportType,
    ResultStatus,
    TestResult,
)
from labsync.app.models.sms import MessageType, SMSTestRequest
from labsync.app.models.trends import TrendDataPoint, TrendResponse
from labsync.app.models.voice import SynthesisRequest, VoiceOptions

__all__ = [
    "AIResponse",
    "AskOptions",
    "AskRequest",
    "Reference",
    "Goal",
    "Goals",
    "HealthPlanRequest",
    "HealthRecommendations",
    "RecommendationsRequest",
    "CompressionSettings",
    "LanguagePreference",
    "UserPreferences",
    "MedicalReport",
    "ReportAnalysis",
    "ReportStatus",
    "ReportType",
    "ResultStatus",
    "TestResult",
    "MessageType",
    "SMSTestRequest",
    "TrendDataPoint",
    "TrendResponse",
    "SynthesisRequest",
    "VoiceOptions",
]
