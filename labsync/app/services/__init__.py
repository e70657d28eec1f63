"""Service modules for the LabSync AI app."""

from labsync.app.services.question_answerer import question_answerer
from labsync.app.services.recommendation_engine import recommendation_engine
from labsync.app.services.report_analyzer import report_analyzer
from labsync.app.services.report_pipeline import report_pipeline
from labsync.app.services.sms_notifier import sms_notifier
from labsync.app.services.trend_analyzer import analyze_trends, trend_analyzer

__all__ = [
    "question_answerer",
    "recommendation_engine",
    "report_analyzer",
    "report_pipeline",
    "sms_notifier",
    "analyze_trends",
    "trend_analyzer",
]
