"""HTTP routers for LabSync AI."""

from labsync.app.routers.ai import router as ai_router
from labsync.app.routers.classify import router as classify_router
from labsync.app.routers.health_plan import router as health_plan_router
from labsync.app.routers.preferences import router as preferences_router
from labsync.app.routers.recommendations import router as recommendations_router
from labsync.app.routers.reports import router as reports_router
from labsync.app.routers.sms import router as sms_router
from labsync.app.routers.trends import router as trends_router
from labsync.app.routers.voice import router as voice_router

__all__ = [
    "ai_router",
    "classify_router",
    "health_plan_router",
    "preferences_router",
    "recommendations_router",
    "reports_router",
    "sms_router",
    "trends_router",
    "voice_router",
]
