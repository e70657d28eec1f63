"""
FastAPI main application for LabSync AI.
Serves the medical report dashboard API: upload, analysis, Q&A, voice,
trends, health plans, preferences and SMS notifications.
"""

import time
from datetime import datetime
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..app.routers import (
    ai_router,
    classify_router,
    health_plan_router,
    preferences_router,
    recommendations_router,
    reports_router,
    sms_router,
    trends_router,
    voice_router,
)
from ..app.services.sms_notifier import sms_notifier
from ..services.llm_service import llm_service
from ..services.storage_service import storage_service
from ..services.stt_service import stt_service
from ..services.translation_service import translation_service
from ..services.tts_service import tts_service
from ..utils.cache import get_cache_stats
from ..utils.config import settings
from ..utils.logging import get_logger

logger = get_logger(__name__)

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str
    timestamp: float
    services: Dict[str, Any]
    cache_stats: Optional[Dict[str, Any]] = None
    version: str = VERSION


app = FastAPI(
    title="LabSync AI API",
    description="Medical report analysis dashboard backend",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

for router in (
    reports_router,
    classify_router,
    ai_router,
    voice_router,
    sms_router,
    trends_router,
    health_plan_router,
    recommendations_router,
    preferences_router,
):
    app.include_router(router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])

HEALTH_CHECKS = {
    "llm": llm_service,
    "stt": stt_service,
    "tts": tts_service,
    "translation": translation_service,
    "storage": storage_service,
}


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and all services."""
    services: Dict[str, Any] = {}
    for name, service in HEALTH_CHECKS.items():
        try:
            services[name] = await service.health_check()
        except Exception as e:
            logger.error(f"Health check for {name} failed: {e}")
            services[name] = {"status": "unhealthy", "error": str(e)}

    healthy = all(s.get("status") == "healthy" for s in services.values())
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=time.time(),
        services=services,
        cache_stats=get_cache_stats() if settings.enable_caching else None,
    )


def _error_body(message: Any, status_code: int) -> Dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "status_code": status_code,
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code, content=_error_body(exc.detail, exc.status_code)
    )


def _describe_validation_error(error: Dict[str, Any]) -> str:
    location = [str(part) for part in error.get("loc", ())]
    field = ".".join(location[1:]) or ".".join(location) or "request"
    return f"{field}: {error.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc):
    """Report request validation failures as 400 in the standard error body."""
    problems = [_describe_validation_error(error) for error in exc.errors()]
    logger.warning(f"Request validation failed: {problems}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Invalid request: " + "; ".join(problems), 400),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", 500),
    )


@app.on_event("startup")
async def startup_event():
    """Warm up speech models on startup."""
    logger.info("Starting LabSync AI API server")
    try:
        await stt_service.warm_up_models()
    except Exception as e:
        logger.error(f"Service initialization failed: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Close outbound HTTP clients."""
    logger.info("Shutting down LabSync AI API server")
    await llm_service.close()
    await sms_notifier.close()


if __name__ == "__main__":
    uvicorn.run(
        "labsync.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
