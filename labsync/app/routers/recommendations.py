"""Personalised recommendations for a set of results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from labsync.app.models.health_plan import RecommendationsRequest
from labsync.app.routers.common import get_current_user
from labsync.app.services.recommendation_engine import calculate_age, recommendation_engine
from labsync.services.storage_service import storage_service
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])
logger = get_logger(__name__)


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


async def _store(recommendations: Dict[str, Any], report_id: Optional[str], user_id: str) -> Dict[str, Any]:
    generated_at = _now()
    record_id = await storage_service.save_recommendations(
        {
            "recommendations": recommendations,
            "reportId": report_id,
            "userId": user_id,
            "generatedAt": generated_at,
        }
    )
    return {
        "recommendations": recommendations,
        "reportId": report_id,
        "generatedAt": generated_at,
        "id": record_id,
    }


@router.post("")
async def create_recommendations(
    payload: RecommendationsRequest,
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    if not payload.report_type or payload.results is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Report type and results array are required",
        )

    report = {"id": payload.report_id, "type": payload.report_type, "results": payload.results}
    history = {
        "name": payload.patient_name,
        "age": calculate_age(payload.patient_dob),
        "conditions": payload.previous_conditions,
        "medications": payload.medications,
        "lifestyle": payload.lifestyle,
    }
    try:
        recommendations = await recommendation_engine.generate_recommendations(report, history)
        data = await _store(recommendations, payload.report_id, current_user["user_id"])
    except Exception as e:
        logger.error("Error generating recommendations: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate recommendations: {str(e)}",
        ) from e

    return {"success": True, "data": data}


@router.get("")
async def get_recommendations(
    report_id: Optional[str] = Query(None, alias="reportId"),
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Stored recommendations, generated from the stored report when missing."""

    if not report_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Report ID is required")

    try:
        stored = await storage_service.get_recommendations(report_id)
        if stored:
            return {
                "success": True,
                "data": {
                    "recommendations": stored.get("recommendations"),
                    "reportId": report_id,
                    "generatedAt": stored.get("generatedAt"),
                    "id": stored["id"],
                },
            }

        report = await storage_service.get_report(report_id)
        if not report:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

        history = {"age": report.get("patientAge") or calculate_age(report.get("patientDob"))}
        recommendations = await recommendation_engine.generate_recommendations(report, history)
        data = await _store(recommendations, report_id, report.get("userId") or current_user["user_id"])
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error fetching recommendations: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch recommendations: {str(e)}",
        ) from e

    return {"success": True, "data": data}
