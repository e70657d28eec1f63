"""Health plan generation and retrieval."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from labsync.app.models.health_plan import HealthPlanRequest
from labsync.app.routers.common import get_current_user
from labsync.app.services.recommendation_engine import recommendation_engine
from labsync.services.storage_service import storage_service
from labsync.utils.logging import get_logger

router = APIRouter(prefix="/api/health-plan", tags=["health-plan"])
logger = get_logger(__name__)


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


async def _store_plan(plan: Dict[str, Any], report_id: Optional[str], user_id: str) -> Dict[str, Any]:
    generated_at = _now()
    plan_id = await storage_service.save_health_plan(
        {**plan, "reportId": report_id, "userId": user_id, "generatedAt": generated_at}
    )
    return {
        "healthPlan": plan,
        "reportId": report_id,
        "generatedAt": generated_at,
        "id": plan_id,
    }


@router.post("")
async def create_health_plan(
    payload: HealthPlanRequest,
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Generate a plan for the given report and store it."""

    if not payload.report:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Report data is required")

    report_id = payload.report_id or payload.report.get("id")
    user_id = payload.report.get("userId") or current_user["user_id"]
    try:
        plan = await recommendation_engine.generate_health_plan(payload.report, payload.patient_data)
        data = await _store_plan(plan, report_id, user_id)
    except Exception as e:
        logger.error("Error generating health plan: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate health plan: {str(e)}",
        ) from e

    return {"success": True, "data": data}


@router.get("")
async def get_health_plan(
    report_id: Optional[str] = Query(None, alias="reportId"),
    current_user: Dict[str, str] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Stored plan for a report, generating and persisting one on first request."""

    if not report_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Report ID is required")

    try:
        stored = await storage_service.get_health_plan(report_id)
        if stored:
            plan = {
                k: v for k, v in stored.items()
                if k not in {"id", "reportId", "userId", "generatedAt"}
            }
            return {
                "success": True,
                "data": {
                    "healthPlan": plan,
                    "reportId": report_id,
                    "generatedAt": stored.get("generatedAt"),
                    "id": stored["id"],
                },
            }

        report = await storage_service.get_report(report_id)
        if not report:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

        plan = await recommendation_engine.generate_health_plan(report)
        data = await _store_plan(plan, report_id, report.get("userId") or current_user["user_id"])
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error fetching health plan: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch health plan: {str(e)}",
        ) from e

    return {"success": True, "data": data}
