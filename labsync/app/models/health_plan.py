"""Health plan and recommendation records."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import CamelModel


class Goal(CamelModel):
    description: str
    timeframe: str


class Goals(CamelModel):
    short_term: List[Goal] = Field(default_factory=list)
    long_term: List[Goal] = Field(default_factory=list)


class HealthRecommendations(CamelModel):
    """Personalised recommendations; a health plan has the same shape."""

    summary: str
    dietary_recommendations: List[str] = Field(default_factory=list)
    exercise_recommendations: List[str] = Field(default_factory=list)
    lifestyle_changes: List[str] = Field(default_factory=list)
    medication_notes: List[str] = Field(default_factory=list)
    follow_up_schedule: str = ""
    goals: Goals = Field(default_factory=Goals)


class HealthPlanRequest(CamelModel):
    report_id: Optional[str] = None
    report: Optional[Dict[str, Any]] = None
    patient_data: Optional[Dict[str, Any]] = None


class RecommendationsRequest(CamelModel):
    report_id: Optional[str] = None
    report_type: Optional[str] = None
    results: Optional[List[Dict[str, Any]]] = None
    patient_name: Optional[str] = None
    patient_dob: Optional[str] = Field(default=None, alias="patientDOB")
    previous_conditions: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)
    lifestyle: Dict[str, Any] = Field(default_factory=dict)
