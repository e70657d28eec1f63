"""Pydantic models for medical reports and their analysis."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from .base import CamelModel


class ReportType(str, Enum):
    """Categories of medical report the pipeline knows how to read."""

    CBC = "CBC"
    LIPID_PANEL = "LIPID_PANEL"
    METABOLIC_PANEL = "METABOLIC_PANEL"
    URINALYSIS = "URINALYSIS"
    THYROID_PANEL = "THYROID_PANEL"
    IMAGING = "IMAGING"
    PATHOLOGY = "PATHOLOGY"
    OTHER = "OTHER"

    @classmethod
    def from_text(cls, value: Optional[str]) -> "ReportType":
        """Map a free-form type label ("Lipid Panel", "X-Ray") to the enum."""

        if not value:
            return cls.OTHER

        normalized = value.strip().upper().replace(" ", "_")
        if normalized in cls.__members__:
            return cls[normalized]
        if normalized in {"X-RAY", "XRAY", "MRI", "CT_SCAN", "CT", "ULTRASOUND"}:
            return cls.IMAGING
        if normalized in {"LIPID", "LIPIDS"}:
            return cls.LIPID_PANEL
        if normalized in {"METABOLIC", "CMP", "BMP"}:
            return cls.METABOLIC_PANEL
        if normalized in {"THYROID"}:
            return cls.THYROID_PANEL
        return cls.OTHER

    @property
    def label(self) -> str:
        """Lower-case label used in prompts, e.g. ``lipid panel``."""

        return self.value.lower().replace("_", " ", 1)


class ReportStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class ResultStatus(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    CRITICAL_LOW = "critical-low"
    CRITICAL_HIGH = "critical-high"
    NOT_AVAILABLE = "not available"


class ReferenceRange(CamelModel):
    min: Union[float, str, None] = None
    max: Union[float, str, None] = None


class TestResult(CamelModel):
    """A single measured parameter on a report."""

    __test__ = False

    name: str
    value: Union[float, str, None] = None
    unit: Optional[str] = ""
    reference_range: Union[ReferenceRange, str, None] = None
    status: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    category: Optional[str] = None


class PossibleCondition(CamelModel):
    name: str
    probability: Union[float, str, None] = None
    description: Optional[str] = None


class PersonalizedRecommendations(CamelModel):
    dietary: List[str] = Field(default_factory=list)
    exercise: List[str] = Field(default_factory=list)
    lifestyle: List[str] = Field(default_factory=list)


class ReportAnalysis(CamelModel):
    summary: str
    findings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    possible_conditions: List[Union[PossibleCondition, str]] = Field(
        default_factory=list
    )
    follow_up_recommended: bool = True
    follow_up_timeframe: Optional[str] = None
    ai_confidence_score: Optional[float] = None
    report_type: Optional[ReportType] = None
    personalized_recommendations: Optional[PersonalizedRecommendations] = None
    test_results: Optional[List[Dict[str, Any]]] = None


class MedicalReport(CamelModel):
    """A stored report together with its extracted results and analysis."""

    id: str
    user_id: str
    type: ReportType = ReportType.OTHER
    title: str
    status: ReportStatus = ReportStatus.PENDING
    results: List[TestResult] = Field(default_factory=list)
    upload_date: str
    created_at: str
    updated_at: str
    description: Optional[str] = None
    patient_name: Optional[str] = None
    patient_dob: Optional[str] = None
    patient_age: Optional[int] = None
    provider: Optional[str] = None
    report_date: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    analysis: Optional[ReportAnalysis] = None
    recommendations: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> ReportType:
        if isinstance(value, ReportType):
            return value
        return ReportType.from_text(value)


class ClassifyRequest(CamelModel):
    content: Optional[str] = None
    file_name: Optional[str] = None


class StandardizeRequest(ClassifyRequest):
    report_type: Optional[str] = None
