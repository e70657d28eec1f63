"""Request and response records for the report Q&A assistant."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import CamelModel


class ConversationTurn(CamelModel):
    question: str
    answer: str


class AskOptions(CamelModel):
    conversation_history: List[ConversationTurn] = Field(default_factory=list)
    patient_context: Optional[Dict[str, Any]] = None
    detailed: bool = False
    include_references: bool = False


class AskRequest(CamelModel):
    question: Optional[str] = None
    report: Optional[Dict[str, Any]] = None
    options: AskOptions = Field(default_factory=AskOptions)


class Reference(CamelModel):
    location: str
    text: str


class AIResponse(CamelModel):
    answer: str
    references: List[Reference] = Field(default_factory=list)
    suggested_follow_ups: List[str] = Field(default_factory=list)
    confidence: float = 0.95
