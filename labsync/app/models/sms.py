"""SMS notification records."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .base import CamelModel


class MessageType(str, Enum):
    REPORT = "report"
    ABNORMAL = "abnormal"
    RECOMMENDATION = "recommendation"


class SMSTestRequest(CamelModel):
    phone_number: Optional[str] = None
    language: Optional[str] = None
    message_type: Optional[str] = None
    report_id: Optional[str] = None
