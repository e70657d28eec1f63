"""SMS notifications for users without smartphones."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ...utils.config import settings
from ...utils.logging import get_compliance_logger, get_logger
from ..models.report import ResultStatus
from ..models.sms import MessageType, SMSTestRequest
from .localization import generate_sms_report_summary, translate_text
from .low_resource import CRITICAL, generate_sms_summary

logger = get_logger(__name__)
compliance_logger = get_compliance_logger()

PHONE_PATTERN = re.compile(r"^(\+91|0)?[6-9]\d{9}$")

TEST_MESSAGES = {
    MessageType.REPORT.value: (
        "Your medical report is ready. View it on LabSyncAI or check your SMS for a summary."
    ),
    MessageType.ABNORMAL.value: (
        "Alert: Some test results in your recent report require attention. "
        "Please consult your healthcare provider."
    ),
    MessageType.RECOMMENDATION.value: (
        "New health recommendations based on your recent test results are available on LabSyncAI."
    ),
}
DEFAULT_TEST_MESSAGE = "Notification from LabSyncAI"


def is_valid_phone_number(phone_number: str) -> bool:
    return bool(PHONE_PATTERN.match(phone_number or ""))


def _truncate(message: str, max_length: int) -> str:
    if len(message) > max_length:
        return message[: max_length - 3] + "..."
    return message


def build_report_message(
    report: Dict[str, Any], include_summary: bool = False, max_length: Optional[int] = None
) -> str:
    if include_summary:
        return generate_sms_summary(report, max_length or settings.sms_max_length)
    return (
        f"New medical report '{report.get('title')}' is available. "
        "Login to LabSyncAI to view details."
    )


def build_abnormal_message(report: Dict[str, Any]) -> Optional[str]:
    """Alert text for out-of-range results, or None when everything is normal."""

    abnormal = [
        r for r in report.get("results") or []
        if r.get("status") and r.get("status") not in (ResultStatus.NORMAL.value, ResultStatus.NOT_AVAILABLE.value)
    ]
    if not abnormal:
        return None

    message = f"ALERT: {len(abnormal)} abnormal results in your report '{report.get('title')}'. "
    critical = [r["name"] for r in abnormal if r.get("status") in CRITICAL]
    if critical:
        message += f"URGENT: {', '.join(critical)}. "
    return message + "Please consult your healthcare provider."


def build_recommendations_message(
    recommendations: Dict[str, Any], max_length: Optional[int] = None
) -> str:
    def first(*keys: str) -> Optional[str]:
        for key in keys:
            items = recommendations.get(key)
            if isinstance(items, list) and items:
                return items[0]
            if isinstance(items, str) and items:
                return items
        return None

    message = "Health recommendations: "
    diet = first("dietary", "dietaryRecommendations")
    lifestyle = first("lifestyle", "lifestyleChanges")
    follow_up = first("followUp", "followUpSchedule")
    if diet:
        message += f"Diet: {diet}. "
    if lifestyle:
        message += f"Lifestyle: {lifestyle}. "
    if follow_up:
        message += f"Follow-up: {follow_up}."
    return _truncate(message, max_length or settings.sms_max_length)


class SMSNotifier:
    """Send notifications through an HTTP SMS gateway."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        endpoint: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.sms_api_key
        self.sender = sender or settings.sms_sender_id
        self.endpoint = endpoint or settings.sms_api_endpoint
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def close(self):
        await self._client.aclose()

    async def send_sms(
        self,
        phone_number: str,
        message: str,
        language: str = "en",
        message_type: str = "custom",
        translate: bool = True,
    ) -> Dict[str, Any]:
        """Deliver one message; returns ``{success, message?}`` and never raises.

        ``translate=False`` sends text that is already in ``language``.
        """

        if not self.configured:
            logger.warning("SMS API key not configured")
            return {"success": False, "message": "SMS API key not configured"}
        if not is_valid_phone_number(phone_number):
            return {"success": False, "message": "Invalid phone number"}

        try:
            text = await translate_text(message, language) if translate else message
            response = await self._client.post(
                self.endpoint,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json={"to": phone_number, "from": self.sender, "text": text, "language": language},
            )
            response.raise_for_status()
            data = response.json() if response.content else {}
            outcome = {"success": bool(data.get("success", True))}
            if data.get("message"):
                outcome["message"] = data["message"]
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("SMS delivery failed: %s", exc)
            outcome = {"success": False, "message": str(exc) or "Unknown error sending SMS"}

        compliance_logger.log_sms_delivery(
            phone_suffix=phone_number[-4:],
            message_type=message_type,
            language=language,
            success=outcome["success"],
        )
        return outcome

    async def send_report_notification(
        self,
        phone_number: str,
        report: Dict[str, Any],
        language: str = "en",
        include_summary: bool = False,
        max_length: Optional[int] = None,
    ) -> Dict[str, Any]:
        message = build_report_message(report, include_summary, max_length)
        return await self.send_sms(phone_number, message, language, MessageType.REPORT.value)

    async def send_abnormal_results_notification(
        self, phone_number: str, report: Dict[str, Any], language: str = "en"
    ) -> Dict[str, Any]:
        message = build_abnormal_message(report)
        if message is None:
            return {"success": False, "message": "No abnormal results to report"}
        return await self.send_sms(phone_number, message, language, MessageType.ABNORMAL.value)

    async def send_recommendations_notification(
        self,
        phone_number: str,
        recommendations: Dict[str, Any],
        language: str = "en",
        max_length: Optional[int] = None,
    ) -> Dict[str, Any]:
        message = build_recommendations_message(recommendations, max_length)
        return await self.send_sms(phone_number, message, language, MessageType.RECOMMENDATION.value)

    async def _test_content(
        self, request: SMSTestRequest, report: Optional[Dict[str, Any]]
    ) -> str:
        """Localized text for a test notification, taken from the report when given."""

        message = None
        if report:
            if request.message_type == MessageType.REPORT.value:
                return await generate_sms_report_summary(report, request.language)
            if request.message_type == MessageType.ABNORMAL.value:
                message = build_abnormal_message(report)
            elif request.message_type == MessageType.RECOMMENDATION.value and report.get("recommendations"):
                message = build_recommendations_message(report["recommendations"])

        if message is None:
            message = TEST_MESSAGES.get(request.message_type, DEFAULT_TEST_MESSAGE)
        return await translate_text(message, request.language)

    async def send_test(
        self, request: SMSTestRequest, report: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build the test notification and deliver it when a gateway is configured.

        Without an API key nothing leaves the process and the message is
        reported as sent. A failed delivery returns ``status: "error"``.
        """

        content = await self._test_content(request, report)
        details: Dict[str, Any] = {
            "phoneNumber": request.phone_number,
            "language": request.language,
            "messageType": request.message_type,
            "reportId": request.report_id,
            "content": content,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }

        if not self.configured:
            logger.info("SMS gateway not configured, test message not delivered")
            return {
                "status": "success",
                "message": "SMS notification sent successfully",
                "details": details,
            }

        outcome = await self.send_sms(
            request.phone_number,
            content,
            request.language,
            request.message_type or "custom",
            translate=False,
        )
        if not outcome["success"]:
            return {
                "status": "error",
                "message": outcome.get("message", "SMS delivery failed"),
            }
        details["delivered"] = True
        return {
            "status": "success",
            "message": "SMS notification sent successfully",
            "details": details,
        }


sms_notifier = SMSNotifier()
