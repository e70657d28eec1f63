"""
Structured logging configuration for LabSync AI.
Provides request tracking, latency metrics, and compliance logging.
"""

import asyncio
import functools
import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Optional

from labsync.utils.config import settings

# Request context for tracking
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


def _utc_timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if request_id := request_id_var.get():
            log_entry["request_id"] = request_id
        if user_id := user_id_var.get():
            log_entry["user_id"] = user_id
        if session_id := session_id_var.get():
            log_entry["session_id"] = session_id

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class LatencyLogger:
    """Specialized logger for latency tracking and performance monitoring."""

    def __init__(self, name: str = "latency"):
        self.logger = logging.getLogger(name)

    def log_latency(
        self,
        operation: str,
        duration_ms: float,
        success: bool = True,
        model: Optional[str] = None,
        fallback_used: bool = False,
        **kwargs,
    ) -> None:
        """Log operation latency with context."""
        extra_fields = {
            "type": "latency",
            "operation": operation,
            "duration_ms": duration_ms,
            "success": success,
            "model": model,
            "fallback_used": fallback_used,
            **kwargs,
        }

        threshold_exceeded = kwargs.get("threshold_exceeded", False)
        if not success:
            level = logging.WARNING
        elif threshold_exceeded:
            level = logging.WARNING
        else:
            level = logging.INFO

        message = f"{operation} completed in {duration_ms:.2f}ms"
        if threshold_exceeded:
            message += " [THRESHOLD EXCEEDED]"
        if fallback_used:
            message += " [FALLBACK USED]"
        if not success:
            message += " [FAILED]"

        self.logger.log(level, message, extra={"extra_fields": extra_fields})


class ComplianceLogger:
    """Logger for the audit trail around patient data."""

    def __init__(self, name: str = "compliance"):
        self.logger = logging.getLogger(name)

    def _emit(self, message: str, extra_fields: dict) -> None:
        extra_fields["timestamp"] = _utc_timestamp()
        self.logger.info(message, extra={"extra_fields": extra_fields})

    def log_audio_processing(
        self,
        audio_id: str,
        size_bytes: int,
        user_id: str,
        operation: str,
        success: bool,
        **kwargs,
    ) -> None:
        """Log audio processing for compliance."""
        self._emit(
            f"Audio processing: {operation}",
            {
                "type": "audio_processing",
                "audio_id": audio_id,
                "size_bytes": size_bytes,
                "user_id": user_id,
                "operation": operation,
                "success": success,
                **kwargs,
            },
        )

    def log_llm_interaction(
        self,
        request_id: str,
        model: str,
        prompt_length: int,
        response_length: int,
        user_id: str,
        pii_stripped: bool = False,
        **kwargs,
    ) -> None:
        """Log LLM interactions for compliance."""
        self._emit(
            f"LLM interaction: {model}",
            {
                "type": "llm_interaction",
                "request_id": request_id,
                "model": model,
                "prompt_length": prompt_length,
                "response_length": response_length,
                "user_id": user_id,
                "pii_stripped": pii_stripped,
                **kwargs,
            },
        )

    def log_data_access(
        self,
        resource_type: str,
        resource_id: str,
        user_id: str,
        operation: str,
        success: bool,
        **kwargs,
    ) -> None:
        """Log data access for audit trail."""
        self._emit(
            f"Data access: {operation} {resource_type}",
            {
                "type": "data_access",
                "resource_type": resource_type,
                "resource_id": resource_id,
                "user_id": user_id,
                "operation": operation,
                "success": success,
                **kwargs,
            },
        )

    def log_sms_delivery(
        self,
        phone_suffix: str,
        message_type: str,
        language: str,
        success: bool,
        **kwargs,
    ) -> None:
        """Log outbound SMS notifications. Only the last digits of the number are kept."""
        self._emit(
            f"SMS delivery: {message_type}",
            {
                "type": "sms_delivery",
                "phone_suffix": phone_suffix,
                "message_type": message_type,
                "language": language,
                "success": success,
                **kwargs,
            },
        )


_logging_configured = False


def setup_logging() -> None:
    """Configure application logging."""
    global _logging_configured
    if _logging_configured:
        return

    if settings.enable_structured_logging:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler for compliance logs
    if settings.enable_structured_logging and settings.compliance_log_file:
        file_handler = logging.FileHandler(settings.compliance_log_file)
        file_handler.setFormatter(formatter)
        compliance_logger = logging.getLogger("compliance")
        compliance_logger.addHandler(file_handler)
        compliance_logger.setLevel(logging.INFO)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    """Get logger instance with proper configuration."""
    return logging.getLogger(name)


def get_latency_logger() -> LatencyLogger:
    """Get latency logger instance."""
    return LatencyLogger()


def get_compliance_logger() -> ComplianceLogger:
    """Get compliance logger instance."""
    return ComplianceLogger()


class RequestContext:
    """Context manager for request tracking."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        self.request_id = request_id or str(uuid.uuid4())
        self.user_id = user_id
        self.session_id = session_id
        self._tokens = []

    def __enter__(self):
        self._tokens.append(request_id_var.set(self.request_id))
        if self.user_id:
            self._tokens.append(user_id_var.set(self.user_id))
        if self.session_id:
            self._tokens.append(session_id_var.set(self.session_id))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for token in reversed(self._tokens):
            token.var.reset(token)
        self._tokens.clear()


def _check_threshold(operation: str, duration_ms: float) -> bool:
    """Check if operation duration exceeds configured thresholds."""
    op = operation.lower()
    if "stt" in op or "whisper" in op:
        return duration_ms > settings.stt_final_threshold
    if "tts" in op:
        return duration_ms > settings.tts_threshold
    if "llm" in op:
        return duration_ms > settings.llm_analysis_threshold
    if "translation" in op:
        return duration_ms > settings.translation_threshold
    return False


def monitor_latency(operation: str, model: Optional[str] = None):
    """Decorator to monitor operation latency with threshold checking."""

    def decorator(func):
        def _record(start_time: float, success: bool, result=None) -> None:
            duration_ms = (time.time() - start_time) * 1000
            threshold_exceeded = success and _check_threshold(operation, duration_ms)
            if isinstance(result, dict):
                result["threshold_exceeded"] = threshold_exceeded
                result["latency_ms"] = duration_ms
            get_latency_logger().log_latency(
                operation=operation,
                duration_ms=duration_ms,
                success=success,
                model=model,
                fallback_used=bool(
                    isinstance(result, dict) and result.get("fallback_used")
                ),
                threshold_exceeded=threshold_exceeded,
            )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception:
                _record(start_time, False)
                raise
            _record(start_time, True, result)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception:
                _record(start_time, False)
                raise
            _record(start_time, True, result)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


# Initialize logging on module import
setup_logging()
