"""
LLM service for LabSync AI.
Groq is the primary provider with OpenRouter and Together AI as ordered fallbacks.
"""

import re
import time
from typing import Any, Dict, List, Optional, Union

import httpx

from labsync.utils.cache import cached, get_cache_stats
from labsync.utils.config import ModelConfig, settings
from labsync.utils.errors import LLMUnavailableError
from labsync.utils.logging import get_compliance_logger, get_logger, monitor_latency

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a medical AI assistant that helps patients understand their "
    "laboratory and imaging reports. Be accurate, avoid definitive diagnoses, "
    "and recommend consulting a healthcare provider where appropriate."
)

PII_PATTERNS = [
    # Email addresses
    (r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b", "[EMAIL]"),
    # Aadhaar-like 12 digit ids, grouped in fours
    (r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}\b", "[ID]"),
    # Indian and international phone numbers
    (r"(?<!\w)(?:\+91[\s-]?|0)?[6-9]\d{9}\b", "[PHONE]"),
    (r"(?<!\w)\+\d{1,3}[\s-]?\d{3,4}[\s-]?\d{3,4}[\s-]?\d{0,4}\b", "[PHONE]"),
    # Dates of birth when labelled
    (
        r"(?i)\b(?:dob|date of birth|born)\s*:?\s*\d{1,4}[./-]\d{1,2}[./-]\d{1,4}",
        "[DOB]",
    ),
]


class LLMService:
    """Chat-completion client with an ordered provider fallback chain."""

    def __init__(self):
        timeout = httpx.Timeout(settings.request_timeout)
        self.groq_client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {settings.groq_api_key}"},
        )
        self.openrouter_client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {settings.openrouter_api_key}"},
        )
        self.together_client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {settings.together_api_key}"},
        )
        self.performance_stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "fallback_requests": 0,
        }

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.groq_client.aclose()
        await self.openrouter_client.aclose()
        await self.together_client.aclose()

    def _strip_pii(self, text: str) -> str:
        """Strip personally identifiable information from prompt text."""
        if not settings.enable_pii_stripping:
            return text

        stripped_text = text
        for pattern, replacement in PII_PATTERNS:
            stripped_text = re.sub(pattern, replacement, stripped_text)
        return stripped_text

    def _providers(self) -> List[tuple]:
        """Configured providers in fallback order."""
        providers = []
        if settings.groq_api_key:
            providers.append(("groq", self._call_groq))
        if settings.openrouter_api_key:
            providers.append(("openrouter", self._call_openrouter))
        if settings.together_api_key:
            providers.append(("together", self._call_together))
        return providers

    @staticmethod
    def _payload(model: str, messages: List[Dict[str, str]], max_tokens: int) -> Dict:
        return {
            "model": model,
            "messages": messages,
            "temperature": ModelConfig.TEMPERATURE,
            "top_p": ModelConfig.TOP_P,
            "max_tokens": min(max_tokens, ModelConfig.MAX_TOKENS_LLM),
            "stream": False,
        }

    @staticmethod
    def _parse_completion(
        response: httpx.Response, model: str, provider: str, fallback_used: bool
    ) -> Dict[str, Any]:
        result = response.json()
        return {
            "content": result["choices"][0]["message"]["content"],
            "model": model,
            "provider": provider,
            "usage": result.get("usage", {}),
            "fallback_used": fallback_used,
        }

    @cached("llm_groq", ttl=1800)
    @monitor_latency("llm_groq", ModelConfig.GROQ_MODEL)
    async def _call_groq(
        self, messages: List[Dict[str, str]], max_tokens: int = 2048
    ) -> Dict[str, Any]:
        """Call the Groq chat-completions API."""
        try:
            response = await self.groq_client.post(
                settings.groq_endpoint,
                json=self._payload(ModelConfig.GROQ_MODEL, messages, max_tokens),
            )
            response.raise_for_status()
            return self._parse_completion(
                response, ModelConfig.GROQ_MODEL, "groq", False
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                logger.warning("Groq API rate limited, triggering fallback")
            else:
                logger.warning(
                    f"Groq API error {e.response.status_code}, triggering fallback"
                )
            raise
        except Exception as e:
            logger.error(f"Groq API call failed: {e}")
            raise

    @cached("llm_openrouter", ttl=1800)
    @monitor_latency("llm_openrouter", settings.fallback_llm_model)
    async def _call_openrouter(
        self, messages: List[Dict[str, str]], max_tokens: int = 2048
    ) -> Dict[str, Any]:
        """Call the OpenRouter fallback model."""
        try:
            response = await self.openrouter_client.post(
                settings.openrouter_endpoint,
                json=self._payload(settings.fallback_llm_model, messages, max_tokens),
            )
            response.raise_for_status()
            return self._parse_completion(
                response, settings.fallback_llm_model, "openrouter", True
            )
        except Exception as e:
            logger.error(f"OpenRouter fallback failed: {e}")
            raise

    @cached("llm_together", ttl=1800)
    @monitor_latency("llm_together", ModelConfig.TOGETHER_CHAT_MODEL)
    async def _call_together(
        self, messages: List[Dict[str, str]], max_tokens: int = 2048
    ) -> Dict[str, Any]:
        """Call the Together AI fallback model."""
        try:
            response = await self.together_client.post(
                settings.together_endpoint,
                json=self._payload(
                    ModelConfig.TOGETHER_CHAT_MODEL, messages, max_tokens
                ),
            )
            response.raise_for_status()
            return self._parse_completion(
                response, ModelConfig.TOGETHER_CHAT_MODEL, "together", True
            )
        except Exception as e:
            logger.error(f"Together AI fallback failed: {e}")
            raise

    def _build_messages(
        self, prompt: Union[str, List[Dict[str, str]]], system_prompt: Optional[str]
    ) -> List[Dict[str, str]]:
        if isinstance(prompt, str):
            messages = [
                {"role": "system", "content": system_prompt or SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ]
        else:
            messages = [dict(m) for m in prompt]
        for message in messages:
            if message.get("role") == "user":
                message["content"] = self._strip_pii(message.get("content", ""))
        return messages

    async def generate_text(
        self,
        prompt: Union[str, List[Dict[str, str]]],
        max_tokens: int = 2048,
        system_prompt: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate text using the first provider in the chain that answers.

        A provider that answers slower than the analysis threshold is still
        accepted when it is the last one left; otherwise the next provider
        is tried.

        Args:
            prompt: A user prompt or a prepared list of chat messages
            max_tokens: Maximum tokens to generate
            system_prompt: Overrides the default medical assistant prompt
            user_id: User ID for compliance logging

        Returns:
            Dict with content, model, provider, usage and fallback flags

        Raises:
            LLMUnavailableError: no provider is configured or all failed
        """
        providers = self._providers()
        if not providers:
            raise LLMUnavailableError("No LLM provider configured")

        messages = self._build_messages(prompt, system_prompt)
        prompt_length = sum(len(m.get("content", "")) for m in messages)
        self.performance_stats["total_requests"] += 1

        slow_result = None
        errors = []
        for index, (name, call) in enumerate(providers):
            start_time = time.time()
            try:
                result = await call(messages, max_tokens)
            except Exception as e:
                logger.warning(f"LLM provider {name} failed: {str(e)}")
                errors.append(f"{name}: {e}")
                continue

            latency_ms = (time.time() - start_time) * 1000
            if index > 0:
                result["fallback_used"] = True
                self.performance_stats["fallback_requests"] += 1

            if latency_ms > settings.llm_analysis_threshold and index < len(providers) - 1:
                logger.warning(
                    f"LLM {name} latency {latency_ms:.1f}ms exceeds threshold "
                    f"{settings.llm_analysis_threshold}ms, trying fallback"
                )
                result["threshold_exceeded"] = True
                slow_result = slow_result or result
                continue

            self._log_llm_interaction(
                result["model"], prompt_length, len(result["content"]), user_id
            )
            self.performance_stats["successful_requests"] += 1
            return result

        if slow_result is not None:
            self._log_llm_interaction(
                slow_result["model"],
                prompt_length,
                len(slow_result["content"]),
                user_id,
            )
            self.performance_stats["successful_requests"] += 1
            return slow_result

        self.performance_stats["failed_requests"] += 1
        logger.error(f"All LLM providers failed: {'; '.join(errors)}")
        raise LLMUnavailableError("All LLM providers unavailable")

    def _log_llm_interaction(
        self,
        model: str,
        prompt_length: int,
        response_length: int,
        user_id: Optional[str],
    ):
        """Log LLM interaction for compliance."""
        get_compliance_logger().log_llm_interaction(
            request_id=f"llm_{int(time.time())}",
            model=model,
            prompt_length=prompt_length,
            response_length=response_length,
            user_id=user_id or "unknown",
            pii_stripped=settings.enable_pii_stripping,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Report which providers are configured without spending tokens."""
        providers = {
            "groq": bool(settings.groq_api_key),
            "openrouter": bool(settings.openrouter_api_key),
            "together": bool(settings.together_api_key),
        }
        return {
            "service": "llm",
            "status": "healthy" if any(providers.values()) else "degraded",
            "providers": {
                name: {"status": "configured" if ok else "not_configured"}
                for name, ok in providers.items()
            },
            "timestamp": time.time(),
        }

    def get_performance_stats(self) -> Dict[str, Any]:
        """Get performance statistics."""
        stats = dict(self.performance_stats)
        stats["providers"] = [name for name, _ in self._providers()]
        if settings.enable_caching:
            stats["cache_stats"] = get_cache_stats()
        return stats


# Global LLM service instance
llm_service = LLMService()
