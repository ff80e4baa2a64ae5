"""Quota-gated LLM client with retry/timeout policy and error classification."""

import asyncio
import base64
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from food_scan_api.core.retry import ProviderTimeoutError, RetryPolicy, call_with_policy
from food_scan_api.services.quota import QuotaExceeded, QuotaTracker

logger = logging.getLogger(__name__)

QUOTA_KEY = "llm"

ModelFactory = Callable[[float | None, int | None], BaseChatModel]


class LLMErrorCategory(str, Enum):
    """Classified LLM failure."""

    AUTH = "auth"
    CREDITS = "credits"
    QUOTA = "quota"
    TIMEOUT = "timeout"
    TRANSIENT = "transient"
    INVALID_RESPONSE = "invalid_response"
    UNKNOWN = "unknown"


FATAL_CATEGORIES = frozenset({LLMErrorCategory.AUTH, LLMErrorCategory.CREDITS, LLMErrorCategory.QUOTA})
RETRYABLE_CATEGORIES = frozenset({LLMErrorCategory.TIMEOUT, LLMErrorCategory.TRANSIENT})


class LLMProviderError(Exception):
    """Error from the LLM provider, classified for retry decisions."""

    def __init__(
        self,
        message: str,
        category: LLMErrorCategory = LLMErrorCategory.UNKNOWN,
        provider: str = "llm",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.error_code = category.value.upper()
        self.provider = provider
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES

    @property
    def fatal(self) -> bool:
        """Auth, credits and quota failures; never retried."""
        return self.category in FATAL_CATEGORIES


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    return None


def classify_llm_error(exc: BaseException) -> LLMProviderError:
    """
    Map a provider SDK exception to an LLMProviderError.

    Classification uses the HTTP status when the SDK exposes one and falls
    back to well-known message fragments.
    """
    if isinstance(exc, LLMProviderError):
        return exc

    status = _status_code(exc)
    text = str(exc).lower()
    details = {"status_code": status, "error_type": type(exc).__name__}

    if status in (401, 403) or any(
        s in text for s in ("api key", "api_key", "unauthorized", "permission denied", "unauthenticated")
    ):
        category = LLMErrorCategory.AUTH
    elif status == 402 or any(s in text for s in ("insufficient_quota", "credit", "billing")):
        category = LLMErrorCategory.CREDITS
    elif status == 429 or any(s in text for s in ("quota", "rate limit", "resource_exhausted", "resource exhausted")):
        category = LLMErrorCategory.QUOTA
    elif isinstance(exc, asyncio.TimeoutError) or isinstance(exc, httpx.TimeoutException):
        category = LLMErrorCategory.TIMEOUT
    elif (
        isinstance(exc, (httpx.TransportError, ConnectionError))
        or (status is not None and status >= 500)
        or any(s in text for s in ("connection", "unavailable", "timed out", "overloaded"))
    ):
        category = LLMErrorCategory.TRANSIENT
    else:
        category = LLMErrorCategory.UNKNOWN

    return LLMProviderError(message=str(exc) or type(exc).__name__, category=category, details=details)


def detect_image_mime(image_data: bytes) -> str:
    """Best-effort MIME type from magic bytes (defaults to JPEG)."""
    if image_data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_data[:4] == b"RIFF" and image_data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def _message_text(content: Any) -> str:
    """Flatten LangChain message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


class LLMClient:
    """
    Text generation over a LangChain chat model.

    Every attempt:
    1. Checks and records the LLM quota
    2. Builds a chat model with the requested temperature/max tokens
    3. Runs under the retry/timeout policy

    Auth, credits and quota failures are raised immediately; timeouts and
    transient errors are retried with linear backoff.

    Usage:
        client = LLMClient(lambda t, m: get_llm(settings, temperature=t, max_tokens=m), policy)
        text = await client.generate("Name this dish", max_tokens=30)
    """

    def __init__(
        self,
        model_factory: ModelFactory,
        policy: RetryPolicy,
        quota: QuotaTracker | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._model_factory = model_factory
        self._policy = policy
        self._quota = quota
        self._sleep = sleep

    def _acquire_quota(self) -> None:
        if self._quota is None:
            return
        try:
            self._quota.acquire(QUOTA_KEY)
        except QuotaExceeded as e:
            raise LLMProviderError(
                message=str(e),
                category=LLMErrorCategory.QUOTA,
                details={"reset_date": e.reset_date.isoformat()},
            ) from e

    async def generate(
        self,
        prompt: str,
        *,
        image: bytes | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        retries: int | None = None,
    ) -> str:
        """
        Generate text for a prompt, optionally with an attached image.

        Args:
            prompt: Prompt text
            image: Raw image bytes for vision-capable models
            max_tokens: Maximum output tokens
            temperature: Sampling temperature
            retries: Retry count override for this call

        Returns:
            Non-empty model text

        Raises:
            LLMProviderError: On any classified failure
        """
        content: str | list[dict[str, Any]] = prompt
        if image is not None:
            encoded = base64.b64encode(image).decode("utf-8")
            content = [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{detect_image_mime(image)};base64,{encoded}"},
                },
            ]
        messages = [HumanMessage(content=content)]

        async def attempt() -> str:
            self._acquire_quota()
            try:
                model = self._model_factory(temperature, max_tokens)
            except ValueError as e:
                # Raised by the factory when the provider key is missing
                raise LLMProviderError(str(e), category=LLMErrorCategory.AUTH) from e

            try:
                response = await model.ainvoke(messages)
            except Exception as e:
                raise classify_llm_error(e) from e

            text = _message_text(response.content).strip()
            if not text:
                raise LLMProviderError("LLM returned empty output", category=LLMErrorCategory.INVALID_RESPONSE)
            return text

        policy = self._policy if retries is None else self._policy.with_retries(retries)
        try:
            return await call_with_policy(attempt, policy, sleep=self._sleep, label="LLM call")
        except ProviderTimeoutError as e:
            raise LLMProviderError(str(e), category=LLMErrorCategory.TIMEOUT) from e
