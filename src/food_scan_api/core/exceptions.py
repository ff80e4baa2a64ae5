"""Custom exception classes for the API."""

from datetime import datetime
from enum import Enum
from typing import Any


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: Any = None,
        error_code: str = "API_ERROR",
        remediation: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details
        self.error_code = error_code
        self.remediation = remediation
        super().__init__(message)


class ValidationError(APIError):
    """Validation error."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(
            message=message,
            status_code=422,
            details=details,
            error_code="VALIDATION_ERROR",
        )


class ScanErrorCategory(str, Enum):
    """Machine-checkable failure categories for a food scan."""

    VISION_UNAVAILABLE = "VisionUnavailable"
    NO_NUTRITION_DATA = "NoNutritionData"
    PROVIDER_AUTH_ERROR = "ProviderAuthError"
    PROVIDER_CREDITS_EXHAUSTED = "ProviderCreditsExhausted"
    PROVIDER_QUOTA_EXHAUSTED = "ProviderQuotaExhausted"
    UNKNOWN = "Unknown"


class ScanPipelineError(APIError):
    """A food scan failure that is reported to the caller."""

    category: ScanErrorCategory = ScanErrorCategory.UNKNOWN
    default_status: int = 500
    default_remediation: str = "Try the scan again. If the problem persists, contact support."

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        remediation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code or self.default_status,
            details=details or {},
            error_code=self.category.value,
            remediation=remediation or self.default_remediation,
        )


class VisionUnavailableError(ScanPipelineError):
    """Vision concept extraction failed or its quota is exhausted."""

    category = ScanErrorCategory.VISION_UNAVAILABLE
    default_status = 503
    default_remediation = (
        "The image recognition service is unavailable. "
        "Retry in a few minutes or use a clearer photo of the food."
    )

    def __init__(
        self,
        message: str,
        *,
        reset_date: datetime | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.reset_date = reset_date
        details = dict(details or {})
        remediation = None
        status_code = None
        if reset_date is not None:
            status_code = 429
            details["reset_date"] = reset_date.isoformat()
            remediation = (
                f"Monthly image recognition quota reached. "
                f"Scanning resumes on {reset_date.date().isoformat()}."
            )
        super().__init__(
            message,
            status_code=status_code,
            remediation=remediation,
            details=details,
        )


class NoNutritionDataError(ScanPipelineError):
    """No nutrition record could be resolved after every fallback."""

    category = ScanErrorCategory.NO_NUTRITION_DATA
    default_status = 502
    default_remediation = (
        "No nutrition database recognised this food. "
        "Try a closer photo or search for the food by name."
    )


class ProviderAuthError(ScanPipelineError):
    category = ScanErrorCategory.PROVIDER_AUTH_ERROR
    default_status = 500
    default_remediation = "A provider API key is missing or invalid. Check the server configuration."


class ProviderCreditsExhaustedError(ScanPipelineError):
    category = ScanErrorCategory.PROVIDER_CREDITS_EXHAUSTED
    default_status = 402
    default_remediation = "Provider credits are exhausted. Top up the provider account billing."


class ProviderQuotaExhaustedError(ScanPipelineError):
    category = ScanErrorCategory.PROVIDER_QUOTA_EXHAUSTED
    default_status = 429
    default_remediation = "The provider rate limit was reached. Wait a minute and try again."


class UnknownScanError(ScanPipelineError):
    category = ScanErrorCategory.UNKNOWN
    default_status = 500
