"""Food Scan API routes.

Single-image food scan: vision concepts -> dish name -> nutrition ->
AI analysis.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, UploadFile

from food_scan_api.api.dependencies import FusionEngineDep, SettingsDep
from food_scan_api.core.exceptions import ScanPipelineError, UnknownScanError, ValidationError
from food_scan_api.models.food_scan import ScanErrorResponse, ScanResponse

router = APIRouter()
logger = logging.getLogger(__name__)

# =============================================================================
# Validation Constants
# =============================================================================

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}


# =============================================================================
# Validation Helpers
# =============================================================================


async def read_image(image: UploadFile, max_size: int) -> bytes:
    """
    Read and validate an uploaded image.

    Raises:
        ValidationError: Unsupported content type, empty body or oversize file
    """
    if image.content_type and image.content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            f"Unsupported image type: {image.content_type}",
            details={"allowed": sorted(ALLOWED_CONTENT_TYPES)},
        )

    content = await image.read()
    size = len(content)

    if size == 0:
        raise ValidationError("Image file is empty")
    if size > max_size:
        raise ValidationError(
            f"Image exceeds maximum size of {max_size // (1024 * 1024)} MB",
            details={"size": size, "max_size": max_size},
        )
    return content


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/scan-food",
    response_model=ScanResponse,
    responses={
        402: {"model": ScanErrorResponse, "description": "Provider credits exhausted"},
        422: {"model": ScanErrorResponse, "description": "Invalid image upload"},
        429: {"model": ScanErrorResponse, "description": "Provider quota exhausted"},
        500: {"model": ScanErrorResponse, "description": "Provider auth or unknown error"},
        502: {"model": ScanErrorResponse, "description": "No nutrition data found"},
        503: {"model": ScanErrorResponse, "description": "Vision provider unavailable"},
    },
    summary="Identify a dish and its nutrition from a photo",
    description="""
    Upload a food photo (multipart field `image`, JPEG/PNG/WebP, max 10 MB).

    The dish name is synthesized from vision concepts, nutrition is
    resolved from USDA then Nutritionix (with recipe-composite and
    per-component fallbacks), and an AI analysis is validated against the
    nutrition numbers. Non-fatal fallbacks are reported in `warnings`.

    **Error codes:** `VisionUnavailable`, `NoNutritionData`,
    `ProviderAuthError`, `ProviderCreditsExhausted`,
    `ProviderQuotaExhausted`, `Unknown`.
    """,
)
async def scan_food(
    image: Annotated[UploadFile, File(description="Food photo (JPEG, PNG or WebP)")],
    engine: FusionEngineDep,
    settings: SettingsDep,
) -> ScanResponse:
    """Run the full scan pipeline for one uploaded image."""
    content = await read_image(image, settings.max_image_bytes)
    logger.info(f"Food scan: {image.filename or 'upload'} ({len(content)} bytes, {image.content_type})")

    try:
        response = await engine.scan(content)
    except ScanPipelineError as e:
        logger.warning(f"Food scan failed: [{e.error_code}] {e.message}")
        raise
    except Exception as e:
        logger.exception("Unexpected error during food scan")
        raise UnknownScanError(
            f"Food scan failed: {e}",
            details={"error_type": type(e).__name__},
        ) from e

    logger.info(
        f"Food scan complete: '{response.identified_dish.name}' "
        f"({response.identified_dish.source.value}, {len(response.warnings)} warnings)"
    )
    return response
