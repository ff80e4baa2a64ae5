"""Quota status routes."""

from fastapi import APIRouter

from food_scan_api.api.dependencies import QuotaTrackerDep

router = APIRouter()


@router.get("/status")
async def quota_status(quota: QuotaTrackerDep) -> dict:
    """
    Current usage for every quota-gated provider.

    Returns used, limit, remaining, reset date and whether another call
    is allowed, keyed by provider.
    """
    return {"providers": quota.status()}
