"""
Admin endpoints for quota maintenance.
Restricted to the Firebase uids listed in ADMIN_UIDS.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stylizer.database import get_db
from stylizer.auth.dependencies import AuthenticatedUser, get_admin_user
from stylizer.schemas.usage import AllUsageResponse, ResetUsageResponse
from stylizer.services.usage_service import UsageService
from stylizer.utils.metrics import usage_resets_total

router = APIRouter()


@router.get("/usage", response_model=AllUsageResponse)
async def list_usage(
    db: AsyncSession = Depends(get_db),
    admin: AuthenticatedUser = Depends(get_admin_user)
):
    """Usage stats of every user that ever used the service."""
    users = await UsageService.get_all_usage(db)
    return AllUsageResponse(users=users)


@router.post("/usage/{user_id}/reset", response_model=ResetUsageResponse)
async def reset_usage(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AuthenticatedUser = Depends(get_admin_user)
):
    """
    Reset a user's transformation counter to zero.
    History entries are kept.
    """
    await UsageService.reset_usage(db, user_id)
    usage_resets_total.inc()
    usage = await UsageService.get_stats(db, user_id)
    return ResetUsageResponse(usage=usage)
