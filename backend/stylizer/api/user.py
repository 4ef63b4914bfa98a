"""
User endpoints.
Returns information about the authenticated user and their quota.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from stylizer.database import get_db
from stylizer.auth.dependencies import AuthenticatedUser, get_current_user
from stylizer.schemas.usage import UserInfo, UserStatsResponse
from stylizer.services.usage_service import UsageService

router = APIRouter()


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Get transformation usage for authenticated user.
    Requires valid Firebase JWT token.
    """
    usage = await UsageService.get_stats(db, current_user.uid)

    return UserStatsResponse(
        user=UserInfo(
            uid=current_user.uid,
            email=current_user.email,
            name=current_user.name,
        ),
        usage=usage,
    )
