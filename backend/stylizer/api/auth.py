"""
Authentication diagnostics.
"""
from fastapi import APIRouter, Depends

from stylizer.auth.dependencies import AuthenticatedUser, get_current_user

router = APIRouter()


@router.get("/test")
async def auth_test(current_user: AuthenticatedUser = Depends(get_current_user)):
    """Echo the decoded identity of the caller."""
    return {
        "success": True,
        "message": "Authentication successful",
        "user": {
            "uid": current_user.uid,
            "email": current_user.email,
            "name": current_user.name,
            "emailVerified": current_user.email_verified,
        },
    }
