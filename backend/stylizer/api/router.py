"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from stylizer.api import admin, auth, health, transform, user

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(transform.router, tags=["transform"])
api_router.include_router(user.router, prefix="/user", tags=["user"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
