"""
Business logic services.
"""
from stylizer.services.usage_service import UsageService

__all__ = [
    "UsageService",
]
