"""
Pydantic schemas for API request/response validation.
"""
from stylizer.schemas.usage import (
    HistoryEntry,
    UsageStats,
    UsageSnapshot,
    UserInfo,
    UserStatsResponse,
    AllUsageResponse,
    ResetUsageResponse,
)

__all__ = [
    "HistoryEntry",
    "UsageStats",
    "UsageSnapshot",
    "UserInfo",
    "UserStatsResponse",
    "AllUsageResponse",
    "ResetUsageResponse",
]
