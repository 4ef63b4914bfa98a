"""
Pydantic schemas for usage tracking responses.
Serialized with camelCase keys (by alias), the shape the web client reads.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryEntry(CamelModel):
    """One recorded transformation."""
    type: str
    timestamp: str
    count: int = Field(..., description="Counter value right after this transformation")


class UsageStats(CamelModel):
    """Counter summary returned after recording or resetting usage."""
    transformations_used: int
    transformations_remaining: int
    max_transformations: int
    last_reset: Optional[datetime] = None

    def to_header(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class UsageSnapshot(UsageStats):
    """Counter summary plus the most recent history entries."""
    recent_history: List[HistoryEntry] = []


class UserInfo(BaseModel):
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None


class UserStatsResponse(BaseModel):
    """Response schema for GET /user/stats."""
    success: bool = True
    user: UserInfo
    usage: UsageSnapshot


class AllUsageResponse(BaseModel):
    """Response schema for GET /admin/usage."""
    success: bool = True
    users: Dict[str, UsageStats]


class ResetUsageResponse(BaseModel):
    """Response schema for POST /admin/usage/{user_id}/reset."""
    success: bool = True
    usage: UsageSnapshot
