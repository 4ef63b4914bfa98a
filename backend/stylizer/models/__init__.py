"""
Database models package.
"""
from stylizer.models.base import Base
from stylizer.models.usage_record import UsageRecord

__all__ = [
    "Base",
    "UsageRecord",
]
