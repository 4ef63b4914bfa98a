"""
UsageRecord model: one row per Firebase user.
Tracks how many transformations the user consumed against the fixed quota,
plus a bounded history of recorded transformations.
"""
from sqlalchemy import Column, String, Integer, DateTime, JSON, CheckConstraint

from stylizer.models.base import Base, utcnow


class UsageRecord(Base):
    """Per-user transformation counter."""

    __tablename__ = "usage_records"

    user_id = Column(String(128), primary_key=True)  # Firebase uid
    transformations_used = Column(Integer, nullable=False, default=0)
    last_reset = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # [{"type": ..., "timestamp": ..., "count": ...}], most recent last
    history = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("transformations_used >= 0", name="ck_usage_records_used_non_negative"),
    )

    def __repr__(self):
        return f"<UsageRecord(user_id={self.user_id}, transformations_used={self.transformations_used})>"
