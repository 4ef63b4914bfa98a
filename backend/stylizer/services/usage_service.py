"""
Usage service: per-user transformation quota.

Every user gets a fixed number of transformations (MAX_TRANSFORMATIONS).
The counter only goes back to zero through an explicit reset.

record_transformation() is the one operation that mutates the counter. It
runs as a single transaction that first writes (insert-if-absent), then
re-reads the row under a lock before incrementing, so concurrent calls for
the same user serialize and the counter can never pass the maximum:
- PostgreSQL: SELECT ... FOR UPDATE row lock
- SQLite: the first INSERT takes the database write lock
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stylizer.config import settings
from stylizer.errors import QuotaExceeded, StorageUnavailable
from stylizer.models.base import utcnow
from stylizer.models.usage_record import UsageRecord
from stylizer.schemas.usage import HistoryEntry, UsageSnapshot, UsageStats
from stylizer.utils.logging import log_transformation_recorded, log_usage_reset

logger = logging.getLogger(__name__)

MAX_TRANSFORMATIONS = settings.max_transformations
HISTORY_LIMIT = settings.history_limit
RECENT_HISTORY_LIMIT = settings.recent_history_limit

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; every stored value is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _storage_unavailable(error: SQLAlchemyError) -> StorageUnavailable:
    logger.error(
        f"Usage storage error: {error}",
        extra={"event": "usage_storage_error", "error_type": type(error).__name__},
    )
    return StorageUnavailable("Usage storage unavailable")


def _stats(record: UsageRecord, include_last_reset: bool = False) -> UsageStats:
    used = record.transformations_used
    return UsageStats(
        transformations_used=used,
        transformations_remaining=MAX_TRANSFORMATIONS - used,
        max_transformations=MAX_TRANSFORMATIONS,
        last_reset=_as_utc(record.last_reset) if include_last_reset else None,
    )


def _append_history(history: List[dict], kind: str, count: int) -> List[dict]:
    """Return a new history list with the entry appended, trimmed to HISTORY_LIMIT."""
    entries = list(history or [])
    entries.append({
        "type": kind,
        "timestamp": utcnow().isoformat(),
        "count": count,
    })
    return entries[-HISTORY_LIMIT:]


class UsageService:
    """Service for quota accounting with atomic operations."""

    TRANSFORMATION_KIND = "image_transform"

    @staticmethod
    async def _insert_if_absent(db: AsyncSession, user_id: str) -> None:
        """Create a zeroed record for user_id unless one already exists."""
        dialect = db.get_bind().dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            # Generic path: no ON CONFLICT support, rely on the primary key
            if await db.get(UsageRecord, user_id) is None:
                db.add(UsageRecord(user_id=user_id, transformations_used=0, history=[]))
                await db.flush()
            return

        now = utcnow()
        await db.execute(
            insert(UsageRecord)
            .values(
                user_id=user_id,
                transformations_used=0,
                last_reset=now,
                history=[],
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )

    @staticmethod
    async def _locked_record(db: AsyncSession, user_id: str) -> UsageRecord:
        result = await db.execute(
            select(UsageRecord)
            .where(UsageRecord.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @staticmethod
    async def get_usage(db: AsyncSession, user_id: str) -> UsageRecord:
        """
        Return the usage record for user_id, creating a zeroed one on first access.

        Raises:
            StorageUnavailable: If the database cannot be reached
        """
        try:
            await UsageService._insert_if_absent(db, user_id)
            result = await db.execute(
                select(UsageRecord)
                .where(UsageRecord.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            record = result.scalar_one()
            await db.commit()
            return record
        except SQLAlchemyError as e:
            await db.rollback()
            raise _storage_unavailable(e) from e

    @staticmethod
    async def can_transform(db: AsyncSession, user_id: str) -> bool:
        """
        Check if the user still has transformations left.

        Fails closed: returns False when storage is unavailable, so a
        transformation is never performed without being counted.
        """
        try:
            record = await UsageService.get_usage(db, user_id)
        except StorageUnavailable as e:
            logger.error(
                f"Denying transformation, usage storage unavailable: {e}",
                extra={"event": "quota_check_failed", "user_id": user_id},
            )
            return False
        return record.transformations_used < MAX_TRANSFORMATIONS

    @staticmethod
    async def record_transformation(
        db: AsyncSession,
        user_id: str,
        kind: str = TRANSFORMATION_KIND,
    ) -> UsageStats:
        """
        Atomically charge one transformation to the user.

        Args:
            db: Database session
            user_id: Firebase uid
            kind: History entry type

        Returns:
            Updated usage stats

        Raises:
            QuotaExceeded: If the user already used every transformation
                (nothing is written)
            StorageUnavailable: If the database cannot be reached
        """
        try:
            await UsageService._insert_if_absent(db, user_id)
            record = await UsageService._locked_record(db, user_id)

            used = record.transformations_used
            if used >= MAX_TRANSFORMATIONS:
                await db.rollback()
                raise QuotaExceeded(used, MAX_TRANSFORMATIONS)

            record.transformations_used = used + 1
            record.history = _append_history(record.history, kind, used + 1)
            record.updated_at = utcnow()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise _storage_unavailable(e) from e

        log_transformation_recorded(
            logger,
            user_id=user_id,
            used=record.transformations_used,
            maximum=MAX_TRANSFORMATIONS,
            kind=kind,
        )
        return _stats(record)

    @staticmethod
    async def reset_usage(db: AsyncSession, user_id: str) -> UsageStats:
        """
        Reset the user's counter to zero. History is preserved.

        Raises:
            StorageUnavailable: If the database cannot be reached
        """
        try:
            await UsageService._insert_if_absent(db, user_id)
            record = await UsageService._locked_record(db, user_id)
            now = utcnow()
            record.transformations_used = 0
            record.last_reset = now
            record.updated_at = now
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise _storage_unavailable(e) from e

        log_usage_reset(logger, user_id=user_id)
        return _stats(record, include_last_reset=True)

    @staticmethod
    async def get_all_usage(db: AsyncSession) -> Dict[str, UsageStats]:
        """Return usage stats for every known user (no ordering guarantee)."""
        try:
            result = await db.execute(select(UsageRecord))
            records = result.scalars().all()
        except SQLAlchemyError as e:
            await db.rollback()
            raise _storage_unavailable(e) from e

        return {
            record.user_id: _stats(record, include_last_reset=True)
            for record in records
        }

    @staticmethod
    async def get_stats(db: AsyncSession, user_id: str) -> UsageSnapshot:
        """Usage stats plus the most recent history entries, for display."""
        record = await UsageService.get_usage(db, user_id)
        stats = _stats(record, include_last_reset=True)
        return UsageSnapshot(
            **stats.model_dump(),
            recent_history=[
                HistoryEntry(**entry)
                for entry in (record.history or [])[-RECENT_HISTORY_LIMIT:]
            ],
        )
