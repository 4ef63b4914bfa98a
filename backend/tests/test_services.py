"""
Tests for service layer business logic.
"""
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stylizer.errors import QuotaExceeded, StorageUnavailable
from stylizer.models.usage_record import UsageRecord
from stylizer.services.usage_service import (
    HISTORY_LIMIT,
    MAX_TRANSFORMATIONS,
    UsageService,
)


async def _set_used(db: AsyncSession, user_id: str, used: int) -> None:
    record = await UsageService.get_usage(db, user_id)
    record.transformations_used = used
    await db.commit()


class TestGetUsage:
    """Tests for lazy record creation."""

    @pytest.mark.asyncio
    async def test_creates_zeroed_record(self, db_session: AsyncSession):
        """First access creates and persists an empty record."""
        record = await UsageService.get_usage(db_session, "new-user")

        assert record.user_id == "new-user"
        assert record.transformations_used == 0
        assert record.history == []
        assert record.last_reset is not None

        persisted = await db_session.get(UsageRecord, "new-user")
        assert persisted is not None

    @pytest.mark.asyncio
    async def test_returns_existing_record(self, db_session: AsyncSession):
        await UsageService.record_transformation(db_session, "user-a")

        record = await UsageService.get_usage(db_session, "user-a")
        assert record.transformations_used == 1

    @pytest.mark.asyncio
    async def test_storage_error_raises_storage_unavailable(self, db_session: AsyncSession):
        with patch.object(
            AsyncSession, "execute",
            side_effect=OperationalError("SELECT", {}, Exception("db down")),
        ):
            with pytest.raises(StorageUnavailable) as exc_info:
                await UsageService.get_usage(db_session, "user-a")

        assert exc_info.value.message == "Usage storage unavailable"
        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestCanTransform:
    """Tests for the quota check."""

    @pytest.mark.asyncio
    async def test_fresh_user_can_transform(self, db_session: AsyncSession):
        assert await UsageService.can_transform(db_session, "fresh") is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("used", range(0, MAX_TRANSFORMATIONS + 1))
    async def test_false_exactly_at_max(self, db_session: AsyncSession, used: int):
        """Allowed below the maximum, denied at the maximum."""
        await _set_used(db_session, "user-a", used)

        result = await UsageService.can_transform(db_session, "user-a")
        assert result is (used < MAX_TRANSFORMATIONS)

    @pytest.mark.asyncio
    async def test_fails_closed_when_storage_unavailable(self, db_session: AsyncSession):
        with patch.object(
            UsageService, "get_usage",
            side_effect=StorageUnavailable("Usage storage unavailable"),
        ):
            assert await UsageService.can_transform(db_session, "user-a") is False


class TestRecordTransformation:
    """Tests for the atomic increment."""

    @pytest.mark.asyncio
    async def test_first_record(self, db_session: AsyncSession):
        stats = await UsageService.record_transformation(db_session, "user-a")

        assert stats.transformations_used == 1
        assert stats.transformations_remaining == MAX_TRANSFORMATIONS - 1
        assert stats.max_transformations == MAX_TRANSFORMATIONS

    @pytest.mark.asyncio
    async def test_counts_up_to_max_then_fails(self, db_session: AsyncSession):
        """After N calls the counter is min(N, MAX); extra calls never mutate state."""
        for expected in range(1, MAX_TRANSFORMATIONS + 1):
            stats = await UsageService.record_transformation(db_session, "user-a")
            assert stats.transformations_used == expected

        for _ in range(3):
            with pytest.raises(QuotaExceeded) as exc_info:
                await UsageService.record_transformation(db_session, "user-a")
            assert exc_info.value.used == MAX_TRANSFORMATIONS
            assert exc_info.value.maximum == MAX_TRANSFORMATIONS

        record = await UsageService.get_usage(db_session, "user-a")
        assert record.transformations_used == MAX_TRANSFORMATIONS
        assert len(record.history) == MAX_TRANSFORMATIONS

    @pytest.mark.asyncio
    async def test_history_entry(self, db_session: AsyncSession):
        await UsageService.record_transformation(db_session, "user-a", "image_transform")
        await UsageService.record_transformation(db_session, "user-a", "image_transform")

        record = await UsageService.get_usage(db_session, "user-a")
        assert [entry["count"] for entry in record.history] == [1, 2]
        assert all(entry["type"] == "image_transform" for entry in record.history)
        assert all(entry["timestamp"] for entry in record.history)

    @pytest.mark.asyncio
    async def test_users_are_independent(self, db_session: AsyncSession):
        for _ in range(MAX_TRANSFORMATIONS):
            await UsageService.record_transformation(db_session, "user-a")

        stats = await UsageService.record_transformation(db_session, "user-b")
        assert stats.transformations_used == 1

    @pytest.mark.asyncio
    async def test_concurrent_records_never_exceed_max(self, session_factory: async_sessionmaker):
        """MAX + K concurrent increments: exactly MAX succeed, K are rejected."""
        extra = 4

        async def attempt():
            async with session_factory() as session:
                return await UsageService.record_transformation(session, "racer")

        results = await asyncio.gather(
            *(attempt() for _ in range(MAX_TRANSFORMATIONS + extra)),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        rejections = [r for r in results if isinstance(r, QuotaExceeded)]
        assert len(successes) == MAX_TRANSFORMATIONS
        assert len(rejections) == extra
        assert sorted(s.transformations_used for s in successes) == list(
            range(1, MAX_TRANSFORMATIONS + 1)
        )

        async with session_factory() as session:
            record = await UsageService.get_usage(session, "racer")
            assert record.transformations_used == MAX_TRANSFORMATIONS
            assert len(record.history) == MAX_TRANSFORMATIONS

    @pytest.mark.asyncio
    async def test_history_keeps_last_fifty(self, db_session: AsyncSession):
        """After 60 transformations across resets only the latest 50 remain."""
        total = 60
        recorded = 0
        while recorded < total:
            if recorded and recorded % MAX_TRANSFORMATIONS == 0:
                await UsageService.reset_usage(db_session, "heavy")
            await UsageService.record_transformation(db_session, "heavy")
            recorded += 1

        record = await UsageService.get_usage(db_session, "heavy")
        assert len(record.history) == HISTORY_LIMIT

        # Counts cycle 1..MAX; the 10 oldest entries were evicted
        expected = [(i % MAX_TRANSFORMATIONS) + 1 for i in range(total)][-HISTORY_LIMIT:]
        assert [entry["count"] for entry in record.history] == expected


class TestResetUsage:
    """Tests for admin reset."""

    @pytest.mark.asyncio
    async def test_reset_sets_zero_and_keeps_history(self, db_session: AsyncSession):
        for _ in range(MAX_TRANSFORMATIONS):
            await UsageService.record_transformation(db_session, "user-a")
        before = await UsageService.get_usage(db_session, "user-a")
        previous_reset = before.last_reset

        stats = await UsageService.reset_usage(db_session, "user-a")

        assert stats.transformations_used == 0
        assert stats.transformations_remaining == MAX_TRANSFORMATIONS
        assert stats.last_reset is not None

        record = await UsageService.get_usage(db_session, "user-a")
        assert record.transformations_used == 0
        assert len(record.history) == MAX_TRANSFORMATIONS
        assert record.last_reset >= previous_reset
        assert await UsageService.can_transform(db_session, "user-a") is True

    @pytest.mark.asyncio
    async def test_reset_unknown_user_creates_record(self, db_session: AsyncSession):
        stats = await UsageService.reset_usage(db_session, "ghost")
        assert stats.transformations_used == 0


class TestGetAllUsage:
    """Tests for the bulk read."""

    @pytest.mark.asyncio
    async def test_empty(self, db_session: AsyncSession):
        assert await UsageService.get_all_usage(db_session) == {}

    @pytest.mark.asyncio
    async def test_lists_every_user(self, db_session: AsyncSession):
        await UsageService.record_transformation(db_session, "user-a")
        await UsageService.record_transformation(db_session, "user-a")
        await UsageService.get_usage(db_session, "user-b")

        usage = await UsageService.get_all_usage(db_session)

        assert set(usage) == {"user-a", "user-b"}
        assert usage["user-a"].transformations_used == 2
        assert usage["user-b"].transformations_remaining == MAX_TRANSFORMATIONS


class TestGetStats:
    """Tests for the user-facing snapshot."""

    @pytest.mark.asyncio
    async def test_last_reset_is_utc(self, db_session: AsyncSession):
        snapshot = await UsageService.get_stats(db_session, "user-a")
        reset = await UsageService.reset_usage(db_session, "user-a")

        assert snapshot.last_reset.utcoffset() == timedelta(0)
        assert reset.last_reset.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    async def test_recent_history_is_last_ten(self, db_session: AsyncSession):
        for _ in range(MAX_TRANSFORMATIONS):
            await UsageService.record_transformation(db_session, "user-a")
        await UsageService.reset_usage(db_session, "user-a")
        for _ in range(MAX_TRANSFORMATIONS):
            await UsageService.record_transformation(db_session, "user-a")

        snapshot = await UsageService.get_stats(db_session, "user-a")

        assert snapshot.transformations_used == MAX_TRANSFORMATIONS
        assert snapshot.transformations_remaining == 0
        assert len(snapshot.recent_history) == 10
        assert snapshot.recent_history[-1].count == MAX_TRANSFORMATIONS
