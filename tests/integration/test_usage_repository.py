import pytest

from formflow.database.connection import get_connection
from formflow.database.repositories.usage_repository import UsageRepository


@pytest.mark.integration
class TestUsageRepository:
    @pytest.mark.asyncio
    async def test_find_creates_row_with_default_plan(
        self, integration_cleanup: None, user_id: str
    ) -> None:
        usage = await UsageRepository(default_plan="pro").find(user_id, "2026-10")

        assert usage.plan == "pro"
        assert (usage.analysis, usage.generation, usage.ocr) == (0, 0, 0)
        assert usage.current_month == "2026-10"

    @pytest.mark.asyncio
    async def test_consume_within_limit(self, integration_cleanup: None, user_id: str) -> None:
        repo = UsageRepository()

        first = await repo.consume(user_id, "ocr", 2, 3, "2026-10")
        second = await repo.consume(user_id, "ocr", 1, 3, "2026-10")

        assert first is not None and first.ocr == 2
        assert second is not None and second.ocr == 3

    @pytest.mark.asyncio
    async def test_consume_over_limit_leaves_counter(
        self, integration_cleanup: None, user_id: str
    ) -> None:
        repo = UsageRepository()
        await repo.consume(user_id, "analysis", 2, 3, "2026-10")

        assert await repo.consume(user_id, "analysis", 2, 3, "2026-10") is None
        usage = await repo.find(user_id, "2026-10")
        assert usage.analysis == 2

    @pytest.mark.asyncio
    async def test_no_limit_is_unlimited(self, integration_cleanup: None, user_id: str) -> None:
        usage = await UsageRepository().consume(user_id, "generation", 500, None, "2026-10")

        assert usage is not None
        assert usage.generation == 500

    @pytest.mark.asyncio
    async def test_new_month_resets_counters(
        self, integration_cleanup: None, user_id: str
    ) -> None:
        repo = UsageRepository()
        await repo.consume(user_id, "analysis", 5, 5, "2026-09")

        usage = await repo.consume(user_id, "analysis", 1, 5, "2026-10")

        assert usage is not None
        assert usage.analysis == 1
        assert usage.current_month == "2026-10"

    @pytest.mark.asyncio
    async def test_plan_column_is_kept_on_reset(
        self, integration_cleanup: None, user_id: str
    ) -> None:
        repo = UsageRepository()
        await repo.find(user_id, "2026-09")
        async with get_connection() as conn:
            await conn.execute(
                "UPDATE user_usage SET plan = 'business' WHERE user_id = %s", (user_id,)
            )
            await conn.commit()

        usage = await repo.find(user_id, "2026-10")

        assert usage.plan == "business"

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self, integration_pool: None, user_id: str) -> None:
        with pytest.raises(ValueError, match="Unknown usage kind"):
            await UsageRepository().consume(user_id, "plan", 1, None, "2026-10")
