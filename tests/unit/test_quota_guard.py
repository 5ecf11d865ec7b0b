from unittest.mock import AsyncMock, MagicMock

import pytest

from formflow.database.models import UsageRecord
from formflow.quota.exceptions import QuotaExceededError
from formflow.quota.plans import UNLIMITED, plan_limit
from formflow.quota.quota_guard import QuotaGuard, current_month


def _usage(plan: str = "free", analysis: int = 0) -> UsageRecord:
    return UsageRecord(
        user_id="u1", plan=plan, analysis=analysis, generation=0, ocr=0, current_month="2026-10"
    )


def _repo(find: UsageRecord, consume: UsageRecord | None) -> MagicMock:
    repo = MagicMock()
    repo.find = AsyncMock(return_value=find)
    repo.consume = AsyncMock(return_value=consume)
    return repo


class TestPlans:
    def test_known_plan(self) -> None:
        assert plan_limit("pro", "analysis") == 200

    def test_unknown_plan_uses_free_limits(self) -> None:
        assert plan_limit("mystery", "ocr") == 10

    def test_enterprise_is_unlimited(self) -> None:
        assert plan_limit("enterprise", "generation") == UNLIMITED


class TestQuotaGuard:
    def test_current_month_format(self) -> None:
        month = current_month()
        assert len(month) == 7
        assert month[4] == "-"

    @pytest.mark.asyncio
    async def test_acquire_consumes_within_limit(self) -> None:
        repo = _repo(_usage(), _usage(analysis=1))
        status = await QuotaGuard(repo).acquire("u1", "analysis")

        repo.consume.assert_awaited_once_with("u1", "analysis", 1, 5, current_month())
        assert status.used == 1
        assert status.remaining == 4
        assert status.allowed is True

    @pytest.mark.asyncio
    async def test_acquire_raises_when_limit_reached(self) -> None:
        repo = _repo(_usage(analysis=5), None)
        with pytest.raises(QuotaExceededError) as exc_info:
            await QuotaGuard(repo).acquire("u1", "analysis")

        assert exc_info.value.limit == 5
        assert exc_info.value.used == 5
        assert exc_info.value.kind == "analysis"

    @pytest.mark.asyncio
    async def test_unlimited_plan_passes_no_limit(self) -> None:
        repo = _repo(_usage(plan="enterprise"), _usage(plan="enterprise", analysis=900))
        status = await QuotaGuard(repo).acquire("u1", "analysis")

        assert repo.consume.await_args.args[3] is None
        assert status.remaining == UNLIMITED

    @pytest.mark.asyncio
    async def test_disabled_guard_skips_repository(self) -> None:
        repo = _repo(_usage(), None)
        status = await QuotaGuard(repo, enabled=False).acquire("u1", "analysis")

        assert status.allowed is True
        repo.find.assert_not_awaited()
        repo.consume.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_check_reports_remaining(self) -> None:
        repo = _repo(_usage(analysis=5), None)
        status = await QuotaGuard(repo).check("u1", "analysis")

        assert status.allowed is False
        assert status.remaining == 0
        repo.consume.assert_not_awaited()
