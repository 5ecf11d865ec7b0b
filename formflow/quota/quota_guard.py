from dataclasses import dataclass
from datetime import datetime, timezone

from formflow.database.repositories.usage_repository import UsageRepository
from formflow.logging.logger import Log
from formflow.quota.exceptions import QuotaExceededError
from formflow.quota.plans import UNLIMITED, plan_limit


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    used: int
    limit: int
    remaining: int


def current_month() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m")


class QuotaGuard:
    """Enforces per-user monthly plan limits before expensive work."""

    def __init__(self, usage_repo: UsageRepository, enabled: bool = True) -> None:
        self._usage_repo = usage_repo
        self._enabled = enabled

    async def check(self, user_id: str, kind: str) -> QuotaStatus:
        usage = await self._usage_repo.find(user_id, current_month())
        return self._status(plan_limit(usage.plan, kind), usage.used(kind))

    async def acquire(self, user_id: str, kind: str, count: int = 1) -> QuotaStatus:
        """Consume ``count`` units of ``kind`` quota.

        Raises:
            QuotaExceededError: if the plan limit would be exceeded. Nothing
                is consumed in that case.
        """
        if not self._enabled:
            return QuotaStatus(allowed=True, used=0, limit=UNLIMITED, remaining=UNLIMITED)

        month = current_month()
        usage = await self._usage_repo.find(user_id, month)
        limit = plan_limit(usage.plan, kind)
        updated = await self._usage_repo.consume(
            user_id, kind, count, None if limit == UNLIMITED else limit, month
        )
        if updated is None:
            latest = await self._usage_repo.find(user_id, month)
            Log.warning(f"Quota exceeded for user {user_id}: {kind} {latest.used(kind)}/{limit}")
            raise QuotaExceededError(kind, limit, latest.used(kind))
        return self._status(limit, updated.used(kind))

    @staticmethod
    def _status(limit: int, used: int) -> QuotaStatus:
        if limit == UNLIMITED:
            return QuotaStatus(allowed=True, used=used, limit=limit, remaining=UNLIMITED)
        remaining = max(limit - used, 0)
        return QuotaStatus(allowed=remaining > 0, used=used, limit=limit, remaining=remaining)
