from typing import Any

import psycopg
from psycopg.rows import dict_row

from formflow.database.connection import get_connection
from formflow.database.models import UsageRecord

USAGE_COLUMNS = frozenset({"analysis", "generation", "ocr"})


class UsageRepository:
    """Database operations for the user_usage table."""

    def __init__(self, default_plan: str = "free") -> None:
        self._default_plan = default_plan

    async def consume(
        self, user_id: str, kind: str, count: int, limit: int | None, month: str
    ) -> UsageRecord | None:
        """Atomically add ``count`` to the ``kind`` counter if it stays within ``limit``.

        Counters are reset first when ``month`` differs from the stored month.
        Returns the updated record, or None when the limit would be exceeded.
        ``limit`` of None means unlimited.
        """
        if kind not in USAGE_COLUMNS:
            raise ValueError(f"Unknown usage kind '{kind}'")
        async with get_connection() as conn:
            await self._ensure_row(conn, user_id, month)
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    UPDATE user_usage
                    SET {kind} = {kind} + %s, updated_at = NOW()
                    WHERE user_id = %s
                      AND (%s::integer IS NULL OR {kind} + %s <= %s::integer)
                    RETURNING user_id, plan, analysis, generation, ocr, current_month
                    """,
                    (count, user_id, limit, count, limit),
                )
                row = await cur.fetchone()
            await conn.commit()
        return UsageRecord(**row) if row is not None else None

    async def find(self, user_id: str, month: str) -> UsageRecord:
        async with get_connection() as conn:
            await self._ensure_row(conn, user_id, month)
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT user_id, plan, analysis, generation, ocr, current_month
                    FROM user_usage
                    WHERE user_id = %s
                    """,
                    (user_id,),
                )
                row = await cur.fetchone()
            await conn.commit()
        if row is None:
            raise RuntimeError(f"Usage row for user {user_id} is missing")
        return UsageRecord(**row)

    async def _ensure_row(
        self, conn: psycopg.AsyncConnection[Any], user_id: str, month: str
    ) -> None:
        await conn.execute(
            """
            INSERT INTO user_usage (user_id, plan, current_month)
            VALUES (%s, %s, %s)
            ON CONFLICT (user_id) DO NOTHING
            """,
            (user_id, self._default_plan, month),
        )
        await conn.execute(
            """
            UPDATE user_usage
            SET analysis = 0, generation = 0, ocr = 0, current_month = %s,
                updated_at = NOW()
            WHERE user_id = %s AND current_month <> %s
            """,
            (month, user_id, month),
        )
