from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from formflow.database.connection import get_connection
from formflow.processing.exceptions import ConcurrentModificationError
from formflow.processing.models import ProcessingRecord


class ProcessingRepository:
    """Database operations for the form_processings table.

    The whole record lives in ``payload``; ``version`` guards against
    lost updates between concurrent writers.
    """

    async def create(self, record: ProcessingRecord) -> None:
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO form_processings
                (id, user_id, version, payload, created_at, updated_at)
                VALUES (%s::uuid, %s, %s, %s, %s, %s)
                """,
                (
                    record.id,
                    record.user_id,
                    record.version,
                    Jsonb(record.to_dict()),
                    record.created_at,
                    record.updated_at,
                ),
            )
            await conn.commit()

    async def find(self, processing_id: str, user_id: str) -> ProcessingRecord | None:
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT payload, version
                    FROM form_processings
                    WHERE id = %s::uuid AND user_id = %s
                    """,
                    (processing_id, user_id),
                )
                row = await cur.fetchone()
        if row is None:
            return None
        record = ProcessingRecord.from_dict(row["payload"])
        record.version = row["version"]
        return record

    async def save(self, record: ProcessingRecord) -> None:
        """Persist ``record`` if nobody else saved it since it was read.

        Raises:
            ConcurrentModificationError: if the stored version moved on.
        """
        expected = record.version
        record.version = expected + 1
        try:
            async with get_connection() as conn:
                cur = await conn.execute(
                    """
                    UPDATE form_processings
                    SET payload = %s, version = %s, updated_at = %s
                    WHERE id = %s::uuid AND version = %s
                    """,
                    (Jsonb(record.to_dict()), record.version, record.updated_at, record.id, expected),
                )
                await conn.commit()
        except Exception:
            record.version = expected
            raise
        if cur.rowcount == 0:
            record.version = expected
            raise ConcurrentModificationError(
                f"Processing {record.id} was modified concurrently (version {expected})"
            )

    async def list_by_user(self, user_id: str, limit: int) -> list[ProcessingRecord]:
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT payload, version
                    FROM form_processings
                    WHERE user_id = %s
                    ORDER BY created_at DESC
                    LIMIT %s
                    """,
                    (user_id, limit),
                )
                rows = await cur.fetchall()
        records = []
        for row in rows:
            record = ProcessingRecord.from_dict(row["payload"])
            record.version = row["version"]
            records.append(record)
        return records

    async def delete(self, processing_id: str, user_id: str) -> bool:
        async with get_connection() as conn:
            cur = await conn.execute(
                "DELETE FROM form_processings WHERE id = %s::uuid AND user_id = %s",
                (processing_id, user_id),
            )
            await conn.commit()
        return cur.rowcount > 0
