from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from formflow.database.connection import get_connection
from formflow.database.models import BatchRecord


class BatchRepository:
    """Database operations for the processing_batches table."""

    async def create(self, batch: BatchRecord) -> None:
        async with get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO processing_batches
                (id, user_id, name, status, documents_total, documents_processed, results)
                VALUES (%s::uuid, %s, %s, %s, %s, 0, %s)
                """,
                (
                    batch.id,
                    batch.user_id,
                    batch.name,
                    batch.status,
                    batch.documents_total,
                    Jsonb(batch.results),
                ),
            )
            await conn.commit()

    async def mark_processing(self, batch_id: str) -> None:
        async with get_connection() as conn:
            await conn.execute(
                "UPDATE processing_batches SET status = 'processing' WHERE id = %s::uuid",
                (batch_id,),
            )
            await conn.commit()

    async def record_progress(self, batch_id: str, result: dict[str, object]) -> None:
        """Append one document result and bump the processed counter."""
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE processing_batches
                SET documents_processed = documents_processed + 1,
                    results = results || %s
                WHERE id = %s::uuid
                """,
                (Jsonb([result]), batch_id),
            )
            await conn.commit()

    async def mark_completed(self, batch_id: str) -> None:
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE processing_batches
                SET status = 'completed', completed_at = NOW()
                WHERE id = %s::uuid
                """,
                (batch_id,),
            )
            await conn.commit()

    async def mark_failed(self, batch_id: str, error: str) -> None:
        async with get_connection() as conn:
            await conn.execute(
                """
                UPDATE processing_batches
                SET status = 'failed', error_message = %s, completed_at = NOW()
                WHERE id = %s::uuid
                """,
                (error, batch_id),
            )
            await conn.commit()

    async def find(self, batch_id: str, user_id: str) -> BatchRecord | None:
        async with get_connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    """
                    SELECT id, user_id, name, status, documents_total,
                           documents_processed, results, error_message,
                           created_at, completed_at
                    FROM processing_batches
                    WHERE id = %s::uuid AND user_id = %s
                    """,
                    (batch_id, user_id),
                )
                row = await cur.fetchone()
        if row is None:
            return None
        return BatchRecord(
            id=str(row["id"]),
            user_id=row["user_id"],
            name=row["name"],
            status=row["status"],
            documents_total=row["documents_total"],
            documents_processed=row["documents_processed"],
            results=list(row["results"] or []),
            error_message=row["error_message"],
            created_at=row["created_at"],
            completed_at=row["completed_at"],
        )
