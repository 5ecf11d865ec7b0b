from formflow.database.connection import get_connection
from formflow.logging.logger import Log

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS form_processings (
        id UUID PRIMARY KEY,
        user_id TEXT NOT NULL,
        version INTEGER NOT NULL DEFAULT 0,
        payload JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS form_processings_user_created_idx
    ON form_processings (user_id, created_at DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS user_usage (
        user_id TEXT PRIMARY KEY,
        plan TEXT NOT NULL DEFAULT 'free',
        analysis INTEGER NOT NULL DEFAULT 0,
        generation INTEGER NOT NULL DEFAULT 0,
        ocr INTEGER NOT NULL DEFAULT 0,
        current_month TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS processing_batches (
        id UUID PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'queued',
        documents_total INTEGER NOT NULL DEFAULT 0,
        documents_processed INTEGER NOT NULL DEFAULT 0,
        results JSONB NOT NULL DEFAULT '[]'::jsonb,
        error_message TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        completed_at TIMESTAMPTZ
    )
    """,
)


async def create_schema() -> None:
    """Create the tables this worker owns if they do not exist."""
    async with get_connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
        await conn.commit()
    Log.info("Database schema ready")
